"""User-picked items, kept independently of the current search page."""

from typing import Dict, Iterator, List

from ..utils.logger import get_module_logger
from .models import Item, ItemKey


class SelectionSet:
    """Insertion-ordered set of selected items keyed by ``(provider, id)``.

    Only explicit user actions mutate it; searching, paging and dependency
    resolution never do.
    """

    def __init__(self):
        self._items: Dict[ItemKey, Item] = {}
        self.logger = get_module_logger("selection")

    def toggle(self, item: Item) -> int:
        """Select ``item``, or deselect it if already selected. Returns the new size."""
        if item.key in self._items:
            del self._items[item.key]
            self.logger.debug(f"Deselected {item.provider.value}/{item.id} ({item.title})")
        else:
            self._items[item.key] = item
            self.logger.debug(f"Selected {item.provider.value}/{item.id} ({item.title})")
        return len(self._items)

    def contains(self, item: Item) -> bool:
        return item.key in self._items

    def __contains__(self, key: ItemKey) -> bool:
        return key in self._items

    def items(self) -> List[Item]:
        return list(self._items.values())

    def keys(self) -> List[ItemKey]:
        return list(self._items.keys())

    def clear(self) -> None:
        if self._items:
            self.logger.debug(f"Selection cleared ({len(self._items)} items)")
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items.values()))

    def __bool__(self) -> bool:
        return bool(self._items)
