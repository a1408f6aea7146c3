"""Review step: the user adjusts the computed install list before committing."""

from dataclasses import dataclass
from typing import List, Set

from ..utils.logger import get_module_logger
from .models import DependencyType, Item, ItemKey, ResolvedDependency


ORIGIN_SELECTED = "selected"


@dataclass(frozen=True)
class ReviewEntry:
    """One row of the review list."""
    item: Item
    origin: str  # "selected", "required" or "optional"
    chosen: bool


class ReviewModel:
    """Merge of the user's selection and the resolver output into one confirmable list.

    The selected items and the resolved dependencies are fixed inputs; only the
    set of chosen keys changes during review.
    """

    def __init__(self, selected: List[Item], dependencies: List[ResolvedDependency],
                 optional_default_selected: bool = False):
        """Initialize the review.

        Args:
            selected: Items picked by the user, in selection order
            dependencies: Resolved dependencies, in discovery order
            optional_default_selected: Start optional dependencies checked
        """
        self.selected: List[Item] = list(selected)
        self.dependencies: List[ResolvedDependency] = list(dependencies)
        self.logger = get_module_logger("review")

        self._known: Set[ItemKey] = {item.key for item in self.selected}
        self._known.update(dep.item.key for dep in self.dependencies)

        self._chosen: Set[ItemKey] = {item.key for item in self.selected}
        for dep in self.dependencies:
            if dep.is_required or optional_default_selected:
                self._chosen.add(dep.item.key)

        self.logger.debug(f"Review opened: {len(self.selected)} selected, {len(self.dependencies)} "
                          f"dependencies, {len(self._chosen)} chosen by default")

    def toggle_choice(self, key: ItemKey) -> bool:
        """Flip whether ``key`` will be installed. Returns the new state."""
        if key not in self._known:
            raise KeyError(f"{key[0].value}/{key[1]} is not part of this review")

        if key in self._chosen:
            self._chosen.remove(key)
            return False
        self._chosen.add(key)
        return True

    def is_chosen(self, key: ItemKey) -> bool:
        return key in self._chosen

    @property
    def chosen_count(self) -> int:
        return len(self._chosen)

    @property
    def can_confirm(self) -> bool:
        return bool(self._chosen)

    def entries(self) -> List[ReviewEntry]:
        """Rows for display: selected items first, then dependencies."""
        rows = [ReviewEntry(item, ORIGIN_SELECTED, item.key in self._chosen) for item in self.selected]
        rows.extend(
            ReviewEntry(dep.item, dep.dependency_type.value, dep.item.key in self._chosen)
            for dep in self.dependencies
        )
        return rows

    def optional_dependencies(self) -> List[Item]:
        return [dep.item for dep in self.dependencies if dep.dependency_type == DependencyType.OPTIONAL]

    def confirm(self) -> List[Item]:
        """Final install order: chosen selected items, then chosen dependencies."""
        install_list = [item for item in self.selected if item.key in self._chosen]
        install_list.extend(dep.item for dep in self.dependencies if dep.item.key in self._chosen)
        self.logger.info(f"Review confirmed with {len(install_list)} items")
        return install_list
