"""Catalog collaborator contract and an offline, YAML-backed implementation of it."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ..utils.logger import get_module_logger
from .errors import CatalogError
from .models import (
    DependencySet,
    Item,
    ItemKey,
    ProjectKind,
    Provider,
    SearchContext,
    SearchRequest,
    SortOrder,
)


class CatalogClient(ABC):
    """Search, dependency lookup and install against external catalogs.

    Every call is keyed by ``(provider, item_id)``; identifiers are only unique
    within one provider. Implementations raise :class:`CatalogError` (or any other
    exception) on failure.
    """

    @abstractmethod
    async def search(self, request: SearchRequest) -> List[Item]:
        """Return one page of items for ``request``."""
        pass

    @abstractmethod
    async def get_dependencies(self, provider: Provider, item_id: str,
                               context: Optional[SearchContext] = None) -> DependencySet:
        """Return the direct required and optional dependencies of one item."""
        pass

    @abstractmethod
    async def install(self, provider: Provider, item_id: str, version_id: Optional[str] = None,
                      context: Optional[SearchContext] = None) -> Optional[str]:
        """Install one item. ``version_id=None`` means latest version compatible with ``context``."""
        pass


class StaticCatalogClient(CatalogClient):
    """Catalog served from an in-memory list of entries, usually ``config/catalog.yaml``.

    Each entry is a mapping with the item fields plus optional ``kind``,
    ``versions`` and ``dependencies: {required: [...], optional: [...]}``. A
    dependency reference is either a bare id (same provider) or a mapping with
    ``provider`` and ``id``.
    """

    def __init__(self, entries: List[Dict[str, Any]], kind: Optional[ProjectKind] = None):
        self.kind = kind
        self.logger = get_module_logger("catalog_client")
        self._items: Dict[ItemKey, Item] = {}
        self._raw: Dict[ItemKey, Dict[str, Any]] = {}
        self.installed: List[Tuple[ItemKey, Optional[str]]] = []

        for entry in entries:
            entry_kind = entry.get("kind")
            if kind is not None and entry_kind and ProjectKind(entry_kind) != kind:
                continue
            item = self._item_from_entry(entry)
            if item.key in self._items:
                self.logger.warning(f"Duplicate catalog entry ignored: {item.provider.value}/{item.id}")
                continue
            self._items[item.key] = item
            self._raw[item.key] = entry

        self.logger.info(f"Static catalog loaded: {len(self._items)} items"
                         + (f" ({kind.value}s)" if kind else ""))

    @classmethod
    def from_config(cls, config_manager, kind: Optional[ProjectKind] = None) -> "StaticCatalogClient":
        """Build a client from the ``catalog`` configuration file."""
        config = config_manager.load_config("catalog")
        return cls(config.get("items", []) or [], kind=kind)

    @staticmethod
    def _item_from_entry(entry: Dict[str, Any]) -> Item:
        try:
            return Item(
                id=str(entry["id"]),
                provider=Provider.parse(entry["provider"]),
                title=entry.get("title", str(entry["id"])),
                description=entry.get("description", ""),
                author=entry.get("author", ""),
                downloads=int(entry.get("downloads", 0)),
                categories=tuple(str(c) for c in entry.get("categories", []) or []),
                icon_url=entry.get("icon_url"),
                screenshots=tuple(entry.get("screenshots", []) or []),
                slug=entry.get("slug"),
                follows=int(entry.get("follows", 0)),
                published=str(entry.get("published", "")),
                updated=str(entry.get("updated", "")),
                game_versions=tuple(str(v) for v in entry.get("game_versions", []) or []),
                loaders=tuple(str(l).lower() for l in entry.get("loaders", []) or []),
            )
        except KeyError as e:
            raise ValueError(f"Catalog entry is missing field {e}: {entry!r}")

    def _get(self, provider: Provider, item_id: str) -> Item:
        try:
            return self._items[(provider, item_id)]
        except KeyError:
            raise CatalogError(f"Project not found: {provider.value}/{item_id}", provider, item_id)

    @staticmethod
    def _compatible(item: Item, game_version: Optional[str], loader: Optional[str]) -> bool:
        if game_version and item.game_versions and game_version not in item.game_versions:
            return False
        if loader and item.loaders and loader.lower() not in item.loaders:
            return False
        return True

    async def search(self, request: SearchRequest) -> List[Item]:
        terms = request.query.lower().split()
        category_ids = request.category_ids

        matches = []
        for item in self._items.values():
            if item.provider != request.provider:
                continue
            if category_ids and not all(c in item.categories for c in category_ids):
                continue
            if not self._compatible(item, request.game_version, request.loader):
                continue
            haystack = " ".join([item.title, item.description, item.slug or ""]).lower()
            if terms and not all(term in haystack for term in terms):
                continue
            matches.append(item)

        self._sort(matches, request.sort, terms)
        page = matches[request.offset:request.offset + request.limit]
        self.logger.debug(f"Search {request.provider.value} '{request.query}': "
                          f"{len(matches)} matches, returning {len(page)}")
        return page

    @staticmethod
    def _sort(items: List[Item], sort: SortOrder, terms: List[str]) -> None:
        if sort == SortOrder.DOWNLOADS:
            items.sort(key=lambda item: item.downloads, reverse=True)
        elif sort == SortOrder.FOLLOWS:
            items.sort(key=lambda item: item.follows, reverse=True)
        elif sort == SortOrder.NEWEST:
            items.sort(key=lambda item: item.published, reverse=True)
        elif sort == SortOrder.UPDATED:
            items.sort(key=lambda item: item.updated, reverse=True)
        else:
            # Relevance: title hits first, then popularity
            items.sort(key=lambda item: (sum(1 for term in terms if term in item.title.lower()),
                                         item.downloads), reverse=True)

    async def get_dependencies(self, provider: Provider, item_id: str,
                               context: Optional[SearchContext] = None) -> DependencySet:
        item = self._get(provider, item_id)
        declared = self._raw[item.key].get("dependencies", {}) or {}

        result = DependencySet()
        for dependency_type, target in (("required", result.required), ("optional", result.optional)):
            for ref in declared.get(dependency_type, []) or []:
                dep_provider, dep_id = self._parse_ref(ref, item.provider)
                dependency = self._items.get((dep_provider, dep_id))
                if dependency is None:
                    # Upstream catalogs also return dangling references; they are dropped
                    self.logger.warning(f"{item.title}: {dependency_type} dependency "
                                        f"{dep_provider.value}/{dep_id} not in catalog")
                    continue
                target.append(dependency)

        return result

    @staticmethod
    def _parse_ref(ref: Any, default_provider: Provider) -> ItemKey:
        if isinstance(ref, dict):
            provider = Provider.parse(ref["provider"]) if "provider" in ref else default_provider
            return provider, str(ref["id"])
        return default_provider, str(ref)

    async def install(self, provider: Provider, item_id: str, version_id: Optional[str] = None,
                      context: Optional[SearchContext] = None) -> Optional[str]:
        item = self._get(provider, item_id)
        versions = [str(v) for v in self._raw[item.key].get("versions", []) or []]

        if context is not None and not self._compatible(item, context.game_version, context.loader):
            raise CatalogError(f"No compatible version of {item.title} for "
                               f"{context.loader or 'any loader'} {context.game_version or ''}".rstrip(),
                               provider, item_id)

        if version_id is None:
            chosen = versions[0] if versions else None
        elif version_id in versions:
            chosen = version_id
        else:
            raise CatalogError(f"Version {version_id} of {item.title} not found", provider, item_id)

        self.installed.append((item.key, chosen))
        self.logger.info(f"Installed {item.title} ({provider.value}/{item_id}) version {chosen or 'latest'}")
        return chosen

    def get_item(self, provider: Provider, item_id: str) -> Item:
        return self._get(provider, item_id)

    def __len__(self) -> int:
        return len(self._items)
