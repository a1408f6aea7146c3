"""In-memory catalog client used by the test scripts."""

import sys
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

# Add the src directory to the Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from marketplace.modules.catalog_client import CatalogClient
from marketplace.modules.errors import CatalogError
from marketplace.modules.models import DependencySet, Item, ItemKey, Provider, SearchContext, SearchRequest


def make_item(item_id: str, provider: Provider = Provider.MODRINTH, title: Optional[str] = None) -> Item:
    return Item(id=item_id, provider=provider, title=title or item_id.upper())


class FakeCatalogClient(CatalogClient):
    """Scriptable catalog: dependency graph, canned search pages and failure switches."""

    def __init__(self):
        self.items: Dict[ItemKey, Item] = {}
        self.graph: Dict[ItemKey, Tuple[List[ItemKey], List[ItemKey]]] = {}
        self.pages: Dict[Provider, List[Item]] = {}

        self.search_calls: List[SearchRequest] = []
        self.dependency_calls: List[ItemKey] = []
        self.install_calls: List[ItemKey] = []

        self.failing_searches: Set[Provider] = set()
        self.failing_lookups: Set[ItemKey] = set()
        self.failing_installs: Set[ItemKey] = set()
        self.search_hook: Optional[Callable[[SearchRequest], Awaitable[None]]] = None
        self.install_hook: Optional[Callable[[ItemKey], Awaitable[None]]] = None

    def add(self, item: Item, required: Tuple[Item, ...] = (), optional: Tuple[Item, ...] = ()) -> Item:
        self.items[item.key] = item
        for dep in required + optional:
            self.items.setdefault(dep.key, dep)
        self.graph[item.key] = ([d.key for d in required], [d.key for d in optional])
        return item

    async def search(self, request: SearchRequest) -> List[Item]:
        self.search_calls.append(request)
        if self.search_hook is not None:
            await self.search_hook(request)
        if request.provider in self.failing_searches:
            raise CatalogError(f"{request.provider.value} is unavailable", request.provider)
        page = self.pages.get(request.provider, [])
        return page[request.offset:request.offset + request.limit]

    async def get_dependencies(self, provider: Provider, item_id: str,
                               context: Optional[SearchContext] = None) -> DependencySet:
        key = (provider, item_id)
        self.dependency_calls.append(key)
        if key in self.failing_lookups:
            raise CatalogError(f"Lookup failed for {item_id}", provider, item_id)
        required, optional = self.graph.get(key, ([], []))
        return DependencySet(
            required=[self.items[k] for k in required],
            optional=[self.items[k] for k in optional],
        )

    async def install(self, provider: Provider, item_id: str, version_id: Optional[str] = None,
                      context: Optional[SearchContext] = None) -> Optional[str]:
        key = (provider, item_id)
        self.install_calls.append(key)
        if self.install_hook is not None:
            await self.install_hook(key)
        if key in self.failing_installs:
            raise CatalogError(f"Download failed for {item_id}", provider, item_id)
        return version_id
