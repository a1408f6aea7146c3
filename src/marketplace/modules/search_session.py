"""Search state of one marketplace session: filters, paging and the latest result page."""

import asyncio
from typing import List, Optional, Sequence

from ..utils.logger import get_module_logger
from .catalog_client import CatalogClient
from .errors import SearchFailure
from .models import Item, ProjectKind, Provider, SearchContext, SearchRequest, SortOrder
from .providers import effective_filters, is_proxy_context, is_valid_category, providers_for


_UNSET = object()


class SearchSession:
    """Translates filter state into catalog queries and holds the latest page.

    Filter changes (provider, category, sort, page size) reset the page to 1
    and search; a page change keeps every other filter. Query edits leave page
    and results alone until they are submitted, which searches from page 1.

    No request is issued before the compatibility context is known. Each request
    carries a generation number and only the newest request may replace the
    result page.
    """

    def __init__(self, client: CatalogClient, kind: ProjectKind,
                 provider: Optional[Provider] = Provider.MODRINTH,
                 sort: SortOrder = SortOrder.DOWNLOADS, page_size: int = 16,
                 page_size_options: Optional[Sequence[int]] = None):
        self.page_size_options = tuple(page_size_options) if page_size_options else None
        self._check_page_size(page_size)
        if provider is not None and provider not in providers_for(kind):
            raise ValueError(f"{provider.value} does not serve {kind.value}s")

        self.client = client
        self.kind = kind
        self.logger = get_module_logger("search_session")

        self.query = ""
        self.provider: Optional[Provider] = provider
        self.category: Optional[str] = None
        self.sort = sort
        self.page = 1
        self.page_size = page_size
        self.context: Optional[SearchContext] = None

        self.results: List[Item] = []
        self.loading = False
        self.error: Optional[SearchFailure] = None

        self._generation = 0
        self.request_count = 0

    def _check_page_size(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError(f"Page size must be positive, got {page_size}")
        if self.page_size_options and page_size not in self.page_size_options:
            options = ", ".join(str(o) for o in self.page_size_options)
            raise ValueError(f"Page size {page_size} is not one of {options}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def has_next_page(self) -> bool:
        """A full page suggests more results may follow."""
        return len(self.results) >= self.page_size

    def build_request(self, provider: Provider) -> SearchRequest:
        """Build the catalog request for ``provider`` from the current filters."""
        game_version, loader = (None, None)
        if self.context is not None:
            game_version, loader = effective_filters(self.kind, self.context)

        facets = None
        if self.category:
            facets = (f"categories:{self.category}",)

        return SearchRequest(
            provider=provider,
            query=self.query.strip(),
            facets=facets,
            sort=self.sort,
            offset=self.offset,
            limit=self.page_size,
            game_version=game_version,
            loader=loader,
        )

    def set_context(self, context: SearchContext) -> None:
        """Set the compatibility context without searching."""
        self.context = context
        self.logger.info(f"Search context loaded: version={context.game_version} loader={context.loader}")
        self._enforce_proxy_provider()

    async def load_context(self, context: SearchContext) -> Optional[List[Item]]:
        """Set the compatibility context and run the first search."""
        self.set_context(context)
        return await self.search()

    def _enforce_proxy_provider(self) -> bool:
        """Proxy plugin servers can only be served by Modrinth."""
        if is_proxy_context(self.kind, self.context) and self.provider != Provider.MODRINTH:
            self.logger.info(f"Proxy server detected, switching provider "
                             f"{self.provider.value if self.provider else 'all'} -> Modrinth")
            self.provider = Provider.MODRINTH
            self.category = None
            self.page = 1
            return True
        return False

    async def update(self, query=_UNSET, provider=_UNSET, category=_UNSET, sort=_UNSET,
                     page_size=_UNSET, page=_UNSET) -> Optional[List[Item]]:
        """Apply filter changes and issue at most one search.

        Query edits alone neither search nor move the page; the caller submits
        them with :meth:`submit`. Returns the new page, or ``None`` when no request was
        made or its response was superseded.
        """
        filters_changed = False
        needs_search = False

        if query is not _UNSET and query != self.query:
            self.query = query

        if provider is not _UNSET and provider != self.provider:
            if provider is not None and provider not in providers_for(self.kind):
                raise ValueError(f"{provider.value} does not serve {self.kind.value}s")
            self.provider = provider
            # Categories belong to a provider
            self.category = None
            filters_changed = needs_search = True
            self._enforce_proxy_provider()

        if category is not _UNSET and category != self.category:
            if category is not None and not is_valid_category(self.kind, self.provider, category):
                provider_name = self.provider.value if self.provider else "all providers"
                raise ValueError(f"Unknown category '{category}' for {provider_name}")
            self.category = category
            filters_changed = needs_search = True

        if sort is not _UNSET and sort != self.sort:
            self.sort = sort
            filters_changed = needs_search = True

        if page_size is not _UNSET and page_size != self.page_size:
            self._check_page_size(page_size)
            self.page_size = page_size
            filters_changed = needs_search = True

        if filters_changed:
            self.page = 1
        elif page is not _UNSET and page != self.page:
            if page < 1:
                raise ValueError(f"Page must be 1 or greater, got {page}")
            self.page = page
            needs_search = True

        if not needs_search:
            return None
        return await self.search()

    async def submit(self, query: Optional[str] = None) -> Optional[List[Item]]:
        """Search for ``query`` (or the current query) from page 1."""
        if query is not None:
            self.query = query
        self.page = 1
        return await self.search()

    async def next_page(self) -> Optional[List[Item]]:
        return await self.update(page=self.page + 1)

    async def previous_page(self) -> Optional[List[Item]]:
        if self.page <= 1:
            return None
        return await self.update(page=self.page - 1)

    async def search(self) -> Optional[List[Item]]:
        """Issue one catalog query for the current filters.

        Returns:
            The new result page, or ``None`` when the context is not loaded yet
            or a newer request superseded this one

        Raises:
            SearchFailure: the newest request failed; the previous page is kept
        """
        if self.context is None:
            self.logger.debug("Search suppressed: context not loaded yet")
            return None

        self._generation += 1
        generation = self._generation
        self.request_count += 1
        self.loading = True

        try:
            items = await self._fetch()
        except Exception as e:
            if generation != self._generation:
                self.logger.debug(f"Ignoring failure of superseded search #{generation}: {e}")
                return None
            self.error = SearchFailure(f"Search failed: {e}", e)
            self.logger.error(f"Search failed (page {self.page}, query '{self.query}'): {e}")
            raise self.error from e
        finally:
            # Also reached on cancellation
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            self.logger.debug(f"Discarding stale search #{generation} (latest #{self._generation})")
            return None

        self.results = items
        self.error = None
        self.logger.debug(f"Search #{generation} returned {len(items)} items")
        return items

    async def _fetch(self) -> List[Item]:
        if self.provider is not None:
            return await self.client.search(self.build_request(self.provider))

        # Every provider of this kind at once; partial failures are tolerated
        providers = providers_for(self.kind)
        responses = await asyncio.gather(
            *(self.client.search(self.build_request(provider)) for provider in providers),
            return_exceptions=True,
        )

        items: List[Item] = []
        failures = []
        for provider, response in zip(providers, responses):
            if isinstance(response, BaseException):
                self.logger.warning(f"{provider.value} search failed: {response}")
                failures.append(response)
            else:
                items.extend(response)

        if len(failures) == len(providers):
            raise failures[0]
        return items
