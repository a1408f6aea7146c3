"""One marketplace session: search, selection, review and installation for a single kind."""

from typing import Callable, List, Optional, Sequence

from ..utils.log_manager import InstallationLogManager
from ..utils.logger import get_module_logger
from .catalog_client import CatalogClient
from .dependency_resolver import DependencyResolver
from .errors import EmptyConfirmation, ResolutionFailure
from .install_orchestrator import InstallOrchestrator, ProgressCallback
from .models import (
    InstallProgress,
    InstallResult,
    InstallState,
    Item,
    ProjectKind,
    Provider,
    ResolvedDependency,
    SearchContext,
    SortOrder,
)
from .review import ReviewModel
from .search_session import SearchSession
from .selection import SelectionSet


class MarketplaceSession:
    """Owner of all state for one marketplace (e.g. the mods tab of one server).

    Nothing here is global: a mods session and a plugins session can run side
    by side, each with its own client, selection and review.
    """

    def __init__(self, client: CatalogClient, kind: ProjectKind,
                 provider: Optional[Provider] = Provider.MODRINTH,
                 sort: SortOrder = SortOrder.DOWNLOADS,
                 page_size: int = 16,
                 page_size_options: Optional[Sequence[int]] = None,
                 optional_default_selected: bool = False,
                 parallel_lookups: bool = False,
                 max_concurrent_lookups: int = 4,
                 log_callback: Optional[Callable[[str, str], None]] = None):
        self.client = client
        self.kind = kind
        self.optional_default_selected = optional_default_selected
        self.logger = get_module_logger("session")

        self.search = SearchSession(client, kind, provider=provider, sort=sort, page_size=page_size,
                                    page_size_options=page_size_options)
        self.selection = SelectionSet()
        self.resolver = DependencyResolver(client, parallel_lookups=parallel_lookups,
                                           max_concurrent_lookups=max_concurrent_lookups)
        self.log_manager = InstallationLogManager(log_callback)

        self.resolved: List[ResolvedDependency] = []
        self.resolution_error: Optional[ResolutionFailure] = None
        self.review: Optional[ReviewModel] = None
        self.orchestrator: Optional[InstallOrchestrator] = None

        self._progress_callbacks: List[ProgressCallback] = []
        self._install_callbacks: List[Callable[[InstallResult], None]] = []

    @classmethod
    def from_config(cls, client: CatalogClient, marketplace_config,
                    log_callback: Optional[Callable[[str, str], None]] = None) -> "MarketplaceSession":
        """Build a session from a :class:`~marketplace.config_manager.MarketplaceConfig`."""
        return cls(
            client,
            marketplace_config.kind,
            provider=marketplace_config.default_provider,
            sort=marketplace_config.default_sort,
            page_size=marketplace_config.page_size,
            page_size_options=marketplace_config.page_size_options,
            optional_default_selected=marketplace_config.optional_default_selected,
            parallel_lookups=marketplace_config.parallel_lookups,
            max_concurrent_lookups=marketplace_config.max_concurrent_lookups,
            log_callback=log_callback,
        )

    @property
    def context(self) -> Optional[SearchContext]:
        return self.search.context

    @property
    def resolving(self) -> bool:
        return self.resolver.resolving

    @property
    def installing(self) -> bool:
        return self.orchestrator is not None and self.orchestrator.state == InstallState.RUNNING

    @property
    def install_progress(self) -> Optional[InstallProgress]:
        return self.orchestrator.progress if self.orchestrator else None

    def add_progress_callback(self, callback: ProgressCallback) -> None:
        self._progress_callbacks.append(callback)

    def add_install_callback(self, callback: Callable[[InstallResult], None]) -> None:
        """Called after every fully successful install, e.g. to refresh an installed list."""
        self._install_callbacks.append(callback)

    def set_context(self, context: SearchContext) -> None:
        self.search.set_context(context)

    async def load_context(self, context: SearchContext) -> Optional[List[Item]]:
        return await self.search.load_context(context)

    def toggle(self, item: Item) -> int:
        """Select or deselect ``item``. Returns the number of selected items."""
        return self.selection.toggle(item)

    async def request_review(self) -> ReviewModel:
        """Resolve dependencies of the selection and open a review.

        A failed resolution does not block the review: it opens with the
        selection alone and the error is kept in :attr:`resolution_error`.
        """
        if self.installing:
            raise RuntimeError("Cannot open a review while an installation is running")

        self.resolution_error = None
        try:
            self.resolved = await self.resolver.resolve(self.selection, self.context)
        except ResolutionFailure as e:
            self.logger.warning(f"Continuing review without dependencies: {e}")
            self.resolution_error = e
            self.resolved = []

        self.review = ReviewModel(self.selection.items(), self.resolved,
                                  optional_default_selected=self.optional_default_selected)
        return self.review

    def close_review(self) -> None:
        """Dismiss the review without touching the selection."""
        self.review = None
        self.resolved = []

    async def install(self) -> InstallResult:
        """Confirm the open review and install the chosen items.

        Raises:
            EmptyConfirmation: nothing is chosen
            InstallFailure: an item failed to install; the selection is kept
        """
        if self.review is None:
            raise RuntimeError("No review is open")

        items = self.review.confirm()
        if not items:
            raise EmptyConfirmation()

        self.orchestrator = InstallOrchestrator(
            self.client, self.selection, context=self.context,
            log_manager=self.log_manager, target=f"{self.kind.value}s",
        )
        for callback in self._progress_callbacks:
            self.orchestrator.add_progress_callback(callback)
        self.orchestrator.add_completion_callback(self._on_install_complete)
        for callback in self._install_callbacks:
            self.orchestrator.add_completion_callback(callback)

        return await self.orchestrator.run(items)

    def _on_install_complete(self, result: InstallResult) -> None:
        self.logger.info(f"Installed {len(result.installed)} {self.kind.value}s")
        self.review = None
        self.resolved = []

    def abandon(self) -> None:
        """Leave the marketplace: drop selection and any open review."""
        if self.installing:
            raise RuntimeError("Cannot abandon a session while an installation is running")
        self.logger.debug(f"Session abandoned with {len(self.selection)} selected")
        self.selection.clear()
        self.close_review()
