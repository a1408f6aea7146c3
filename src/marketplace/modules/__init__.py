"""Marketplace engine: search, selection, dependency resolution, review and installation."""

from .models import (
    DependencySet,
    DependencyType,
    InstallProgress,
    InstallResult,
    InstallState,
    Item,
    ProjectKind,
    Provider,
    ResolvedDependency,
    SearchContext,
    SearchRequest,
    SortOrder,
)
from .errors import (
    CatalogError,
    EmptyConfirmation,
    InstallFailure,
    MarketplaceError,
    ResolutionFailure,
    SearchFailure,
)
from .catalog_client import CatalogClient, StaticCatalogClient
from .search_session import SearchSession
from .selection import SelectionSet
from .dependency_resolver import DependencyResolver
from .review import ReviewEntry, ReviewModel
from .install_orchestrator import InstallOrchestrator
from .session import MarketplaceSession

__all__ = [
    "DependencySet",
    "DependencyType",
    "InstallProgress",
    "InstallResult",
    "InstallState",
    "Item",
    "ProjectKind",
    "Provider",
    "ResolvedDependency",
    "SearchContext",
    "SearchRequest",
    "SortOrder",
    "CatalogError",
    "EmptyConfirmation",
    "InstallFailure",
    "MarketplaceError",
    "ResolutionFailure",
    "SearchFailure",
    "CatalogClient",
    "StaticCatalogClient",
    "SearchSession",
    "SelectionSet",
    "DependencyResolver",
    "ReviewEntry",
    "ReviewModel",
    "InstallOrchestrator",
    "MarketplaceSession",
]
