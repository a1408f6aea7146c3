"""Data models for catalog items, dependency edges, search requests and install progress."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Provider(Enum):
    """External catalog sources."""
    MODRINTH = "Modrinth"
    CURSEFORGE = "CurseForge"
    SPIGET = "Spiget"
    HANGAR = "Hangar"

    @classmethod
    def parse(cls, value: str) -> "Provider":
        """Accept either the display value ("CurseForge") or a lower-case name ("curseforge")."""
        for provider in cls:
            if value == provider.value or value.lower() == provider.name.lower():
                return provider
        raise ValueError(f"Unknown provider: {value}")


class ProjectKind(Enum):
    """What a marketplace session acquires."""
    MOD = "mod"
    PLUGIN = "plugin"


class SortOrder(Enum):
    RELEVANCE = "Relevance"
    DOWNLOADS = "Downloads"
    FOLLOWS = "Follows"
    NEWEST = "Newest"
    UPDATED = "Updated"

    @classmethod
    def parse(cls, value: str) -> "SortOrder":
        for order in cls:
            if value == order.value or value.lower() == order.name.lower():
                return order
        raise ValueError(f"Unknown sort order: {value}")


class DependencyType(Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


# (provider, id): identifiers are only unique within one provider
ItemKey = Tuple[Provider, str]


@dataclass(frozen=True)
class Item:
    """An installable mod or plugin as returned by a catalog."""
    id: str
    provider: Provider
    title: str
    description: str = ""
    author: str = ""
    downloads: int = 0
    categories: Tuple[str, ...] = ()
    icon_url: Optional[str] = None
    screenshots: Tuple[str, ...] = ()
    slug: Optional[str] = None
    follows: int = 0
    published: str = ""
    updated: str = ""
    game_versions: Tuple[str, ...] = ()
    loaders: Tuple[str, ...] = ()

    @property
    def key(self) -> ItemKey:
        return (self.provider, self.id)

    @property
    def web_url(self) -> Optional[str]:
        """Link to the item's page on its provider's website, if it has a slug."""
        from .providers import project_url
        return project_url(self)


@dataclass
class DependencySet:
    """Result of one dependency lookup for a single item."""
    required: List[Item] = field(default_factory=list)
    optional: List[Item] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedDependency:
    """A dependency discovered during one resolution pass."""
    item: Item
    dependency_type: DependencyType

    @property
    def is_required(self) -> bool:
        return self.dependency_type == DependencyType.REQUIRED


@dataclass(frozen=True)
class SearchContext:
    """Compatibility context of the server instance the marketplace installs into."""
    game_version: Optional[str] = None
    loader: Optional[str] = None


@dataclass(frozen=True)
class SearchRequest:
    """A single catalog query."""
    provider: Provider
    query: str = ""
    sort: SortOrder = SortOrder.RELEVANCE
    offset: int = 0
    limit: int = 16
    facets: Optional[Tuple[str, ...]] = None
    game_version: Optional[str] = None
    loader: Optional[str] = None

    @property
    def category_ids(self) -> List[str]:
        """Category ids carried by ``categories:<id>`` facets."""
        if not self.facets:
            return []
        return [facet.split(":", 1)[1] for facet in self.facets if facet.startswith("categories:")]


class InstallState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallProgress:
    """Snapshot of an install run; ``current`` counts fully completed items."""
    current: int = 0
    total: int = 0
    name: str = ""

    @property
    def finished(self) -> bool:
        return self.total > 0 and self.current >= self.total

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 0.0
        return self.current / self.total * 100


@dataclass
class InstallResult:
    """Outcome of a completed install run."""
    state: InstallState
    installed: List[Item] = field(default_factory=list)
    total: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == InstallState.SUCCEEDED
