"""Error taxonomy of the marketplace engine."""

from typing import Optional

from .models import Item, Provider


class MarketplaceError(Exception):
    """Base class for every error raised by the marketplace engine."""


class CatalogError(MarketplaceError):
    """A catalog collaborator (search, dependency lookup, install) failed."""

    def __init__(self, message: str, provider: Optional[Provider] = None, item_id: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
        self.item_id = item_id


class SearchFailure(MarketplaceError):
    """A search request failed; the previous result page is still valid."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ResolutionFailure(MarketplaceError):
    """A dependency lookup failed mid-pass; the pass was aborted."""

    def __init__(self, item: Item, cause: BaseException):
        super().__init__(f"Failed to resolve dependencies of {item.title} ({item.provider.value}): {cause}")
        self.item = item
        self.cause = cause


class InstallFailure(MarketplaceError):
    """Installing one item failed; the remaining items were not attempted."""

    def __init__(self, item: Item, completed: int, total: int, cause: BaseException):
        super().__init__(
            f"Installation of {item.title} failed after {completed}/{total} items were installed: {cause}"
        )
        self.item = item
        self.completed = completed
        self.total = total
        self.cause = cause

    @property
    def remaining(self) -> int:
        """Items not installed, the failed one included."""
        return self.total - self.completed


class EmptyConfirmation(MarketplaceError):
    """Confirmation was attempted with nothing chosen."""

    def __init__(self):
        super().__init__("Nothing is selected for installation")
