"""Sequential installation of a confirmed install list with progress reporting."""

import time
from typing import Callable, List, Optional

from ..utils.log_manager import InstallationLogManager, LogLevel
from ..utils.logger import get_module_logger
from .catalog_client import CatalogClient
from .errors import EmptyConfirmation, InstallFailure
from .models import InstallProgress, InstallResult, InstallState, Item, SearchContext
from .selection import SelectionSet


ProgressCallback = Callable[[InstallProgress], None]
CompletionCallback = Callable[[InstallResult], None]


class InstallOrchestrator:
    """Runs one install list: ``idle -> running -> succeeded | failed``.

    Items are installed strictly one after another. The first failure stops the
    run; nothing after the failed item is attempted. On success the selection
    is cleared and completion callbacks are notified.
    """

    def __init__(self, client: CatalogClient, selection: SelectionSet,
                 context: Optional[SearchContext] = None,
                 log_manager: Optional[InstallationLogManager] = None,
                 target: str = "instance"):
        """Initialize the orchestrator.

        Args:
            client: Catalog client performing the installs
            selection: Selection to clear once every item is installed
            context: Compatibility context forwarded to the install API
            log_manager: Installation log manager for UI-facing messages
            target: Name of what is being installed into, for log messages
        """
        self.client = client
        self.selection = selection
        self.context = context
        self.log_manager = log_manager or InstallationLogManager()
        self.target = target
        self.logger = get_module_logger("install_orchestrator")

        self.state = InstallState.IDLE
        self.progress = InstallProgress()
        self.installed: List[Item] = []
        self.failure: Optional[InstallFailure] = None

        self._progress_callbacks: List[ProgressCallback] = []
        self._completion_callbacks: List[CompletionCallback] = []

    def add_progress_callback(self, callback: ProgressCallback) -> None:
        self._progress_callbacks.append(callback)

    def add_completion_callback(self, callback: CompletionCallback) -> None:
        """Register a callback run after a fully successful install."""
        self._completion_callbacks.append(callback)

    def _set_progress(self, current: int, total: int, name: str) -> None:
        self.progress = InstallProgress(current=current, total=total, name=name)
        for callback in self._progress_callbacks:
            callback(self.progress)

    async def run(self, items: List[Item]) -> InstallResult:
        """Install ``items`` in order.

        Raises:
            EmptyConfirmation: ``items`` is empty; no install call is made
            InstallFailure: an install call failed; the run stopped there
            RuntimeError: this orchestrator already ran
        """
        if not items:
            raise EmptyConfirmation()
        if self.state != InstallState.IDLE:
            raise RuntimeError(f"Install run already {self.state.value}")

        total = len(items)
        self.state = InstallState.RUNNING
        self.log_manager.start_session(self.target)
        self.log_manager.set_total_items(total)
        self.logger.info(f"Installing {total} items into {self.target}")
        start_time = time.time()

        for index, item in enumerate(items):
            self._set_progress(index, total, item.title)
            self.log_manager.log(LogLevel.INFO, "installing latest compatible version",
                                 item=item.title, provider=item.provider.value)
            try:
                await self.client.install(item.provider, item.id, None, self.context)
            except Exception as e:
                self.state = InstallState.FAILED
                self.failure = InstallFailure(item, index, total, e)
                self.logger.error(f"Install of {item.provider.value}/{item.id} failed "
                                  f"after {index}/{total} items: {e}")
                self.log_manager.log(LogLevel.ERROR, "installation failed", item=item.title,
                                     provider=item.provider.value, error=str(e))
                self.log_manager.end_session()
                raise self.failure from e
            except BaseException:
                # Cancelled mid-item
                self.state = InstallState.FAILED
                self.logger.warning(f"Install run cancelled at {item.provider.value}/{item.id} "
                                    f"after {index}/{total} items")
                self.log_manager.log(LogLevel.ERROR, "installation cancelled", item=item.title,
                                     provider=item.provider.value)
                self.log_manager.end_session()
                raise

            self.installed.append(item)
            self.log_manager.log(LogLevel.SUCCESS, "installed", item=item.title,
                                 provider=item.provider.value)

        self._set_progress(total, total, items[-1].title)
        self.state = InstallState.SUCCEEDED
        self.log_manager.end_session()
        self.logger.info(f"Installed {total} items in {time.time() - start_time:.2f}s")

        self.selection.clear()
        result = InstallResult(state=self.state, installed=list(self.installed), total=total)
        for callback in self._completion_callbacks:
            callback(result)
        return result
