"""Install run messages for whatever front end is attached (CLI printer, dialog, ...)."""

from enum import Enum
from typing import Callable, Optional

from .logger import get_utils_logger


UiCallback = Callable[[str, str], None]


class LogLevel(Enum):
    """Severity of an install message; the value is the style key handed to the UI."""
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class InstallationLogManager:
    """Streams the messages of one install run to a UI callback.

    Messages outside a run are dropped. Every message is also written to the
    ``marketplace.utils.log_manager`` logger so the log file keeps the history.
    """

    def __init__(self, ui_callback: Optional[UiCallback] = None):
        self.logger = get_utils_logger("log_manager")
        self.ui_callback = ui_callback
        self.session_active = False
        self.target: Optional[str] = None

    def start_session(self, target: str) -> None:
        """Begin a run installing into ``target`` (e.g. "mods")."""
        self.target = target
        self.session_active = True
        self._emit(f"Installing into {target}", LogLevel.INFO.value)

    def set_total_items(self, count: int) -> None:
        if self.session_active:
            self._emit(f"{count} items queued", LogLevel.INFO.value)

    def log(self, level: LogLevel, message: str, item: Optional[str] = None,
            provider: Optional[str] = None, error: Optional[str] = None) -> None:
        """Report one step of the run.

        The UI sees ``[provider] item: message`` and, for failures, every
        non-empty line of ``error`` indented below it.
        """
        if not self.session_active:
            return

        text = f"{item}: {message}" if item else message
        if provider:
            text = f"[{provider}] {text}"
        self._emit(text, level.value)

        if error:
            for line in error.strip().splitlines():
                if line.strip():
                    self._emit(f"  {line}", LogLevel.ERROR.value)

        self.logger.info(f"{self.target} {level.name} {text}" + (f" ({error[:200]})" if error else ""))

    def end_session(self) -> None:
        if not self.session_active:
            return
        self._emit(f"Install run into {self.target} finished", LogLevel.INFO.value)
        self.session_active = False
        self.target = None

    def _emit(self, message: str, log_type: str) -> None:
        if self.ui_callback is None:
            return
        try:
            self.ui_callback(message, log_type)
        except Exception as e:
            self.logger.error(f"UI log callback failed: {e}")
