"""Logging for the marketplace: rich console output plus a rotating log file.

Levels come from ``config/logging.yaml`` when present::

    level: INFO            # root logger
    console_level: WARNING
    file_level: DEBUG
    modules:
      marketplace.modules: INFO
"""

import copy
import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Dict, Any

import yaml
from rich.logging import RichHandler
from rich.console import Console


LOG_FILE_NAME = "marketplace.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

DEFAULT_LOGGING: Dict[str, Any] = {
    'level': 'INFO',
    'console_level': 'WARNING',
    'file_level': 'DEBUG',
    'format': {
        'console': '%(message)s',
        'file': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    },
    'modules': {
        'marketplace.modules': 'INFO',
        'marketplace.utils': 'WARNING',
    },
}


class LoggerManager:
    """Process-wide owner of the root logger handlers."""

    _instance: Optional['LoggerManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LoggerManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.debug_mode: bool = False
            self.console: Optional[Console] = None
            self._loggers: Dict[str, logging.Logger] = {}
            LoggerManager._initialized = True

    def initialize(self, config_dir: Path, debug: bool = False, console: Optional[Console] = None,
                   logs_dir: Optional[Path] = None) -> None:
        """(Re)build the root handlers.

        Args:
            config_dir: Directory that may hold ``logging.yaml``
            debug: Log everything at DEBUG, on the console too
            console: Console the RichHandler writes to (stderr by default)
            logs_dir: Directory of the rotating log file (``./logs`` by default)
        """
        self.debug_mode = debug
        self.console = console or Console(stderr=True)
        logs_dir = logs_dir or Path("logs")
        logs_dir.mkdir(parents=True, exist_ok=True)

        config = self._settings(config_dir)
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(config['level'])
        root_logger.addHandler(self._console_handler(config))
        root_logger.addHandler(self._file_handler(config, logs_dir / LOG_FILE_NAME))
        for namespace, level in config['modules'].items():
            logging.getLogger(namespace).setLevel(level)

        self.get_logger("marketplace.logger").info(
            f"Logging ready (debug={'on' if debug else 'off'}, file={logs_dir / LOG_FILE_NAME})"
        )

    def _settings(self, config_dir: Path) -> Dict[str, Any]:
        config = copy.deepcopy(DEFAULT_LOGGING)
        config_file = config_dir / "logging.yaml"
        if config_file.exists():
            try:
                with open(config_file, 'r', encoding='utf-8') as f:
                    overrides = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                # No handlers yet, so straight to the console
                self.console.print(f"[yellow]Ignoring {config_file}: {e}[/yellow]")
                overrides = {}
            for key, value in overrides.items():
                if isinstance(value, dict) and isinstance(config.get(key), dict):
                    config[key].update(value)
                else:
                    config[key] = value

        if self.debug_mode:
            config['level'] = config['console_level'] = 'DEBUG'
            config['modules'] = {namespace: 'DEBUG' for namespace in config['modules']}
        return config

    def _console_handler(self, config: Dict[str, Any]) -> logging.Handler:
        handler = RichHandler(
            console=self.console,
            rich_tracebacks=True,
            markup=False,
            show_path=self.debug_mode,
            show_time=False,
        )
        handler.setLevel(config['console_level'])
        handler.setFormatter(logging.Formatter(config['format']['console']))
        return handler

    @staticmethod
    def _file_handler(config: Dict[str, Any], log_file: Path) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS, encoding='utf-8'
        )
        handler.setLevel(config['file_level'])
        handler.setFormatter(logging.Formatter(config['format']['file']))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]


logger_manager = LoggerManager()


def init_logging(config_dir: Path, debug: bool = False, console: Optional[Console] = None,
                 logs_dir: Optional[Path] = None) -> None:
    logger_manager.initialize(config_dir, debug, console, logs_dir)


def get_logger(name: str) -> logging.Logger:
    return logger_manager.get_logger(name)


def get_cli_logger() -> logging.Logger:
    """Logger of the command line front end."""
    return get_logger("marketplace.cli")


def get_module_logger(module_name: str) -> logging.Logger:
    """Logger of an engine module, e.g. ``get_module_logger("search_session")``."""
    return get_logger(f"marketplace.modules.{module_name}")


def get_utils_logger(util_name: str) -> logging.Logger:
    return get_logger(f"marketplace.utils.{util_name}")
