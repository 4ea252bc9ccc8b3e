"""
Logging manager for cf_metrics.

Configures the root logger once at startup: a console handler, an optional
rotating file, and the credential-masking filter on every handler.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict

from ..config.models import LoggingConfig, LogLevel
from .filters import SensitiveDataFilter
from .formatters import ColoredFormatter, StructuredFormatter

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS: Dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "asyncio": logging.WARNING,
}


class LoggingManager:
    """Owns the handlers it attaches to the root logger."""

    def __init__(self) -> None:
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}

    def setup_logging(self, config: LoggingConfig) -> None:
        """
        Replace the root logger's handlers according to ``config``.

        Args:
            config: Logging configuration
        """
        if self._configured:
            self.cleanup()

        level = getattr(logging, config.level.value)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            formatter: logging.Formatter = (
                StructuredFormatter()
                if config.enable_structured
                else ColoredFormatter(config.format)
            )
            self._attach("console", console, formatter, level)

        if config.enable_file and config.file_path:
            self._attach("file", self._file_handler(config), self._file_formatter(config), level)

        for name, quiet_level in QUIET_LOGGERS.items():
            logging.getLogger(name).setLevel(max(quiet_level, level))

        self._configured = True
        logging.getLogger(__name__).debug(
            "Logging configured at %s (%s)",
            config.level.value,
            ", ".join(self._handlers) or "no handlers",
        )

    def _file_handler(self, config: LoggingConfig) -> logging.Handler:
        log_path = Path(str(config.file_path))
        log_path.parent.mkdir(parents=True, exist_ok=True)
        return logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )

    @staticmethod
    def _file_formatter(config: LoggingConfig) -> logging.Formatter:
        if config.enable_structured:
            return StructuredFormatter()
        return logging.Formatter(config.format)

    def _attach(
        self,
        name: str,
        handler: logging.Handler,
        formatter: logging.Formatter,
        level: int,
    ) -> None:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        # The bearer token must never reach a log sink
        handler.addFilter(SensitiveDataFilter())
        logging.getLogger().addHandler(handler)
        self._handlers[name] = handler

    def set_level(self, level: LogLevel) -> None:
        """Change the level of the root logger and every managed handler."""
        log_level = getattr(logging, level.value)
        logging.getLogger().setLevel(log_level)
        for handler in self._handlers.values():
            handler.setLevel(log_level)

    def cleanup(self) -> None:
        """Detach and close every managed handler."""
        root_logger = logging.getLogger()
        while self._handlers:
            _, handler = self._handlers.popitem()
            root_logger.removeHandler(handler)
            handler.close()
        self._configured = False

    def is_configured(self) -> bool:
        return self._configured


_logging_manager = LoggingManager()


def setup_logging(config: LoggingConfig) -> None:
    """Configure process-wide logging."""
    _logging_manager.setup_logging(config)


def cleanup_logging() -> None:
    """Close the handlers installed by :func:`setup_logging`."""
    _logging_manager.cleanup()
