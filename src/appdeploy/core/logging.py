"""Structured logging configuration for appdeploy."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

LOG_FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(component)s] %(message)s"


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Severity(int, Enum):
    """Deployment log severities (CMTrace convention)."""

    INFO = 1
    WARNING = 2
    ERROR = 3

    @property
    def level(self) -> int:
        return {
            Severity.INFO: logging.INFO,
            Severity.WARNING: logging.WARNING,
            Severity.ERROR: logging.ERROR,
        }[self]


class _ComponentFilter(logging.Filter):
    """Default the ``component`` record attribute used by the file format."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = record.name.replace("appdeploy.", "")
        return True


def setup_logging(
    level: LogLevel = LogLevel.INFO,
    rich_output: bool = True,
) -> logging.Logger:
    """Configure console logging for appdeploy.

    Args:
        level: The logging level
        rich_output: Whether to use Rich for formatted output

    Returns:
        Configured logger instance
    """
    log_level = getattr(logging, level.value.upper())

    # Remove existing handlers
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if rich_output:
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    handler.setLevel(log_level)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logger = logging.getLogger("appdeploy")
    logger.setLevel(log_level)

    # Quiet noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("psutil").setLevel(logging.WARNING)

    return logger


def attach_log_file(path: str | Path) -> logging.FileHandler:
    """Write everything logged under ``appdeploy`` to a deployment log file.

    The file always records at DEBUG so the shipped log is complete,
    independent of console verbosity.

    Args:
        path: Log file location; parent folders are created

    Returns:
        The attached handler, to be passed to ``detach_log_file``
    """
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(_ComponentFilter())

    logger = logging.getLogger("appdeploy")
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return handler


def detach_log_file(handler: logging.Handler) -> None:
    """Flush, close and remove a handler added by ``attach_log_file``."""
    logger = logging.getLogger("appdeploy")
    handler.flush()
    handler.close()
    logger.removeHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: The module name (typically __name__)

    Returns:
        Logger instance
    """
    if name.startswith("appdeploy."):
        return logging.getLogger(name)
    return logging.getLogger(f"appdeploy.{name}")


class StructuredLogger:
    """Logger that supports structured logging with context."""

    def __init__(self, name: str):
        self._logger = get_logger(name)
        self._context: dict[str, Any] = {}

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **kwargs: Any) -> "StructuredLogger":
        """Create a new logger with additional context."""
        new_logger = StructuredLogger(self._logger.name)
        new_logger._context = {**self._context, **kwargs}
        return new_logger

    def _format_message(self, message: str, **kwargs: Any) -> str:
        """Format message with context."""
        context = {**self._context, **kwargs}
        if context:
            context_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{message} [{context_str}]"
        return message

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._logger.debug(self._format_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._logger.info(self._format_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._logger.warning(self._format_message(message, **kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._logger.error(self._format_message(message, **kwargs))

    def log(self, severity: Severity, message: str, component: str | None = None) -> None:
        """Log with a deployment severity and an optional source component."""
        extra = {"component": component} if component else None
        self._logger.log(severity.level, self._format_message(message), extra=extra)
