"""Logging helpers for tarsnap.

Wraps the standard library logger with:
- verbosity flags mapped to levels, including a TRACE level that shows
  the exact external command lines being run
- an optional log file that always uses the detailed format
- timing of long steps (secure copy, directory walk)
- structured ``key=value`` context appended to messages
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

# Below DEBUG; logs full command lines and raw command output
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

VERBOSITY_LEVELS = {
    0: logging.INFO,
    1: logging.DEBUG,
    2: TRACE,
}

LEVEL_NAMES = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_level_from_verbosity(verbosity: int) -> int:
    """Convert a count of -v flags to a logging level.

    The fetch pipeline reports its progress at INFO, so that is the default.
    """
    return VERBOSITY_LEVELS.get(min(verbosity, 2), TRACE)


def get_level_from_name(level_name: str) -> int:
    """Convert a level name to a logging level.

    Raises:
        ValueError: If level name is invalid
    """
    level = LEVEL_NAMES.get(level_name.lower())
    if level is None:
        valid = ", ".join(LEVEL_NAMES)
        raise ValueError(f"Invalid log level: {level_name}. Valid levels: {valid}")
    return level


def configure_logging(
    level: int = logging.INFO,
    log_file: str | Path | None = None,
    file_level: int | None = None,
) -> None:
    """Configure the root logger for a tarsnap run.

    Args:
        level: Console logging level
        log_file: Optional path to also write logs to
        file_level: Level for the log file (defaults to level)

    Example:
        >>> configure_logging(level=logging.DEBUG)
        >>> configure_logging(log_file="/tmp/tarsnap-debug.log", file_level=TRACE)
    """
    console_format = DEBUG_FORMAT if level <= logging.DEBUG else DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(min(level, file_level or level))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(file_level or level)
        file_handler.setFormatter(logging.Formatter(DEBUG_FORMAT))
        root_logger.addHandler(file_handler)


@contextmanager
def log_performance(
    logger: logging.Logger,
    operation: str,
    level: int = logging.DEBUG,
    **context: Any,
) -> Generator[None, None, None]:
    """Log how long the wrapped block took.

    Example:
        >>> with log_performance(logger, "Secure copy", host="10.0.0.5"):
        ...     run_scp()
        DEBUG: Secure copy completed in 1.204s (host=10.0.0.5)
    """
    start_time = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start_time
        message = f"{operation} completed in {duration:.3f}s"
        if context:
            message += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
        logger.log(level, message)


class StructuredLogger:
    """Logger that appends ``key=value`` context to every message.

    Example:
        >>> logger = StructuredLogger("tarsnap.fetcher", host="10.0.0.5")
        >>> logger.info("Copying history")
        INFO [tarsnap.fetcher] Copying history (host=10.0.0.5)
        >>> logger.info("Copied", path="data/x.txt")
        INFO [tarsnap.fetcher] Copied (host=10.0.0.5, path=data/x.txt)
    """

    def __init__(self, name: str, **context: Any) -> None:
        self.logger = logging.getLogger(name)
        self.context: dict[str, Any] = context.copy()

    def add_context(self, **context: Any) -> None:
        self.context.update(context)

    def _format_message(self, message: str, **extra: Any) -> str:
        combined = {**self.context, **extra}
        if not combined:
            return message
        context_str = ", ".join(f"{k}={v}" for k, v in combined.items())
        return f"{message} ({context_str})"

    def log(self, level: int, message: str, **extra: Any) -> None:
        self.logger.log(level, self._format_message(message, **extra))

    def trace(self, message: str, **extra: Any) -> None:
        self.log(TRACE, message, **extra)

    def debug(self, message: str, **extra: Any) -> None:
        self.log(logging.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self.log(logging.INFO, message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self.log(logging.WARNING, message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self.log(logging.ERROR, message, **extra)


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a structured logger for a tarsnap module."""
    return StructuredLogger(name, **context)
