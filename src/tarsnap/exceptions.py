"""Exceptions raised by tarsnap components.

Every failure is fatal for the current run. The CLI catches
:class:`TarsnapError`, logs it with its context and exits non-zero.
"""

from typing import Any


class TarsnapError(Exception):
    """Base class for all tarsnap failures.

    Attributes:
        msg: Human-readable error message
        context: Extra key-value details for diagnostics

    Example:
        raise TarsnapError("Failed to create directory", path="/data")
        # str(error) == "Failed to create directory"
        # error.format_context() == "path=/data"
    """

    def __init__(self, msg: str, **context: Any) -> None:
        super().__init__(msg)
        self.msg = msg
        self.context: dict[str, Any] = dict(context)

    def __str__(self) -> str:
        return self.msg

    def format_context(self) -> str:
        """Render context as ``key=value`` pairs."""
        return ", ".join(f"{k}={v}" for k, v in self.context.items())


class ConfigError(TarsnapError):
    """Invalid configuration file, key or value."""


class CommandError(TarsnapError):
    """An external command failed to start, timed out or exited non-zero."""

    def __init__(self, msg: str, rc: int | None = None, output: str = "", **context: Any) -> None:
        super().__init__(msg, rc=rc, **context)
        self.rc = rc
        self.output = output


class StorageError(TarsnapError):
    """A local file or directory could not be created, read or written."""


class ValidationError(TarsnapError):
    """A resolved value is malformed (bad JSON, not an IPv4 address)."""


class TemplateRenderError(TarsnapError):
    """The task descriptor template could not be parsed or rendered."""
