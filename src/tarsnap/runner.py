"""External command execution.

terraform, scp and launchctl are the only things tarsnap talks to. They are
all reached through the :class:`CommandRunner` protocol so tests can swap
in a fake that records calls and returns canned output.
"""

import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from tarsnap.exceptions import CommandError
from tarsnap.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of one external command.

    Attributes:
        stdout: Captured standard output
        stderr: Captured standard error
        rc: Exit status
    """

    stdout: str = ""
    stderr: str = ""
    rc: int = 0

    @property
    def ok(self) -> bool:
        return self.rc == 0

    @property
    def output(self) -> str:
        """Standard output and standard error combined."""
        return self.stdout + self.stderr


class CommandRunner(Protocol):
    """Anything that can run an external command and report its result."""

    def run(self, name: str, args: list[str], timeout: float | None = None) -> CommandResult:
        ...


def format_command(name: str, args: list[str]) -> str:
    """Render a command line for logging."""
    return shlex.join([name, *args])


class SubprocessRunner:
    """Run commands with :func:`subprocess.run`.

    A non-zero exit status is returned in the result, not raised. Failing to
    start the command at all, or running past ``timeout``, raises
    :class:`CommandError`.
    """

    def run(self, name: str, args: list[str], timeout: float | None = None) -> CommandResult:
        command = format_command(name, args)
        logger.trace("Executing command", command=command)
        try:
            process = subprocess.run(
                [name, *args],
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(f"Command not found: {name}", command=command) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command timed out after {timeout} seconds: {command}",
                command=command,
            ) from e
        except OSError as e:
            raise CommandError(f"Failed to execute {name}: {e}", command=command) from e

        logger.trace("Command finished", command=command, rc=process.returncode)
        return CommandResult(
            stdout=process.stdout,
            stderr=process.stderr,
            rc=process.returncode,
        )
