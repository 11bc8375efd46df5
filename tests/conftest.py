"""Shared fixtures for tarsnap tests."""

import json
import logging
from pathlib import Path

import pytest

from tarsnap.config import TarsnapConfig
from tarsnap.runner import CommandResult


class FakeRunner:
    """CommandRunner that records calls and returns canned results.

    Results are looked up by command name. A list of results is consumed
    in order and its last entry repeats. Unknown commands succeed with no
    output.
    """

    def __init__(self) -> None:
        self.results: dict[str, CommandResult | list[CommandResult]] = {}
        self.calls: list[tuple[str, list[str]]] = []
        self.scp_content: str | None = None

    def run(self, name: str, args: list[str], timeout: float | None = None) -> CommandResult:
        self.calls.append((name, list(args)))
        result = self.results.get(name, CommandResult())
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if name == "scp" and result.ok and self.scp_content is not None:
            Path(args[-1]).write_text(self.scp_content)
        return result

    def called(self, name: str) -> list[list[str]]:
        """Argument lists of every call to name."""
        return [args for called_name, args in self.calls if called_name == name]

    def terraform_returns(self, ip: str) -> None:
        output = {"instance_public_ip": {"sensitive": False, "type": "string", "value": ip}}
        self.results["terraform"] = CommandResult(stdout=json.dumps(output))

    def scp_writes(self, content: str) -> None:
        self.scp_content = content


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI attached to streams that no longer exist."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config(tmp_path: Path) -> TarsnapConfig:
    """Config with every path under tmp_path and no verification pause."""
    return TarsnapConfig(
        data_dir=tmp_path / "data" / "bash_history",
        terraform_dir=tmp_path / "terraform",
        launch_agents_dir=tmp_path / "LaunchAgents",
        cwd=tmp_path,
        verify_delay=0,
    )


@pytest.fixture
def history_dir(tmp_path: Path) -> Path:
    """Capture directory with two overlapping history files."""
    directory = tmp_path / "captures"
    directory.mkdir()
    (directory / "a.txt").write_text("ls -la\ncd /tmp\nls -la\n")
    (directory / "b.txt").write_text("cd /tmp\necho hello world\n")
    return directory
