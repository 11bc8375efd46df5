"""Configuration for tarsnap.

All paths, identities and external command names live in a single
:class:`TarsnapConfig` that is passed into each component. Values come
from the built-in defaults, then an optional YAML file, then command-line
flags.
"""

import logging
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, NoReturn

import yaml

from tarsnap.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_AGENTS_DIR = Path.home() / "Library" / "LaunchAgents"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_BARE_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


@dataclass
class TarsnapConfig:
    """Settings shared by every tarsnap component.

    Attributes:
        remote_user: Login used for the secure copy
        remote_path: History file on the remote host
        data_dir: Local directory holding capture files and the summary
        summary_name: File name of the summary inside data_dir
        capture_prefix: File name prefix for capture files
        terraform_bin: Provisioning tool executable
        terraform_dir: Directory passed to terraform via -chdir
        terraform_output: Output key holding the host address
        scp_bin: Secure copy executable
        connect_timeout: SSH connection timeout in seconds
        min_line_length: Shortest line kept in the summary
        label: Prefix for the scheduled task label
        cwd: Working directory recorded in the task descriptor
        delay: Repeat interval of the scheduled task in seconds
        log_path: Stdout/stderr destination of the scheduled task
        launch_agents_dir: Directory the task descriptor is written to
        launchctl_bin: Task manager executable
        verify_delay: Pause in seconds before re-checking task registration

    Example:
        >>> config = TarsnapConfig(remote_user="admin", delay=300)
        >>> config.summary_path
        PosixPath('data/bash_history/summary.txt')
    """

    remote_user: str = "root"
    remote_path: str = "~/.bash_history"
    data_dir: Path = Path("data/bash_history")
    summary_name: str = "summary.txt"
    capture_prefix: str = "bash_history_"
    terraform_bin: str = "terraform"
    terraform_dir: Path = Path("terraform")
    terraform_output: str = "instance_public_ip"
    scp_bin: str = "scp"
    connect_timeout: int = 10
    min_line_length: int = 10
    label: str = "com.tarsnap"
    cwd: Path = Path(".")
    delay: int = 600
    log_path: Path = Path("/tmp/tarsnap.log")
    launch_agents_dir: Path = field(default_factory=lambda: DEFAULT_LAUNCH_AGENTS_DIR)
    launchctl_bin: str = "launchctl"
    verify_delay: float = 0.5

    @property
    def summary_path(self) -> Path:
        """Path of the deduplicated summary file."""
        return self.data_dir / self.summary_name

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict suitable for YAML or JSON."""
        return {k: str(v) if isinstance(v, Path) else v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TarsnapConfig":
        """Create a config from a mapping, coercing types to the field types.

        Raises:
            ConfigError: On unknown keys or values of the wrong type
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown configuration key(s): {', '.join(unknown)}")

        defaults = cls()
        values: dict[str, Any] = {}
        for name, raw in data.items():
            current = getattr(defaults, name)
            if raw is None:
                raise ConfigError(f"Missing value for {name}", key=name)
            try:
                if name == "delay" and isinstance(raw, str):
                    values[name] = int(parse_duration(raw))
                elif isinstance(current, Path):
                    values[name] = Path(str(raw)).expanduser()
                else:
                    values[name] = type(current)(raw)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid value for {name}: {raw!r}", key=name) from e
        return cls(**values)

    def merged(self, **overrides: Any) -> "TarsnapConfig":
        """Return a copy with non-None overrides applied."""
        data = asdict(self)
        data.update({k: v for k, v in overrides.items() if v is not None})
        return TarsnapConfig(**data)


def load_config(path: str | Path) -> TarsnapConfig:
    """Load a config from a YAML file.

    An empty file yields the defaults.

    Args:
        path: YAML file with any subset of the TarsnapConfig fields

    Returns:
        TarsnapConfig instance

    Raises:
        ConfigError: If the file cannot be read or is not a mapping
    """
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}", path=path) from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}", path=path) from e

    if data is None:
        logger.debug(f"Config file is empty, using defaults: {path}")
        return TarsnapConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}", path=path)

    logger.debug(f"Loaded config from {path}")
    return TarsnapConfig.from_dict(data)


def parse_duration(text: str) -> float:
    """Parse a Go-style duration string into seconds.

    Accepts sequences such as ``300ms``, ``90s``, ``5m`` or ``1h30m``. A bare
    number is taken as seconds.

    Args:
        text: Duration string

    Returns:
        Duration in seconds

    Raises:
        ConfigError: If the string is not a valid non-negative duration

    Example:
        >>> parse_duration("5m")
        300.0
        >>> parse_duration("1h30m")
        5400.0
    """
    value = text.strip()
    if not value:
        raise ConfigError("Empty duration")

    if _BARE_NUMBER.fullmatch(value):
        return float(value)

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            _bad_duration(text)
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position != len(value):
        _bad_duration(text)
    return total


def _bad_duration(text: str) -> NoReturn:
    raise ConfigError(f"Invalid duration: {text!r} (expected e.g. 90s, 5m, 1h30m)")
