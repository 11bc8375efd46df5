"""Copy the remote history file into a new local capture file."""

from datetime import datetime
from pathlib import Path

from tarsnap.config import TarsnapConfig
from tarsnap.exceptions import CommandError, StorageError
from tarsnap.logging import get_logger, log_performance
from tarsnap.runner import CommandRunner, format_command

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def capture_path(data_dir: Path, now: datetime, prefix: str = "bash_history_") -> Path:
    """Return an unused capture file path for the given time.

    The name is ``<prefix><YYYYMMDD_HHMMSS>.txt``. When a capture with that
    name already exists (two runs in the same second) a counter is appended
    instead of overwriting it.

    Example:
        >>> capture_path(Path("/data"), datetime(2024, 3, 1, 9, 5, 7))
        PosixPath('/data/bash_history_20240301_090507.txt')
    """
    stem = f"{prefix}{now.strftime(TIMESTAMP_FORMAT)}"
    path = data_dir / f"{stem}.txt"
    counter = 1
    while path.exists():
        path = data_dir / f"{stem}_{counter}.txt"
        counter += 1
    return path


def scp_args(config: TarsnapConfig, ip: str, local_file: Path) -> list[str]:
    """Build the scp argument list for copying the history file from ip."""
    return [
        "-o",
        f"ConnectTimeout={config.connect_timeout}",
        f"{config.remote_user}@{ip}:{config.remote_path}",
        str(local_file),
    ]


def fetch_history(
    config: TarsnapConfig,
    ip: str,
    runner: CommandRunner,
    now: datetime | None = None,
) -> Path:
    """Copy the remote history file to a new timestamped capture file.

    Args:
        config: Settings (remote user and path, data directory, timeout)
        ip: Validated address of the remote host
        runner: Command runner used for scp
        now: Capture time (defaults to the current time)

    Returns:
        Absolute path of the new capture file

    Raises:
        StorageError: If the data directory cannot be created
        CommandError: If scp exits non-zero
    """
    local_dir = Path(config.data_dir).absolute()
    logger.debug("Capture directory", path=local_dir)

    try:
        local_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create directory: {e}", path=local_dir) from e

    local_file = capture_path(local_dir, now or datetime.now(), config.capture_prefix)
    args = scp_args(config, ip, local_file)

    logger.info("Copying remote bash history file to the local machine...", host=ip)
    logger.debug("Executing command", command=format_command(config.scp_bin, args))

    with log_performance(logger.logger, "Secure copy", host=ip):
        result = runner.run(config.scp_bin, args)

    if result.output.strip():
        logger.debug(f"Output from the scp command: {result.output.strip()}")

    if not result.ok:
        raise CommandError(
            f"Failed to execute {config.scp_bin}: exit status {result.rc}: {result.output.strip()}",
            rc=result.rc,
            output=result.output,
            host=ip,
        )

    logger.info("Successfully copied remote bash history file to the local machine.", path=local_file)
    return local_file
