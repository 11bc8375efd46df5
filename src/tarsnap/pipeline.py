"""The three things tarsnap can do: fetch, show, install."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from tarsnap.aggregate import LineAggregate, aggregate_lines
from tarsnap.config import TarsnapConfig
from tarsnap.dedup import DedupStats, sorted_unique, summarize, write_summary
from tarsnap.fetcher import fetch_history
from tarsnap.logging import get_logger
from tarsnap.resolver import resolve_ip
from tarsnap.runner import CommandRunner
from tarsnap.scheduler import InstallResult, install_task

logger = get_logger(__name__)


@dataclass
class FetchSummary:
    """What a fetch run produced.

    Attributes:
        ip: Address the history was copied from
        capture: New capture file
        summary: Rewritten summary file
        aggregate: Lines read from all capture files
        stats: Total and unique line counts
        written: Lines written to the summary
    """

    ip: str
    capture: Path
    summary: Path
    aggregate: LineAggregate
    stats: DedupStats
    written: int


def run_fetch(
    config: TarsnapConfig,
    runner: CommandRunner,
    ip_override: str | None = None,
    now: datetime | None = None,
) -> FetchSummary:
    """Resolve the host, copy its history, then rebuild the summary.

    Each step must succeed before the next one starts; the first failure
    propagates and nothing is cleaned up.
    """
    ip = resolve_ip(config, runner, override=ip_override)
    capture = fetch_history(config, ip, runner, now=now)

    data_dir = Path(config.data_dir).absolute()
    logger.info("Summary of data files:")
    aggregate = aggregate_lines(data_dir, exclude=[config.summary_name])
    for path, count in aggregate.line_counts.items():
        logger.debug(f"File: {path}, Line Count: {count}")

    stats = summarize(aggregate.lines)
    summary_path = data_dir / config.summary_name
    written = write_summary(aggregate.lines, summary_path, min_length=config.min_line_length)

    return FetchSummary(
        ip=ip,
        capture=capture,
        summary=summary_path,
        aggregate=aggregate,
        stats=stats,
        written=written,
    )


def show_full(config: TarsnapConfig) -> list[str]:
    """Return every distinct line across the existing captures, sorted.

    Nothing is fetched and no length filter is applied.
    """
    aggregate = aggregate_lines(config.data_dir, exclude=[config.summary_name])
    return sorted_unique(aggregate.lines)


def run_install(
    config: TarsnapConfig,
    runner: CommandRunner,
    ip_override: str | None = None,
    executable: Path | None = None,
    config_file: Path | None = None,
) -> InstallResult:
    """Resolve the host and install the launchd job for it."""
    ip = resolve_ip(config, runner, override=ip_override)
    return install_task(config, ip, runner, executable=executable, config_file=config_file)
