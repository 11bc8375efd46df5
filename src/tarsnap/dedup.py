"""Reduce aggregated lines to a unique set and write the summary file."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from tarsnap.exceptions import StorageError
from tarsnap.logging import get_logger

logger = get_logger(__name__)

# Commands shorter than this are not worth keeping
MIN_LINE_LENGTH = 10


@dataclass
class DedupStats:
    """Counts reported after deduplication."""

    total: int
    unique: int

    @property
    def duplicates(self) -> int:
        return self.total - self.unique


def unique_lines(lines: Iterable[str]) -> set[str]:
    """Distinct lines by exact string equality; nothing is normalized."""
    return set(lines)


def sorted_unique(lines: Iterable[str]) -> list[str]:
    return sorted(unique_lines(lines))


def summarize(lines: list[str]) -> DedupStats:
    stats = DedupStats(total=len(lines), unique=len(unique_lines(lines)))
    logger.info(f"Unique Line Count for Aggregate of All Files: {stats.unique}", total=stats.total)
    return stats


def write_summary(
    lines: Iterable[str],
    path: str | Path,
    min_length: int = MIN_LINE_LENGTH,
) -> int:
    """Rewrite path with the sorted unique lines of at least min_length chars.

    The file is truncated first; it never accumulates across runs.

    Args:
        lines: Aggregated lines, duplicates allowed
        path: Summary file to write
        min_length: Shortest line to keep

    Returns:
        Number of lines written

    Raises:
        StorageError: If the file cannot be written
    """
    path = Path(path)
    kept = [line for line in sorted_unique(lines) if len(line) >= min_length]

    try:
        with path.open("w", encoding="utf-8", errors="surrogateescape") as f:
            for line in kept:
                f.write(line + "\n")
    except OSError as e:
        raise StorageError(f"Failed to write {path.name}: {e}", path=path) from e

    logger.info(f"Successfully generated {path.name}.", lines=len(kept))
    return len(kept)
