"""Collect the lines of every capture file under a directory."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from tarsnap.exceptions import StorageError
from tarsnap.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LineAggregate:
    """Lines gathered from a directory tree.

    Attributes:
        line_counts: Number of lines in each file, in traversal order
        lines: Every line of every file, in traversal order
    """

    line_counts: dict[Path, int] = field(default_factory=dict)
    lines: list[str] = field(default_factory=list)

    @property
    def total_lines(self) -> int:
        return len(self.lines)

    @property
    def files(self) -> list[Path]:
        return list(self.line_counts)


def read_lines(path: Path) -> list[str]:
    """Read a file and return its lines without line terminators.

    Bytes that are not valid UTF-8 are kept as surrogate escapes so they
    round-trip unchanged into the summary.
    """
    with path.open(encoding="utf-8", errors="surrogateescape") as f:
        return [line.rstrip("\n") for line in f]


def _raise_walk_error(error: OSError) -> None:
    raise StorageError(f"Failed to walk through files: {error}", path=error.filename) from error


def aggregate_lines(directory: str | Path, exclude: Iterable[str] = ()) -> LineAggregate:
    """Read every regular file below directory.

    Directories are descended into, never read. Files whose name is in
    exclude are skipped. Entries are visited in sorted order.

    Args:
        directory: Root of the tree to walk
        exclude: File names to skip (e.g. the summary file)

    Returns:
        LineAggregate with per-file counts and all lines

    Raises:
        StorageError: If the directory is missing or any file cannot be read
    """
    root = Path(directory)
    if not root.is_dir():
        raise StorageError(f"Not a directory: {root}", path=root)

    skipped = set(exclude)
    aggregate = LineAggregate()

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            if name in skipped:
                continue
            path = Path(dirpath) / name
            if not path.is_file():
                continue
            try:
                lines = read_lines(path)
            except OSError as e:
                raise StorageError(f"Failed to read {path}: {e}", path=path) from e
            aggregate.line_counts[path] = len(lines)
            aggregate.lines.extend(lines)

    logger.debug(
        "Aggregated capture files",
        files=len(aggregate.line_counts),
        lines=aggregate.total_lines,
    )
    return aggregate
