"""Console report of the capture files after a fetch run."""

from pathlib import Path

from rich.console import Console
from rich.table import Table

from tarsnap.aggregate import LineAggregate
from tarsnap.dedup import DedupStats


def build_capture_table(aggregate: LineAggregate, stats: DedupStats, root: Path | None = None) -> Table:
    """Build a table with one row per capture file and a totals footer.

    Paths are shown relative to root when given.
    """
    table = Table(title="Summary of data files", show_footer=True)
    table.add_column("File", footer="Total / unique")
    table.add_column("Line Count", justify="right", footer=f"{stats.total} / {stats.unique}")

    for path, count in aggregate.line_counts.items():
        shown = path.relative_to(root) if root and path.is_relative_to(root) else path
        table.add_row(str(shown), str(count))
    return table


def print_capture_report(
    aggregate: LineAggregate,
    stats: DedupStats,
    root: Path | None = None,
    console: Console | None = None,
) -> None:
    """Print the capture table to stderr, leaving stdout for data."""
    console = console or Console(stderr=True)
    console.print(build_capture_table(aggregate, stats, root))
