from __future__ import annotations

from ..models.merged_result import MergeStats
from ..models.sync_report import SyncReport

"""SUMMARY line rendering for the CLI."""


def _format_seconds(value: float) -> str:
    # integers without decimals, tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(report: SyncReport) -> str:
    """Render a sync report as a single SUMMARY line.

    Examples:
        >>> from review_sync.models import RawSheetStats, SyncReport
        >>> report = SyncReport(
        ...     success=True, last_updated="2024-06-01T00:00:00.000Z",
        ...     stats=RawSheetStats(size=2048, lines=11, rows=10), elapsed_seconds=1.5,
        ... )
        >>> render_summary_line(report)
        'SUMMARY status=ok rows=10 size=2048 lines=11 skipped=0 elapsed_sec=1.5'
    """
    rows = report.stats.rows if report.stats.rows is not None else max(report.stats.lines - 1, 0)
    return (
        f"SUMMARY status={'ok' if report.success else 'failed'} "
        f"rows={rows} "
        f"size={report.stats.size} "
        f"lines={report.stats.lines} "
        f"skipped={1 if report.skipped else 0} "
        f"elapsed_sec={_format_seconds(report.elapsed_seconds)}"
    )


def render_merge_line(stats: MergeStats) -> str:
    if stats.degraded:
        return "SUMMARY merged=empty"
    sources = " ".join(f"{label.replace(' ', '_')}={count}" for label, count in stats.sources.items())
    return f"SUMMARY merged total={stats.total} historical={stats.historical} current={stats.current} {sources}".rstrip()
