from __future__ import annotations

from ..models.import_outcome import DriverMatchStats, Rejected
from ..models.processing_result import ProcessingResult
from ..models.sheet_process import PersistenceFailure

"""Report rendering: the SUMMARY line and the operator facing feedback lines.

SUMMARY format (single line, key=value pairs, order fixed):

SUMMARY files={total}/{total} success={success} failed={failed} rows={rows}
accepted={accepted} rejected={rejected} persisted={persisted}
persist_failed={persist_failed} skipped_sheets={skipped}
drivers_matched={m} drivers_deferred={d} drivers_unmatched={u}
elapsed_sec={elapsed}
"""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 3))


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_rows=10, accepted_rows=9,
        ...     rejected_rows=1, persisted_rows=9, persist_failed_rows=0,
        ...     skipped_sheets=1, start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)  # doctest: +ELLIPSIS
        'SUMMARY files=1/1 success=1 failed=0 rows=10 accepted=9 rejected=1 ...'
    """
    stats = result.driver_stats or DriverMatchStats()
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"accepted={result.accepted_rows} "
        f"rejected={result.rejected_rows} "
        f"persisted={result.persisted_rows} "
        f"persist_failed={result.persist_failed_rows} "
        f"skipped_sheets={result.skipped_sheets} "
        f"drivers_matched={stats.matched} "
        f"drivers_deferred={stats.deferred} "
        f"drivers_unmatched={stats.unmatched} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_driver_report(stats: DriverMatchStats) -> list[str]:
    """Driver allocation feedback, one line per non-zero bucket."""
    lines: list[str] = []
    if stats.matched:
        line = f"{stats.matched} drivers matched automatically"
        tiers = stats.format_tiers()
        if tiers:
            line += f" ({tiers})"
        lines.append(line)
    if stats.deferred:
        lines.append(f"{stats.deferred} jobs marked for later allocation")
    if stats.unmatched:
        lines.append(f"{stats.unmatched} drivers not found: {stats.format_unmatched()}")
    return lines


def render_rejection(rejected: Rejected) -> str:
    return f"Row {rejected.row_number}: {rejected.reason}"


def render_persist_failure(failure: PersistenceFailure) -> str:
    return f"Row {failure.row_number}: could not be saved ({failure.message})"
