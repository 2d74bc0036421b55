from __future__ import annotations

from datetime import UTC, datetime

from moovly_import.models.import_outcome import DriverMatchStats, Rejected
from moovly_import.models.processing_result import ProcessingResult
from moovly_import.models.records import MatchTier
from moovly_import.models.sheet_process import PersistenceFailure
from moovly_import.services.summary import (
    _format_seconds,
    render_driver_report,
    render_persist_failure,
    render_rejection,
    render_summary_line,
)


def _result(**overrides) -> ProcessingResult:
    t = datetime(2024, 1, 1, tzinfo=UTC)
    values = dict(
        success_files=2,
        failed_files=1,
        total_rows=10,
        accepted_rows=8,
        rejected_rows=2,
        persisted_rows=7,
        persist_failed_rows=1,
        skipped_sheets=1,
        start_time=t,
        end_time=t,
        elapsed_seconds=1.25,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line_full():
    stats = DriverMatchStats(matched=3, deferred=2, unmatched=1)
    line = render_summary_line(3, _result(driver_stats=stats))
    assert line == (
        "SUMMARY files=3/3 success=2 failed=1 rows=10 accepted=8 rejected=2 "
        "persisted=7 persist_failed=1 skipped_sheets=1 drivers_matched=3 "
        "drivers_deferred=2 drivers_unmatched=1 elapsed_sec=1.25"
    )


def test_render_summary_line_without_job_sheets():
    line = render_summary_line(0, _result(success_files=0, failed_files=0, elapsed_seconds=0.0))
    assert "drivers_matched=0 drivers_deferred=0 drivers_unmatched=0 elapsed_sec=0" in line


def test_has_row_problems():
    assert _result().has_row_problems
    assert not _result(rejected_rows=0, persist_failed_rows=0).has_row_problems


def test_format_seconds():
    assert _format_seconds(0) == "0"
    assert _format_seconds(3.0) == "3"
    assert _format_seconds(0.1234) == "0.123"
    assert _format_seconds(0.000123) == "0.000123"


def test_driver_report_lines():
    stats = DriverMatchStats(
        matched=4, deferred=2, unmatched=4, unmatched_inputs=("A", "B", "C", "D"), sample_limit=3
    )
    assert render_driver_report(stats) == [
        "4 drivers matched automatically",
        "2 jobs marked for later allocation",
        "4 drivers not found: A, B, C...",
    ]


def test_driver_report_shows_match_tiers():
    stats = DriverMatchStats(
        matched=4,
        matched_by_tier={MatchTier.PARTIAL: 1, MatchTier.USERNAME_OR_EMAIL: 2, MatchTier.FULL_NAME: 1},
    )
    assert render_driver_report(stats) == [
        "4 drivers matched automatically (username_or_email=2, full_name=1, partial=1)"
    ]


def test_driver_report_skips_empty_buckets():
    assert render_driver_report(DriverMatchStats()) == []
    assert render_driver_report(DriverMatchStats(deferred=1)) == ["1 jobs marked for later allocation"]


def test_render_rejection_and_persist_failure():
    rejected = Rejected(7, "Missing required fields: Customer Name, Pickup Address")
    assert render_rejection(rejected) == "Row 7: Missing required fields: Customer Name, Pickup Address"
    failure = PersistenceFailure(3, "duplicate username")
    assert render_persist_failure(failure) == "Row 3: could not be saved (duplicate username)"
