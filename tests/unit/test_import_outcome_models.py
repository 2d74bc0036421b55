from __future__ import annotations

from datetime import UTC, datetime

from moovly_import.models.import_outcome import Accepted, BatchResult, DriverMatchStats, Rejected
from moovly_import.models.records import (
    DriverMatch,
    DriverRecord,
    JobRecord,
    MatchTier,
    MatchType,
    RecordKind,
)


def _job(row: int = 2) -> JobRecord:
    return JobRecord(
        row_number=row,
        customer_name="ABC",
        pickup_address="1 Main St",
        delivery_address="2 Oak Ave",
        scheduled_date=datetime(2024, 1, 15, tzinfo=UTC),
        driver_id=4,
        driver_match=DriverMatch(MatchType.MATCHED, "j.smith", driver_id=4, tier=MatchTier.USERNAME_OR_EMAIL),
    )


def test_rejected_to_dict():
    assert Rejected(7, "Missing required fields: Notes").to_dict() == {
        "row": 7,
        "reason": "Missing required fields: Notes",
    }


def test_batch_result_to_dict_without_stats():
    record = DriverRecord(2, "j.smith", "John Smith", "123", "L1")
    batch = BatchResult(RecordKind.DRIVER, [Accepted(2, record), Rejected(3, "bad")])
    assert batch.to_dict() == {"accepted": [record], "rejected": [{"row": 3, "reason": "bad"}]}


def test_format_unmatched_without_truncation():
    stats = DriverMatchStats(unmatched=2, unmatched_inputs=("A", "B"), sample_limit=3)
    assert not stats.truncated
    assert stats.format_unmatched() == "A, B"


def test_combine_merges_counts_and_dedups_inputs():
    a = DriverMatchStats(
        matched=1,
        deferred=1,
        unmatched=2,
        matched_by_tier={MatchTier.FULL_NAME: 1},
        unmatched_inputs=("A", "B"),
    )
    b = DriverMatchStats(
        matched=2,
        unmatched=2,
        matched_by_tier={MatchTier.FULL_NAME: 1, MatchTier.PARTIAL: 1},
        unmatched_inputs=("B", "C"),
    )
    combined = a.combine(b)
    assert (combined.matched, combined.deferred, combined.unmatched) == (3, 1, 4)
    assert combined.matched_by_tier == {MatchTier.FULL_NAME: 2, MatchTier.PARTIAL: 1}
    assert combined.unmatched_inputs == ("A", "B", "C")


def test_job_values_exclude_import_diagnostics():
    values = _job().to_values()
    assert "row_number" not in values
    assert "driver_match" not in values
    assert values["driver_id"] == 4
    assert values["priority"] == "medium"


def test_driver_values_exclude_row_number():
    values = DriverRecord(2, "j.smith", "John Smith", "123", "L1", pin="0007").to_values()
    assert values == {
        "username": "j.smith",
        "name": "John Smith",
        "phone": "123",
        "license_number": "L1",
        "email": None,
        "id_number": None,
        "pin": "0007",
        "status": "active",
    }
