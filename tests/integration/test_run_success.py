from __future__ import annotations

import re
from pathlib import Path

import pytest

from moovly_import.cli import main as cli_main

"""End-to-end CLI run (mock mode): a drivers sheet and a jobs sheet in one
workbook, jobs referencing drivers created by the same run.
"""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY files=(\d+)/\1 success=(\d+) failed=(\d+) rows=(\d+) accepted=(\d+) "
    r"rejected=(\d+) persisted=(\d+) persist_failed=(\d+) skipped_sheets=(\d+) "
    r"drivers_matched=(\d+) drivers_deferred=(\d+) drivers_unmatched=(\d+) "
    r"elapsed_sec=(\d+(?:\.\d+)?)$",
    re.MULTILINE,
)


@pytest.fixture
def fleet_workbook(workbook_factory) -> Path:
    return workbook_factory(
        "fleet.xlsx",
        {
            "Drivers": [
                ["Driver Username *", "Full Name *", "Email Address", "Phone Number *", "License Number *", "PIN *"],
                ["john.smith", "John Smith", "john@example.com", "+27 82 555 1234", "ABC12345", 1234],
                [None, "Jane Doe", "jane@example.com", 27834445678, "DEF67890", 7],
            ],
            "Jobs": [
                ["Customer Name", "Pickup Address", "Delivery Address", "Scheduled Date", "Customer Phone", "Phone", "Driver"],
                ["ABC Electronics", "123 Main St", "456 Oak Ave", "2024-01-15", "021 555 0000", "999", "john.smith"],
                ["XYZ Furniture", "789 Industrial Rd", "321 Residential St", 45000, None, None, "jane@example.com"],
                ["Acme", "1 Long St", "2 Short St", "2024-01-17", None, None, "Allocate Later"],
                ["Globex", "3 Beach Rd", "4 Church St", "2024-01-18", None, None, None],
            ],
            "Instructions": [["Field", "Description"], ["Customer Name", "Name of the customer"]],
        },
    )


def test_full_import_success(write_config, fleet_workbook, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")

    exit_code = cli_main([])
    out = capsys.readouterr().out

    assert exit_code == 0, out
    m = SUMMARY_PATTERN.search(out)
    assert m is not None, out
    (files, success, failed, rows, accepted, rejected, persisted, persist_failed,
     skipped, matched, deferred, unmatched, _elapsed) = (int(float(g)) for g in m.groups())
    assert (files, success, failed) == (1, 1, 0)
    assert (rows, accepted, rejected) == (6, 6, 0)
    assert (persisted, persist_failed) == (6, 0)
    assert skipped == 1
    assert (matched, deferred, unmatched) == (2, 2, 0)
    assert "INFO fleet.xlsx/Jobs 2 drivers matched automatically" in out
    assert not list(Path("logs").glob("errors-*.log"))
