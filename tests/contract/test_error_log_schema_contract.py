from __future__ import annotations

import json
import re

from moovly_import.models.error_record import (
    DECODE_FAILURE,
    DRIVER_UNMATCHED,
    FILE_LEVEL_ROW,
    FILE_LEVEL_SHEET,
    PERSIST_FAILED,
    ROW_REJECTED,
    TRANSACTION_ERROR,
    ErrorRecord,
)

"""Error log JSON Lines contract: fixed key set, UTC 'Z' timestamp, UPPER_SNAKE types."""

EXPECTED_KEYS = {"timestamp", "file", "sheet", "row", "error_type", "message"}


def test_error_record_keys_exact():
    rec = ErrorRecord.create("jobs.xlsx", "Jobs", 7, ROW_REJECTED, "Missing required fields: Customer Name")
    data = json.loads(rec.to_json_line())
    assert set(data.keys()) == EXPECTED_KEYS
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.?\d*Z", data["timestamp"])
    assert isinstance(data["row"], int)


def test_error_types_are_upper_snake():
    for error_type in (ROW_REJECTED, DRIVER_UNMATCHED, PERSIST_FAILED, DECODE_FAILURE, TRANSACTION_ERROR):
        assert re.fullmatch(r"[A-Z]+(_[A-Z]+)*", error_type)


def test_file_level_record():
    rec = ErrorRecord.create("bad.xlsx", FILE_LEVEL_SHEET, FILE_LEVEL_ROW, DECODE_FAILURE, "bad zip")
    data = json.loads(rec.to_json_line())
    assert data["row"] == -1
    assert data["sheet"] == "<FILE_LEVEL>"
