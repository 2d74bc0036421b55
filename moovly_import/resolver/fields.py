from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import Any

import numpy as np
import pandas as pd

from ..models.row_data import RawRow
from .aliases import ColumnAlias

"""Field level resolution: header lookup, text coercion, date normalization.

Header lookup is case-insensitive and runs in two tiers:

1. exact: the first alias (priority order) that equals a header wins, even
   when that cell is empty, so a more specific column is never shadowed by a
   looser one ("Customer Phone" beats "Phone").
2. partial: only when no alias matched exactly. For each alias in priority
   order, the first header (sheet column order) that contains the alias or is
   contained by it is used.

None of these helpers raise for malformed cells; failures degrade to an empty
value and required-field validation decides what happens to the row.
"""

__all__ = [
    "EXCEL_EPOCH_SERIAL",
    "find_header",
    "lookup",
    "is_blank",
    "to_text",
    "to_pin",
    "excel_serial_to_datetime",
    "normalize_date",
    "normalize_time",
]

# 1970-01-01 as an Excel (1900 date system) serial
EXCEL_EPOCH_SERIAL = 25569
_MS_PER_DAY = 86400 * 1000
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
PIN_LENGTH = 4
_SECONDS_PER_DAY = 86400
# 時刻のみのセル。日付は付けない
_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I:%M:%S %p", "%I %p", "%I%p")


def _key(text: Any) -> str:
    return str(text).strip().lower()


def find_header(row: RawRow, alias: ColumnAlias) -> str | None:
    """Return the header of row that resolves alias, or None."""
    headers = [h for h in row.headers if _key(h)]
    keyed = [(_key(h), h) for h in headers]

    for candidate in alias.aliases:
        wanted = _key(candidate)
        for key, header in keyed:
            if key == wanted:
                return header

    for candidate in alias.aliases:
        wanted = _key(candidate)
        for key, header in keyed:
            if wanted in key or key in wanted:
                return header
    return None


def lookup(row: RawRow, alias: ColumnAlias) -> Any:
    """Raw cell value for alias, or "" when no header resolves."""
    header = find_header(row, alias)
    if header is None:
        return ""
    return row.cells[header]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def to_text(value: Any) -> str:
    """Cell -> trimmed text. Integral floats lose their '.0' (phone numbers)."""
    if is_blank(value):
        return ""
    if _is_number(value):
        number = float(value)
        if number.is_integer():
            return str(int(number))
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value).strip()


def to_pin(value: Any) -> str | None:
    text = to_text(value)
    if not text:
        return None
    return text.rjust(PIN_LENGTH, "0")


def excel_serial_to_datetime(serial: float) -> datetime:
    """(serial - 25569) * 86400 * 1000 ms since the Unix epoch, UTC."""
    millis = (float(serial) - EXCEL_EPOCH_SERIAL) * _MS_PER_DAY
    return _UNIX_EPOCH + timedelta(milliseconds=millis)


def normalize_date(value: Any, timezone: str = "UTC") -> datetime | None:
    """Best effort date conversion; None when the cell is empty or unparseable.

    Numbers are Excel serials, datetimes pass through, strings go through
    pandas' generic parser. Naive values are read in timezone and the result
    is always UTC aware.
    """
    if is_blank(value):
        return None
    try:
        if _is_number(value):
            return excel_serial_to_datetime(value)
        if isinstance(value, (datetime, date)):
            ts = pd.Timestamp(value)
        elif isinstance(value, str):
            ts = pd.to_datetime(value.strip(), errors="coerce")
        else:
            return None
        if ts is pd.NaT or pd.isna(ts):
            return None
        if ts.tzinfo is None:
            ts = ts.tz_localize(timezone)
        return ts.tz_convert("UTC").to_pydatetime()
    except (ValueError, TypeError, OverflowError):
        return None


def _serial_fraction_to_time(serial: float) -> time:
    fraction = float(serial) % 1
    seconds = round(fraction * _SECONDS_PER_DAY)
    if seconds >= _SECONDS_PER_DAY:
        seconds = 0
    return time(seconds // 3600, seconds % 3600 // 60, seconds % 60)


def normalize_time(value: Any) -> time | None:
    """Time of day for a cell, never combined with a date.

    time cells pass through, datetime cells keep their clock part, numbers
    use the fractional part of the Excel serial, and text must match one of
    the clock formats. Anything else is None.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if _is_number(value):
        try:
            return _serial_fraction_to_time(value)
        except (ValueError, OverflowError):
            return None
    if isinstance(value, str):
        text = value.strip().upper()
        for fmt in _TIME_FORMATS:
            try:
                return pd.to_datetime(text, format=fmt).time()
            except ValueError:
                continue
    return None
