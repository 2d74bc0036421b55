from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Row rejections, unmatched driver references, persistence failures and file
level decode failures all end up here. row=-1 marks a file-level error where
no specific row applies.
"""

__all__ = [
    "ErrorRecord",
    "ROW_REJECTED",
    "DRIVER_UNMATCHED",
    "PERSIST_FAILED",
    "DECODE_FAILURE",
    "TRANSACTION_ERROR",
    "FILE_LEVEL_ROW",
    "FILE_LEVEL_SHEET",
]

ROW_REJECTED = "ROW_REJECTED"
DRIVER_UNMATCHED = "DRIVER_UNMATCHED"
PERSIST_FAILED = "PERSIST_FAILED"
DECODE_FAILURE = "DECODE_FAILURE"
TRANSACTION_ERROR = "TRANSACTION_ERROR"

FILE_LEVEL_ROW = -1
FILE_LEVEL_SHEET = "<FILE_LEVEL>"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Excel filename being processed
        sheet: Sheet name within the file
        row: Excel row number (first data row = 2). -1 for file-level errors
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human readable description shown to the operator
    """
    timestamp: str  # ISO8601 UTC
    file: str
    sheet: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # dataclass -> dict で追加キーを防ぐ
        return json.dumps(asdict(self), ensure_ascii=False)
