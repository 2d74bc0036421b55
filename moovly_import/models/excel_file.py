from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .sheet_process import SheetImport

"""ExcelFile domain model and FileStatus enum.

The ExcelFile represents the processing context for a single uploaded
workbook, tracking its status from pending to success/failed.
"""


class FileStatus(Enum):
    """Status of a workbook through the import lifecycle.

    State transitions: pending -> processing -> (success | failed)

    FAILED means the workbook could not be decoded or its transaction could
    not be committed. Rejected rows alone do not fail a file.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExcelFile:
    """Processing context for a single Excel workbook."""
    path: Path
    name: str
    sheets: list[SheetImport] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: FileStatus = FileStatus.PENDING
    skipped_sheets: int = 0  # sheets without a kind mapping
    error: str | None = None  # failure reason summary

    @property
    def total_rows(self) -> int:
        return sum(s.total_rows for s in self.sheets)

    @property
    def accepted(self) -> int:
        return sum(s.batch.accepted_count for s in self.sheets if s.batch is not None)

    @property
    def rejected(self) -> int:
        return sum(s.rejected for s in self.sheets)

    @property
    def persisted(self) -> int:
        return sum(s.persisted for s in self.sheets)

    @property
    def persist_failed(self) -> int:
        return sum(len(s.persist_failures) for s in self.sheets)
