from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .import_outcome import DriverMatchStats

"""Processing result models for an import run.

Aggregates per-file outcomes into the figures printed on the SUMMARY line.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    status: str  # success/failed
    total_rows: int  # data rows read from mapped sheets
    accepted_rows: int
    rejected_rows: int
    persisted_rows: int
    persist_failed_rows: int
    elapsed_seconds: float


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results and summary output for an import run."""
    success_files: int
    failed_files: int
    total_rows: int
    accepted_rows: int
    rejected_rows: int
    persisted_rows: int
    persist_failed_rows: int
    skipped_sheets: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    driver_stats: DriverMatchStats | None = None  # job sheets only
    file_stats: list[FileStat] | None = None

    @property
    def has_row_problems(self) -> bool:
        return self.rejected_rows > 0 or self.persist_failed_rows > 0
