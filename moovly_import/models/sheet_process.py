from __future__ import annotations

from dataclasses import dataclass

from .import_outcome import BatchResult
from .records import RecordKind

"""SheetImport model: the processing unit for a single mapped sheet."""

__all__ = [
    "PersistenceFailure",
    "SheetImport",
]


@dataclass(frozen=True)
class PersistenceFailure:
    """A resolved record the record store refused to create."""
    row_number: int
    message: str


@dataclass(frozen=True)
class SheetImport:
    """Resolution + persistence results for one sheet.

    batch is None when the sheet could not be resolved at all (error is set).
    """
    sheet_name: str
    kind: RecordKind
    batch: BatchResult | None = None
    persisted: int = 0
    persist_failures: tuple[PersistenceFailure, ...] = ()
    error: str | None = None

    @property
    def total_rows(self) -> int:
        return len(self.batch.outcomes) if self.batch is not None else 0

    @property
    def rejected(self) -> int:
        return self.batch.rejected_count if self.batch is not None else 0

    @property
    def has_problems(self) -> bool:
        return bool(self.error or self.rejected or self.persist_failures)
