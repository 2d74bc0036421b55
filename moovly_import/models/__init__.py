"""Domain models for the Moovly spreadsheet bulk importer.

This package contains the frozen dataclasses shared by the resolver, the
record store and the orchestration services.
"""

from .config_models import DatabaseConfig, ImportConfig
from .import_outcome import (
    Accepted,
    BatchResult,
    DriverMatchStats,
    ImportOutcome,
    Rejected,
    ResolvedRecord,
)
from .records import (
    DriverLookup,
    DriverMatch,
    DriverRecord,
    JobRecord,
    MatchTier,
    MatchType,
    RecordKind,
)
from .row_data import RawRow
from .sheet_process import PersistenceFailure, SheetImport

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Rows and records
    "RawRow",
    "RecordKind",
    "DriverLookup",
    "DriverMatch",
    "DriverRecord",
    "JobRecord",
    "MatchTier",
    "MatchType",
    # Outcomes
    "Accepted",
    "Rejected",
    "ImportOutcome",
    "ResolvedRecord",
    "BatchResult",
    "DriverMatchStats",
    "PersistenceFailure",
    "SheetImport",
]
