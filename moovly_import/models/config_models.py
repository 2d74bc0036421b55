from __future__ import annotations

from dataclasses import dataclass, field

from .import_outcome import DEFAULT_SAMPLE_LIMIT
from .records import RecordKind

"""Config dataclasses for the Moovly bulk importer.

Built by moovly_import.config.loader from
config/import.yml after JSON schema validation.
"""

DEFAULT_TABLES = {
    RecordKind.DRIVER: "drivers",
    RecordKind.JOB: "jobs",
}


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for an import run."""
    source_directory: str  # Directory to scan for .xlsx files
    sheet_kinds: dict[str, RecordKind]  # Sheet name -> record kind
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    tables: dict[RecordKind, str] = field(default_factory=lambda: dict(DEFAULT_TABLES))
    timezone: str = "UTC"  # naive date cells are interpreted in this zone
    unmatched_sample_limit: int = DEFAULT_SAMPLE_LIMIT

    def table_for(self, kind: RecordKind) -> str:
        return self.tables.get(kind, DEFAULT_TABLES[kind])
