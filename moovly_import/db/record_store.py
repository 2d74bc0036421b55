from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..models.config_models import DEFAULT_TABLES
from ..models.records import DriverLookup, DriverRecord, JobRecord, RecordKind
from ..models.import_outcome import ResolvedRecord
from ..models.sheet_process import PersistenceFailure
from .batch_insert import BatchInsertError, batch_insert

"""Record store: persistence of resolved drivers and jobs.

bulk_create reports per-record success/failure so the caller can combine
persistence failures with the resolver's rejected rows in one report.

Two implementations:
- PostgresRecordStore: psycopg2 cursor, one SAVEPOINT per record
- InMemoryRecordStore: mock mode (DB disabled / unreachable) and tests;
  rollback restores the state captured by begin
"""

__all__ = [
    "RecordStoreError",
    "BulkCreateResult",
    "RecordStore",
    "PostgresRecordStore",
    "InMemoryRecordStore",
    "job_number",
    "tracking_token",
    "JOB_DEFAULTS",
]

logger = logging.getLogger(__name__)

# 一括取込ジョブの固定既定値
JOB_DEFAULTS: dict[str, Any] = {
    "status": "pending",
    "job_type": "delivery",
    "package_count": 1,
    "time_at_stop": 5,
    "arrival_time": "Anytime",
    "order_priority": "auto",
    "has_fixed_time": False,
}


class RecordStoreError(Exception):
    """A single record could not be created."""


@dataclass(frozen=True)
class BulkCreateResult:
    successful: int = 0
    failures: tuple[PersistenceFailure, ...] = ()
    created_ids: tuple[int, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)


def job_number(sequence: int, now_ms: int | None = None) -> str:
    """JOB-<seq:03d>-<last 4 digits of the epoch millis>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"JOB-{sequence:03d}-{str(now_ms)[-4:]}"


def tracking_token() -> str:
    return f"TRK-{uuid.uuid4().hex}"


class RecordStore(Protocol):
    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def list_drivers(self) -> list[DriverLookup]: ...

    def create_driver(self, record: DriverRecord) -> int: ...

    def create_job(self, record: JobRecord, sequence: int = 1) -> int: ...

    def bulk_create(self, kind: RecordKind, records: Sequence[ResolvedRecord]) -> BulkCreateResult: ...


class _BulkCreateMixin:
    """bulk_create in terms of create_driver / create_job / count_jobs."""

    def count_jobs(self) -> int:  # pragma: no cover - overridden
        raise NotImplementedError

    def bulk_create(self, kind: RecordKind, records: Sequence[ResolvedRecord]) -> BulkCreateResult:
        failures: list[PersistenceFailure] = []
        created: list[int] = []
        next_seq = self.count_jobs() + 1 if kind is RecordKind.JOB else 0
        for record in records:
            try:
                if isinstance(record, DriverRecord):
                    new_id = self.create_driver(record)  # type: ignore[attr-defined]
                else:
                    new_id = self.create_job(record, sequence=next_seq)  # type: ignore[attr-defined]
                    next_seq += 1
            except RecordStoreError as e:
                logger.debug("row=%d persist failed: %s", record.row_number, e)
                failures.append(PersistenceFailure(row_number=record.row_number, message=str(e)))
                continue
            created.append(new_id)
        return BulkCreateResult(
            successful=len(created),
            failures=tuple(failures),
            created_ids=tuple(created),
        )


class PostgresRecordStore(_BulkCreateMixin):
    """Record store on an open psycopg2 cursor.

    begin/commit/rollback map to SQL; the caller opens one transaction per
    file and each record runs inside its own savepoint.
    """

    def __init__(self, cursor: Any, tables: dict[RecordKind, str] | None = None) -> None:
        self.cursor = cursor
        self.tables = dict(DEFAULT_TABLES)
        if tables:
            self.tables.update(tables)

    def begin(self) -> None:
        self.cursor.execute("BEGIN")

    def commit(self) -> None:
        self.cursor.execute("COMMIT")

    def rollback(self) -> None:
        self.cursor.execute("ROLLBACK")

    def list_drivers(self) -> list[DriverLookup]:
        self.cursor.execute(
            f"SELECT id, username, name, email FROM {self.tables[RecordKind.DRIVER]} ORDER BY id"
        )
        return [
            DriverLookup(id=r[0], username=r[1] or "", name=r[2] or "", email=r[3])
            for r in self.cursor.fetchall()
        ]

    def count_jobs(self) -> int:
        self.cursor.execute(f"SELECT count(*) FROM {self.tables[RecordKind.JOB]}")
        return int(self.cursor.fetchone()[0])

    def _insert_one(self, kind: RecordKind, values: dict[str, Any]) -> int:
        columns = list(values.keys())
        self.cursor.execute("SAVEPOINT import_record")
        try:
            result = batch_insert(
                self.cursor,
                self.tables[kind],
                columns,
                [[values[c] for c in columns]],
                returning="id",
            )
        except BatchInsertError as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT import_record")
            raise RecordStoreError(str(e)) from e
        self.cursor.execute("RELEASE SAVEPOINT import_record")
        returned = result.returned_values or []
        return int(returned[0][0]) if returned else 0

    def create_driver(self, record: DriverRecord) -> int:
        values = record.to_values()
        values["is_registered"] = False
        return self._insert_one(RecordKind.DRIVER, values)

    def create_job(self, record: JobRecord, sequence: int = 1) -> int:
        values = record.to_values()
        values.update(JOB_DEFAULTS)
        values["job_number"] = job_number(sequence)
        values["tracking_token"] = tracking_token()
        return self._insert_one(RecordKind.JOB, values)


@dataclass
class InMemoryRecordStore(_BulkCreateMixin):
    """Dict backed store. Enforces unique driver usernames like the real table."""
    drivers: dict[int, dict[str, Any]] = field(default_factory=dict)
    jobs: dict[int, dict[str, Any]] = field(default_factory=dict)
    # begin() 時点の状態。rollback() で戻す
    _snapshot: tuple[dict[int, dict[str, Any]], dict[int, dict[str, Any]]] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def with_drivers(cls, lookups: Sequence[DriverLookup]) -> InMemoryRecordStore:
        store = cls()
        for d in lookups:
            store.drivers[d.id] = {"username": d.username, "name": d.name, "email": d.email}
        return store

    def begin(self) -> None:
        self._snapshot = (
            {k: dict(v) for k, v in self.drivers.items()},
            {k: dict(v) for k, v in self.jobs.items()},
        )

    def commit(self) -> None:
        self._snapshot = None

    def rollback(self) -> None:
        if self._snapshot is None:
            return
        self.drivers, self.jobs = self._snapshot
        self._snapshot = None

    def list_drivers(self) -> list[DriverLookup]:
        return [
            DriverLookup(id=i, username=v["username"], name=v["name"], email=v.get("email"))
            for i, v in sorted(self.drivers.items())
        ]

    def count_jobs(self) -> int:
        return len(self.jobs)

    def create_driver(self, record: DriverRecord) -> int:
        wanted = record.username.lower()
        if any(v["username"].lower() == wanted for v in self.drivers.values()):
            raise RecordStoreError(f"driver username already exists: {record.username}")
        new_id = max(self.drivers, default=0) + 1
        self.drivers[new_id] = record.to_values()
        return new_id

    def create_job(self, record: JobRecord, sequence: int = 1) -> int:
        if record.driver_id is not None and record.driver_id not in self.drivers:
            raise RecordStoreError(f"driver {record.driver_id} does not exist")
        new_id = max(self.jobs, default=0) + 1
        values = record.to_values()
        values.update(JOB_DEFAULTS)
        values["job_number"] = job_number(sequence)
        values["tracking_token"] = tracking_token()
        self.jobs[new_id] = values
        return new_id
