from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, time
from enum import Enum
from typing import Any

"""Typed domain records produced by the import resolver.

A spreadsheet row is resolved into either a DriverRecord or a JobRecord
depending on the RecordKind of the sheet. Job rows additionally carry a
DriverMatch describing how the free-text driver column was resolved against
the current driver directory.
"""

__all__ = [
    "RecordKind",
    "DriverLookup",
    "MatchType",
    "MatchTier",
    "DriverMatch",
    "DriverRecord",
    "JobRecord",
]


class RecordKind(Enum):
    """Kind of record a sheet is imported as. Selects the field schema."""
    DRIVER = "driver"
    JOB = "job"


@dataclass(frozen=True)
class DriverLookup:
    """Read-only driver directory entry used for soft reference resolution."""
    id: int
    username: str
    name: str
    email: str | None = None

    @property
    def label(self) -> str:
        return f"{self.name} ({self.username})"


class MatchType(Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"
    DEFERRED = "deferred"  # 空セル or "allocate later"


class MatchTier(Enum):
    """Driver match precedence, first hit wins (declaration order)."""
    USERNAME_OR_EMAIL = "username_or_email"
    FULL_NAME = "full_name"
    NAME_OVERLAP = "name_overlap"
    PARTIAL = "partial"


@dataclass(frozen=True)
class DriverMatch:
    """Diagnostic for a driver reference cell.

    original_input is the trimmed cell text ("" for an empty cell), so an empty
    cell and the "allocate later" sentinel stay distinguishable even though
    both are DEFERRED.
    """
    match_type: MatchType
    original_input: str
    driver_id: int | None = None
    tier: MatchTier | None = None
    matched_driver: str | None = None  # "Name (username)"

    @property
    def is_sentinel(self) -> bool:
        return self.match_type is MatchType.DEFERRED and self.original_input != ""


@dataclass(frozen=True)
class DriverRecord:
    row_number: int
    username: str
    name: str
    phone: str
    license_number: str
    email: str | None = None
    id_number: str | None = None
    pin: str | None = None
    status: str = "active"

    def to_values(self) -> dict[str, Any]:
        """Column -> value mapping for persistence (row_number excluded)."""
        values = asdict(self)
        values.pop("row_number")
        return values


@dataclass(frozen=True)
class JobRecord:
    row_number: int
    customer_name: str
    pickup_address: str
    delivery_address: str
    scheduled_date: datetime
    scheduled_time: time | None = None
    priority: str = "medium"
    notes: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    package_details: str | None = None
    special_instructions: str | None = None
    driver_id: int | None = None
    driver_match: DriverMatch | None = None

    def to_values(self) -> dict[str, Any]:
        """Column -> value mapping for persistence.

        row_number and driver_match are import diagnostics, not job columns.
        """
        return {
            "customer_name": self.customer_name,
            "pickup_address": self.pickup_address,
            "delivery_address": self.delivery_address,
            "scheduled_date": self.scheduled_date,
            "scheduled_time": self.scheduled_time,
            "priority": self.priority,
            "notes": self.notes,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "package_details": self.package_details,
            "special_instructions": self.special_instructions,
            "driver_id": self.driver_id,
        }
