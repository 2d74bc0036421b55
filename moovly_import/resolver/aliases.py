from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models.records import RecordKind

"""Declarative column alias tables per record kind.

Each canonical field lists the header variants it accepts, in priority order.
The order is the precedence used by the field resolver: for the exact tier
the first alias that exists as a header wins, and the partial-containment
tier walks the aliases in the same order.

Headers in the downloadable templates end with " *" for required columns,
so the marked variant is listed first.
"""

__all__ = [
    "ValueType",
    "ColumnAlias",
    "DRIVER_FIELDS",
    "JOB_FIELDS",
    "DRIVER_REF_FIELD",
    "schema_for",
    "required_fields",
]

REQUIRED_MARKER = "*"


class ValueType(Enum):
    TEXT = "text"
    DATE = "date"
    TIME = "time"  # time of day only
    DRIVER_REF = "driver_ref"  # free text resolved against the driver directory
    PIN = "pin"


@dataclass(frozen=True)
class ColumnAlias:
    field: str
    aliases: tuple[str, ...]
    required: bool = False
    value_type: ValueType = ValueType.TEXT

    @property
    def label(self) -> str:
        """Human label used in rejection messages, e.g. 'Pickup Address'."""
        return self.aliases[0].rstrip(REQUIRED_MARKER).strip()


DRIVER_FIELDS: tuple[ColumnAlias, ...] = (
    ColumnAlias("username", ("Driver Username *", "Driver Username", "Username", "User", "driver_username")),
    ColumnAlias("name", ("Full Name *", "Full Name", "Name", "Driver Name", "full_name"), required=True),
    ColumnAlias("email", ("Email Address", "Email", "email")),
    ColumnAlias("phone", ("Phone Number *", "Phone Number", "Phone", "Mobile", "phone"), required=True),
    ColumnAlias(
        "license_number",
        ("License Number *", "License Number", "License", "license_number"),
        required=True,
    ),
    ColumnAlias("id_number", ("ID Number *", "ID Number", "National ID", "ID", "id_number")),
    ColumnAlias("pin", ("PIN *", "PIN", "pin"), value_type=ValueType.PIN),
    ColumnAlias("status", ("Status", "status")),
)

DRIVER_REF_FIELD = "driver"

JOB_FIELDS: tuple[ColumnAlias, ...] = (
    ColumnAlias(
        "customer_name",
        ("Customer Name *", "Customer Name", "Customer", "Client", "Company", "customer_name"),
        required=True,
    ),
    ColumnAlias(
        "pickup_address",
        ("Pickup Address *", "Pickup Address", "Pickup", "pickup_address"),
        required=True,
    ),
    ColumnAlias(
        "delivery_address",
        ("Delivery Address *", "Delivery Address", "Delivery", "delivery_address"),
        required=True,
    ),
    ColumnAlias(
        "scheduled_date",
        ("Scheduled Date *", "Scheduled Date", "Date", "scheduled_date"),
        required=True,
        value_type=ValueType.DATE,
    ),
    ColumnAlias("scheduled_time", ("Scheduled Time", "Time", "scheduled_time"), value_type=ValueType.TIME),
    ColumnAlias("priority", ("Priority", "priority")),
    ColumnAlias("notes", ("Notes", "notes")),
    ColumnAlias("customer_phone", ("Customer Phone", "Phone", "Contact Number", "customer_phone")),
    ColumnAlias("customer_email", ("Customer Email", "Email", "customer_email")),
    ColumnAlias("package_details", ("Package Details", "Package", "package_details")),
    ColumnAlias(
        "special_instructions",
        ("Special Instructions", "Instructions", "special_instructions"),
    ),
    ColumnAlias(
        DRIVER_REF_FIELD,
        ("Driver Username", "Driver", "driver_username", "Driver Name", "Assigned Driver"),
        value_type=ValueType.DRIVER_REF,
    ),
)

_SCHEMAS: dict[RecordKind, tuple[ColumnAlias, ...]] = {
    RecordKind.DRIVER: DRIVER_FIELDS,
    RecordKind.JOB: JOB_FIELDS,
}


def schema_for(kind: RecordKind) -> tuple[ColumnAlias, ...]:
    return _SCHEMAS[kind]


def required_fields(kind: RecordKind) -> list[ColumnAlias]:
    return [c for c in schema_for(kind) if c.required]
