from __future__ import annotations

from pathlib import Path

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.records import RecordKind

"""Import template workbooks.

Writes the canonical headers with two example rows plus an Instructions
sheet. The template sheet names are the ones config/import.yml maps to record
kinds by default, so a filled-in template imports without extra config.
"""

__all__ = [
    "TEMPLATE_SHEETS",
    "INSTRUCTIONS_SHEET",
    "template_rows",
    "write_template",
]

TEMPLATE_SHEETS = {
    RecordKind.DRIVER: "Drivers Template",
    RecordKind.JOB: "Jobs Template",
}
INSTRUCTIONS_SHEET = "Instructions"

_DRIVER_ROWS = [
    {
        "Driver Username *": "john.smith",
        "Full Name *": "John Smith",
        "Email Address": "john@example.com",
        "Phone Number *": "+27 82 555 1234",
        "License Number *": "ABC12345",
        "ID Number *": "8001015009088",
        "PIN *": "1234",
        "Status": "active",
    },
    {
        "Driver Username *": "jane.doe",
        "Full Name *": "Jane Doe",
        "Email Address": "jane@example.com",
        "Phone Number *": "+27 83 444 5678",
        "License Number *": "DEF67890",
        "ID Number *": "9203105008099",
        "PIN *": "5678",
        "Status": "active",
    },
]

_DRIVER_INSTRUCTIONS = [
    ("Driver Username *", "Login identifier", "john.smith", "Generated from the full name when empty"),
    ("Full Name *", "First name and surname", "John Smith", "Required"),
    ("Email Address", "Contact email", "john@example.com", "Optional"),
    ("Phone Number *", "Mobile number used for OTP", "+27 82 555 1234", "Required"),
    ("License Number *", "Driving licence number", "ABC12345", "Required"),
    ("ID Number *", "National ID", "8001015009088", "Optional"),
    ("PIN *", "4 digit app PIN", "1234", "Padded with leading zeros"),
    ("Status", "Driver status", "active", "Defaults to active"),
]

_JOB_ROWS = [
    {
        "Customer Name *": "ABC Electronics",
        "Pickup Address *": "123 Main St, Cape Town, 8001",
        "Delivery Address *": "456 Oak Ave, Cape Town, 8002",
        "Scheduled Date *": "2024-01-15",
        "Priority": "medium",
        "Notes": "Handle with care - fragile items",
        "Driver Username": "john.smith",
    },
    {
        "Customer Name *": "XYZ Furniture",
        "Pickup Address *": "789 Industrial Rd, Cape Town, 8003",
        "Delivery Address *": "321 Residential St, Cape Town, 8004",
        "Scheduled Date *": "2024-01-16",
        "Priority": "high",
        "Notes": "Large furniture delivery",
        "Driver Username": "Allocate Later",
    },
]

_JOB_INSTRUCTIONS = [
    ("Customer Name *", "Name of the customer", "ABC Electronics", "Required"),
    ("Pickup Address *", "Full pickup address", "123 Main St, Cape Town, 8001", "Required"),
    ("Delivery Address *", "Full delivery address", "456 Oak Ave, Cape Town, 8002", "Required"),
    ("Scheduled Date *", "Date for job execution", "2024-01-15", "Required - YYYY-MM-DD format"),
    ("Priority", "Job priority level", "medium", "low, medium, or high"),
    ("Notes", "Additional job notes", "Handle with care", "Optional"),
    ("Driver Username", "Assigned driver", "john.smith", 'Username, email or name. "Allocate Later" to assign manually'),
]


def template_rows(kind: RecordKind) -> list[dict[str, str]]:
    rows = _DRIVER_ROWS if kind is RecordKind.DRIVER else _JOB_ROWS
    return [dict(r) for r in rows]


def _instructions(kind: RecordKind) -> pd.DataFrame:
    entries = _DRIVER_INSTRUCTIONS if kind is RecordKind.DRIVER else _JOB_INSTRUCTIONS
    return pd.DataFrame(entries, columns=["Field", "Description", "Example", "Notes"])


def _fit_columns(worksheet, df: pd.DataFrame) -> None:
    for idx, column in enumerate(df.columns, start=1):
        longest = max([len(str(column))] + [len(str(v)) for v in df[column].tolist()])
        worksheet.column_dimensions[get_column_letter(idx)].width = min(longest + 2, 50)


def write_template(kind: RecordKind, path: Path) -> Path:
    """Write the import template workbook for kind to path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = pd.DataFrame(template_rows(kind))
    instructions = _instructions(kind)
    sheet = TEMPLATE_SHEETS[kind]
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        data.to_excel(writer, sheet_name=sheet, index=False)
        instructions.to_excel(writer, sheet_name=INSTRUCTIONS_SHEET, index=False)
        _fit_columns(writer.sheets[sheet], data)
        _fit_columns(writer.sheets[INSTRUCTIONS_SHEET], instructions)
    return path
