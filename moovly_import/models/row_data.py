from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

"""RawRow model: one decoded spreadsheet row before resolution.

Row numbering follows what a user sees in Excel: row 1 is the header row, so
the first data row is row 2.
"""

__all__ = [
    "RawRow",
    "FIRST_DATA_ROW",
]

FIRST_DATA_ROW = 2


@dataclass(frozen=True)
class RawRow:
    """Header -> raw cell value for a single data row.

    cells keeps the sheet's natural column order; header lookup relies on it
    for the partial-containment tier.
    """
    row_number: int  # Excel row number (header = 1, first data row = 2)
    cells: Mapping[str, Any]

    @property
    def headers(self) -> list[str]:
        return list(self.cells.keys())
