from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.row_data import FIRST_DATA_ROW, RawRow

"""Spreadsheet decoder.

Row 1 is the header row and data starts at row 2 (the layout of the
downloadable templates). A workbook that cannot be opened at all raises
DecodeError; that is the only fatal condition of an import, everything below
the file level is reported per row by the resolver.
"""

__all__ = [
    "DecodeError",
    "SheetHeaderError",
    "read_workbook",
    "sheet_rows",
]


class DecodeError(Exception):
    """Raised when a workbook cannot be decoded into rows."""


class SheetHeaderError(DecodeError):
    """Raised when a sheet has no header row."""


def read_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read a workbook returning raw (header-less) DataFrames keyed by sheet name.

    Parameters
    ----------
    path: Excel ファイルパス
    target_sheets: 対象シート制限 (None なら全シート)
    """
    wanted = set(target_sheets) if target_sheets is not None else None
    try:
        xls = pd.ExcelFile(path)
        dfs: dict[str, pd.DataFrame] = {}
        for name in xls.sheet_names:
            if wanted is not None and str(name) not in wanted:
                continue
            # セル文字列 ("NA" 等) をそのまま残す。空セルのみ欠損扱い
            dfs[str(name)] = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
        return dfs
    except Exception as e:
        raise DecodeError(f"cannot decode '{Path(path).name}': {e}") from e


def _header_text(value: Any) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def sheet_rows(df: pd.DataFrame, sheet_name: str) -> tuple[list[str], list[RawRow]]:
    """Split a raw sheet into (headers, rows).

    Fully empty rows are skipped; row numbers still follow the spreadsheet so
    error messages point at the right line. Blank header cells drop their
    column; a repeated header keeps its first column.
    """
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    headers = [_header_text(c) for c in df.iloc[0].tolist()]
    columns: list[tuple[int, str]] = []
    seen: set[str] = set()
    for idx, header in enumerate(headers):
        if not header or header in seen:
            continue
        seen.add(header)
        columns.append((idx, header))

    rows: list[RawRow] = []
    for offset, (_, raw) in enumerate(df.iloc[1:].iterrows()):
        if raw.isna().all():
            continue
        values = raw.tolist()
        cells = {header: (None if pd.isna(values[idx]) else values[idx]) for idx, header in columns}
        rows.append(RawRow(row_number=FIRST_DATA_ROW + offset, cells=cells))
    return [h for _, h in columns], rows
