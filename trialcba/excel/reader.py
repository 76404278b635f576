from __future__ import annotations

import csv
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd

from ..services.aggregator import HeaderNotFoundError, locate_header

"""Trial workbook reader.

Sheets are read without a header (header=None) so the aggregator can locate
the header row itself; trial templates often carry title rows above it.
Cells come back as a ragged list-of-lists with NaN replaced by None.
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "WorkbookReadError",
    "read_workbook",
    "to_raw_rows",
    "find_trial_sheet",
]

SUPPORTED_SUFFIXES = (".xlsx", ".csv")


class WorkbookReadError(Exception):
    """Raised when a file cannot be opened or parsed as a table."""


def read_workbook(path: Path) -> dict[str, pd.DataFrame]:
    """Read every sheet of a workbook (or a single CSV) as raw DataFrames keyed by sheet name."""
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise WorkbookReadError(f"unsupported file type: {path.name}")
    try:
        if suffix == ".csv":
            # read_csv rejects lines longer than the first one; trial exports are often ragged
            with path.open(newline="", encoding="utf-8-sig") as f:
                lines = [[c if c.strip() else None for c in line] for line in csv.reader(f)]
            return {path.stem: pd.DataFrame(lines, dtype=object)}
        dfs: dict[str, pd.DataFrame] = {}
        with pd.ExcelFile(path) as xls:
            for name in xls.sheet_names:
                dfs[str(name)] = xls.parse(name, header=None)
        return dfs
    except (OSError, ValueError, csv.Error, zipfile.BadZipFile) as e:
        raise WorkbookReadError(f"cannot read {path.name}: {e}") from e


def to_raw_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Convert a raw DataFrame to rows of cells; NaN -> None, trailing empty cells dropped."""
    rows: list[list[Any]] = []
    for values in df.itertuples(index=False, name=None):
        row = [None if pd.isna(v) else v for v in values]
        while row and row[-1] is None:
            row.pop()
        rows.append(row)
    return rows


def find_trial_sheet(sheets: dict[str, pd.DataFrame]) -> tuple[str, list[list[Any]]]:
    """Return (sheet name, raw rows) of the first sheet that has the required header."""
    for name, df in sheets.items():
        rows = to_raw_rows(df)
        try:
            locate_header(rows)
        except HeaderNotFoundError:
            continue
        return name, rows
    raise HeaderNotFoundError(
        f"no sheet with required columns (checked: {', '.join(sheets) or 'none'})"
    )
