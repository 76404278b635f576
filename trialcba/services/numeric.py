from __future__ import annotations

import math
import re
from typing import Any

import numpy as np

"""Shared numeric and text helpers.

to_number is deliberately lossy: it never raises, and anything it cannot read
becomes 0. It is only for spreadsheet cells; configuration values go through
the strict parsers in models.parameters.
"""

__all__ = [
    "DISPLAY_MISSING",
    "to_number",
    "normalize_label",
    "is_blank",
    "format_money",
    "format_money2",
    "format_number",
    "format_rank",
]

DISPLAY_MISSING = "–"

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_WHITESPACE = re.compile(r"\s+")


def to_number(cell: Any) -> float:
    """Coerce a spreadsheet cell to float.

    - numbers pass through; NaN/Infinity become 0
    - strings keep only digits, '.' and '-' then parse ("$1,234.50" -> 1234.5)
    - empty/unparseable strings, booleans and any other type become 0
    """
    if isinstance(cell, bool):
        return 0.0
    if isinstance(cell, (int, float, np.number)):
        x = float(cell)
        return x if math.isfinite(x) else 0.0
    if isinstance(cell, str):
        cleaned = _NON_NUMERIC.sub("", cell)
        if not cleaned:
            return 0.0
        try:
            x = float(cleaned)
        except ValueError:
            return 0.0
        return x if math.isfinite(x) else 0.0
    return 0.0


def normalize_label(cell: Any) -> str:
    """Case-fold, collapse internal whitespace and trim a header cell."""
    if cell is None:
        return ""
    return _WHITESPACE.sub(" ", str(cell)).strip().casefold()


def is_blank(cell: Any) -> bool:
    if cell is None:
        return True
    if isinstance(cell, float) and math.isnan(cell):
        return True
    return str(cell).strip() == ""


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def format_money(value: float | None) -> str:
    """Whole dollars with thousands separators."""
    if not _finite(value):
        return DISPLAY_MISSING
    return f"{value:,.0f}"


def format_money2(value: float | None) -> str:
    if not _finite(value):
        return DISPLAY_MISSING
    return f"{value:,.2f}"


def format_number(value: float | None, decimals: int = 2) -> str:
    if not _finite(value):
        return DISPLAY_MISSING
    return f"{value:,.{decimals}f}"


def format_rank(value: int | None) -> str:
    if value is None:
        return DISPLAY_MISSING
    return str(int(value))
