from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Column role mapping for an uploaded trial table.

A ColumnMap is resolved once per upload from the located header row and is
never modified afterwards. Extra (non-required) columns are carried as an
ordered list of ExtraFieldDef descriptors so that rendering, export and the
narrative payload all read the same classification.
"""

__all__ = [
    "FieldClass",
    "ExtraFieldDef",
    "ColumnMap",
]


class FieldClass(Enum):
    """Keyword-derived classification of an extra column."""
    COST = "cost"
    BENEFIT = "benefit"
    OTHER = "other"


@dataclass(frozen=True)
class ExtraFieldDef:
    key: str  # normalised label, de-duplicated with __n suffix
    label: str  # header text as it appears in the sheet (trimmed)
    column_index: int
    classification: FieldClass


@dataclass(frozen=True)
class ColumnMap:
    """Resolved column indexes for the three required roles plus extras."""
    header_row_index: int
    amendment: int
    yield_: int
    cost: int
    extra_fields: tuple[ExtraFieldDef, ...] = field(default_factory=tuple)

    @property
    def required_indexes(self) -> set[int]:
        return {self.amendment, self.yield_, self.cost}

    def extra_keys(self) -> list[str]:
        return [f.key for f in self.extra_fields]

    def fields_by_class(self, classification: FieldClass) -> list[ExtraFieldDef]:
        return [f for f in self.extra_fields if f.classification is classification]
