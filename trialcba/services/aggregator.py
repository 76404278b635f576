from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..models.column_map import ColumnMap, ExtraFieldDef, FieldClass
from ..models.treatment import Treatment
from .numeric import is_blank, normalize_label, to_number

"""Row aggregation: raw trial table -> averaged Treatment records.

Steps:
1. Locate the header row (first row containing the three required labels)
2. Resolve required column indexes and classify every other labelled column
3. Group data rows by trimmed amendment text and average each numeric field
4. Repair the control flag so exactly one treatment is the control
"""

__all__ = [
    "AMENDMENT_LABEL",
    "YIELD_LABEL",
    "COST_LABEL",
    "COST_KEYWORDS",
    "BENEFIT_KEYWORDS",
    "AggregationError",
    "HeaderNotFoundError",
    "NoTreatmentsError",
    "locate_header",
    "classify",
    "build_column_map",
    "aggregate_rows",
    "repair_control",
    "aggregate_table",
]

logger = logging.getLogger(__name__)

AMENDMENT_LABEL = "amendment"
YIELD_LABEL = "yield t/ha"
COST_LABEL = "treatment input cost only /ha"
REQUIRED_LABELS = (AMENDMENT_LABEL, YIELD_LABEL, COST_LABEL)

COST_KEYWORDS = (
    "cost", "labour", "labor", "machine", "machinery", "tractor", "header", "ute",
    "truck", "spray", "seeder", "ripper", "tiller", "transport", "capital",
)
BENEFIT_KEYWORDS = (
    "yield", "biomass", "plants", "plant", "protein", "moisture", "anthesis", "harvest",
)

CONTROL_MARKER = "control"


class AggregationError(Exception):
    """Base class for user-correctable problems with an uploaded table."""


class HeaderNotFoundError(AggregationError):
    """Raised when no row contains all required column labels."""


class NoTreatmentsError(AggregationError):
    """Raised when a header exists but no row has an amendment label."""


def _cell(row: Sequence[Any], index: int) -> Any:
    # ragged rows: missing trailing cells read as empty
    return row[index] if index < len(row) else None


def locate_header(rows: Sequence[Sequence[Any]]) -> int:
    """Return the index of the first row whose labels include all required ones."""
    if not rows:
        raise HeaderNotFoundError("table is empty")
    required = set(REQUIRED_LABELS)
    for i, row in enumerate(rows):
        labels = {normalize_label(c) for c in row}
        if required <= labels:
            return i
    raise HeaderNotFoundError(
        "required columns not found: " + ", ".join(f"'{label}'" for label in REQUIRED_LABELS)
    )


def classify(normalized_label: str) -> FieldClass:
    """Classify an extra column by keyword; cost keywords win over benefit keywords."""
    if any(k in normalized_label for k in COST_KEYWORDS):
        return FieldClass.COST
    if any(k in normalized_label for k in BENEFIT_KEYWORDS):
        return FieldClass.BENEFIT
    return FieldClass.OTHER


def build_column_map(rows: Sequence[Sequence[Any]], header_row_index: int | None = None) -> ColumnMap:
    """Resolve required roles and extra field descriptors from the header row."""
    if header_row_index is None:
        header_row_index = locate_header(rows)
    header = rows[header_row_index]
    normalized = [normalize_label(c) for c in header]

    def _index_of(label: str) -> int:
        try:
            return normalized.index(label)
        except ValueError:
            raise HeaderNotFoundError(f"row {header_row_index} lacks column '{label}'") from None

    amendment = _index_of(AMENDMENT_LABEL)
    yield_ = _index_of(YIELD_LABEL)
    cost = _index_of(COST_LABEL)
    required = {amendment, yield_, cost}

    extras: list[ExtraFieldDef] = []
    seen: dict[str, int] = {}
    for idx, raw in enumerate(header):
        if idx in required or is_blank(raw):
            continue
        norm = normalized[idx]
        n = seen.get(norm, 0)
        seen[norm] = n + 1
        key = norm if n == 0 else f"{norm}__{n}"
        extras.append(
            ExtraFieldDef(
                key=key,
                label=str(raw).strip(),
                column_index=idx,
                classification=classify(norm),
            )
        )

    return ColumnMap(
        header_row_index=header_row_index,
        amendment=amendment,
        yield_=yield_,
        cost=cost,
        extra_fields=tuple(extras),
    )


class _Group:
    """Running sums for one amendment label."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.rows = 0
        self.yield_sum = 0.0
        self.cost_sum = 0.0
        self.extra_sums: dict[str, float] = {}

    def add(self, row: Sequence[Any], column_map: ColumnMap) -> None:
        self.rows += 1
        self.yield_sum += to_number(_cell(row, column_map.yield_))
        self.cost_sum += to_number(_cell(row, column_map.cost))
        # a cell past the end of a short row is empty, so it adds 0 and the row still counts
        for f in column_map.extra_fields:
            self.extra_sums[f.key] = self.extra_sums.get(f.key, 0.0) + to_number(_cell(row, f.column_index))

    def to_treatment(self) -> Treatment:
        n = self.rows or 1
        extras = {key: total / n for key, total in self.extra_sums.items()}
        return Treatment(
            name=self.name,
            avg_yield_per_ha=round(self.yield_sum / n, 3),
            annual_cost_per_ha=round(self.cost_sum / n, 2),
            extra_aggregates=extras,
            plot_count=self.rows,
        )


def repair_control(treatments: Sequence[Treatment]) -> list[Treatment]:
    """Flag exactly one control: the first name containing "control", else the first treatment."""
    if not treatments:
        return []
    candidates = [i for i, t in enumerate(treatments) if CONTROL_MARKER in t.name.casefold()]
    if not candidates:
        logger.warning(f"no control-like treatment name; using '{treatments[0].name}' as control")
        chosen = 0
    else:
        chosen = candidates[0]
        if len(candidates) > 1:
            others = [treatments[i].name for i in candidates[1:]]
            logger.info(f"multiple control-like treatments; keeping '{treatments[chosen].name}', clearing {others}")
    return [t.with_control(i == chosen) for i, t in enumerate(treatments)]


def aggregate_rows(rows: Sequence[Sequence[Any]], column_map: ColumnMap) -> list[Treatment]:
    """Group the data rows below the header and average them per amendment."""
    groups: dict[str, _Group] = {}
    for row in rows[column_map.header_row_index + 1:]:
        amendment = _cell(row, column_map.amendment)
        if is_blank(amendment):
            continue
        # exact trimmed text: case/spacing variants stay separate groups
        name = str(amendment).strip()
        group = groups.get(name)
        if group is None:
            group = groups[name] = _Group(name)
        group.add(row, column_map)

    if not groups:
        raise NoTreatmentsError("no rows with an amendment label below the header")

    treatments = [g.to_treatment() for g in groups.values()]
    logger.debug(f"aggregated {sum(g.rows for g in groups.values())} rows into {len(treatments)} treatments")
    return repair_control(treatments)


def aggregate_table(rows: Sequence[Sequence[Any]]) -> tuple[ColumnMap, list[Treatment]]:
    """Locate the header, build the column map and aggregate in one call."""
    column_map = build_column_map(rows)
    return column_map, aggregate_rows(rows, column_map)
