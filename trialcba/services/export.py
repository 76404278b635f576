from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.session import SessionSnapshot
from .catalogue import METRIC_CATALOGUE, results_table
from .metrics import cashflow_schedule

"""Spreadsheet and TSV export of a computed session.

Workbook sheets:
- Results: indicator x treatment table (catalogue order, rank order)
- Scenarios: worst/base/best NPV per treatment
- Assumptions: global parameters, sensitivity percentages, control
- TreatmentSummary: plot counts, averages and extra-field averages
- ExtraFields: extra column descriptors with their classification
- Cashflows: year-by-year per-ha and whole-farm cashflow per treatment
"""

__all__ = [
    "build_results_tsv",
    "assumptions_frame",
    "scenarios_frame",
    "treatment_summary_frame",
    "extra_fields_frame",
    "cashflows_frame",
    "export_workbook",
]

logger = logging.getLogger(__name__)


def _tsv_cell(value: Any, kind: str) -> str:
    if value is None or (isinstance(value, float) and not math.isfinite(value)):
        return ""
    if kind == "ratio":
        return f"{value:.2f}"
    if kind == "rank":
        return str(int(value))
    if kind == "yield":
        return f"{value:.3f}"
    return str(round(value))


def build_results_tsv(snapshot: SessionSnapshot) -> str:
    """Tab separated indicator table for pasting into Word/Excel."""
    results = snapshot.results
    lines = ["\t".join(["Indicator"] + [r.name for r in results])]
    for m in METRIC_CATALOGUE:
        cells = [_tsv_cell(getattr(r, m.key), m.kind) for r in results]
        lines.append("\t".join([m.label] + cells))
    return "\n".join(lines)


def assumptions_frame(snapshot: SessionSnapshot) -> pd.DataFrame:
    p, s = snapshot.parameters, snapshot.sensitivity
    control = snapshot.control
    rows = [
        ("Source file", snapshot.source_name),
        ("Sheet", snapshot.sheet_name),
        ("Grain price ($/t)", p.price_per_tonne),
        ("Discount rate", p.discount_rate),
        ("Time horizon (years)", p.horizon_years),
        ("Farm area (ha)", p.area_ha),
        ("Low price (%)", s.low_price_pct),
        ("High price (%)", s.high_price_pct),
        ("Low cost (%)", s.low_cost_pct),
        ("High cost (%)", s.high_cost_pct),
        ("Control", control.name if control else ""),
    ]
    return pd.DataFrame(rows, columns=["Assumption", "Value"])


def scenarios_frame(snapshot: SessionSnapshot) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Treatment": row.name,
                "Control": row.is_control,
                "Worst case NPV": row.worst,
                "Base case NPV": row.base,
                "Best case NPV": row.best,
            }
            for row in snapshot.scenarios
        ],
        columns=["Treatment", "Control", "Worst case NPV", "Base case NPV", "Best case NPV"],
    )


def treatment_summary_frame(snapshot: SessionSnapshot) -> pd.DataFrame:
    extras = snapshot.column_map.extra_fields
    base_columns = ["Treatment", "Control", "Plots", "Yield mean (t/ha)", "Cost mean ($/ha)", "Capital cost ($/ha)"]
    extra_columns = [f.label for f in extras]
    # repeated header labels: use the de-duplicated keys instead
    if len(set(base_columns + extra_columns)) != len(base_columns) + len(extra_columns):
        extra_columns = [f.key for f in extras]
    records = []
    for t in snapshot.treatments:
        rec: list[Any] = [
            t.name, t.is_control, t.plot_count,
            t.avg_yield_per_ha, t.annual_cost_per_ha, t.capital_cost_year0,
        ]
        rec += [t.extra_aggregates.get(f.key) for f in extras]
        records.append(rec)
    return pd.DataFrame(records, columns=base_columns + extra_columns)


def extra_fields_frame(snapshot: SessionSnapshot) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Key": f.key,
                "Label": f.label,
                "Column": f.column_index + 1,
                "Classification": f.classification.value,
            }
            for f in snapshot.column_map.extra_fields
        ],
        columns=["Key", "Label", "Column", "Classification"],
    )


def cashflows_frame(snapshot: SessionSnapshot) -> pd.DataFrame:
    control = snapshot.control
    columns = [
        "Treatment", "Year", "Benefit ($/ha)", "Cost ($/ha)", "Net ($/ha)",
        "Discount factor", "PV net ($/ha)", "Net (farm)", "PV net (farm)",
    ]
    if control is None:
        return pd.DataFrame(columns=columns)
    records = []
    for t in snapshot.treatments:
        for cf in cashflow_schedule(t, control, snapshot.parameters):
            records.append(
                [
                    t.name, cf.year, cf.benefit_per_ha, cf.cost_per_ha, cf.net_per_ha,
                    cf.discount_factor, cf.pv_net_per_ha, cf.net_farm, cf.pv_net_farm,
                ]
            )
    return pd.DataFrame(records, columns=columns)


def export_workbook(snapshot: SessionSnapshot, path: Path) -> Path:
    """Write all result sheets to an .xlsx workbook and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        results_table(snapshot.results).to_excel(writer, sheet_name="Results")
        scenarios_frame(snapshot).to_excel(writer, sheet_name="Scenarios", index=False)
        assumptions_frame(snapshot).to_excel(writer, sheet_name="Assumptions", index=False)
        treatment_summary_frame(snapshot).to_excel(writer, sheet_name="TreatmentSummary", index=False)
        extra_fields_frame(snapshot).to_excel(writer, sheet_name="ExtraFields", index=False)
        cashflows_frame(snapshot).to_excel(writer, sheet_name="Cashflows", index=False)
    logger.debug(f"workbook written: {path}")
    return path
