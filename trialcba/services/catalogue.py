from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ..models.result import Result
from .numeric import format_money, format_money2, format_number, format_rank

"""Ordered metric catalogue shared by on-screen tables, TSV, workbook export
and the narrative payload, so all of them list the same indicators in the
same order with the same labels.
"""

__all__ = [
    "MetricDef",
    "METRIC_CATALOGUE",
    "metric_keys",
    "format_metric",
    "results_table",
    "formatted_results_table",
]


@dataclass(frozen=True)
class MetricDef:
    key: str  # Result attribute name
    label: str
    tooltip: str
    kind: str  # yield | money | money2 | ratio | rank


METRIC_CATALOGUE: tuple[MetricDef, ...] = (
    MetricDef(
        "avg_yield_per_ha", "Average yield (t/ha)",
        "Mean yield across all plots of the treatment.", "yield",
    ),
    MetricDef(
        "annual_cost_per_ha", "Annual treatment cost ($/ha)",
        "Mean treatment input cost per hectare, incurred every year of the horizon.", "money2",
    ),
    MetricDef(
        "capital_cost_year0", "Capital cost, year 0 ($/ha)",
        "Up-front cost incurred once before the first season (not discounted).", "money2",
    ),
    MetricDef(
        "delta_yield", "Yield change vs control (t/ha)",
        "Average yield minus the control treatment's average yield.", "yield",
    ),
    MetricDef(
        "pv_benefits", "PV of benefits ($/ha)",
        "Yield change x grain price, discounted over the horizon.", "money",
    ),
    MetricDef(
        "pv_costs", "PV of costs ($/ha)",
        "Capital cost plus the annual cost discounted over the horizon.", "money",
    ),
    MetricDef(
        "npv", "Net present value ($/ha)",
        "PV of benefits minus PV of costs.", "money",
    ),
    MetricDef(
        "bcr", "Benefit-cost ratio",
        "PV of benefits divided by PV of costs; shown as – when PV of costs is zero or negative.", "ratio",
    ),
    MetricDef(
        "roi", "Return on investment",
        "NPV divided by PV of costs; shown as – when PV of costs is zero or negative.", "ratio",
    ),
    MetricDef(
        "rank", "Rank by NPV",
        "1 = highest net present value.", "rank",
    ),
)


def metric_keys() -> list[str]:
    return [m.key for m in METRIC_CATALOGUE]


def format_metric(value: Any, kind: str) -> str:
    if kind == "money":
        return format_money(value)
    if kind == "money2":
        return format_money2(value)
    if kind == "yield":
        return format_number(value, 3)
    if kind == "rank":
        return format_rank(value)
    return format_number(value, 2)


def results_table(results: Sequence[Result]) -> pd.DataFrame:
    """Indicator x treatment table (raw values), treatments in rank order."""
    data = {
        r.name: [getattr(r, m.key) for m in METRIC_CATALOGUE]
        for r in results
    }
    df = pd.DataFrame(data, index=[m.label for m in METRIC_CATALOGUE], dtype=object)
    df.index.name = "Indicator"
    return df


def formatted_results_table(results: Sequence[Result]) -> pd.DataFrame:
    """Same layout as results_table with display strings ("–" for missing)."""
    data = {
        r.name: [format_metric(getattr(r, m.key), m.kind) for m in METRIC_CATALOGUE]
        for r in results
    }
    df = pd.DataFrame(data, index=[m.label for m in METRIC_CATALOGUE])
    df.index.name = "Indicator"
    return df
