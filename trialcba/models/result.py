from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

"""Derived result models: per-treatment metrics, scenario NPVs, cashflows.

All three are recomputed wholesale whenever treatments or parameters change
and are never mutated after creation.
"""

__all__ = [
    "Result",
    "ScenarioRow",
    "CashflowYear",
]


@dataclass(frozen=True)
class Result:
    """Financial indicators for one treatment relative to the control."""
    name: str
    is_control: bool
    avg_yield_per_ha: float
    annual_cost_per_ha: float
    capital_cost_year0: float
    delta_yield: float  # t/ha vs control
    pv_benefits: float
    pv_costs: float
    npv: float
    bcr: float | None  # None when pv_costs <= 0
    roi: float | None  # None when pv_costs <= 0
    rank: int  # 1 = highest NPV

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScenarioRow:
    """NPV of one treatment under the worst/base/best scenarios."""
    name: str
    is_control: bool
    worst: float
    base: float
    best: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CashflowYear:
    """One year of a treatment's per-hectare and whole-farm cashflow."""
    year: int  # 0 = capital outlay year
    benefit_per_ha: float
    cost_per_ha: float
    net_per_ha: float
    discount_factor: float
    pv_net_per_ha: float
    net_farm: float
    pv_net_farm: float
