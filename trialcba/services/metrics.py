from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from ..models.parameters import EconomicParameters
from ..models.result import CashflowYear, Result
from ..models.treatment import Treatment

"""Financial metrics relative to the control treatment.

Only yield is differenced against the control. Costs are taken as-is for
every treatment, so the control itself reports a negative NPV equal to the
present value of its own costs.
"""

__all__ = [
    "InvariantViolation",
    "present_value",
    "discount_factor",
    "resolve_control",
    "compute_results",
    "cashflow_schedule",
]

logger = logging.getLogger(__name__)


class InvariantViolation(Exception):
    """Raised when a treatment set does not carry exactly one control."""


def present_value(amount: float, rate: float, years: int) -> float:
    """Present value of a constant annual amount paid at the end of years 1..T."""
    return sum(amount / (1.0 + rate) ** t for t in range(1, years + 1))


def discount_factor(year: int, rate: float) -> float:
    return 1.0 / (1.0 + rate) ** year


def resolve_control(treatments: Sequence[Treatment]) -> Treatment:
    controls = [t for t in treatments if t.is_control]
    if len(controls) != 1:
        logger.error(f"control invariant violated: {len(controls)} controls flagged")
        raise InvariantViolation(f"expected exactly one control treatment, found {len(controls)}")
    return controls[0]


def _result(treatment: Treatment, control: Treatment, params: EconomicParameters) -> Result:
    r, years = params.discount_rate, params.horizon_years
    delta_yield = treatment.avg_yield_per_ha - control.avg_yield_per_ha
    pv_benefits = present_value(delta_yield * params.price_per_tonne, r, years)
    pv_costs = treatment.capital_cost_year0 + present_value(treatment.annual_cost_per_ha, r, years)
    npv = pv_benefits - pv_costs
    if pv_costs > 0:
        bcr: float | None = pv_benefits / pv_costs
        roi: float | None = npv / pv_costs
    else:
        bcr = roi = None
    return Result(
        name=treatment.name,
        is_control=treatment.is_control,
        avg_yield_per_ha=treatment.avg_yield_per_ha,
        annual_cost_per_ha=treatment.annual_cost_per_ha,
        capital_cost_year0=treatment.capital_cost_year0,
        delta_yield=delta_yield,
        pv_benefits=pv_benefits,
        pv_costs=pv_costs,
        npv=npv,
        bcr=bcr,
        roi=roi,
        rank=0,
    )


def compute_results(treatments: Sequence[Treatment], params: EconomicParameters) -> list[Result]:
    """Compute and rank results; returned list is ordered by NPV descending (rank 1 first)."""
    if not treatments:
        return []
    control = resolve_control(treatments)
    unranked = [_result(t, control, params) for t in treatments]
    # sorted() is stable: equal NPVs keep input order
    ordered = sorted(unranked, key=lambda res: res.npv, reverse=True)
    return [replace(res, rank=pos + 1) for pos, res in enumerate(ordered)]


def cashflow_schedule(
    treatment: Treatment, control: Treatment, params: EconomicParameters
) -> list[CashflowYear]:
    """Year-by-year cashflow for one treatment; the PV net column sums to its NPV."""
    r = params.discount_rate
    annual_benefit = (treatment.avg_yield_per_ha - control.avg_yield_per_ha) * params.price_per_tonne
    rows: list[CashflowYear] = []
    for year in range(0, params.horizon_years + 1):
        if year == 0:
            benefit, cost = 0.0, treatment.capital_cost_year0
        else:
            benefit, cost = annual_benefit, treatment.annual_cost_per_ha
        net = benefit - cost
        df = discount_factor(year, r)
        rows.append(
            CashflowYear(
                year=year,
                benefit_per_ha=benefit,
                cost_per_ha=cost,
                net_per_ha=net,
                discount_factor=df,
                pv_net_per_ha=net * df,
                net_farm=net * params.area_ha,
                pv_net_farm=net * df * params.area_ha,
            )
        )
    return rows
