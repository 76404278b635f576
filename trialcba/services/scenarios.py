from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..models.parameters import EconomicParameters, SensitivitySettings
from ..models.result import ScenarioRow
from ..models.treatment import Treatment
from .metrics import present_value, resolve_control

"""Worst/base/best sensitivity sweep on price and annual cost.

Each scenario scales the price and the annual cost; capital cost is never
scaled. Rows are returned in treatment order and are not ranked.
"""

__all__ = [
    "SCENARIO_NAMES",
    "Scenario",
    "scenario_definitions",
    "scenario_npv",
    "compute_scenarios",
]

SCENARIO_NAMES = ("worst", "base", "best")


@dataclass(frozen=True)
class Scenario:
    name: str
    price: float
    cost_multiplier: float


def scenario_definitions(price: float, settings: SensitivitySettings) -> list[Scenario]:
    return [
        Scenario("worst", price * settings.low_price_pct / 100.0, settings.high_cost_pct / 100.0),
        Scenario("base", price, 1.0),
        Scenario("best", price * settings.high_price_pct / 100.0, settings.low_cost_pct / 100.0),
    ]


def scenario_npv(
    treatment: Treatment, delta_yield: float, scenario: Scenario, params: EconomicParameters
) -> float:
    r, years = params.discount_rate, params.horizon_years
    pv_benefits = present_value(delta_yield * scenario.price, r, years)
    pv_costs = treatment.capital_cost_year0 + present_value(
        treatment.annual_cost_per_ha * scenario.cost_multiplier, r, years
    )
    return pv_benefits - pv_costs


def compute_scenarios(
    treatments: Sequence[Treatment],
    params: EconomicParameters,
    settings: SensitivitySettings,
) -> list[ScenarioRow]:
    if not treatments:
        return []
    control = resolve_control(treatments)
    scenarios = scenario_definitions(params.price_per_tonne, settings)
    rows: list[ScenarioRow] = []
    for t in treatments:
        delta_yield = t.avg_yield_per_ha - control.avg_yield_per_ha
        npvs = {s.name: scenario_npv(t, delta_yield, s, params) for s in scenarios}
        rows.append(
            ScenarioRow(
                name=t.name,
                is_control=t.is_control,
                worst=npvs["worst"],
                base=npvs["base"],
                best=npvs["best"],
            )
        )
    return rows
