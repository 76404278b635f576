from __future__ import annotations

import math

import pytest

from trialcba.models.parameters import EconomicParameters
from trialcba.models.treatment import Treatment
from trialcba.services.aggregator import aggregate_table
from trialcba.services.metrics import (
    InvariantViolation,
    cashflow_schedule,
    compute_results,
    discount_factor,
    present_value,
    resolve_control,
)

AF_7_10 = sum(1.07 ** -t for t in range(1, 11))  # ~7.0236


def _params(**kw) -> EconomicParameters:
    return EconomicParameters(**kw)


def test_present_value_annuity():
    assert present_value(100, 0.07, 10) == pytest.approx(100 * AF_7_10)
    assert present_value(100, 0.07, 10) == pytest.approx(702.358, abs=1e-3)
    assert present_value(100, 0.0, 5) == pytest.approx(500)
    assert present_value(0, 0.07, 10) == 0
    assert present_value(50, 0.1, 1) == pytest.approx(50 / 1.1)


def test_discount_factor():
    assert discount_factor(0, 0.07) == 1.0
    assert discount_factor(2, 0.1) == pytest.approx(1 / 1.21)


def test_end_to_end_example(trial_rows):
    _, treatments = aggregate_table(trial_rows)
    results = compute_results(treatments, _params(price_per_tonne=600, discount_rate=0.07, horizon_years=10))
    by_name = {r.name: r for r in results}
    a = by_name["Treatment A"]
    assert a.delta_yield == pytest.approx(0.9)
    assert a.pv_benefits == pytest.approx(540 * AF_7_10)
    assert a.pv_costs == pytest.approx(100 * AF_7_10)
    assert a.npv == pytest.approx(440 * AF_7_10)
    assert a.bcr == pytest.approx(5.40)
    assert a.roi == pytest.approx(4.40)
    assert a.rank == 1

    control = by_name["Control"]
    assert control.is_control
    assert control.delta_yield == 0
    assert control.pv_benefits == 0
    assert control.pv_costs == pytest.approx(386.30, abs=0.01)
    # control still pays its own cost against zero benefit
    assert control.npv == pytest.approx(-386.30, abs=0.01)
    assert control.bcr == 0
    assert control.rank == 2


def test_costs_are_not_differenced_against_control():
    treatments = [
        Treatment("Control", 2.0, 80.0, is_control=True),
        Treatment("B", 2.0, 100.0),
    ]
    b = {r.name: r for r in compute_results(treatments, _params())}["B"]
    assert b.pv_costs == pytest.approx(present_value(100.0, 0.07, 10))


def test_capital_cost_is_undiscounted_year_zero():
    treatments = [
        Treatment("Control", 2.0, 0.0, is_control=True),
        Treatment("B", 2.5, 10.0, capital_cost_year0=250.0),
    ]
    b = {r.name: r for r in compute_results(treatments, _params())}["B"]
    assert b.pv_costs == pytest.approx(250.0 + present_value(10.0, 0.07, 10))


def test_control_with_zero_costs_has_zero_npv_and_no_ratios():
    treatments = [Treatment("Control", 2.0, 0.0, is_control=True), Treatment("B", 1.0, 0.0)]
    results = {r.name: r for r in compute_results(treatments, _params())}
    control = results["Control"]
    assert control.npv == 0
    assert control.bcr is None
    assert control.roi is None


def test_ratios_none_for_negative_pv_costs():
    treatments = [
        Treatment("Control", 2.0, 0.0, is_control=True),
        Treatment("Salvage", 2.5, 0.0, capital_cost_year0=-100.0),
    ]
    s = {r.name: r for r in compute_results(treatments, _params())}["Salvage"]
    assert s.pv_costs == -100.0
    assert s.bcr is None and s.roi is None
    assert math.isfinite(s.npv)


def test_ranking_is_descending_and_stable():
    treatments = [
        Treatment("Control", 2.0, 10.0, is_control=True),
        Treatment("Tie 1", 3.0, 20.0),
        Treatment("Best", 4.0, 20.0),
        Treatment("Tie 2", 3.0, 20.0),
    ]
    results = compute_results(treatments, _params())
    assert [r.name for r in results] == ["Best", "Tie 1", "Tie 2", "Control"]
    assert [r.rank for r in results] == [1, 2, 3, 4]
    npvs = [r.npv for r in results]
    assert all(npvs[i] >= npvs[i + 1] for i in range(len(npvs) - 1))


def test_results_pass_treatment_fields_through():
    t = Treatment("Control", 2.5, 12.5, capital_cost_year0=3.0, is_control=True)
    (r,) = compute_results([t], _params())
    assert (r.avg_yield_per_ha, r.annual_cost_per_ha, r.capital_cost_year0) == (2.5, 12.5, 3.0)


@pytest.mark.parametrize(
    "params",
    [
        EconomicParameters(price_per_tonne=0.0, discount_rate=0.0, horizon_years=1),
        EconomicParameters(price_per_tonne=600, discount_rate=0.07, horizon_years=10),
        EconomicParameters(price_per_tonne=1e6, discount_rate=0.5, horizon_years=50),
    ],
)
def test_results_are_finite(params):
    treatments = [
        Treatment("Control", 2.0, 0.0, is_control=True),
        Treatment("A", 3.0, 100.0),
        Treatment("B", 1.0, 0.0),
    ]
    for r in compute_results(treatments, params):
        assert math.isfinite(r.pv_benefits)
        assert math.isfinite(r.pv_costs)
        assert math.isfinite(r.npv)
        assert (r.bcr is None) == (r.pv_costs <= 0)
        assert (r.roi is None) == (r.pv_costs <= 0)


def test_empty_input_gives_empty_output():
    assert compute_results([], _params()) == []


def test_missing_control_raises():
    treatments = [Treatment("A", 1.0, 1.0), Treatment("B", 2.0, 1.0)]
    with pytest.raises(InvariantViolation):
        compute_results(treatments, _params())


def test_two_controls_raise():
    treatments = [Treatment("A", 1.0, 1.0, is_control=True), Treatment("B", 2.0, 1.0, is_control=True)]
    with pytest.raises(InvariantViolation):
        resolve_control(treatments)


def test_inputs_are_not_mutated():
    treatments = [Treatment("Control", 2.0, 10.0, is_control=True), Treatment("A", 3.0, 10.0)]
    before = list(treatments)
    compute_results(treatments, _params())
    assert treatments == before


def test_cashflow_schedule_sums_to_npv():
    control = Treatment("Control", 2.0, 0.0, is_control=True)
    t = Treatment("A", 2.5, 40.0, capital_cost_year0=120.0)
    params = _params(area_ha=10)
    schedule = cashflow_schedule(t, control, params)
    assert [cf.year for cf in schedule] == list(range(0, 11))
    assert schedule[0].cost_per_ha == 120.0 and schedule[0].benefit_per_ha == 0
    assert schedule[1].benefit_per_ha == pytest.approx(0.5 * 600)
    (result,) = [r for r in compute_results([control, t], params) if r.name == "A"]
    assert sum(cf.pv_net_per_ha for cf in schedule) == pytest.approx(result.npv)
    assert sum(cf.pv_net_farm for cf in schedule) == pytest.approx(result.npv * 10)
