from __future__ import annotations

import json

import pytest

from trialcba.models.session import TreatmentEdit
from trialcba.services.catalogue import metric_keys
from trialcba.services.narrative import build_brief_payload, build_brief_prompt
from trialcba.services.session import build_session, recompute


@pytest.fixture()
def snapshot(trial_rows):
    return build_session(trial_rows, source_name="trial.xlsx", sheet_name="Sheet1")


def test_payload_is_json_serialisable(snapshot):
    payload = build_brief_payload(snapshot)
    decoded = json.loads(json.dumps(payload, allow_nan=False))
    assert decoded["control"] == "Control"
    assert decoded["parameters"]["price_per_tonne"] == 600.0
    assert decoded["source"] == {"file": "trial.xlsx", "sheet": "Sheet1"}


def test_payload_contents(snapshot):
    payload = build_brief_payload(snapshot)
    assert [m["key"] for m in payload["metric_definitions"]] == metric_keys()
    assert [s["name"] for s in payload["scenario_settings"]["scenarios"]] == ["worst", "base", "best"]
    assert payload["scenario_settings"]["low_price_pct"] == 80.0
    assert [r["name"] for r in payload["results"]] == ["Treatment A", "Control"]
    a = payload["results"][0]
    assert a["rank"] == 1
    assert a["plot_count"] == 1
    assert a["extra_fields"]["labour cost"] == pytest.approx(20.0)
    classes = {f["key"]: f["classification"] for f in payload["extra_fields"]}
    assert classes["biomass (t/ha)"] == "benefit"
    assert payload["extra_fields_by_class"] == {
        "cost": ["labour cost"],
        "benefit": ["biomass (t/ha)"],
        "other": ["plot", "notes"],
    }
    assert len(payload["scenario_results"]) == 2


def test_payload_null_ratios(snapshot):
    snap = recompute(snapshot, [TreatmentEdit("Control", annual_cost_per_ha=0.0)])
    control = next(r for r in build_brief_payload(snap)["results"] if r["name"] == "Control")
    assert control["bcr"] is None
    assert control["roi"] is None


def test_prompt_embeds_payload(snapshot):
    prompt = build_brief_prompt(snapshot)
    assert prompt.startswith("You are writing a decision brief")
    body = prompt.split("JSON:\n", 1)[1]
    assert json.loads(body)["control"] == "Control"
