from __future__ import annotations

import json
import math
from typing import Any

from ..models.column_map import FieldClass
from ..models.session import SessionSnapshot
from .catalogue import METRIC_CATALOGUE
from .scenarios import scenario_definitions

"""Narrative-generation payload.

build_brief_payload returns plain dicts/lists/str/float/None only, so the
result can go straight through json.dumps. build_brief_prompt wraps it in the
instruction text handed to a writing assistant.
"""

__all__ = [
    "TOOL_NAME",
    "build_brief_payload",
    "build_brief_prompt",
]

TOOL_NAME = "Farming CBA Decision Tool"

_PROMPT_HEADER = """You are writing a decision brief using the structured JSON below.
Write in clear prose with headings. Provide:
1) A farmer-friendly version (plain language, what drives outcomes, options to improve).
2) A policy version (decision-relevant framing, distributional and implementation considerations).
3) A technical appendix (definitions, equations for PV/NPV/BCR/ROI, assumptions, and replication notes).
Include a clean table that matches the results table.
"""


def _json_number(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def build_brief_payload(snapshot: SessionSnapshot) -> dict[str, Any]:
    control = snapshot.control
    treatments = {t.name: t for t in snapshot.treatments}
    extra_fields = snapshot.column_map.extra_fields

    results = []
    for r in snapshot.results:
        rec = {k: (_json_number(v) if isinstance(v, float) else v) for k, v in r.to_dict().items()}
        t = treatments.get(r.name)
        rec["plot_count"] = t.plot_count if t else None
        rec["extra_fields"] = {
            f.key: _json_number(t.extra_aggregates.get(f.key)) if t else None
            for f in extra_fields
        }
        results.append(rec)

    scenarios = scenario_definitions(snapshot.parameters.price_per_tonne, snapshot.sensitivity)
    return {
        "tool": TOOL_NAME,
        "purpose": (
            "Draft a farm or policy decision brief comparing trial treatments "
            "against a control using discounted cashflow results."
        ),
        "source": {"file": snapshot.source_name, "sheet": snapshot.sheet_name},
        "parameters": snapshot.parameters.to_dict(),
        "control": control.name if control else None,
        "metric_definitions": [
            {"key": m.key, "label": m.label, "definition": m.tooltip}
            for m in METRIC_CATALOGUE
        ],
        "scenario_settings": {
            **snapshot.sensitivity.to_dict(),
            "scenarios": [
                {"name": s.name, "price_per_tonne": s.price, "cost_multiplier": s.cost_multiplier}
                for s in scenarios
            ],
        },
        "scenario_results": [
            {k: (_json_number(v) if isinstance(v, float) else v) for k, v in row.to_dict().items()}
            for row in snapshot.scenarios
        ],
        "extra_fields": [
            {"key": f.key, "label": f.label, "classification": f.classification.value}
            for f in extra_fields
        ],
        "extra_fields_by_class": {
            cls.value: [f.key for f in snapshot.column_map.fields_by_class(cls)]
            for cls in FieldClass
        },
        "results": results,
        "requested_output_format": {
            "audience_versions": ["farmer/plain language", "policy maker", "research/technical appendix"],
            "include_tables": ["Results table (indicators x treatments)", "Assumptions table", "Scenario table"],
            "include_sections": [
                "Executive summary",
                "Scenario assumptions",
                "Results and interpretation vs control",
                "Sensitivity discussion",
                "Implementation considerations",
                "Limitations",
            ],
        },
    }


def build_brief_prompt(snapshot: SessionSnapshot) -> str:
    payload = build_brief_payload(snapshot)
    return f"{_PROMPT_HEADER}\nJSON:\n{json.dumps(payload, indent=2, ensure_ascii=False)}"
