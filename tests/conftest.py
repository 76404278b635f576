# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from trialcba.logging.init import reset_logging

TRIAL_HEADER = [
    "Plot", "Amendment", "Yield t/ha", "Treatment input cost only /ha",
    "Biomass (t/ha)", "Labour cost", "Notes",
]

# Control aggregates to 2.1 t/ha / $55; Treatment A to 3.0 t/ha / $100
TRIAL_ROWS: list[list[object]] = [
    ["Lockhart amendment trial 2023"],
    [],
    TRIAL_HEADER,
    [1, "Control", 2.0, 50, 5.0, 10, "ok"],
    [2, "Control", 2.2, 60, 5.4, 10, "ok"],
    [3, "Treatment A", 3.0, 100, 7.0, "$20", "lodging"],
]


@pytest.fixture()
def trial_rows() -> list[list[object]]:
    return [list(r) for r in TRIAL_ROWS]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # CBA_* を持ち込まない
        for var in ("CBA_PRICE_PER_TONNE", "CBA_DISCOUNT_RATE", "CBA_HORIZON_YEARS", "CBA_AREA_HA"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
output_directory: ./output
parameters:
  price_per_tonne: 600
  discount_rate: 0.07
  horizon_years: 10
  area_ha: 250
sensitivity:
  low_price_pct: 80
  high_price_pct: 120
  low_cost_pct: 80
  high_cost_pct: 120
treatment_edits:
  Treatment A:
    capital_cost_year0: 0
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "cba.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook() -> Callable[..., Path]:
    """Factory writing {sheet: rows} to an .xlsx file without header/index."""

    def _make(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return path

    return _make


@pytest.fixture(autouse=True)
def _reset_app_logging():
    # handlers bound to a capsys stream must not outlive the test
    yield
    reset_logging()
