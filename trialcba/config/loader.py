from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.parameters import EconomicParameters, SensitivitySettings
from ..models.session import TreatmentEdit

"""Config loader.

Responsibilities:
- Load YAML config/cba.yml
- Validate against config_schema.json (shipped next to this module)
- Apply defaults (output_directory=./output, default economic parameters)
- Let CBA_* environment variables override the YAML economic parameters
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/cba.yml")

# env var -> parameters key
ENV_OVERRIDES = {
    "CBA_PRICE_PER_TONNE": "price_per_tonne",
    "CBA_DISCOUNT_RATE": "discount_rate",
    "CBA_HORIZON_YEARS": "horizon_years",
    "CBA_AREA_HA": "area_ha",
}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class AnalysisConfig:
    source_directory: str
    output_directory: str = "./output"
    parameters: EconomicParameters = field(default_factory=EconomicParameters)
    sensitivity: SensitivitySettings = field(default_factory=SensitivitySettings)
    control: str | None = None  # 明示指定が無ければ名前から自動判定
    treatment_edits: tuple[TreatmentEdit, ...] = ()
    write_brief: bool = False


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails validation (missing keys, wrong types, unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _env_parameters(raw: Mapping[str, Any] | None, environ: Mapping[str, str]) -> dict[str, Any]:
    merged = dict(raw or {})
    for var, key in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is not None and value.strip() != "":
            merged[key] = value
    return merged


def _parse_edits(raw: Mapping[str, Any] | None) -> tuple[TreatmentEdit, ...]:
    if not raw:
        return ()
    return tuple(
        TreatmentEdit(
            name=str(name),
            avg_yield_per_ha=values.get("avg_yield_per_ha"),
            annual_cost_per_ha=values.get("annual_cost_per_ha"),
            capital_cost_year0=values.get("capital_cost_year0"),
        )
        for name, values in raw.items()
    )


def load_config(path: Path, environ: Mapping[str, str] | None = None) -> AnalysisConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

    _validate_config_schema(data)

    env = os.environ if environ is None else environ
    return AnalysisConfig(
        source_directory=data["source_directory"],
        output_directory=data.get("output_directory", "./output"),
        parameters=EconomicParameters.from_mapping(_env_parameters(data.get("parameters"), env)),
        sensitivity=SensitivitySettings.from_mapping(data.get("sensitivity")),
        control=data.get("control") or None,
        treatment_edits=_parse_edits(data.get("treatment_edits")),
        write_brief=bool(data.get("write_brief", False)),
    )
