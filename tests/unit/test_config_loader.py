from __future__ import annotations
import pytest
from pathlib import Path
from trialcba.config.loader import load_config, ConfigError
from trialcba.models.parameters import DEFAULT_PRICE_PER_TONNE


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config, environ={})
    assert cfg.source_directory == "./data"
    assert cfg.output_directory == "./output"
    assert cfg.parameters.price_per_tonne == 600.0
    assert cfg.parameters.area_ha == 250.0
    assert cfg.sensitivity.high_cost_pct == 120.0
    assert cfg.control is None
    assert cfg.write_brief is False
    assert len(cfg.treatment_edits) == 1
    edit = cfg.treatment_edits[0]
    assert edit.name == "Treatment A"
    assert edit.capital_cost_year0 == 0
    assert edit.avg_yield_per_ha is None


def test_load_config_minimal(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "cba.yml"
    cfg_path.write_text("source_directory: ./data\n", encoding="utf-8")
    cfg = load_config(cfg_path, environ={})
    assert cfg.output_directory == "./output"
    assert cfg.parameters.price_per_tonne == DEFAULT_PRICE_PER_TONNE
    assert cfg.treatment_edits == ()


def test_env_overrides_yaml_parameters(write_config: Path):
    cfg = load_config(write_config, environ={"CBA_PRICE_PER_TONNE": "450", "CBA_HORIZON_YEARS": "5", "CBA_AREA_HA": ""})
    assert cfg.parameters.price_per_tonne == 450.0
    assert cfg.parameters.horizon_years == 5
    # 空文字は無視
    assert cfg.parameters.area_ha == 250.0


def test_invalid_parameter_value_falls_back_to_default(write_config: Path):
    cfg = load_config(write_config, environ={"CBA_PRICE_PER_TONNE": "-5"})
    assert cfg.parameters.price_per_tonne == DEFAULT_PRICE_PER_TONNE


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError):
        load_config(missing)


def test_load_config_missing_required(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("source_directory: ./data\n", "")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value) and "required property" in str(e.value)


def test_load_config_invalid_edit(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "    capital_cost_year0: 0", "    capital_cost_year0: lots"
    )
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_non_mapping_root(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "cba.yml"
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(cfg_path)


def test_load_config_invalid_yaml(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "cba.yml"
    cfg_path.write_text("source_directory: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(cfg_path)
    assert "invalid yaml" in str(e.value)
