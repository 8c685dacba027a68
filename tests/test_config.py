"""Tests for YAML configuration loading."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest  # noqa: E402

from augur.config import DEFAULT_EV_LOOKBACK, CoreConfig, load_core_config  # noqa: E402
from augur.errors import ConfigError  # noqa: E402
from augur.predictors import PredictorKind, default_predictor_specs  # noqa: E402

REPO_CONFIG = Path(__file__).parent.parent / "configs" / "core.yaml"


def test_empty_config_uses_defaults():
    cfg = CoreConfig.from_dict({})
    assert len(cfg.predictors) == 24
    assert cfg.horizons == [("1m", 60_000), ("3m", 180_000), ("5m", 300_000)]
    assert cfg.ev_lookback == DEFAULT_EV_LOOKBACK
    assert cfg.metrics.window == 1200
    assert cfg.metrics.r2_min_samples == 60


def test_repo_config_matches_built_in_table():
    cfg = load_core_config(REPO_CONFIG)
    assert cfg.predictors == default_predictor_specs()
    assert cfg.ev.shrink_k == 40.0
    assert cfg.ev_lookback == 200


def test_load_custom_config(tmp_path):
    path = tmp_path / "core.yaml"
    path.write_text(
        "predictors:\n"
        "  fast: {kind: ewma, alpha_mean: 0.3, alpha_var: 0.2}\n"
        "  trend: {kind: holt, beta_trend: 0.1}\n"
        "horizons:\n"
        "  30s: 30000\n"
        "ev:\n"
        "  lookback: 50\n"
        "  prior_a: 2\n"
        "metrics:\n"
        "  window: 99999\n"
        "  r2_min_samples: 0\n"
    )
    cfg = load_core_config(path)
    assert cfg.predictor_ids() == ["fast", "trend"]
    assert cfg.predictors[1][1].kind == PredictorKind.HOLT
    assert cfg.horizons == [("30s", 30_000)]
    assert cfg.ev_lookback == 50
    assert cfg.ev.prior_a == 2.0
    assert cfg.metrics.window == 7200
    assert cfg.metrics.r2_min_samples == 1


@pytest.mark.parametrize(
    "raw",
    [
        {"strategies": {}},
        {"predictors": ["ewma"]},
        {"predictors": {"x": {"kind": "nope"}}},
        {"horizons": {"1m": 0}},
        {"horizons": {"1m": "soon"}},
        {"ev": {"lookback": "many"}},
        {"ev": {"unknown_knob": 1}},
        {"metrics": {"window": "wide"}},
    ],
)
def test_invalid_sections_raise(raw):
    with pytest.raises(ConfigError):
        CoreConfig.from_dict(raw)


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("predictors: [unclosed\n")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_core_config(path)


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError, match="cannot read config"):
        load_core_config(tmp_path / "absent.yaml")
