"""Tests for predictor specs and the default predictor table."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest  # noqa: E402

from augur.errors import ConfigError  # noqa: E402
from augur.predictors import (  # noqa: E402
    PredictorKind,
    PredictorSpec,
    build_predictor,
    build_predictor_models,
    default_predictor_horizons,
    default_predictor_specs,
)
from augur.predictors.smoothing import EwmaConfig  # noqa: E402


def test_default_table_has_24_unique_ids():
    specs = default_predictor_specs()
    ids = [pid for pid, _ in specs]
    assert len(ids) == 24
    assert len(set(ids)) == 24
    assert ids[0] == "ewma-fast-v1"
    assert ids[-1] == "xasset-macro-rls-v1"


def test_default_table_follows_base_ewma():
    specs = dict(default_predictor_specs(EwmaConfig(alpha_mean=0.11, alpha_var=0.07, min_sigma=0.002)))
    assert specs["ewma-v1"].alpha_mean == 0.11
    assert specs["ewma-v1"].alpha_var == 0.07
    assert specs["ewma-fast-v1"].alpha_mean == 0.18
    assert all(spec.min_sigma == 0.002 for spec in specs.values())


def test_generic_fields_map_onto_kind_configs():
    models = build_predictor_models(default_predictor_specs())
    assert models["lin-ind-v1"].config.forgetting == 0.995
    assert models["lin-ind-v1"].config.ridge == 1e-2
    assert models["ou-revert-fast-v1"].config.kappa == 0.035
    assert models["volmom-v1"].config.alpha_slow == 0.02
    assert models["feat-rls-robust-v1"].config.pred_clip == 2.2
    assert models["xasset-macro-rls-v1"].config.alpha_resid == 0.08
    assert models["kalman-v1"].config.measure_var == 1e-4


def test_every_kind_builds():
    for kind in PredictorKind:
        model = build_predictor(PredictorSpec(kind))
        assert model.kind == kind.value


def test_duplicate_ids_rejected():
    spec = PredictorSpec(PredictorKind.EWMA)
    with pytest.raises(ConfigError, match="duplicate"):
        build_predictor_models([("a", spec), ("a", spec)])


def test_spec_dict_round_trip():
    spec = dict(default_predictor_specs())["feat-rls-v1"]
    raw = spec.to_dict()
    assert raw["kind"] == "feature_rls"
    assert PredictorSpec.from_dict(raw) == spec


@pytest.mark.parametrize(
    "raw, message",
    [
        ({"alpha_mean": 0.1}, "missing 'kind'"),
        ({"kind": "lstm"}, "unknown predictor kind"),
        ({"kind": "ewma", "alpha": 0.1}, "unknown predictor spec fields"),
        ({"kind": "ewma", "alpha_mean": "fast"}, "numeric"),
        (["ewma"], "mapping"),
    ],
)
def test_spec_from_dict_errors(raw, message):
    with pytest.raises(ConfigError, match=message):
        PredictorSpec.from_dict(raw)


def test_default_horizons():
    assert default_predictor_horizons() == [("1m", 60_000), ("3m", 180_000), ("5m", 300_000)]
