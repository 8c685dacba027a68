"""Contract tests shared by every return predictor."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest  # noqa: E402

from augur.predictors import (  # noqa: E402
    EwmaConfig,
    EwmaPredictor,
    ReturnEstimate,
    Side,
    build_predictor_models,
    default_predictor_specs,
    scoped_side_key,
)
from augur.predictors.base import SCOPE_BLEND_K  # noqa: E402

ADVERSARIAL_PRICES = [
    100.0, float("nan"), 100.0, 0.0, -5.0, float("inf"), 100.0, 100.0, 100.0,
    100.0, 1e12, 100.0, 1e-300, 100.0, 101.0, 99.0, 100.5, 100.0, 100.0,
]


def _models():
    return build_predictor_models(default_predictor_specs())


def test_ewma_tracks_positive_drift():
    model = EwmaPredictor(EwmaConfig(alpha_mean=0.5, alpha_var=0.5, min_sigma=1e-4))
    for price in (100.0, 101.0, 102.0):
        model.observe_price("BTCUSDT", price)
    est = model.estimate_base("BTCUSDT")
    assert est.mu > 0.0
    assert est.sigma >= 1e-4
    assert model.sample_count("BTCUSDT") == 2


def test_unknown_instrument_returns_floored_fallback():
    for pid, model in _models().items():
        est = model.estimate_base("NOPE", fallback_mu=0.0003, fallback_sigma=0.0)
        assert est == ReturnEstimate(0.0003, model.min_sigma), pid


@pytest.mark.parametrize("pid", [pid for pid, _ in default_predictor_specs()])
def test_sigma_floor_holds_under_adversarial_prices(pid):
    model = _models()[pid]
    for price in ADVERSARIAL_PRICES:
        model.observe_price("XAUUSD", price)
        model.observe_signal_price("XAUUSD", "breakout", Side.BUY, price)
        for est in (
            model.estimate_base("XAUUSD", 0.0, float("nan")),
            model.estimate_for_signal("XAUUSD", "breakout", "buy"),
        ):
            assert math.isfinite(est.sigma)
            assert est.sigma >= model.min_sigma


def test_unusable_prices_leave_state_untouched():
    model = EwmaPredictor()
    model.observe_price("ETHUSDT", 100.0)
    model.observe_price("ETHUSDT", 101.0)
    before = model.estimate_base("ETHUSDT")
    for bad in (float("nan"), float("inf"), 0.0, -1.0):
        model.observe_price("ETHUSDT", bad)
    assert model.estimate_base("ETHUSDT") == before
    assert model.sample_count("ETHUSDT") == 1


def test_estimation_does_not_mutate_state():
    for pid, model in _models().items():
        for price in (100.0, 100.4, 99.8, 100.9, 101.3, 100.7, 101.0):
            model.observe_price("SOLUSDT", price)
        first = model.estimate_base("SOLUSDT", 0.0001, 0.002)
        second = model.estimate_base("SOLUSDT", 0.0001, 0.002)
        assert first == second, pid


def test_scoped_side_key_normalises():
    assert scoped_side_key(" btcusdt ", " Momo ", "BUY") == "BTCUSDT::momo::buy"
    assert scoped_side_key("ETH", "x", Side.SELL) == "ETH::x::sell"


def test_signal_without_scoped_samples_returns_base():
    model = EwmaPredictor()
    for price in (100.0, 100.5, 101.0):
        model.observe_price("BTCUSDT", price)
    # one price gives a last_price but no return yet
    model.observe_signal_price("BTCUSDT", "tag", "buy", 100.0)
    base = model.estimate_base("BTCUSDT")
    assert model.estimate_for_signal("BTCUSDT", "tag", "buy") == base
    assert model.estimate_for_signal("BTCUSDT", "other", "sell") == base


def test_signal_estimate_blends_toward_base():
    cfg = EwmaConfig(alpha_mean=0.3, alpha_var=0.3, min_sigma=1e-5)
    model = EwmaPredictor(cfg)
    reference = EwmaPredictor(cfg)
    for price in (100.0, 100.2, 100.1, 100.4, 100.3):
        model.observe_price("BTCUSDT", price)
    scoped_prices = (100.0, 99.0, 98.5, 97.0)
    for price in scoped_prices:
        model.observe_signal_price("BTCUSDT", "fade", "sell", price)
        reference.observe_price("SCOPE", price)

    base = model.estimate_base("BTCUSDT")
    scoped = reference.estimate_base("SCOPE")
    n = len(scoped_prices) - 1
    w = n / (n + SCOPE_BLEND_K)
    est = model.estimate_for_signal("BTCUSDT", "fade", "sell")
    assert est.mu == pytest.approx(w * scoped.mu + (1 - w) * base.mu, rel=1e-12)
    assert est.sigma == pytest.approx(w * scoped.sigma + (1 - w) * base.sigma, rel=1e-12)
    # scoped returns are negative, so the blend sits below the base drift
    assert scoped.mu < est.mu < base.mu


def test_scope_count_grows_with_new_scopes():
    model = EwmaPredictor()
    model.observe_price("A", 1.0)
    model.observe_price("B", 1.0)
    model.observe_signal_price("A", "t", "buy", 1.0)
    model.observe_signal_price("A", "t", "sell", 1.0)
    model.observe_signal_price("a", "T", "BUY", 1.0)
    assert model.scope_count() == 4
