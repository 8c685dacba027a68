"""Tests for the recursive-least-squares filter and the regression family."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from augur.predictors.rls import (  # noqa: E402
    CrossAssetMacroRlsPredictor,
    FeatureRlsPredictor,
    LinearRlsPredictor,
    RecursiveLeastSquares,
    TsmomRlsPredictor,
    canonical_asset_symbol,
    macro_factor_index,
)


def test_rls_recovers_linear_relation():
    rls = RecursiveLeastSquares(2, forgetting=0.999, ridge=1e-2)
    for i in range(300):
        u = np.sin(0.37 * i) + 0.1 * (i % 7)
        x = np.array([1.0, u])
        rls.update(x, 0.5 + 2.0 * u)
    assert np.allclose(rls.beta, [0.5, 2.0], atol=1e-2)


def test_rls_skips_non_finite_features():
    rls = RecursiveLeastSquares(3, forgetting=0.99, ridge=1e-2)
    rls.update(np.array([1.0, 0.5, -0.2]), 0.3)
    beta = rls.beta.copy()
    ok = rls.update(np.array([1.0, np.inf, 0.0]), 0.1)
    assert ok is False
    assert np.array_equal(rls.beta, beta)


def test_rls_clamps_forgetting():
    assert RecursiveLeastSquares(2, 0.5, 1.0).forgetting == 0.90
    assert RecursiveLeastSquares(2, 1.5, 1.0).forgetting == 0.9999


def test_feature_rls_waits_for_min_samples():
    model = FeatureRlsPredictor()
    for price in (100.0, 100.2, 100.1):
        model.observe_price("BTCUSDT", price)
    est = model.estimate_base("BTCUSDT", fallback_mu=0.0005, fallback_sigma=0.01)
    assert est.mu == 0.0005
    assert est.sigma == 0.01


def test_tsmom_prediction_stays_bounded():
    model = TsmomRlsPredictor()
    price = 100.0
    for i in range(200):
        price *= 1.0 + 0.001 * np.sin(0.2 * i)
        model.observe_price("ETHUSDT", price)
    est = model.estimate_base("ETHUSDT")
    assert np.isfinite(est.mu)
    assert abs(est.mu) < 0.01


def test_macro_symbols_map_to_factor_slots():
    assert canonical_asset_symbol(" us500 (fut)") == "US500"
    assert canonical_asset_symbol("xauusd#fut") == "XAUUSD"
    assert macro_factor_index("US500") == 0
    assert macro_factor_index("XAUUSD") == 1
    assert macro_factor_index("BRENT") == 2
    assert macro_factor_index("BTCUSDT") is None


def test_macro_factors_are_shared_across_instruments():
    model = CrossAssetMacroRlsPredictor()
    model.observe_price("SPX", 5000.0)
    model.observe_price("SPX", 5010.0)
    model.observe_price("XAUUSD", 2000.0)
    features = model.factors.features()
    assert features[0] == 1.0
    assert features[1] > 0.0
    assert features[2] == 0.0
    assert model.factors.seen == [True, False, False]


def test_linear_rls_leans_on_fallback_with_n_over_n_plus_30():
    model = LinearRlsPredictor()
    price = 100.0
    for i in range(12):
        price *= 1.0 + 0.001 * ((i * 7) % 5 - 2)
        model.observe_price("BTCUSDT", price)
    n = model.sample_count("BTCUSDT")
    assert n == 11

    low = model.estimate_base("BTCUSDT", 0.0, 0.01)
    high = model.estimate_base("BTCUSDT", 0.002, 0.01)
    assert (high.mu - low.mu) / 0.002 == pytest.approx(1.0 - n / (n + 30.0))
