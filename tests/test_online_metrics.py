"""Tests for rolling predictor metrics and the backfill helpers."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest  # noqa: E402

from augur.evaluation import (  # noqa: E402
    MarketKind,
    OnlinePredictorMetrics,
    backfill_predictor_metrics_from_closes,
    backfill_predictor_metrics_from_closes_volnorm,
    parse_predictor_metrics_scope_key,
    predictor_metrics_scope_key,
    stride_closes,
)


def test_window_is_fifo():
    m = OnlinePredictorMetrics(window=3, r2_min_samples=1)
    for actual in (1.0, 2.0, 3.0, 4.0):
        m.observe(actual, 0.0)
    assert m.sample_count() == 3
    assert m.mae() == pytest.approx(3.0)


def test_window_has_minimum_of_two():
    m = OnlinePredictorMetrics(window=0)
    for actual in (1.0, 2.0, 3.0):
        m.observe(actual, actual)
    assert m.sample_count() == 2


def test_non_finite_pairs_are_dropped():
    m = OnlinePredictorMetrics()
    m.observe(float("nan"), 0.1)
    m.observe(0.1, float("inf"))
    assert m.sample_count() == 0
    assert m.summary() == {"samples": 0, "mae": None, "hit_rate": None, "r2": None}


def test_hit_rate_ignores_zero_predictions():
    m = OnlinePredictorMetrics()
    m.observe(0.01, 0.02)
    m.observe(-0.01, 0.02)
    m.observe(0.01, 0.0)
    m.observe(-0.01, -0.001)
    assert m.hit_rate() == pytest.approx(0.5)


def test_r2_needs_minimum_samples():
    m = OnlinePredictorMetrics(window=100, r2_min_samples=5)
    for i in range(4):
        m.observe(float(i), float(i))
    assert m.r2() is None
    m.observe(4.0, 4.0)
    assert m.r2() == pytest.approx(1.0)


def test_r2_of_constant_actuals_is_zero():
    m = OnlinePredictorMetrics(window=10, r2_min_samples=2)
    for _ in range(5):
        m.observe(0.5, 0.1)
    assert m.r2() == 0.0


def test_scope_key_round_trip():
    key = predictor_metrics_scope_key(" btcusdt ", "Futures", "EWMA-v1", "1M")
    assert key == "BTCUSDT::futures::ewma-v1::1m"
    assert parse_predictor_metrics_scope_key(key) == ("BTCUSDT", "futures", "ewma-v1", "1m")
    assert predictor_metrics_scope_key("ETH", MarketKind.SPOT, "x", "5m") == "ETH::spot::x::5m"


def test_parse_rejects_short_keys():
    assert parse_predictor_metrics_scope_key("BTC::spot::ewma") is None
    assert parse_predictor_metrics_scope_key("") is None


def test_parse_keeps_extra_separators_in_horizon():
    assert parse_predictor_metrics_scope_key("A::spot::p::h::x") == ("A", "spot", "p", "h::x")


def test_stride_closes():
    closes = [1.0, 2.0, 3.0, 4.0, 5.0]
    assert stride_closes(closes, 2) == [1.0, 3.0, 5.0]
    assert stride_closes(closes, 0) == closes


def test_backfill_scores_one_step_baseline():
    closes = [100.0, 101.0, float("nan"), 102.0, 101.0]
    m = backfill_predictor_metrics_from_closes(closes, alpha_mean=0.5)
    # three valid returns; the first is scored against a zero forecast
    assert m.sample_count() == 3
    r1 = math.log(101.0 / 100.0)
    r2 = math.log(102.0 / 101.0)
    r3 = math.log(101.0 / 102.0)
    mu2 = 0.5 * r1 + 0.5 * r2
    expected = (abs(r1) + abs(r2 - r1) + abs(r3 - mu2)) / 3
    assert m.mae() == pytest.approx(expected)


def test_volnorm_backfill_is_scale_free():
    closes = [100.0 * (1.0 + 0.01 * ((i * 7) % 5 - 2)) for i in range(200)]
    m = backfill_predictor_metrics_from_closes_volnorm(closes, 0.1, 0.1, 1e-4)
    assert m.sample_count() == 199
    assert 0.1 < m.mae() < 10.0
