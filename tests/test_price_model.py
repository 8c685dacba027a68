"""Tests for the lognormal price-move EV evaluator."""

import math
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from augur.ev.price_model import (  # noqa: E402
    EvStats,
    FuturesEvInputs,
    PositionSide,
    SpotEvInputs,
    futures_ev_from_return_estimate,
    spot_ev_from_return_estimate,
)
from augur.predictors.base import ReturnEstimate  # noqa: E402


def test_long_win_probability_increases_with_mu():
    inputs = SpotEvInputs(p0=100.0, qty=1.0, side=PositionSide.LONG)
    p_wins = [
        spot_ev_from_return_estimate(ReturnEstimate(mu, 0.01), inputs).p_win
        for mu in np.linspace(-0.02, 0.02, 41)
    ]
    assert all(b > a for a, b in zip(p_wins, p_wins[1:]))
    assert p_wins[20] == pytest.approx(0.5, abs=1e-6)


def test_short_win_probability_decreases_with_mu():
    inputs = SpotEvInputs(p0=100.0, qty=1.0, side=PositionSide.SHORT)
    p_wins = [
        spot_ev_from_return_estimate(ReturnEstimate(mu, 0.01), inputs).p_win
        for mu in np.linspace(-0.02, 0.02, 11)
    ]
    assert all(b < a for a, b in zip(p_wins, p_wins[1:]))


def test_spot_ev_matches_lognormal_mean():
    est = ReturnEstimate(0.01, 0.02)
    stats = spot_ev_from_return_estimate(est, SpotEvInputs(100.0, 2.0, PositionSide.LONG, fee=0.3))
    e_pt = 100.0 * math.exp(0.01 + 0.5 * 0.02 ** 2)
    assert stats.ev == pytest.approx(2.0 * (e_pt - 100.0) - 0.3)
    assert stats.ev_std == pytest.approx(2.0 * e_pt * math.sqrt(math.expm1(0.02 ** 2)))


def test_zero_drift_without_costs_has_zero_ev():
    stats = spot_ev_from_return_estimate(ReturnEstimate(0.0, 0.0), SpotEvInputs(250.0, 3.0, PositionSide.LONG))
    assert stats.ev == 0.0
    assert stats.ev_std == 0.0


def test_costs_raise_the_breakeven():
    free = spot_ev_from_return_estimate(ReturnEstimate(0.0, 0.01), SpotEvInputs(100.0, 1.0, PositionSide.LONG))
    costly = spot_ev_from_return_estimate(
        ReturnEstimate(0.0, 0.01),
        SpotEvInputs(100.0, 1.0, PositionSide.LONG, fee=0.5, slippage=0.3, borrow=0.2),
    )
    assert costly.p_win < free.p_win
    assert costly.ev == pytest.approx(free.ev - 1.0)


def test_zero_sigma_is_binary():
    long_in = SpotEvInputs(100.0, 1.0, PositionSide.LONG)
    short_in = SpotEvInputs(100.0, 1.0, PositionSide.SHORT)
    assert spot_ev_from_return_estimate(ReturnEstimate(0.001, 0.0), long_in).p_win == 1.0
    assert spot_ev_from_return_estimate(ReturnEstimate(-0.001, 0.0), long_in).p_win == 0.0
    assert spot_ev_from_return_estimate(ReturnEstimate(-0.001, 0.0), short_in).p_win == 1.0
    # non-finite sigma is treated as zero
    assert spot_ev_from_return_estimate(ReturnEstimate(0.001, float("nan")), long_in).p_win == 1.0


def test_short_cannot_win_when_costs_exceed_price():
    stats = spot_ev_from_return_estimate(
        ReturnEstimate(-0.05, 0.01), SpotEvInputs(100.0, 1.0, PositionSide.SHORT, fee=200.0)
    )
    assert stats.p_win == 0.0


def test_futures_multiplier_scales_like_quantity():
    est = ReturnEstimate(0.002, 0.015)
    fut = futures_ev_from_return_estimate(
        est, FuturesEvInputs(50.0, 2.0, 10.0, PositionSide.LONG, fee=1.0, funding=0.5)
    )
    spot = spot_ev_from_return_estimate(est, SpotEvInputs(50.0, 20.0, PositionSide.LONG, fee=1.5))
    assert fut.ev == pytest.approx(spot.ev)
    assert fut.ev_std == pytest.approx(spot.ev_std)
    assert fut.p_win == pytest.approx(spot.p_win)


@pytest.mark.parametrize(
    "p0, qty, multiplier",
    [
        (0.0, 1.0, 1.0),
        (-10.0, 1.0, 1.0),
        (float("nan"), 1.0, 1.0),
        (100.0, 0.0, 1.0),
        (100.0, float("inf"), 1.0),
        (100.0, 1.0, 0.0),
    ],
)
def test_degenerate_inputs_yield_zeros(p0, qty, multiplier):
    est = ReturnEstimate(0.01, 0.02)
    assert futures_ev_from_return_estimate(
        est, FuturesEvInputs(p0, qty, multiplier, PositionSide.LONG)
    ) == EvStats()
    if multiplier == 1.0:
        assert spot_ev_from_return_estimate(est, SpotEvInputs(p0, qty, PositionSide.LONG)) == EvStats()


def test_negative_quantity_uses_magnitude():
    est = ReturnEstimate(0.01, 0.02)
    neg = spot_ev_from_return_estimate(est, SpotEvInputs(100.0, -2.0, PositionSide.LONG))
    pos = spot_ev_from_return_estimate(est, SpotEvInputs(100.0, 2.0, PositionSide.LONG))
    assert neg == pos


def test_extreme_sigma_gives_infinite_moments_without_raising():
    est = ReturnEstimate(0.0, 30.0)
    long_stats = spot_ev_from_return_estimate(est, SpotEvInputs(100.0, 1.0, PositionSide.LONG))
    short_stats = spot_ev_from_return_estimate(est, SpotEvInputs(100.0, 1.0, PositionSide.SHORT))
    assert long_stats.ev == math.inf
    assert long_stats.ev_std == math.inf
    assert short_stats.ev == -math.inf
    assert 0.0 <= long_stats.p_win <= 1.0
    assert 0.0 <= short_stats.p_win <= 1.0


def test_extreme_drift_without_sigma_stays_finite_in_probability():
    est = ReturnEstimate(1000.0, 0.0)
    stats = futures_ev_from_return_estimate(est, FuturesEvInputs(100.0, 1.0, 5.0, PositionSide.LONG, fee=1.0))
    assert stats.p_win == 1.0
    assert stats.ev == math.inf
    short = futures_ev_from_return_estimate(est, FuturesEvInputs(100.0, 1.0, 5.0, PositionSide.SHORT))
    assert short.p_win == 0.0
