"""Rolling predictor quality metrics and close-series backfill helpers."""

from __future__ import annotations

import math
from collections import deque
from enum import Enum
from typing import Iterable, Sequence

import numpy as np

from augur.core.math import clamp_unit, ewma, is_valid_price, sqrt_pos

PREDICTOR_METRIC_WINDOW = 1200
PREDICTOR_WINDOW_MAX = 7_200
PREDICTOR_R2_MIN_SAMPLES = 60


class MarketKind(str, Enum):
    SPOT = "spot"
    FUTURES = "futures"


class OnlinePredictorMetrics:
    """Bounded FIFO of (actual, predicted) pairs with MAE, hit rate and R^2."""

    def __init__(self, window: int = PREDICTOR_METRIC_WINDOW, r2_min_samples: int = PREDICTOR_R2_MIN_SAMPLES):
        self.window = max(int(window), 2)
        self.r2_min_samples = int(r2_min_samples)
        self._pairs: deque[tuple[float, float]] = deque(maxlen=self.window)

    def observe(self, actual: float, predicted: float) -> None:
        if not (math.isfinite(actual) and math.isfinite(predicted)):
            return
        self._pairs.append((float(actual), float(predicted)))

    def sample_count(self) -> int:
        return len(self._pairs)

    def _arrays(self) -> tuple[np.ndarray, np.ndarray]:
        arr = np.asarray(self._pairs, dtype=float)
        return arr[:, 0], arr[:, 1]

    def mae(self) -> float | None:
        if not self._pairs:
            return None
        y, yhat = self._arrays()
        return float(np.mean(np.abs(y - yhat)))

    def hit_rate(self) -> float | None:
        """Share of pairs whose signs agree strictly (zeros never count)."""
        if not self._pairs:
            return None
        y, yhat = self._arrays()
        return float(np.mean(y * yhat > 0.0))

    def r2(self) -> float | None:
        n = len(self._pairs)
        if n == 0 or n < self.r2_min_samples:
            return None
        y, yhat = self._arrays()
        sse = float(np.sum((y - yhat) ** 2))
        sst = float(np.sum((y - y.mean()) ** 2))
        if sst <= 1e-18:
            return 0.0
        return 1.0 - sse / sst

    def summary(self) -> dict[str, float | int | None]:
        return {
            "samples": self.sample_count(),
            "mae": self.mae(),
            "hit_rate": self.hit_rate(),
            "r2": self.r2(),
        }


def stride_closes(closes: Sequence[float], stride: int) -> list[float]:
    """Every ``stride``-th close, starting with the first."""
    if stride <= 1:
        return list(closes)
    return list(closes[::stride])


def _returns(closes: Iterable[float]) -> Iterable[float]:
    prev: float | None = None
    for p in closes:
        if not is_valid_price(p):
            continue
        if prev is not None:
            yield math.log(p / prev)
        prev = p


def backfill_predictor_metrics_from_closes(
    closes: Iterable[float],
    alpha_mean: float,
    window: int = PREDICTOR_METRIC_WINDOW,
) -> OnlinePredictorMetrics:
    """Score a one-step EWMA-mean baseline over a close series."""
    out = OnlinePredictorMetrics(window)
    a = clamp_unit(alpha_mean)
    mu: float | None = None
    for r in _returns(closes):
        out.observe(r, 0.0 if mu is None else mu)
        mu = r if mu is None else ewma(mu, r, a)
    return out


def backfill_predictor_metrics_from_closes_volnorm(
    closes: Iterable[float],
    alpha_mean: float,
    alpha_var: float,
    min_sigma: float,
    window: int = PREDICTOR_METRIC_WINDOW,
) -> OnlinePredictorMetrics:
    """Same baseline, with both sides divided by the running EWMA sigma."""
    out = OnlinePredictorMetrics(window)
    a_mu = clamp_unit(alpha_mean)
    a_var = clamp_unit(alpha_var)
    sigma_floor = max(min_sigma, 1e-8)
    mu: float | None = None
    var = 0.0
    for r in _returns(closes):
        pred = 0.0 if mu is None else mu
        sigma = sigma_floor if mu is None else max(sqrt_pos(var), sigma_floor)
        out.observe(r / sigma, pred / sigma)
        if mu is None:
            mu = r
            var = r * r
        else:
            centered = r - mu
            mu = ewma(mu, r, a_mu)
            var = ewma(var, centered * centered, a_var)
    return out


def predictor_metrics_scope_key(symbol: str, market: MarketKind | str, predictor: str, horizon: str) -> str:
    """``SYMBOL::market::predictor::horizon``."""
    if not isinstance(market, MarketKind):
        market = MarketKind(market.strip().lower())
    return "{}::{}::{}::{}".format(
        symbol.strip().upper(),
        market.value,
        predictor.strip().lower(),
        horizon.strip().lower(),
    )


def parse_predictor_metrics_scope_key(key: str) -> tuple[str, str, str, str] | None:
    parts = key.split("::", 3)
    if len(parts) != 4:
        return None
    return parts[0], parts[1], parts[2], parts[3]
