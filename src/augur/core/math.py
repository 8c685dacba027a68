"""Numeric helpers shared by the predictors, the EV model and the metrics."""

from __future__ import annotations

import math
import sys

import numpy as np

EPS = sys.float_info.epsilon

# Abramowitz & Stegun 7.1.26
_ERF_P = 0.3275911
_ERF_A1 = 0.254829592
_ERF_A2 = -0.284496736
_ERF_A3 = 1.421413741
_ERF_A4 = -1.453152027
_ERF_A5 = 1.061405429


def clamp(x: float, lo: float, hi: float) -> float:
    return float(max(lo, min(hi, x)))


def clamp_unit(x: float) -> float:
    """Clamp a smoothing factor into [0, 1]."""
    return clamp(x, 0.0, 1.0)


def is_valid_price(price: float) -> bool:
    """Finite and strictly above machine epsilon."""
    return math.isfinite(price) and price > EPS


def log_return(price: float, prev_price: float | None) -> float | None:
    """ln(price / prev_price), or None when either side is unusable."""
    if prev_price is None or not is_valid_price(prev_price) or not is_valid_price(price):
        return None
    return math.log(price / prev_price)


def sign(x: float) -> float:
    if x > 0.0:
        return 1.0
    if x < 0.0:
        return -1.0
    return 0.0


def floor_sigma(sigma: float, min_sigma: float) -> float:
    """Apply the sigma floor; non-finite values collapse onto the floor."""
    if not math.isfinite(sigma):
        return float(min_sigma)
    return float(max(sigma, min_sigma))


def sqrt_pos(x: float) -> float:
    return math.sqrt(max(x, 0.0))


def ewma(prev: float, x: float, alpha: float) -> float:
    return (1.0 - alpha) * prev + alpha * x


def shrink_weight(n: float, k: float) -> float:
    """Sample-count shrinkage weight n / (n + k)."""
    return n / (n + k)


def erf_approx(x: float) -> float:
    """Abramowitz-Stegun erf approximation (|error| < 1.5e-7)."""
    s = -1.0 if x < 0.0 else 1.0
    ax = abs(x)
    t = 1.0 / (1.0 + _ERF_P * ax)
    poly = ((((_ERF_A5 * t + _ERF_A4) * t + _ERF_A3) * t + _ERF_A2) * t + _ERF_A1) * t
    return s * (1.0 - poly * math.exp(-ax * ax))


def normal_cdf(x: float) -> float:
    return 0.5 * (1.0 + erf_approx(x / math.sqrt(2.0)))


def nearest_rank(sorted_values: np.ndarray, q: float) -> float:
    """Nearest-rank quantile using floor(q * n), clamped to the last index."""
    n = int(sorted_values.size)
    if n == 0:
        return 0.0
    idx = min(int(math.floor(n * q)), n - 1)
    return float(sorted_values[idx])
