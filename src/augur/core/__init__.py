"""Core numeric helpers."""

from augur.core.math import (
    EPS,
    clamp,
    erf_approx,
    floor_sigma,
    log_return,
    normal_cdf,
)

__all__ = [
    "EPS",
    "clamp",
    "erf_approx",
    "floor_sigma",
    "log_return",
    "normal_cdf",
]
