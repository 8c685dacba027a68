"""Price-move evaluator: return distribution -> trade-level P&L moments.

Terminal price is lognormal, ``ln(P_T / p0) ~ N(mu, sigma^2)``, so

    E[P_T]   = p0 * exp(mu + sigma^2 / 2)
    Var[P_T] = E[P_T]^2 * (exp(sigma^2) - 1)

Win probability is the chance the terminal price clears the breakeven
level implied by the trade's costs.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from enum import Enum

from augur.core.math import EPS, normal_cdf
from augur.predictors.base import ReturnEstimate

EXP_MAX = math.log(sys.float_info.max)


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def sign(self) -> float:
        return 1.0 if self is PositionSide.LONG else -1.0


@dataclass(frozen=True)
class SpotEvInputs:
    p0: float
    qty: float
    side: PositionSide
    fee: float = 0.0
    slippage: float = 0.0
    borrow: float = 0.0

    @property
    def cost(self) -> float:
        return self.fee + self.slippage + self.borrow


@dataclass(frozen=True)
class FuturesEvInputs:
    p0: float
    qty: float
    multiplier: float
    side: PositionSide
    fee: float = 0.0
    slippage: float = 0.0
    funding: float = 0.0
    liq_risk: float = 0.0

    @property
    def cost(self) -> float:
        return self.fee + self.slippage + self.funding + self.liq_risk


@dataclass(frozen=True)
class EvStats:
    ev: float = 0.0
    ev_std: float = 0.0
    p_win: float = 0.0


def lognormal_moments(p0: float, mu: float, sigma: float) -> tuple[float, float]:
    """Mean and variance of P_T; exponents past the float range give inf."""
    sigma2 = sigma * sigma
    growth = mu + 0.5 * sigma2
    if growth > EXP_MAX or sigma2 > EXP_MAX:
        return math.inf, math.inf
    e_pt = p0 * math.exp(growth)
    var_pt = e_pt * e_pt * max(math.expm1(sigma2), 0.0)
    return e_pt, var_pt


def p_win_lognormal(mu: float, sigma: float, p0: float, scale: float, signed: float, cost: float) -> float:
    """P(terminal P&L > 0) for a position of ``scale`` units entered at p0."""
    if scale <= EPS or p0 <= EPS:
        return 0.0
    thresh = p0 + cost / scale if signed > 0.0 else p0 - cost / scale
    if thresh <= 0.0:
        return 1.0 if signed > 0.0 else 0.0
    edge = math.log(thresh / p0)
    if sigma <= EPS:
        # compare in log space so a huge mu cannot overflow
        if signed > 0.0:
            return 1.0 if mu > edge else 0.0
        return 1.0 if mu < edge else 0.0
    z = (edge - mu) / sigma
    return 1.0 - normal_cdf(z) if signed > 0.0 else normal_cdf(z)


def _finite_abs(x: float) -> float:
    return abs(x) if math.isfinite(x) else 0.0


def _non_negative_sigma(sigma: float) -> float:
    return sigma if math.isfinite(sigma) and sigma > 0.0 else 0.0


def _evaluate(estimate: ReturnEstimate, p0: float, scale: float, side: PositionSide, cost: float) -> EvStats:
    sigma = _non_negative_sigma(estimate.sigma)
    e_pt, var_pt = lognormal_moments(p0, estimate.mu, sigma)
    signed = side.sign
    return EvStats(
        ev=signed * scale * (e_pt - p0) - cost,
        ev_std=abs(scale * math.sqrt(var_pt)),
        p_win=p_win_lognormal(estimate.mu, sigma, p0, scale, signed, cost),
    )


def spot_ev_from_return_estimate(estimate: ReturnEstimate, inputs: SpotEvInputs) -> EvStats:
    """Spot trade EV; non-positive price or quantity yields zeros."""
    p0 = max(inputs.p0, 0.0) if math.isfinite(inputs.p0) else 0.0
    qty = _finite_abs(inputs.qty)
    if p0 <= EPS or qty <= EPS:
        return EvStats()
    return _evaluate(estimate, p0, qty, PositionSide(inputs.side), inputs.cost)


def futures_ev_from_return_estimate(estimate: ReturnEstimate, inputs: FuturesEvInputs) -> EvStats:
    """Futures trade EV with a contract multiplier; degenerate inputs yield zeros."""
    p0 = max(inputs.p0, 0.0) if math.isfinite(inputs.p0) else 0.0
    qty = _finite_abs(inputs.qty)
    multiplier = _finite_abs(inputs.multiplier)
    if p0 <= EPS or qty <= EPS or multiplier <= EPS:
        return EvStats()
    return _evaluate(estimate, p0, multiplier * qty, PositionSide(inputs.side), inputs.cost)
