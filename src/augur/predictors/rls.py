"""Regression family built on a shared recursive-least-squares filter.

All four predictors regress the next log return on a small feature vector
computed from the state *before* the return arrives: on each new return the
filter is updated with the stored features, then fresh features are
computed for the next forecast.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from augur.core.math import EPS, clamp, clamp_unit, ewma, sign, sqrt_pos
from augur.predictors.base import PriceState, ReturnPredictor, Side

logger = logging.getLogger(__name__)

FORGETTING_MIN = 0.90
FORGETTING_MAX = 0.9999
DENOM_FLOOR = 1e-12


class RecursiveLeastSquares:
    """Exponentially-weighted RLS with a ridge-initialised covariance.

    Buffers are allocated once; ``update`` returns False (and leaves the
    weights untouched) when ``lambda + x'Px`` is non-finite or vanishes.
    """

    def __init__(self, dim: int, forgetting: float, ridge: float):
        self.dim = int(dim)
        self.forgetting = clamp(forgetting, FORGETTING_MIN, FORGETTING_MAX)
        self.ridge = float(ridge)
        self.beta = np.zeros(self.dim, dtype=float)
        self.P = np.zeros((self.dim, self.dim), dtype=float)
        self.reset_covariance()

    def reset_covariance(self) -> None:
        self.P[:] = 0.0
        np.fill_diagonal(self.P, 1.0 / max(self.ridge, 1e-9))

    def predict(self, x: np.ndarray) -> float:
        return float(self.beta @ x)

    def update(self, x: np.ndarray, y: float) -> bool:
        lam = self.forgetting
        if abs(self.P[0, 0]) <= EPS:
            self.reset_covariance()
        with np.errstate(all="ignore"):
            px = self.P @ x
            denom = float(lam + x @ px)
        if not math.isfinite(denom) or abs(denom) <= DENOM_FLOOR:
            logger.debug("rls: skipping update, degenerate denominator %r", denom)
            return False
        k = px / denom
        err = y - float(self.beta @ x)
        self.beta += k * err
        xtp = x @ self.P
        self.P -= np.outer(k, xtp)
        self.P /= lam
        return True


@dataclass(frozen=True)
class LinearRlsConfig:
    alpha_fast: float = 0.20
    alpha_slow: float = 0.05
    alpha_vol: float = 0.10
    forgetting: float = 0.995
    ridge: float = 1e-2
    min_sigma: float = 0.001


@dataclass
class _RlsState(PriceState):
    rls: RecursiveLeastSquares | None = None
    last_x: np.ndarray | None = None
    resid2: float = 0.0
    has_stats: bool = False


def _shrunk(pred: float, sigma_model: float, samples: int, k: float,
            fallback_mu: float, fallback_sigma: float, min_sigma: float) -> tuple[float, float]:
    n = float(samples)
    w = n / (n + k)
    mu = w * pred + (1.0 - w) * fallback_mu
    sigma = w * sigma_model + (1.0 - w) * max(fallback_sigma, min_sigma)
    return mu, sigma


# --- LinearRls ----------------------------------------------------------------

LINEAR_DIM = 5


@dataclass
class _LinearState(_RlsState):
    prev_r: float = 0.0
    ema_fast: float = 0.0
    ema_slow: float = 0.0
    vol2: float = 0.0


def linear_features(prev_r: float, ema_fast: float, ema_slow: float, vol2: float) -> np.ndarray:
    return np.array([1.0, prev_r, ema_fast - ema_slow, sqrt_pos(vol2), sign(prev_r)])


class LinearRlsPredictor(ReturnPredictor[_LinearState]):
    """RLS on [1, r_prev, fast-slow EMA spread, vol, sign(r_prev)]."""

    kind = "linear_rls"
    shrink_k = 30.0

    def __init__(self, config: LinearRlsConfig | None = None):
        self.config = config or LinearRlsConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _LinearState:
        return _LinearState()

    def _update(self, st: _LinearState, r: float, price: float) -> None:
        cfg = self.config
        if not st.has_stats:
            st.prev_r = r
            st.ema_fast = r
            st.ema_slow = r
            st.vol2 = r * r
            st.resid2 = r * r
            st.rls = RecursiveLeastSquares(LINEAR_DIM, cfg.forgetting, cfg.ridge)
            st.last_x = linear_features(r, r, r, st.vol2)
            st.has_stats = True
            st.samples = 1
            return
        x = st.last_x
        err = r - st.rls.predict(x)
        st.rls.update(x, r)
        a_vol = clamp_unit(cfg.alpha_vol)
        st.resid2 = ewma(st.resid2, err * err, a_vol)
        st.ema_fast = ewma(st.ema_fast, r, clamp_unit(cfg.alpha_fast))
        st.ema_slow = ewma(st.ema_slow, r, clamp_unit(cfg.alpha_slow))
        centered = r - st.ema_slow
        st.vol2 = ewma(st.vol2, centered * centered, a_vol)
        st.prev_r = r
        st.last_x = linear_features(st.prev_r, st.ema_fast, st.ema_slow, st.vol2)
        st.samples += 1

    def _forecast(self, st: _LinearState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if not st.has_stats:
            return fallback_mu, fallback_sigma
        sigma_model = max(sqrt_pos(st.resid2), self.min_sigma)
        return _shrunk(st.rls.predict(st.last_x), sigma_model, st.samples, self.shrink_k,
                       fallback_mu, fallback_sigma, self.min_sigma)


# --- TsmomRls -----------------------------------------------------------------

TSMOM_BUFFER = 24
TSMOM_LOOKBACKS = (1, 3, 6, 12)


@dataclass
class _TsmomState(_RlsState):
    returns: np.ndarray = field(default_factory=lambda: np.zeros(TSMOM_BUFFER))
    ret_idx: int = 0
    ret_count: int = 0

    def push(self, r: float) -> None:
        self.returns[self.ret_idx] = r
        self.ret_idx = (self.ret_idx + 1) % TSMOM_BUFFER
        self.ret_count = min(self.ret_count + 1, TSMOM_BUFFER)

    def mean_last(self, n: int) -> float:
        m = min(n, self.ret_count)
        if m == 0:
            return 0.0
        idx = [(self.ret_idx - 1 - k) % TSMOM_BUFFER for k in range(m)]
        return float(self.returns[idx].mean())

    def features(self) -> np.ndarray:
        return np.array([1.0] + [self.mean_last(k) for k in TSMOM_LOOKBACKS])


class TsmomRlsPredictor(ReturnPredictor[_TsmomState]):
    """Time-series momentum: RLS on mean returns over the last 1/3/6/12 steps."""

    kind = "tsmom_rls"
    shrink_k = 30.0

    def __init__(self, config: LinearRlsConfig | None = None):
        self.config = config or LinearRlsConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _TsmomState:
        return _TsmomState()

    def _update(self, st: _TsmomState, r: float, price: float) -> None:
        cfg = self.config
        if st.last_x is not None:
            err = r - st.rls.predict(st.last_x)
            st.rls.update(st.last_x, r)
            a = clamp_unit(cfg.alpha_vol)
            st.resid2 = ewma(st.resid2, err * err, a) if st.has_stats else err * err
            st.has_stats = True
            st.samples += 1
        else:
            st.rls = RecursiveLeastSquares(LINEAR_DIM, cfg.forgetting, cfg.ridge)
        st.push(r)
        st.last_x = st.features()
        if st.samples == 0:
            st.samples = 1

    def _forecast(self, st: _TsmomState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.last_x is None:
            return fallback_mu, fallback_sigma
        sigma_model = max(sqrt_pos(st.resid2), self.min_sigma)
        return _shrunk(st.rls.predict(st.last_x), sigma_model, st.samples, self.shrink_k,
                       fallback_mu, fallback_sigma, self.min_sigma)


# --- FeatureRls ---------------------------------------------------------------

FEATURE_DIM = 7


@dataclass(frozen=True)
class FeatureRlsConfig:
    alpha_fast: float = 0.12
    alpha_slow: float = 0.02
    alpha_var: float = 0.04
    forgetting: float = 0.998
    ridge: float = 0.05
    pred_clip: float = 3.0
    min_sigma: float = 0.001


@dataclass
class _FeatureState(_RlsState):
    prev_r: float = 0.0
    prev_prev_r: float = 0.0
    ema_r3: float = 0.0
    var_fast: float = 0.0
    var_slow: float = 0.0
    gamma1: float = 0.0
    run_count: int = 0


def microstructure_features(st: _FeatureState, min_sigma: float) -> np.ndarray:
    """[1, accel, skew, run, vol accel, autocov, extremity], each bounded."""
    sigma = max(sqrt_pos(st.var_slow), min_sigma)
    sigma2 = max(st.var_slow, 1e-18)
    sigma3 = sigma * sigma2

    accel = clamp((st.prev_r - st.prev_prev_r) / sigma, -5.0, 5.0) if sigma > 1e-12 else 0.0
    skew = clamp(st.ema_r3 / sigma3, -5.0, 5.0) if sigma3 > 1e-18 else 0.0
    run = math.tanh(st.run_count / 3.0)
    if st.var_slow > 1e-18:
        vol_accel = clamp((st.var_fast - st.var_slow) / st.var_slow, -3.0, 3.0)
    else:
        vol_accel = 0.0
    autocov = clamp(st.gamma1 / sigma2, -1.0, 1.0) if sigma2 > 1e-18 else 0.0
    extremity = clamp(abs(st.prev_r) / sigma, 0.0, 5.0) if sigma > 1e-12 else 0.0
    return np.array([1.0, accel, skew, run, vol_accel, autocov, extremity])


class FeatureRlsPredictor(ReturnPredictor[_FeatureState]):
    """RLS on bounded microstructure features, prediction clipped to k sigma."""

    kind = "feature_rls"
    shrink_k = 150.0
    min_samples = 3

    def __init__(self, config: FeatureRlsConfig | None = None):
        self.config = config or FeatureRlsConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _FeatureState:
        return _FeatureState()

    def _update(self, st: _FeatureState, r: float, price: float) -> None:
        cfg = self.config
        a_f = clamp_unit(cfg.alpha_fast)
        a_s = clamp_unit(cfg.alpha_slow)
        a_v = clamp_unit(cfg.alpha_var)
        if not st.has_stats:
            st.prev_r = r
            st.prev_prev_r = 0.0
            st.ema_r3 = r ** 3
            st.var_fast = r * r
            st.var_slow = r * r
            st.gamma1 = 0.0
            st.run_count = 1 if r >= 0.0 else -1
            st.resid2 = r * r
            st.has_stats = True
            st.samples = 1
            st.rls = RecursiveLeastSquares(FEATURE_DIM, cfg.forgetting, cfg.ridge)
            st.last_x = microstructure_features(st, cfg.min_sigma)
            return

        x = st.last_x
        err = r - st.rls.predict(x)
        st.rls.update(x, r)
        st.resid2 = ewma(st.resid2, err * err, a_v)

        st.ema_r3 = ewma(st.ema_r3, r ** 3, a_v)
        st.var_fast = ewma(st.var_fast, r * r, a_f)
        st.var_slow = ewma(st.var_slow, r * r, a_s)
        st.gamma1 = ewma(st.gamma1, r * st.prev_r, a_v)

        if r >= 0.0:
            st.run_count = st.run_count + 1 if st.run_count > 0 else 1
        else:
            st.run_count = st.run_count - 1 if st.run_count < 0 else -1

        st.prev_prev_r = st.prev_r
        st.prev_r = r
        st.last_x = microstructure_features(st, cfg.min_sigma)
        st.samples += 1

    def _forecast(self, st: _FeatureState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if not st.has_stats or st.samples < self.min_samples:
            return fallback_mu, fallback_sigma
        sigma_model = max(sqrt_pos(st.resid2), self.min_sigma)
        bound = self.config.pred_clip * sigma_model
        pred = clamp(st.rls.predict(st.last_x), -bound, bound)
        return _shrunk(pred, sigma_model, st.samples, self.shrink_k,
                       fallback_mu, fallback_sigma, self.min_sigma)


# --- CrossAssetMacroRls -------------------------------------------------------

MACRO_DIM = 5
MACRO_FACTORS = (
    ("equity", ("SPX", "SP500", "US500", "SPY")),
    ("gold", ("XAU", "GOLD", "GC")),
    ("oil", ("WTI", "BRENT", "CL", "OIL")),
)


@dataclass(frozen=True)
class CrossAssetMacroConfig:
    alpha_factor: float = 0.10
    alpha_resid: float = 0.08
    forgetting: float = 0.998
    ridge: float = 0.05
    pred_clip: float = 2.5
    min_sigma: float = 0.001


def canonical_asset_symbol(instrument: str) -> str:
    upper = instrument.strip().upper()
    return upper.replace(" (FUT)", "").replace("#FUT", "").replace(" ", "")


def macro_factor_index(symbol: str) -> int | None:
    """Factor slot for a canonical symbol, first match wins."""
    for idx, (_, needles) in enumerate(MACRO_FACTORS):
        if any(n in symbol for n in needles):
            return idx
    return None


@dataclass
class MacroFactorState:
    last_prices: list[float | None] = field(default_factory=lambda: [None] * len(MACRO_FACTORS))
    rets_ewma: list[float] = field(default_factory=lambda: [0.0] * len(MACRO_FACTORS))
    seen: list[bool] = field(default_factory=lambda: [False] * len(MACRO_FACTORS))

    def features(self) -> np.ndarray:
        sp, gold, oil = (self.rets_ewma[i] if self.seen[i] else 0.0 for i in range(3))
        factors = np.array([sp, gold, oil])
        dispersion = float(np.sqrt(np.mean((factors - factors.mean()) ** 2)))
        return np.array([1.0, sp, gold, oil, dispersion])


class CrossAssetMacroRlsPredictor(ReturnPredictor[_RlsState]):
    """RLS on equity / gold / oil factor returns and their dispersion.

    Factor returns are learned from the same price stream: any instrument
    whose canonical symbol names one of the factors updates that factor's
    EWMA return, which every target instrument then regresses on.
    """

    kind = "cross_asset_macro_rls"
    shrink_k = 100.0

    def __init__(self, config: CrossAssetMacroConfig | None = None):
        self.config = config or CrossAssetMacroConfig()
        super().__init__(self.config.min_sigma)
        self.factors = MacroFactorState()

    def _new_state(self) -> _RlsState:
        return _RlsState()

    def observe_price(self, instrument: str, price: float) -> None:
        self._observe_factor(instrument, price)
        super().observe_price(instrument, price)

    def observe_signal_price(self, instrument: str, source_tag: str, side: Side | str, price: float) -> None:
        self._observe_factor(instrument, price)
        super().observe_signal_price(instrument, source_tag, side, price)

    def _observe_factor(self, instrument: str, price: float) -> None:
        if not math.isfinite(price) or price <= EPS:
            return
        idx = macro_factor_index(canonical_asset_symbol(instrument))
        if idx is None:
            return
        f = self.factors
        prev = f.last_prices[idx]
        if prev is not None and prev > EPS:
            r = math.log(price / prev)
            a = clamp_unit(self.config.alpha_factor)
            f.rets_ewma[idx] = ewma(f.rets_ewma[idx], r, a) if f.seen[idx] else r
            f.seen[idx] = True
        f.last_prices[idx] = price

    def _update(self, st: _RlsState, r: float, price: float) -> None:
        cfg = self.config
        if st.last_x is not None:
            err = r - st.rls.predict(st.last_x)
            st.rls.update(st.last_x, r)
            a = clamp_unit(cfg.alpha_resid)
            st.resid2 = ewma(st.resid2, err * err, a) if st.has_stats else err * err
            st.has_stats = True
            st.samples += 1
        else:
            st.rls = RecursiveLeastSquares(MACRO_DIM, cfg.forgetting, cfg.ridge)
        st.last_x = self.factors.features()
        if st.samples == 0:
            st.samples = 1

    def _forecast(self, st: _RlsState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.last_x is None:
            return fallback_mu, fallback_sigma
        sigma_model = max(sqrt_pos(st.resid2), self.min_sigma)
        bound = self.config.pred_clip * sigma_model
        pred = clamp(st.rls.predict(st.last_x), -bound, bound)
        return _shrunk(pred, sigma_model, st.samples, self.shrink_k,
                       fallback_mu, fallback_sigma, self.min_sigma)
