"""Regime / mean-reversion family.

Each model produces a raw drift from a regime statistic and shrinks it
toward the caller's fallback mean with a heavy sample-count weight, so a
cold model contributes almost nothing.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from augur.core.math import clamp, clamp_unit, ewma, shrink_weight, sign, sqrt_pos
from augur.predictors.base import PriceState, ReturnPredictor


@dataclass(frozen=True)
class MeanRevOuConfig:
    alpha_level: float = 0.002
    alpha_var: float = 0.05
    kappa: float = 0.02
    z_clip: float = 3.0
    min_sigma: float = 0.001


@dataclass
class _OuState(PriceState):
    log_ema: float = 0.0
    var: float = 0.0


class MeanRevOuPredictor(ReturnPredictor[_OuState]):
    """Ornstein-Uhlenbeck style pull of log price back to its slow EMA."""

    kind = "mean_rev_ou"
    shrink_k = 100.0

    def __init__(self, config: MeanRevOuConfig | None = None):
        self.config = config or MeanRevOuConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _OuState:
        return _OuState()

    def _update(self, st: _OuState, r: float, price: float) -> None:
        log_p = math.log(price)
        if st.samples == 0:
            st.log_ema = log_p
            st.var = r * r
        else:
            st.log_ema = ewma(st.log_ema, log_p, clamp_unit(self.config.alpha_level))
            st.var = ewma(st.var, r * r, clamp_unit(self.config.alpha_var))
        st.samples += 1

    def _forecast(self, st: _OuState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples == 0 or st.last_price is None:
            return fallback_mu, fallback_sigma
        cfg = self.config
        displacement = math.log(st.last_price) - st.log_ema
        sigma = max(sqrt_pos(st.var), cfg.min_sigma)
        z = clamp(displacement / sigma, -cfg.z_clip, cfg.z_clip) if sigma > 1e-9 else 0.0
        mu_raw = -cfg.kappa * z * sigma
        w = shrink_weight(float(st.samples), self.shrink_k)
        return w * mu_raw + (1.0 - w) * fallback_mu, sigma


@dataclass(frozen=True)
class VolScaledMomConfig:
    alpha_fast: float = 0.10
    alpha_slow: float = 0.02
    alpha_vol: float = 0.05
    kappa: float = 0.015
    signal_clip: float = 3.0
    min_sigma: float = 0.001


@dataclass
class _VolMomState(PriceState):
    ema_fast: float = 0.0
    ema_slow: float = 0.0
    ema_vol: float = 0.0


class VolScaledMomPredictor(ReturnPredictor[_VolMomState]):
    """Time-series momentum normalised by an EWMA of absolute returns."""

    kind = "vol_scaled_mom"
    shrink_k = 100.0

    def __init__(self, config: VolScaledMomConfig | None = None):
        self.config = config or VolScaledMomConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _VolMomState:
        return _VolMomState()

    def _update(self, st: _VolMomState, r: float, price: float) -> None:
        cfg = self.config
        if st.samples == 0:
            st.ema_fast = r
            st.ema_slow = r
            st.ema_vol = abs(r)
        else:
            st.ema_fast = ewma(st.ema_fast, r, clamp_unit(cfg.alpha_fast))
            st.ema_slow = ewma(st.ema_slow, r, clamp_unit(cfg.alpha_slow))
            st.ema_vol = ewma(st.ema_vol, abs(r), clamp_unit(cfg.alpha_vol))
        st.samples += 1

    def _forecast(self, st: _VolMomState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples < 2:
            return fallback_mu, fallback_sigma
        cfg = self.config
        vol = max(st.ema_vol, cfg.min_sigma)
        signal = clamp((st.ema_fast - st.ema_slow) / vol, -cfg.signal_clip, cfg.signal_clip)
        mu_raw = cfg.kappa * signal * vol
        w = shrink_weight(float(st.samples), self.shrink_k)
        # E|r| = sigma * sqrt(2/pi) for a normal, 1.25 ~ sqrt(pi/2)
        return w * mu_raw + (1.0 - w) * fallback_mu, vol * 1.25


@dataclass(frozen=True)
class VarRatioAdaptConfig:
    alpha_fast_var: float = 0.15
    alpha_slow_var: float = 0.02
    alpha_trend: float = 0.06
    kappa: float = 0.015
    regime_clip: float = 1.0
    min_sigma: float = 0.001


@dataclass
class _VarRatioState(PriceState):
    var_fast: float = 0.0
    var_slow: float = 0.0
    ema_trend: float = 0.0


class VarRatioAdaptPredictor(ReturnPredictor[_VarRatioState]):
    """Variance-ratio regime: VR > 1 continues the trend, VR < 1 fades it."""

    kind = "var_ratio_adapt"
    shrink_k = 100.0

    def __init__(self, config: VarRatioAdaptConfig | None = None):
        self.config = config or VarRatioAdaptConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _VarRatioState:
        return _VarRatioState()

    def _update(self, st: _VarRatioState, r: float, price: float) -> None:
        cfg = self.config
        r2 = r * r
        if st.samples == 0:
            st.var_fast = r2
            st.var_slow = r2
            st.ema_trend = r
        else:
            st.var_fast = ewma(st.var_fast, r2, clamp_unit(cfg.alpha_fast_var))
            st.var_slow = ewma(st.var_slow, r2, clamp_unit(cfg.alpha_slow_var))
            st.ema_trend = ewma(st.ema_trend, r, clamp_unit(cfg.alpha_trend))
        st.samples += 1

    def _forecast(self, st: _VarRatioState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples < 2:
            return fallback_mu, fallback_sigma
        cfg = self.config
        sigma_slow = max(sqrt_pos(st.var_slow), cfg.min_sigma)
        if st.var_slow < 1e-18:
            return fallback_mu, sigma_slow
        regime = clamp(st.var_fast / st.var_slow - 1.0, -cfg.regime_clip, cfg.regime_clip)
        mu_raw = cfg.kappa * regime * sign(st.ema_trend) * sigma_slow
        w = shrink_weight(float(st.samples), self.shrink_k)
        return w * mu_raw + (1.0 - w) * fallback_mu, sigma_slow


@dataclass(frozen=True)
class MicroRevArConfig:
    alpha: float = 0.04
    phi_max: float = 0.15
    min_sigma: float = 0.001


@dataclass
class _MicroRevState(PriceState):
    prev_return: float = 0.0
    gamma1: float = 0.0
    var_r: float = 0.0


class MicroRevArPredictor(ReturnPredictor[_MicroRevState]):
    """Bid-ask bounce reversal.

    Only forecasts a drift while the lag-1 autocovariance is negative; in a
    momentum regime (``gamma1 >= 0``) the mean forecast is exactly zero.
    """

    kind = "micro_rev_ar"
    shrink_k = 200.0
    min_samples = 3

    def __init__(self, config: MicroRevArConfig | None = None):
        self.config = config or MicroRevArConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _MicroRevState:
        return _MicroRevState()

    def _update(self, st: _MicroRevState, r: float, price: float) -> None:
        a = clamp_unit(self.config.alpha)
        if st.samples == 0:
            st.gamma1 = 0.0
            st.var_r = r * r
        else:
            st.gamma1 = ewma(st.gamma1, r * st.prev_return, a)
            st.var_r = ewma(st.var_r, r * r, a)
        st.prev_return = r
        st.samples += 1

    def _forecast(self, st: _MicroRevState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples < self.min_samples:
            return fallback_mu, fallback_sigma
        sigma = max(sqrt_pos(st.var_r), self.config.min_sigma)
        if st.gamma1 >= 0.0 or st.var_r < 1e-18:
            return 0.0, sigma
        phi = clamp(st.gamma1 / st.var_r, -self.config.phi_max, 0.0)
        w = shrink_weight(float(st.samples), self.shrink_k)
        return w * phi * st.prev_return, sigma


@dataclass(frozen=True)
class SelfCalibMomConfig:
    alpha_fast: float = 0.12
    alpha_slow: float = 0.03
    alpha_var: float = 0.05
    alpha_calib: float = 0.03
    min_sigma: float = 0.001


@dataclass
class _SelfCalibState(PriceState):
    ema_fast: float = 0.0
    ema_slow: float = 0.0
    var_r: float = 0.0
    prev_raw_mu: float = 0.0
    cross: float = 0.0
    pred_sq: float = 0.0


class SelfCalibMomPredictor(ReturnPredictor[_SelfCalibState]):
    """Momentum whose magnitude is calibrated online.

    Tracks ``E[r * raw]`` and ``E[raw^2]`` for the raw momentum prediction
    made one step earlier; the scale ``alpha* = cross / pred_sq`` is clamped
    to [0, 1], so an anti-correlated signal is switched off entirely.
    """

    kind = "self_calib_mom"
    shrink_k = 200.0
    min_samples = 5
    raw_scale = 0.1

    def __init__(self, config: SelfCalibMomConfig | None = None):
        self.config = config or SelfCalibMomConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _SelfCalibState:
        return _SelfCalibState()

    def _update(self, st: _SelfCalibState, r: float, price: float) -> None:
        cfg = self.config
        if st.samples > 0:
            a_c = clamp_unit(cfg.alpha_calib)
            st.cross = ewma(st.cross, r * st.prev_raw_mu, a_c)
            st.pred_sq = ewma(st.pred_sq, st.prev_raw_mu * st.prev_raw_mu, a_c)

        if st.samples == 0:
            st.ema_fast = r
            st.ema_slow = r
            st.var_r = r * r
        else:
            st.ema_fast = ewma(st.ema_fast, r, clamp_unit(cfg.alpha_fast))
            st.ema_slow = ewma(st.ema_slow, r, clamp_unit(cfg.alpha_slow))
            st.var_r = ewma(st.var_r, r * r, clamp_unit(cfg.alpha_var))

        vol = max(sqrt_pos(st.var_r), cfg.min_sigma)
        signal = (st.ema_fast - st.ema_slow) / vol if vol > 1e-12 else 0.0
        st.prev_raw_mu = signal * vol * self.raw_scale
        st.samples += 1

    @staticmethod
    def _alpha(st: _SelfCalibState) -> float:
        if st.pred_sq > 1e-18:
            return clamp(st.cross / st.pred_sq, 0.0, 1.0)
        return 0.0

    def _forecast(self, st: _SelfCalibState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples < self.min_samples:
            return fallback_mu, fallback_sigma
        sigma = max(sqrt_pos(st.var_r), self.config.min_sigma)
        mu_cal = self._alpha(st) * st.prev_raw_mu
        w = shrink_weight(float(st.samples), self.shrink_k)
        return w * mu_cal + (1.0 - w) * fallback_mu, sigma

    def calibration_alpha(self, instrument: str) -> float | None:
        st = self._by_instrument.get(instrument)
        if st is None or st.samples < self.min_samples:
            return None
        return self._alpha(st)
