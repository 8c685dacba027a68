"""Exponential-smoothing family: EWMA, AR(1), Holt and a scalar Kalman filter."""

from __future__ import annotations

from dataclasses import dataclass

from augur.core.math import clamp, clamp_unit, ewma, sqrt_pos
from augur.predictors.base import PriceState, ReturnPredictor


@dataclass(frozen=True)
class EwmaConfig:
    alpha_mean: float = 0.08
    alpha_var: float = 0.08
    min_sigma: float = 0.001


@dataclass
class _EwmaState(PriceState):
    mu: float = 0.0
    var: float = 0.0


class EwmaPredictor(ReturnPredictor[_EwmaState]):
    """EWMA of the return mean and of its squared residual."""

    kind = "ewma"

    def __init__(self, config: EwmaConfig | None = None):
        self.config = config or EwmaConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _EwmaState:
        return _EwmaState()

    def _update(self, st: _EwmaState, r: float, price: float) -> None:
        a_mu = clamp_unit(self.config.alpha_mean)
        a_var = clamp_unit(self.config.alpha_var)
        st.mu = r if st.samples == 0 else ewma(st.mu, r, a_mu)
        resid = r - st.mu
        st.var = resid * resid if st.samples == 0 else ewma(st.var, resid * resid, a_var)
        st.samples += 1

    def _forecast(self, st: _EwmaState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples == 0:
            return fallback_mu, fallback_sigma
        return st.mu, sqrt_pos(st.var)


@dataclass(frozen=True)
class Ar1Config:
    alpha_mean: float = 0.08
    alpha_var: float = 0.08
    min_sigma: float = 0.001
    phi_clip: float = 0.98


@dataclass
class _Ar1State(PriceState):
    last_return: float | None = None
    mu: float = 0.0
    var: float = 0.0
    cov1: float = 0.0


class Ar1Predictor(ReturnPredictor[_Ar1State]):
    """AR(1) around an EWMA mean, phi from the lag-1 autocovariance."""

    kind = "ar1"

    def __init__(self, config: Ar1Config | None = None):
        self.config = config or Ar1Config()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _Ar1State:
        return _Ar1State()

    def _update(self, st: _Ar1State, r: float, price: float) -> None:
        a_mu = clamp_unit(self.config.alpha_mean)
        a_var = clamp_unit(self.config.alpha_var)
        prev_mu = st.mu
        st.mu = r if st.samples == 0 else ewma(st.mu, r, a_mu)
        # residuals are taken against the pre-update mean
        centered = r - prev_mu
        sample_var = centered * centered
        st.var = sample_var if st.samples == 0 else ewma(st.var, sample_var, a_var)
        if st.last_return is not None:
            cov = (st.last_return - prev_mu) * (r - prev_mu)
            st.cov1 = cov if st.samples <= 1 else ewma(st.cov1, cov, a_var)
        st.last_return = r
        st.samples += 1

    def _phi(self, st: _Ar1State) -> float:
        var = max(st.var, 0.0)
        phi = st.cov1 / var if var > 1e-12 else 0.0
        return clamp(phi, -self.config.phi_clip, self.config.phi_clip)

    def _forecast(self, st: _Ar1State, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples == 0:
            return fallback_mu, fallback_sigma
        var = max(st.var, 0.0)
        phi = self._phi(st)
        mu = st.mu
        if st.last_return is not None:
            mu = st.mu + phi * (st.last_return - st.mu)
        eps_var = max(1.0 - phi * phi, 0.05) * var
        return mu, sqrt_pos(eps_var)

    def phi(self, instrument: str) -> float | None:
        """Current clamped AR coefficient for an instrument, if known."""
        st = self._by_instrument.get(instrument)
        if st is None or st.samples == 0:
            return None
        return self._phi(st)


@dataclass(frozen=True)
class HoltConfig:
    alpha_mean: float = 0.08
    beta_trend: float = 0.08
    alpha_var: float = 0.08
    min_sigma: float = 0.001


@dataclass
class _HoltState(PriceState):
    level: float = 0.0
    trend: float = 0.0
    var: float = 0.0


class HoltPredictor(ReturnPredictor[_HoltState]):
    """Holt linear trend on returns; sigma from one-step forecast errors."""

    kind = "holt"

    def __init__(self, config: HoltConfig | None = None):
        self.config = config or HoltConfig()
        super().__init__(self.config.min_sigma)

    def _new_state(self) -> _HoltState:
        return _HoltState()

    def _update(self, st: _HoltState, r: float, price: float) -> None:
        a = clamp_unit(self.config.alpha_mean)
        b = clamp_unit(self.config.beta_trend)
        a_var = clamp_unit(self.config.alpha_var)
        if st.samples == 0:
            st.level = r
            st.trend = 0.0
            st.var = 0.0
        else:
            pred = st.level + st.trend
            new_level = a * r + (1.0 - a) * pred
            st.trend = b * (new_level - st.level) + (1.0 - b) * st.trend
            st.level = new_level
            err = r - pred
            st.var = ewma(st.var, err * err, a_var)
        st.samples += 1

    def _forecast(self, st: _HoltState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples == 0:
            return fallback_mu, fallback_sigma
        return st.level + st.trend, sqrt_pos(st.var)


@dataclass(frozen=True)
class KalmanConfig:
    process_var: float = 1e-6
    measure_var: float = 1e-4
    min_sigma: float = 0.001


@dataclass
class _KalmanState(PriceState):
    x: float = 0.0
    p: float = 0.0


class KalmanPredictor(ReturnPredictor[_KalmanState]):
    """Scalar local-level Kalman filter on log returns."""

    kind = "kalman"

    def __init__(self, config: KalmanConfig | None = None):
        self.config = config or KalmanConfig()
        super().__init__(self.config.min_sigma)

    @property
    def _q(self) -> float:
        return max(self.config.process_var, 1e-12)

    @property
    def _r(self) -> float:
        return max(self.config.measure_var, 1e-12)

    def _new_state(self) -> _KalmanState:
        return _KalmanState()

    def _update(self, st: _KalmanState, z: float, price: float) -> None:
        if st.samples == 0:
            st.x = z
            st.p = self._r
        else:
            p_pred = st.p + self._q
            k = p_pred / (p_pred + self._r)
            st.x = st.x + k * (z - st.x)
            st.p = (1.0 - k) * p_pred
        st.samples += 1

    def _forecast(self, st: _KalmanState, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        if st.samples == 0:
            return fallback_mu, fallback_sigma
        return st.x, sqrt_pos(st.p + self._r)
