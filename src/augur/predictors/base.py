"""Shared contract for the online return-distribution predictors.

Every predictor keeps two families of per-scope state:

- a base state per instrument, fed by ``observe_price``;
- a conditioned state per (instrument, strategy tag, side), fed by
  ``observe_signal_price``.

Estimates for a conditioned scope are always pulled toward the base
estimate with weight ``n / (n + 20)`` so a handful of conditioned samples
cannot dominate the forecast. Estimation never mutates state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from augur.core.math import floor_sigma, is_valid_price, log_return, shrink_weight

logger = logging.getLogger(__name__)

SCOPE_BLEND_K = 20.0


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"

    @classmethod
    def coerce(cls, value: "Side | str") -> "Side":
        if isinstance(value, Side):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class ReturnEstimate:
    """Normal approximation of the next-period log return."""

    mu: float
    sigma: float

    def to_dict(self) -> dict[str, float]:
        return {"mu": float(self.mu), "sigma": float(self.sigma)}


def scoped_side_key(instrument: str, source_tag: str, side: Side | str) -> str:
    """Key of a conditioned scope: ``INSTRUMENT::tag::side``."""
    return "{}::{}::{}".format(
        instrument.strip().upper(),
        source_tag.strip().lower(),
        Side.coerce(side).value,
    )


@dataclass
class PriceState:
    """Fields every per-scope state carries."""

    last_price: float | None = None
    samples: int = 0


S = TypeVar("S", bound=PriceState)


class ReturnPredictor(Generic[S]):
    """Base class: scoped state bookkeeping, price guard and scope blending.

    Subclasses implement ``_new_state``, ``_update`` (one valid log return)
    and ``_forecast`` (state -> (mu, sigma) given fallbacks). The sigma floor
    is applied here, so subclasses may return a raw sigma.
    """

    kind: str = "base"

    def __init__(self, min_sigma: float):
        self.min_sigma = float(min_sigma)
        self._by_instrument: dict[str, S] = {}
        self._by_scope: dict[str, S] = {}

    # -- hooks -------------------------------------------------------------

    def _new_state(self) -> S:
        raise NotImplementedError

    def _update(self, state: S, r: float, price: float) -> None:
        raise NotImplementedError

    def _forecast(self, state: S, fallback_mu: float, fallback_sigma: float) -> tuple[float, float]:
        raise NotImplementedError

    # -- observation -------------------------------------------------------

    def observe_price(self, instrument: str, price: float) -> None:
        state = self._by_instrument.get(instrument)
        if state is None:
            state = self._by_instrument[instrument] = self._new_state()
        self._observe(state, price)

    def observe_signal_price(
        self,
        instrument: str,
        source_tag: str,
        side: Side | str,
        price: float,
    ) -> None:
        key = scoped_side_key(instrument, source_tag, side)
        state = self._by_scope.get(key)
        if state is None:
            state = self._by_scope[key] = self._new_state()
        self._observe(state, price)

    def _observe(self, state: S, price: float) -> None:
        if not is_valid_price(price):
            logger.debug("%s: dropping unusable price %r", self.kind, price)
            return
        r = log_return(price, state.last_price)
        if r is not None:
            self._update(state, r, price)
        state.last_price = price

    # -- estimation --------------------------------------------------------

    def _fallback(self, fallback_mu: float, fallback_sigma: float) -> ReturnEstimate:
        return ReturnEstimate(fallback_mu, floor_sigma(fallback_sigma, self.min_sigma))

    def _estimate_state(self, state: S, fallback_mu: float, fallback_sigma: float) -> ReturnEstimate:
        mu, sigma = self._forecast(state, fallback_mu, fallback_sigma)
        return ReturnEstimate(mu, floor_sigma(sigma, self.min_sigma))

    def estimate_base(
        self,
        instrument: str,
        fallback_mu: float = 0.0,
        fallback_sigma: float = 0.0,
    ) -> ReturnEstimate:
        state = self._by_instrument.get(instrument)
        if state is None:
            return self._fallback(fallback_mu, fallback_sigma)
        return self._estimate_state(state, fallback_mu, fallback_sigma)

    def estimate_for_signal(
        self,
        instrument: str,
        source_tag: str,
        side: Side | str,
        fallback_mu: float = 0.0,
        fallback_sigma: float = 0.0,
    ) -> ReturnEstimate:
        base = self.estimate_base(instrument, fallback_mu, fallback_sigma)
        scoped = self._by_scope.get(scoped_side_key(instrument, source_tag, side))
        if scoped is None or scoped.samples == 0:
            return base
        est = self._estimate_state(scoped, base.mu, base.sigma)
        w = shrink_weight(float(scoped.samples), SCOPE_BLEND_K)
        mu = w * est.mu + (1.0 - w) * base.mu
        sigma = w * est.sigma + (1.0 - w) * base.sigma
        return ReturnEstimate(mu, floor_sigma(sigma, self.min_sigma))

    # -- diagnostics -------------------------------------------------------

    def sample_count(self, instrument: str) -> int:
        state = self._by_instrument.get(instrument)
        return 0 if state is None else int(state.samples)

    def scope_count(self) -> int:
        """Number of live scopes (base + conditioned); never shrinks."""
        return len(self._by_instrument) + len(self._by_scope)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(min_sigma={self.min_sigma})"
