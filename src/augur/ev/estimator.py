"""Bayesian entry-expectancy estimator over historical trade outcomes.

Win and tail-loss probabilities are Beta-Binomial posteriors over
recency-weighted counts. The per-instrument ("local") win posterior is
shrunk toward the strategy-wide ("global") one by ``n_eff / (n_eff + k)``,
and the final EV is penalised by the expected tail loss.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Protocol

from augur.errors import ConfigError, StatsReaderError
from augur.ev.types import (
    EntryExpectancySnapshot,
    ProbabilitySnapshot,
    TradeOutcomeWindow,
    confidence_from_n_eff,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvEstimatorConfig:
    prior_a: float = 6.0
    prior_b: float = 6.0
    tail_prior_a: float = 3.0
    tail_prior_b: float = 7.0
    recency_lambda: float = 0.08
    shrink_k: float = 40.0
    loss_threshold_usdt: float = 15.0
    timeout_ms_default: int = 1_800_000
    gamma_tail_penalty: float = 0.8
    fee_slippage_penalty_usdt: float = 0.0
    prob_model_version: str = "beta-binomial-v1"
    ev_model_version: str = "ev-conservative-v1"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "EvEstimatorConfig":
        if not raw:
            return cls()
        known = {f.name: f for f in fields(cls)}
        unknown = set(raw) - set(known)
        if unknown:
            raise ConfigError(f"unknown ev estimator fields: {sorted(unknown)}")
        values: dict[str, Any] = {}
        for key, value in raw.items():
            default = getattr(cls, key)
            try:
                values[key] = type(default)(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"bad value for ev.{key}: {value!r}") from exc
        return cls(**values)


class TradeStatsReader(Protocol):
    """Source of historical trade outcomes, most recent first."""

    async def load_local_stats(
        self, source_tag: str, instrument: str, lookback: int
    ) -> TradeOutcomeWindow:
        ...

    async def load_global_stats(self, source_tag: str, lookback: int) -> TradeOutcomeWindow:
        ...


def posterior_win_prob(window: TradeOutcomeWindow, recency_lambda: float, prior_a: float, prior_b: float) -> float:
    wins, losses = window.weighted_win_loss(recency_lambda)
    return (prior_a + wins) / max(prior_a + prior_b + wins + losses, 1e-9)


def posterior_tail_prob(
    window: TradeOutcomeWindow,
    recency_lambda: float,
    loss_threshold_usdt: float,
    prior_a: float,
    prior_b: float,
) -> float:
    tail, losses = window.weighted_tail_events(recency_lambda, loss_threshold_usdt)
    return (prior_a + tail) / max(prior_a + prior_b + losses, 1e-9)


def timeout_prob(window: TradeOutcomeWindow, threshold_ms: int) -> float:
    """Unweighted share of trades held past the timeout; 0.5 with no data."""
    if not window.samples:
        return 0.5
    timeouts = sum(1 for s in window.samples if s.holding_ms > threshold_ms)
    return timeouts / len(window.samples)


class EvEstimator:
    """Turns recent realized outcomes into an ``EntryExpectancySnapshot``."""

    def __init__(self, config: EvEstimatorConfig, reader: TradeStatsReader, lookback: int):
        self.config = config
        self.reader = reader
        self.lookback = max(int(lookback), 1)

    async def _load(self, scope: str, source_tag: str, instrument: str | None) -> TradeOutcomeWindow:
        try:
            if instrument is None:
                return await self.reader.load_global_stats(source_tag, self.lookback)
            return await self.reader.load_local_stats(source_tag, instrument, self.lookback)
        except StatsReaderError:
            raise
        except Exception as exc:
            logger.warning(
                "Trade stats reader failed (%s, tag=%s, instrument=%s): %s",
                scope, source_tag, instrument, exc,
            )
            raise StatsReaderError(scope, source_tag, instrument) from exc

    async def estimate_entry_expectancy(
        self,
        source_tag: str,
        instrument: str,
        now_ms: int,
    ) -> EntryExpectancySnapshot:
        cfg = self.config
        local = await self._load("local", source_tag, instrument)
        global_ = await self._load("global", source_tag, None)

        p_win_local = posterior_win_prob(local, cfg.recency_lambda, cfg.prior_a, cfg.prior_b)
        p_win_global = posterior_win_prob(global_, cfg.recency_lambda, cfg.prior_a, cfg.prior_b)
        n_eff = local.n_eff(cfg.recency_lambda)
        alpha = n_eff / (n_eff + max(cfg.shrink_k, 1e-9))
        p_win = alpha * p_win_local + (1.0 - alpha) * p_win_global

        p_tail_loss = posterior_tail_prob(
            local, cfg.recency_lambda, cfg.loss_threshold_usdt, cfg.tail_prior_a, cfg.tail_prior_b
        )
        p_timeout_exit = timeout_prob(local, cfg.timeout_ms_default)
        avg_win, avg_loss = local.weighted_avg_win_loss(cfg.recency_lambda)
        q05_loss = local.q05_loss_abs_usdt()

        ev = p_win * avg_win - (1.0 - p_win) * avg_loss - cfg.fee_slippage_penalty_usdt
        ev_conservative = ev - cfg.gamma_tail_penalty * p_tail_loss * q05_loss

        median = local.median_holding_ms()
        expected_holding_ms = median if median > 0 else max(int(cfg.timeout_ms_default), 1)

        confidence = confidence_from_n_eff(n_eff)
        logger.debug(
            "EV %s/%s: p_win=%.4f n_eff=%.2f ev=%.4f conf=%s",
            source_tag, instrument, p_win, n_eff, ev_conservative, confidence.value,
        )
        return EntryExpectancySnapshot(
            expected_return_usdt=ev_conservative,
            expected_holding_ms=expected_holding_ms,
            worst_case_loss_usdt=q05_loss,
            fee_slippage_penalty_usdt=cfg.fee_slippage_penalty_usdt,
            probability=ProbabilitySnapshot(
                p_win=p_win,
                p_tail_loss=p_tail_loss,
                p_timeout_exit=p_timeout_exit,
                n_eff=n_eff,
                confidence=confidence,
                prob_model_version=cfg.prob_model_version,
            ),
            ev_model_version=cfg.ev_model_version,
            computed_at_ms=int(now_ms),
        )
