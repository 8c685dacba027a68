"""Trade-outcome windows and the expectancy snapshot types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

import numpy as np

from augur.core.math import EPS, nearest_rank


class ConfidenceLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def recency_weight(age_days: float, recency_lambda: float) -> float:
    """exp(-lambda * age) with both terms clipped at zero."""
    return math.exp(-max(recency_lambda, 0.0) * max(age_days, 0.0))


@dataclass(frozen=True)
class TradeOutcomeSample:
    """One closed trade: its age, realized P&L and holding time."""

    age_days: float
    pnl_usdt: float
    holding_ms: int


@dataclass
class TradeOutcomeWindow:
    """Ordered sequence of closed-trade outcomes with recency-weighted queries."""

    samples: list[TradeOutcomeSample] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "TradeOutcomeWindow":
        return cls([
            TradeOutcomeSample(
                age_days=float(r["age_days"]),
                pnl_usdt=float(r["pnl_usdt"]),
                holding_ms=int(r["holding_ms"]),
            )
            for r in records
        ])

    def __len__(self) -> int:
        return len(self.samples)

    def _weights(self, recency_lambda: float) -> list[float]:
        return [recency_weight(s.age_days, recency_lambda) for s in self.samples]

    def n_eff(self, recency_lambda: float) -> float:
        return float(sum(self._weights(recency_lambda)))

    def weighted_win_loss(self, recency_lambda: float) -> tuple[float, float]:
        """Weighted (wins, losses); break-even trades count as neither."""
        wins = losses = 0.0
        for s, w in zip(self.samples, self._weights(recency_lambda)):
            if s.pnl_usdt > 0.0:
                wins += w
            elif s.pnl_usdt < 0.0:
                losses += w
        return wins, losses

    def weighted_tail_events(self, recency_lambda: float, loss_threshold_usdt: float) -> tuple[float, float]:
        """Weighted (tail losses, all losses) over losing trades only."""
        tail = losses = 0.0
        for s, w in zip(self.samples, self._weights(recency_lambda)):
            if s.pnl_usdt >= 0.0:
                continue
            losses += w
            if s.pnl_usdt <= -loss_threshold_usdt:
                tail += w
        return tail, losses

    def weighted_avg_win_loss(self, recency_lambda: float) -> tuple[float, float]:
        """Weighted mean win and mean absolute loss (0 when a side is empty)."""
        win_sum = win_w = loss_sum = loss_w = 0.0
        for s, w in zip(self.samples, self._weights(recency_lambda)):
            if s.pnl_usdt > 0.0:
                win_sum += s.pnl_usdt * w
                win_w += w
            elif s.pnl_usdt < 0.0:
                loss_sum += abs(s.pnl_usdt) * w
                loss_w += w
        avg_win = win_sum / win_w if win_w > EPS else 0.0
        avg_loss = loss_sum / loss_w if loss_w > EPS else 0.0
        return avg_win, avg_loss

    def median_holding_ms(self) -> int:
        """Upper median of holding times; 0 for an empty window."""
        if not self.samples:
            return 0
        values = sorted(s.holding_ms for s in self.samples)
        return int(values[len(values) // 2])

    def q05_loss_abs_usdt(self) -> float:
        losses = np.sort(np.array([abs(s.pnl_usdt) for s in self.samples if s.pnl_usdt < 0.0]))
        return nearest_rank(losses, 0.05)


@dataclass(frozen=True)
class ProbabilitySnapshot:
    p_win: float
    p_tail_loss: float
    p_timeout_exit: float
    n_eff: float
    confidence: ConfidenceLevel
    prob_model_version: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "p_win": round(float(self.p_win), 6),
            "p_tail_loss": round(float(self.p_tail_loss), 6),
            "p_timeout_exit": round(float(self.p_timeout_exit), 6),
            "n_eff": round(float(self.n_eff), 4),
            "confidence": self.confidence.value,
            "prob_model_version": self.prob_model_version,
        }


@dataclass(frozen=True)
class EntryExpectancySnapshot:
    """Versioned entry expectancy consumed by trade gating and dashboards."""

    expected_return_usdt: float
    expected_holding_ms: int
    worst_case_loss_usdt: float
    fee_slippage_penalty_usdt: float
    probability: ProbabilitySnapshot
    ev_model_version: str
    computed_at_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_return_usdt": round(float(self.expected_return_usdt), 6),
            "expected_holding_ms": int(self.expected_holding_ms),
            "worst_case_loss_usdt": round(float(self.worst_case_loss_usdt), 6),
            "fee_slippage_penalty_usdt": round(float(self.fee_slippage_penalty_usdt), 6),
            "probability": self.probability.to_dict(),
            "ev_model_version": self.ev_model_version,
            "computed_at_ms": int(self.computed_at_ms),
        }


def confidence_from_n_eff(n_eff: float) -> ConfidenceLevel:
    if n_eff >= 80.0:
        return ConfidenceLevel.HIGH
    if n_eff >= 20.0:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
