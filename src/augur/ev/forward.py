"""Rule-based expectancy for a static stop-loss / reward-to-risk plan.

Used when a strategy has no outcome history yet: the caller supplies its
own win probability and the snapshot is marked low-confidence.
"""

from __future__ import annotations

from augur.core.math import clamp
from augur.ev.estimator import EvEstimatorConfig
from augur.ev.types import ConfidenceLevel, EntryExpectancySnapshot, ProbabilitySnapshot

FORWARD_PROB_MODEL_VERSION = "forward-static-v1"
FORWARD_EV_MODEL_VERSION = "forward-rr-v1"


def estimate_forward_expectancy(
    config: EvEstimatorConfig,
    entry_price: float,
    qty: float,
    stop_loss_pct: float,
    target_rr: float,
    p_win: float,
    max_holding_ms: int,
    now_ms: int,
) -> EntryExpectancySnapshot:
    entry_price = max(entry_price, 0.0)
    qty = abs(qty)
    stop_loss_pct = max(stop_loss_pct, 0.0)
    target_rr = max(target_rr, 0.0)
    p_win = clamp(p_win, 0.0, 1.0)

    risk_usdt = entry_price * stop_loss_pct * qty
    reward_usdt = risk_usdt * target_rr
    ev = p_win * reward_usdt - (1.0 - p_win) * risk_usdt - config.fee_slippage_penalty_usdt

    return EntryExpectancySnapshot(
        expected_return_usdt=ev,
        expected_holding_ms=max(int(max_holding_ms), 1),
        worst_case_loss_usdt=risk_usdt,
        fee_slippage_penalty_usdt=config.fee_slippage_penalty_usdt,
        probability=ProbabilitySnapshot(
            p_win=p_win,
            p_tail_loss=1.0 - p_win,
            p_timeout_exit=0.5,
            n_eff=0.0,
            confidence=ConfidenceLevel.LOW,
            prob_model_version=FORWARD_PROB_MODEL_VERSION,
        ),
        ev_model_version=FORWARD_EV_MODEL_VERSION,
        computed_at_ms=int(now_ms),
    )
