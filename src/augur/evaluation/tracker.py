"""Per-scope bookkeeping of predictions awaiting their horizon."""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass

import pandas as pd

from augur.core.math import is_valid_price
from augur.evaluation.online_metrics import (
    PREDICTOR_METRIC_WINDOW,
    PREDICTOR_R2_MIN_SAMPLES,
    OnlinePredictorMetrics,
    parse_predictor_metrics_scope_key,
)
from augur.predictors.base import ReturnEstimate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingPrediction:
    due_ms: int
    base_price: float
    mu: float
    norm_scale: float = 1.0


class PredictorMetricsBook:
    """Schedules horizon-ahead predictions and scores them once due.

    Scopes are metrics scope keys (``SYMBOL::market::predictor::horizon``).
    Predictions within a scope are resolved in due-time order.
    """

    def __init__(self, window: int = PREDICTOR_METRIC_WINDOW, r2_min_samples: int = PREDICTOR_R2_MIN_SAMPLES):
        self.window = window
        self.r2_min_samples = r2_min_samples
        self._pending: dict[str, deque[PendingPrediction]] = {}
        self._metrics: dict[str, OnlinePredictorMetrics] = {}

    def metrics(self, scope_key: str) -> OnlinePredictorMetrics:
        m = self._metrics.get(scope_key)
        if m is None:
            m = self._metrics[scope_key] = OnlinePredictorMetrics(self.window, self.r2_min_samples)
        return m

    def pending_count(self, scope_key: str) -> int:
        return len(self._pending.get(scope_key, ()))

    def schedule(
        self,
        scope_key: str,
        now_ms: int,
        horizon_ms: int,
        base_price: float,
        estimate: ReturnEstimate,
        norm_scale: float = 1.0,
    ) -> PendingPrediction | None:
        if not is_valid_price(base_price) or not math.isfinite(estimate.mu):
            return None
        if not math.isfinite(norm_scale) or norm_scale <= 0.0:
            norm_scale = 1.0
        pending = PendingPrediction(
            due_ms=int(now_ms) + max(int(horizon_ms), 0),
            base_price=float(base_price),
            mu=float(estimate.mu),
            norm_scale=float(norm_scale),
        )
        queue = self._pending.setdefault(scope_key, deque())
        if queue and queue[-1].due_ms > pending.due_ms:
            # out-of-order schedule; keep the queue sorted by due time
            items = sorted([*queue, pending], key=lambda p: p.due_ms)
            queue.clear()
            queue.extend(items)
        else:
            queue.append(pending)
        return pending

    def resolve_due(self, scope_key: str, price: float, now_ms: int) -> int:
        """Score every prediction in ``scope_key`` that is due at ``now_ms``."""
        queue = self._pending.get(scope_key)
        if not queue or not is_valid_price(price):
            return 0
        metrics = self.metrics(scope_key)
        resolved = 0
        while queue and queue[0].due_ms <= now_ms:
            p = queue.popleft()
            actual = math.log(price / p.base_price) / p.norm_scale
            metrics.observe(actual, p.mu / p.norm_scale)
            resolved += 1
        if resolved:
            logger.debug("Resolved %d predictions for %s", resolved, scope_key)
        return resolved

    def summary_frame(self) -> pd.DataFrame:
        rows = []
        for key, m in sorted(self._metrics.items()):
            parsed = parse_predictor_metrics_scope_key(key)
            symbol, market, predictor, horizon = parsed if parsed else (key, "", "", "")
            rows.append({
                "scope_key": key,
                "symbol": symbol,
                "market": market,
                "predictor": predictor,
                "horizon": horizon,
                **m.summary(),
            })
        columns = ["scope_key", "symbol", "market", "predictor", "horizon", "samples", "mae", "hit_rate", "r2"]
        return pd.DataFrame(rows, columns=columns)
