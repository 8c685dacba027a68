"""Online predictor evaluation."""

from augur.evaluation.online_metrics import (
    PREDICTOR_METRIC_WINDOW,
    PREDICTOR_R2_MIN_SAMPLES,
    MarketKind,
    OnlinePredictorMetrics,
    backfill_predictor_metrics_from_closes,
    backfill_predictor_metrics_from_closes_volnorm,
    parse_predictor_metrics_scope_key,
    predictor_metrics_scope_key,
    stride_closes,
)
from augur.evaluation.replay import load_closes, replay_closes
from augur.evaluation.tracker import PendingPrediction, PredictorMetricsBook

__all__ = [
    "PREDICTOR_METRIC_WINDOW",
    "PREDICTOR_R2_MIN_SAMPLES",
    "MarketKind",
    "OnlinePredictorMetrics",
    "PendingPrediction",
    "PredictorMetricsBook",
    "backfill_predictor_metrics_from_closes",
    "backfill_predictor_metrics_from_closes_volnorm",
    "parse_predictor_metrics_scope_key",
    "load_closes",
    "predictor_metrics_scope_key",
    "replay_closes",
    "stride_closes",
]
