"""Trade expected-value models."""

from augur.ev.estimator import EvEstimator, EvEstimatorConfig, TradeStatsReader
from augur.ev.forward import estimate_forward_expectancy
from augur.ev.price_model import (
    EvStats,
    FuturesEvInputs,
    PositionSide,
    SpotEvInputs,
    futures_ev_from_return_estimate,
    spot_ev_from_return_estimate,
)
from augur.ev.readers import DataFrameTradeStatsReader, InMemoryTradeStatsReader
from augur.ev.types import (
    ConfidenceLevel,
    EntryExpectancySnapshot,
    ProbabilitySnapshot,
    TradeOutcomeSample,
    TradeOutcomeWindow,
    recency_weight,
)

__all__ = [
    "ConfidenceLevel",
    "DataFrameTradeStatsReader",
    "EntryExpectancySnapshot",
    "EvEstimator",
    "EvEstimatorConfig",
    "EvStats",
    "FuturesEvInputs",
    "InMemoryTradeStatsReader",
    "PositionSide",
    "ProbabilitySnapshot",
    "SpotEvInputs",
    "TradeOutcomeSample",
    "TradeOutcomeWindow",
    "TradeStatsReader",
    "estimate_forward_expectancy",
    "futures_ev_from_return_estimate",
    "recency_weight",
    "spot_ev_from_return_estimate",
]
