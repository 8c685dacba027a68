"""Offline replay of a close series through a set of predictors."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from augur.core.math import is_valid_price
from augur.evaluation.online_metrics import MarketKind, predictor_metrics_scope_key
from augur.evaluation.tracker import PredictorMetricsBook
from augur.predictors.base import ReturnPredictor

logger = logging.getLogger(__name__)


def load_closes(path, column: str = "close", timestamp_column: str | None = "timestamp") -> pd.DataFrame:
    """Read a CSV into a frame with ``ts_ms`` and ``close`` columns."""
    df = pd.read_csv(path)
    if column not in df.columns:
        raise ValueError(f"column {column!r} not found in {path}")
    out = pd.DataFrame({"close": pd.to_numeric(df[column], errors="coerce")})
    if timestamp_column and timestamp_column in df.columns:
        ts = pd.to_datetime(df[timestamp_column], utc=True, errors="coerce")
        out["ts_ms"] = (ts - pd.Timestamp(0, tz="UTC")) // pd.Timedelta(milliseconds=1)
    out = out.dropna(subset=["close"]).reset_index(drop=True)
    return out


def replay_closes(
    models: dict[str, ReturnPredictor],
    closes: pd.DataFrame,
    horizons: list[tuple[str, int]],
    symbol: str = "REPLAY",
    market: MarketKind = MarketKind.SPOT,
    bar_ms: int = 60_000,
    volnorm: bool = False,
    book: PredictorMetricsBook | None = None,
) -> PredictorMetricsBook:
    """Feed closes in order; each bar resolves due forecasts, then schedules new ones.

    Without a ``ts_ms`` column, bars are assumed ``bar_ms`` apart. With
    ``volnorm`` both sides of every scored pair are divided by the sigma the
    predictor reported when the forecast was made.
    """
    book = book or PredictorMetricsBook()
    if "ts_ms" in closes.columns:
        ts = closes["ts_ms"].to_numpy(dtype=float)
    else:
        ts = np.arange(len(closes), dtype=float) * float(bar_ms)
    prices = closes["close"].to_numpy(dtype=float)

    keys = {
        (pid, label): predictor_metrics_scope_key(symbol, market, pid, label)
        for pid in models
        for label, _ in horizons
    }
    skipped = 0
    for now, price in zip(ts, prices):
        if not np.isfinite(now) or not is_valid_price(price):
            skipped += 1
            continue
        now_ms = int(now)
        for pid, model in models.items():
            for label, _ in horizons:
                book.resolve_due(keys[(pid, label)], price, now_ms)
            model.observe_price(symbol, price)
            est = model.estimate_base(symbol)
            for label, horizon_ms in horizons:
                book.schedule(
                    keys[(pid, label)], now_ms, horizon_ms, price, est,
                    norm_scale=est.sigma if volnorm else 1.0,
                )
    if skipped:
        logger.info("Skipped %d unusable bars", skipped)
    return book
