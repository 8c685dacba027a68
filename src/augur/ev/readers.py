"""Trade-stats reader adapters.

``InMemoryTradeStatsReader`` serves pre-built windows (replays, tests).
``DataFrameTradeStatsReader`` derives windows from a closed-trades frame
with columns ``source_tag, instrument, pnl_usdt, holding_ms, closed_at``.
"""

from __future__ import annotations

import logging
from typing import Callable

import pandas as pd

from augur.ev.types import TradeOutcomeSample, TradeOutcomeWindow

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("source_tag", "instrument", "pnl_usdt", "holding_ms", "closed_at")


def _norm_tag(tag: str) -> str:
    return str(tag).strip().lower()


def _norm_instrument(instrument: str) -> str:
    return str(instrument).strip().upper()


class InMemoryTradeStatsReader:
    """Dict-backed reader keyed by (tag, instrument) and by tag."""

    def __init__(self):
        self._local: dict[tuple[str, str], list[TradeOutcomeSample]] = {}
        self._global: dict[str, list[TradeOutcomeSample]] = {}

    def add(self, source_tag: str, instrument: str, sample: TradeOutcomeSample) -> None:
        """Record a sample; it lands in both the local and the global scope."""
        tag = _norm_tag(source_tag)
        self._local.setdefault((tag, _norm_instrument(instrument)), []).append(sample)
        self._global.setdefault(tag, []).append(sample)

    async def load_local_stats(self, source_tag: str, instrument: str, lookback: int) -> TradeOutcomeWindow:
        samples = self._local.get((_norm_tag(source_tag), _norm_instrument(instrument)), [])
        return TradeOutcomeWindow(list(samples[-lookback:]))

    async def load_global_stats(self, source_tag: str, lookback: int) -> TradeOutcomeWindow:
        samples = self._global.get(_norm_tag(source_tag), [])
        return TradeOutcomeWindow(list(samples[-lookback:]))


class DataFrameTradeStatsReader:
    """Serves the most recent ``lookback`` closed trades per scope from a frame."""

    def __init__(
        self,
        trades: pd.DataFrame,
        now: Callable[[], pd.Timestamp] | None = None,
    ):
        missing = [c for c in REQUIRED_COLUMNS if c not in trades.columns]
        if missing:
            raise ValueError(f"trades frame is missing columns: {missing}")
        df = trades.loc[:, list(REQUIRED_COLUMNS)].copy()
        df["closed_at"] = pd.to_datetime(df["closed_at"], utc=True, errors="coerce")
        df["pnl_usdt"] = pd.to_numeric(df["pnl_usdt"], errors="coerce")
        df["holding_ms"] = pd.to_numeric(df["holding_ms"], errors="coerce")
        before = len(df)
        df = df.dropna(subset=["closed_at", "pnl_usdt", "holding_ms"])
        if len(df) < before:
            logger.info("Dropped %d malformed trade rows", before - len(df))
        df["source_tag"] = df["source_tag"].map(_norm_tag)
        df["instrument"] = df["instrument"].map(_norm_instrument)
        self._trades = df.sort_values("closed_at", ascending=False).reset_index(drop=True)
        self._now = now or (lambda: pd.Timestamp.now(tz="UTC"))

    def _window(self, rows: pd.DataFrame, lookback: int) -> TradeOutcomeWindow:
        rows = rows.head(lookback)
        if rows.empty:
            return TradeOutcomeWindow()
        age_days = (self._now() - rows["closed_at"]) / pd.Timedelta(days=1)
        return TradeOutcomeWindow([
            TradeOutcomeSample(age_days=float(age), pnl_usdt=float(pnl), holding_ms=int(hold))
            for age, pnl, hold in zip(age_days, rows["pnl_usdt"], rows["holding_ms"])
        ])

    async def load_local_stats(self, source_tag: str, instrument: str, lookback: int) -> TradeOutcomeWindow:
        df = self._trades
        mask = (df["source_tag"] == _norm_tag(source_tag)) & (df["instrument"] == _norm_instrument(instrument))
        return self._window(df[mask], lookback)

    async def load_global_stats(self, source_tag: str, lookback: int) -> TradeOutcomeWindow:
        df = self._trades
        return self._window(df[df["source_tag"] == _norm_tag(source_tag)], lookback)
