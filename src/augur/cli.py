from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Optional

import typer

from augur.config import CoreConfig, load_core_config
from augur.errors import ConfigError
from augur.evaluation.online_metrics import (
    MarketKind,
    backfill_predictor_metrics_from_closes,
    backfill_predictor_metrics_from_closes_volnorm,
    stride_closes,
)
from augur.evaluation.replay import load_closes, replay_closes
from augur.evaluation.tracker import PredictorMetricsBook
from augur.predictors.registry import build_predictor_models

app = typer.Typer(help="Score return-distribution predictors on historical closes")

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _fmt(value: Optional[float]) -> str:
    if value is None or not math.isfinite(value):
        return "-"
    return f"{value:.6f}"


@app.command()
def score(
    csv_path: Path = typer.Argument(..., help="CSV with a close column"),
    column: str = typer.Option("close", help="Close price column"),
    timestamp_column: str = typer.Option("timestamp", help="Timestamp column (optional in the file)"),
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="YAML core config"),
    predictor: Optional[List[str]] = typer.Option(None, help="Predictor id to score (repeatable)"),
    symbol: str = typer.Option("REPLAY", help="Instrument name used for scoping"),
    futures: bool = typer.Option(False, help="Label scopes as futures instead of spot"),
    bar_ms: int = typer.Option(60_000, help="Bar spacing when the file has no timestamps"),
    stride: int = typer.Option(1, help="Keep every N-th bar"),
    window: Optional[int] = typer.Option(None, help="Metrics window (overrides config)"),
    volnorm: bool = typer.Option(False, help="Normalise scored pairs by predicted sigma"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Replay closes through the configured predictors and print per-horizon metrics."""
    _setup_logging(log_level)
    try:
        cfg = load_core_config(config) if config else CoreConfig()
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    specs = cfg.predictors
    if predictor:
        wanted = set(predictor)
        missing = wanted - set(cfg.predictor_ids())
        if missing:
            raise typer.BadParameter(f"unknown predictor ids: {sorted(missing)}")
        specs = [(pid, spec) for pid, spec in specs if pid in wanted]

    closes = load_closes(csv_path, column=column, timestamp_column=timestamp_column)
    if stride > 1:
        closes = closes.iloc[::stride].reset_index(drop=True)
        if "ts_ms" not in closes.columns:
            bar_ms *= stride
    logger.info("Replaying %d bars through %d predictors", len(closes), len(specs))

    book = PredictorMetricsBook(window or cfg.metrics.window, cfg.metrics.r2_min_samples)
    replay_closes(
        build_predictor_models(specs),
        closes,
        cfg.horizons,
        symbol=symbol,
        market=MarketKind.FUTURES if futures else MarketKind.SPOT,
        bar_ms=bar_ms,
        volnorm=volnorm,
        book=book,
    )
    frame = book.summary_frame()
    if frame.empty:
        typer.echo("No predictions resolved")
        return
    for row in frame.itertuples(index=False):
        typer.echo(
            f"{row.predictor:<22} {row.horizon:>4}  n={row.samples:<6} "
            f"mae={_fmt(row.mae)} hit={_fmt(row.hit_rate)} r2={_fmt(row.r2)}"
        )


@app.command()
def baseline(
    csv_path: Path = typer.Argument(..., help="CSV with a close column"),
    column: str = typer.Option("close", help="Close price column"),
    alpha_mean: float = typer.Option(0.08, help="EWMA mean smoothing"),
    alpha_var: float = typer.Option(0.08, help="EWMA variance smoothing (volnorm only)"),
    min_sigma: float = typer.Option(0.001, help="Sigma floor (volnorm only)"),
    window: int = typer.Option(1200, help="Metrics window"),
    stride: int = typer.Option(1, help="Keep every N-th close"),
    volnorm: bool = typer.Option(False, help="Score in units of running sigma"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """Score the EWMA-mean baseline used to warm up live metrics."""
    _setup_logging(log_level)
    closes = stride_closes(load_closes(csv_path, column=column, timestamp_column=None)["close"].tolist(), stride)
    if volnorm:
        metrics = backfill_predictor_metrics_from_closes_volnorm(closes, alpha_mean, alpha_var, min_sigma, window)
    else:
        metrics = backfill_predictor_metrics_from_closes(closes, alpha_mean, window)
    summary = metrics.summary()
    typer.echo(
        f"baseline n={summary['samples']} mae={_fmt(summary['mae'])} "
        f"hit={_fmt(summary['hit_rate'])} r2={_fmt(summary['r2'])}"
    )


if __name__ == "__main__":
    app()
