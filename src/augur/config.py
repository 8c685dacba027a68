"""YAML configuration for the prediction and EV core.

Every section is optional; anything omitted falls back to the built-in
defaults (the production predictor table, 1m/3m/5m horizons, the default
EV estimator settings).

Example::

    predictors:
      ewma-v1: {kind: ewma, alpha_mean: 0.08, alpha_var: 0.08}
    horizons:
      1m: 60000
    ev:
      lookback: 200
      shrink_k: 40
    metrics:
      window: 1200
      r2_min_samples: 60
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from augur.errors import ConfigError
from augur.ev.estimator import EvEstimatorConfig
from augur.evaluation.online_metrics import (
    PREDICTOR_METRIC_WINDOW,
    PREDICTOR_R2_MIN_SAMPLES,
    PREDICTOR_WINDOW_MAX,
)
from augur.predictors.registry import (
    PredictorSpec,
    default_predictor_horizons,
    default_predictor_specs,
)

logger = logging.getLogger(__name__)

DEFAULT_EV_LOOKBACK = 200


@dataclass(frozen=True)
class MetricsConfig:
    window: int = PREDICTOR_METRIC_WINDOW
    r2_min_samples: int = PREDICTOR_R2_MIN_SAMPLES

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "MetricsConfig":
        raw = raw or {}
        try:
            window = int(raw.get("window", PREDICTOR_METRIC_WINDOW))
            r2_min = int(raw.get("r2_min_samples", PREDICTOR_R2_MIN_SAMPLES))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"bad metrics section: {exc}") from exc
        return cls(window=min(max(window, 2), PREDICTOR_WINDOW_MAX), r2_min_samples=max(r2_min, 1))


@dataclass
class CoreConfig:
    predictors: list[tuple[str, PredictorSpec]] = field(default_factory=default_predictor_specs)
    horizons: list[tuple[str, int]] = field(default_factory=default_predictor_horizons)
    ev: EvEstimatorConfig = field(default_factory=EvEstimatorConfig)
    ev_lookback: int = DEFAULT_EV_LOOKBACK
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "CoreConfig":
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ConfigError("config root must be a mapping")
        unknown = set(raw) - {"predictors", "horizons", "ev", "metrics"}
        if unknown:
            raise ConfigError(f"unknown config sections: {sorted(unknown)}")

        predictors = default_predictor_specs()
        if raw.get("predictors") is not None:
            section = raw["predictors"]
            if not isinstance(section, dict):
                raise ConfigError("'predictors' must map predictor ids to specs")
            predictors = [(str(pid), PredictorSpec.from_dict(spec)) for pid, spec in section.items()]

        horizons = default_predictor_horizons()
        if raw.get("horizons") is not None:
            section = raw["horizons"]
            if not isinstance(section, dict):
                raise ConfigError("'horizons' must map labels to milliseconds")
            try:
                horizons = [(str(label), int(ms)) for label, ms in section.items()]
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"bad horizon: {exc}") from exc
            if any(ms <= 0 for _, ms in horizons):
                raise ConfigError("horizons must be positive")

        ev_raw = dict(raw.get("ev") or {})
        try:
            lookback = int(ev_raw.pop("lookback", DEFAULT_EV_LOOKBACK))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"bad ev.lookback: {exc}") from exc

        return cls(
            predictors=predictors,
            horizons=horizons,
            ev=EvEstimatorConfig.from_dict(ev_raw),
            ev_lookback=max(lookback, 1),
            metrics=MetricsConfig.from_dict(raw.get("metrics")),
        )

    def predictor_ids(self) -> list[str]:
        return [pid for pid, _ in self.predictors]


def load_core_config(path: str | Path) -> CoreConfig:
    p = Path(path)
    try:
        with open(p, encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config {p}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {p}: {exc}") from exc
    cfg = CoreConfig.from_dict(raw)
    logger.info("Loaded %d predictors and %d horizons from %s", len(cfg.predictors), len(cfg.horizons), p)
    return cfg
