"""Predictor registry: generic spec rows, the default table, model builders.

A ``PredictorSpec`` is the flat, generic configuration row every predictor
id is described by. Each kind re-interprets the generic fields as its own
parameters (e.g. ``phi_clip`` is the RLS forgetting factor for the
regression family and ``kappa`` for the regime family); see
``_FIELD_MAPS``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from augur.errors import ConfigError
from augur.predictors.base import ReturnPredictor
from augur.predictors.regime import (
    MeanRevOuConfig,
    MeanRevOuPredictor,
    MicroRevArConfig,
    MicroRevArPredictor,
    SelfCalibMomConfig,
    SelfCalibMomPredictor,
    VarRatioAdaptConfig,
    VarRatioAdaptPredictor,
    VolScaledMomConfig,
    VolScaledMomPredictor,
)
from augur.predictors.rls import (
    CrossAssetMacroConfig,
    CrossAssetMacroRlsPredictor,
    FeatureRlsConfig,
    FeatureRlsPredictor,
    LinearRlsConfig,
    LinearRlsPredictor,
    TsmomRlsPredictor,
)
from augur.predictors.smoothing import (
    Ar1Config,
    Ar1Predictor,
    EwmaConfig,
    EwmaPredictor,
    HoltConfig,
    HoltPredictor,
    KalmanConfig,
    KalmanPredictor,
)

logger = logging.getLogger(__name__)


class PredictorKind(str, Enum):
    EWMA = "ewma"
    AR1 = "ar1"
    HOLT = "holt"
    KALMAN = "kalman"
    LINEAR_RLS = "linear_rls"
    TSMOM_RLS = "tsmom_rls"
    MEAN_REV_OU = "mean_rev_ou"
    VOL_SCALED_MOM = "vol_scaled_mom"
    VAR_RATIO_ADAPT = "var_ratio_adapt"
    MICRO_REV_AR = "micro_rev_ar"
    SELF_CALIB_MOM = "self_calib_mom"
    FEATURE_RLS = "feature_rls"
    CROSS_ASSET_MACRO_RLS = "cross_asset_macro_rls"


@dataclass(frozen=True)
class PredictorSpec:
    """Generic configuration row shared by all predictor kinds."""

    kind: PredictorKind
    alpha_mean: float = 0.08
    alpha_var: float = 0.08
    min_sigma: float = 0.001
    phi_clip: float = 0.98
    beta_trend: float = 0.08
    process_var: float = 1e-6
    measure_var: float = 1e-4

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["kind"] = self.kind.value
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PredictorSpec":
        if not isinstance(raw, dict):
            raise ConfigError(f"predictor spec must be a mapping, got {type(raw).__name__}")
        data = dict(raw)
        try:
            kind = PredictorKind(str(data.pop("kind")).strip().lower())
        except KeyError:
            raise ConfigError("predictor spec is missing 'kind'") from None
        except ValueError as exc:
            raise ConfigError(f"unknown predictor kind: {exc}") from None
        unknown = set(data) - {f for f in cls.__dataclass_fields__ if f != "kind"}
        if unknown:
            raise ConfigError(f"unknown predictor spec fields: {sorted(unknown)}")
        try:
            values = {k: float(v) for k, v in data.items()}
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"predictor spec values must be numeric: {exc}") from None
        return cls(kind=kind, **values)


# generic spec field -> typed config field, per kind
_FIELD_MAPS: dict[PredictorKind, tuple[type, type, dict[str, str]]] = {
    PredictorKind.EWMA: (EwmaPredictor, EwmaConfig, {
        "alpha_mean": "alpha_mean", "alpha_var": "alpha_var",
    }),
    PredictorKind.AR1: (Ar1Predictor, Ar1Config, {
        "alpha_mean": "alpha_mean", "alpha_var": "alpha_var", "phi_clip": "phi_clip",
    }),
    PredictorKind.HOLT: (HoltPredictor, HoltConfig, {
        "alpha_mean": "alpha_mean", "beta_trend": "beta_trend", "alpha_var": "alpha_var",
    }),
    PredictorKind.KALMAN: (KalmanPredictor, KalmanConfig, {
        "process_var": "process_var", "measure_var": "measure_var",
    }),
    PredictorKind.LINEAR_RLS: (LinearRlsPredictor, LinearRlsConfig, {
        "alpha_mean": "alpha_fast", "beta_trend": "alpha_slow", "alpha_var": "alpha_vol",
        "phi_clip": "forgetting", "process_var": "ridge",
    }),
    PredictorKind.TSMOM_RLS: (TsmomRlsPredictor, LinearRlsConfig, {
        "alpha_mean": "alpha_fast", "beta_trend": "alpha_slow", "alpha_var": "alpha_vol",
        "phi_clip": "forgetting", "process_var": "ridge",
    }),
    PredictorKind.MEAN_REV_OU: (MeanRevOuPredictor, MeanRevOuConfig, {
        "alpha_mean": "alpha_level", "alpha_var": "alpha_var", "phi_clip": "kappa",
        "beta_trend": "z_clip",
    }),
    PredictorKind.VOL_SCALED_MOM: (VolScaledMomPredictor, VolScaledMomConfig, {
        "alpha_mean": "alpha_fast", "process_var": "alpha_slow", "alpha_var": "alpha_vol",
        "phi_clip": "kappa", "beta_trend": "signal_clip",
    }),
    PredictorKind.VAR_RATIO_ADAPT: (VarRatioAdaptPredictor, VarRatioAdaptConfig, {
        "alpha_mean": "alpha_fast_var", "alpha_var": "alpha_slow_var",
        "process_var": "alpha_trend", "phi_clip": "kappa", "beta_trend": "regime_clip",
    }),
    PredictorKind.MICRO_REV_AR: (MicroRevArPredictor, MicroRevArConfig, {
        "alpha_mean": "alpha", "phi_clip": "phi_max",
    }),
    PredictorKind.SELF_CALIB_MOM: (SelfCalibMomPredictor, SelfCalibMomConfig, {
        "alpha_mean": "alpha_fast", "beta_trend": "alpha_slow", "alpha_var": "alpha_var",
        "process_var": "alpha_calib",
    }),
    PredictorKind.FEATURE_RLS: (FeatureRlsPredictor, FeatureRlsConfig, {
        "alpha_mean": "alpha_fast", "beta_trend": "alpha_slow", "alpha_var": "alpha_var",
        "phi_clip": "forgetting", "process_var": "ridge", "measure_var": "pred_clip",
    }),
    PredictorKind.CROSS_ASSET_MACRO_RLS: (CrossAssetMacroRlsPredictor, CrossAssetMacroConfig, {
        "alpha_mean": "alpha_factor", "alpha_var": "alpha_resid", "phi_clip": "forgetting",
        "process_var": "ridge", "measure_var": "pred_clip",
    }),
}


def build_predictor(spec: PredictorSpec) -> ReturnPredictor:
    """Instantiate one predictor from a generic spec row."""
    try:
        model_cls, config_cls, fields = _FIELD_MAPS[spec.kind]
    except KeyError:
        raise ConfigError(f"unsupported predictor kind: {spec.kind!r}") from None
    kwargs = {target: getattr(spec, source) for source, target in fields.items()}
    kwargs["min_sigma"] = spec.min_sigma
    return model_cls(config_cls(**kwargs))


def build_predictor_models(
    specs: list[tuple[str, PredictorSpec]],
) -> dict[str, ReturnPredictor]:
    """Build one model per predictor id, preserving spec order."""
    models: dict[str, ReturnPredictor] = {}
    for predictor_id, spec in specs:
        if predictor_id in models:
            raise ConfigError(f"duplicate predictor id: {predictor_id}")
        models[predictor_id] = build_predictor(spec)
    logger.info("Built %d predictor models", len(models))
    return models


def default_predictor_horizons() -> list[tuple[str, int]]:
    """Evaluation horizons as (label, milliseconds)."""
    return [("1m", 60_000), ("3m", 180_000), ("5m", 300_000)]


def default_predictor_specs(base: EwmaConfig | None = None) -> list[tuple[str, PredictorSpec]]:
    """The production predictor table; ``base`` supplies the baseline EWMA."""
    base = base or EwmaConfig()
    K = PredictorKind
    smooth = PredictorSpec(K.EWMA, min_sigma=base.min_sigma, phi_clip=0.98,
                           beta_trend=0.08, process_var=1e-6, measure_var=1e-4)
    rls = PredictorSpec(K.LINEAR_RLS, alpha_mean=0.20, alpha_var=0.10, min_sigma=base.min_sigma,
                        phi_clip=0.995, beta_trend=0.05, process_var=1e-2, measure_var=0.0)
    regime = PredictorSpec(K.MEAN_REV_OU, min_sigma=base.min_sigma, process_var=0.0,
                           measure_var=0.0)

    def row(template: PredictorSpec, kind: PredictorKind, **fields: float) -> PredictorSpec:
        return replace(template, kind=kind, **fields)

    base_alphas = {"alpha_mean": base.alpha_mean, "alpha_var": base.alpha_var}
    return [
        ("ewma-fast-v1", row(smooth, K.EWMA, alpha_mean=0.18, alpha_var=0.18)),
        ("ewma-v1", row(smooth, K.EWMA, **base_alphas)),
        ("ewma-slow-v1", row(smooth, K.EWMA, alpha_mean=0.03, alpha_var=0.03, beta_trend=0.04)),
        ("ar1-v1", row(smooth, K.AR1, **base_alphas)),
        ("ar1-fast-v1", row(smooth, K.AR1, alpha_mean=0.18, alpha_var=0.18)),
        ("holt-v1", row(smooth, K.HOLT, **base_alphas)),
        ("holt-fast-v1", row(smooth, K.HOLT, alpha_mean=0.20, alpha_var=0.18, beta_trend=0.15)),
        ("kalman-v1", row(smooth, K.KALMAN, **base_alphas)),
        ("lin-ind-v1", row(rls, K.LINEAR_RLS)),
        ("tsmom-rls-v1", row(rls, K.TSMOM_RLS)),
        ("ou-revert-v1", row(regime, K.MEAN_REV_OU, alpha_mean=0.002, alpha_var=0.05,
                             phi_clip=0.02, beta_trend=3.0)),
        ("ou-revert-fast-v1", row(regime, K.MEAN_REV_OU, alpha_mean=0.008, alpha_var=0.05,
                                  phi_clip=0.035, beta_trend=3.0)),
        ("volmom-v1", row(regime, K.VOL_SCALED_MOM, alpha_mean=0.10, alpha_var=0.05,
                          phi_clip=0.015, beta_trend=3.0, process_var=0.02)),
        ("volmom-fast-v1", row(regime, K.VOL_SCALED_MOM, alpha_mean=0.20, alpha_var=0.08,
                               phi_clip=0.025, beta_trend=3.0, process_var=0.04)),
        ("varratio-v1", row(regime, K.VAR_RATIO_ADAPT, alpha_mean=0.15, alpha_var=0.02,
                            phi_clip=0.015, beta_trend=1.0, process_var=0.06)),
        ("varratio-fast-v1", row(regime, K.VAR_RATIO_ADAPT, alpha_mean=0.25, alpha_var=0.04,
                                 phi_clip=0.025, beta_trend=1.0, process_var=0.10)),
        ("microrev-v1", row(regime, K.MICRO_REV_AR, alpha_mean=0.04, alpha_var=0.04,
                            phi_clip=0.15, beta_trend=0.0)),
        ("microrev-fast-v1", row(regime, K.MICRO_REV_AR, alpha_mean=0.10, alpha_var=0.10,
                                 phi_clip=0.15, beta_trend=0.0)),
        ("selfcalib-v1", row(regime, K.SELF_CALIB_MOM, alpha_mean=0.12, alpha_var=0.05,
                             phi_clip=0.0, beta_trend=0.03, process_var=0.03)),
        ("selfcalib-fast-v1", row(regime, K.SELF_CALIB_MOM, alpha_mean=0.20, alpha_var=0.08,
                                  phi_clip=0.0, beta_trend=0.05, process_var=0.05)),
        ("feat-rls-v1", row(regime, K.FEATURE_RLS, alpha_mean=0.12, alpha_var=0.04,
                            phi_clip=0.998, beta_trend=0.02, process_var=0.05, measure_var=3.0)),
        ("feat-rls-robust-v1", row(regime, K.FEATURE_RLS, alpha_mean=0.08, alpha_var=0.03,
                                   phi_clip=0.999, beta_trend=0.015, process_var=0.08,
                                   measure_var=2.2)),
        ("feat-rls-fast-v1", row(regime, K.FEATURE_RLS, alpha_mean=0.20, alpha_var=0.08,
                                 phi_clip=0.996, beta_trend=0.04, process_var=0.05,
                                 measure_var=3.0)),
        ("xasset-macro-rls-v1", row(regime, K.CROSS_ASSET_MACRO_RLS, alpha_mean=0.10,
                                    alpha_var=0.08, phi_clip=0.998, beta_trend=0.02,
                                    process_var=0.05, measure_var=2.5)),
    ]

