"""Online return-distribution predictors."""

from augur.predictors.base import ReturnEstimate, ReturnPredictor, Side, scoped_side_key
from augur.predictors.registry import (
    PredictorKind,
    PredictorSpec,
    build_predictor,
    build_predictor_models,
    default_predictor_horizons,
    default_predictor_specs,
)
from augur.predictors.regime import (
    MeanRevOuPredictor,
    MicroRevArPredictor,
    SelfCalibMomPredictor,
    VarRatioAdaptPredictor,
    VolScaledMomPredictor,
)
from augur.predictors.rls import (
    CrossAssetMacroRlsPredictor,
    FeatureRlsPredictor,
    LinearRlsPredictor,
    RecursiveLeastSquares,
    TsmomRlsPredictor,
)
from augur.predictors.smoothing import (
    Ar1Predictor,
    EwmaConfig,
    EwmaPredictor,
    HoltPredictor,
    KalmanPredictor,
)

__all__ = [
    "Ar1Predictor",
    "CrossAssetMacroRlsPredictor",
    "EwmaConfig",
    "EwmaPredictor",
    "FeatureRlsPredictor",
    "HoltPredictor",
    "KalmanPredictor",
    "LinearRlsPredictor",
    "MeanRevOuPredictor",
    "MicroRevArPredictor",
    "PredictorKind",
    "PredictorSpec",
    "RecursiveLeastSquares",
    "ReturnEstimate",
    "ReturnPredictor",
    "SelfCalibMomPredictor",
    "Side",
    "TsmomRlsPredictor",
    "VarRatioAdaptPredictor",
    "VolScaledMomPredictor",
    "build_predictor",
    "build_predictor_models",
    "default_predictor_horizons",
    "default_predictor_specs",
    "scoped_side_key",
]
