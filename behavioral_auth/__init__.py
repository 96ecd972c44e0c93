"""Behavioral anomaly-detection authentication engine."""

from .config import Settings, get_settings
from .errors import (
    AggregationError,
    AuthError,
    BiometricAuthError,
    CorruptModelError,
    DegenerateFeatureSetError,
    DimensionMismatchError,
    EmptyFrameSetError,
    InsufficientSamplesError,
    InvalidFrameError,
    MatchError,
    MissingMfccError,
    ModelNotFoundError,
    TrainingError,
    UnknownModelTypeError
)

__version__ = "1.0.0"

__all__ = [
    "Settings",
    "get_settings",
    "AggregationError",
    "AuthError",
    "BiometricAuthError",
    "CorruptModelError",
    "DegenerateFeatureSetError",
    "DimensionMismatchError",
    "EmptyFrameSetError",
    "InsufficientSamplesError",
    "InvalidFrameError",
    "MatchError",
    "MissingMfccError",
    "ModelNotFoundError",
    "TrainingError",
    "UnknownModelTypeError",
    "__version__"
]
