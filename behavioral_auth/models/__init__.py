"""Data models for the behavioral authentication engine."""

from .internal_models import (
    Decision,
    EnrollmentResult,
    NormalizationParams,
    TrainingSample,
    VoiceMatchResult,
    VoiceMetricDetails,
    VoiceVerificationResult
)
from .profile_models import (
    AutoencoderModel,
    AutoencoderWeights,
    MseStats,
    NormalizationParamsModel,
    StatisticalModel,
    StoredModel,
    TrainingStats,
    VoiceFrameFeatures,
    VoiceSessionProfile,
    parse_stored_model
)

__all__ = [
    "Decision",
    "EnrollmentResult",
    "NormalizationParams",
    "TrainingSample",
    "VoiceMatchResult",
    "VoiceMetricDetails",
    "VoiceVerificationResult",
    "AutoencoderModel",
    "AutoencoderWeights",
    "MseStats",
    "NormalizationParamsModel",
    "StatisticalModel",
    "StoredModel",
    "TrainingStats",
    "VoiceFrameFeatures",
    "VoiceSessionProfile",
    "parse_stored_model"
]
