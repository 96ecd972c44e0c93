"""Internal data models for the behavioral authentication engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class TrainingSample:
    """One enrollment sample for an identity."""

    features: List[float]
    sample_index: int = 0
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw_events: Optional[List[Dict[str, Any]]] = None  # Dropped when privacy mode is on

    def __post_init__(self):
        """Coerce features to floats and reject empty vectors."""
        self.features = [float(v) for v in self.features]
        if not self.features:
            raise ValueError("Training sample must contain at least one feature")

    def to_dict(self, include_raw: bool = True) -> Dict[str, Any]:
        data = {
            "sampleId": self.sample_index,
            "timestamp": self.captured_at.isoformat(),
            "features": list(self.features),
        }
        if include_raw and self.raw_events is not None:
            data["rawKeystrokes"] = self.raw_events
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrainingSample":
        return cls(
            features=data["features"],
            sample_index=data.get("sampleId", 0),
            captured_at=datetime.fromisoformat(data["timestamp"].replace('Z', '+00:00')),
            raw_events=data.get("rawKeystrokes"),
        )


@dataclass
class NormalizationParams:
    """Per-feature min/max scaling parameters."""

    min: np.ndarray
    max: np.ndarray

    def __post_init__(self):
        """Validate shapes and ordering after initialization."""
        self.min = np.asarray(self.min, dtype=np.float64)
        self.max = np.asarray(self.max, dtype=np.float64)
        if self.min.shape != self.max.shape or self.min.ndim != 1:
            raise ValueError(
                f"min/max must be 1-D arrays of equal length, got {self.min.shape} and {self.max.shape}"
            )
        if np.any(self.max < self.min):
            raise ValueError("Normalization max must be >= min for every feature")

    @property
    def dimension(self) -> int:
        return int(self.min.shape[0])

    def to_dict(self) -> Dict[str, List[float]]:
        return {"min": self.min.tolist(), "max": self.max.tolist()}


@dataclass
class Decision:
    """Outcome of one authentication attempt. Never persisted by the engine."""

    accepted: bool
    reconstruction_error: float
    threshold: float
    confidence: float
    reason: str
    deviations: List[float] = field(default_factory=list)
    method: str = "autoencoder"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.accepted,
            "authenticated": self.accepted,
            "reconstructionError": self.reconstruction_error,
            "threshold": self.threshold,
            "confidence": self.confidence,
            "reason": self.reason,
            "deviations": list(self.deviations),
            "method": self.method,
        }


@dataclass
class VoiceMetricDetails:
    """Raw per-metric distances behind a voice match."""

    mfcc_distance: float
    spectral_centroid_diff: float
    zcr_diff: float
    pitch_diff: Optional[float]
    energy_diff: float


@dataclass
class VoiceMatchResult:
    """Similarity scores from comparing an enrolled and a live voice profile."""

    overall_similarity: float
    pitch_normalized_similarity: float
    tempo_normalized_similarity: float
    mfcc_similarity: float
    spectral_similarity: float
    voice_quality_similarity: float
    temporal_similarity: float
    pitch_similarity: float
    confidence: float
    detailed_metrics: VoiceMetricDetails


@dataclass
class EnrollmentResult:
    """Outcome of submitting keystroke samples for an identity."""

    identity: str
    enrolled: bool
    reason: str
    samples_collected: int
    threshold: Optional[float] = None
    model: Optional[Any] = None  # AutoencoderModel once trained


@dataclass
class VoiceVerificationResult:
    """Caller-facing voice verification outcome."""

    identity: str
    accepted: bool
    similarity: float
    confidence: float
    threshold: float
    reason: str
    match: Optional[VoiceMatchResult] = None
