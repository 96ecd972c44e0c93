"""Pydantic models for persisted profiles and collaborator-supplied features.

Field names follow the stored JSON contract (camelCase) so existing stored
profiles load without translation.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from ..errors import CorruptModelError, UnknownModelTypeError


class NormalizationParamsModel(BaseModel):
    """Stored per-feature min/max arrays."""

    min: List[float]
    max: List[float]

    @model_validator(mode='after')
    def validate_lengths(self):
        """Validate that min and max describe the same features."""
        if len(self.min) != len(self.max):
            raise ValueError(f"min/max length mismatch: {len(self.min)} vs {len(self.max)}")
        return self


class AutoencoderWeights(BaseModel):
    """Serialized autoencoder: dimensions, weight matrices and biases."""

    inputSize: int = Field(..., gt=0)
    hiddenSize: int = Field(..., gt=0)
    bottleneckSize: int = Field(..., gt=0)
    weights1: List[List[float]]
    weights2: List[List[float]]
    weights3: List[List[float]]
    biases1: List[float]
    biases2: List[float]
    biases3: List[float]

    @model_validator(mode='after')
    def validate_shapes(self):
        """Validate matrix and bias shapes against the declared dimensions."""
        expected = {
            "weights1": (self.inputSize, self.hiddenSize),
            "weights2": (self.hiddenSize, self.bottleneckSize),
            "weights3": (self.bottleneckSize, self.inputSize),
        }
        for name, (rows, cols) in expected.items():
            matrix = getattr(self, name)
            if len(matrix) != rows or any(len(row) != cols for row in matrix):
                raise ValueError(f"{name} must be {rows}x{cols}")
        for name, size in (("biases1", self.hiddenSize), ("biases2", self.bottleneckSize), ("biases3", self.inputSize)):
            if len(getattr(self, name)) != size:
                raise ValueError(f"{name} must have length {size}")
        return self


class TrainingStats(BaseModel):
    """Summary of one training run, stored alongside the model."""

    model_config = ConfigDict(extra="ignore")

    samples: int
    augmentedSamples: int
    meanError: float
    maxError: float
    minError: float
    finalLoss: float
    reconstructionErrors: List[float] = Field(default_factory=list)
    calculatedThreshold: Optional[float] = None
    finalThreshold: Optional[float] = None
    finalLosses: List[float] = Field(default_factory=list)


class AutoencoderModel(BaseModel):
    """Trained autoencoder profile for one identity."""

    model_config = ConfigDict(extra="ignore")

    modelType: Literal["autoencoder"] = "autoencoder"
    inputDim: int = Field(..., gt=0)
    normalizationParams: NormalizationParamsModel
    threshold: float
    autoencoder: AutoencoderWeights
    trainingStats: TrainingStats
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode='after')
    def validate_dimensions(self):
        """Validate that normalization and network agree on the input size."""
        if len(self.normalizationParams.min) != self.inputDim:
            raise ValueError("normalizationParams length must equal inputDim")
        if self.autoencoder.inputSize != self.inputDim:
            raise ValueError("autoencoder.inputSize must equal inputDim")
        return self


class MseStats(BaseModel):
    """Percentile threshold of a legacy statistical model."""

    model_config = ConfigDict(extra="ignore")

    percentileThreshold: float = 0.1
    percentileUsed: int = 95


class StatisticalModel(BaseModel):
    """Legacy per-feature mean/std profile."""

    model_config = ConfigDict(extra="ignore")

    modelType: Literal["statistical"] = "statistical"
    means: List[float]
    stds: List[float]
    mseStats: MseStats = Field(default_factory=MseStats)
    createdAt: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_lengths(self):
        if len(self.means) != len(self.stds):
            raise ValueError("means and stds must have equal length")
        return self


StoredModel = Annotated[Union[AutoencoderModel, StatisticalModel], Field(discriminator="modelType")]

_stored_model_adapter = TypeAdapter(StoredModel)
KNOWN_MODEL_TYPES = ("autoencoder", "statistical")


def parse_stored_model(data: Union[Dict[str, Any], AutoencoderModel, StatisticalModel]):
    """
    Parse a stored model record into its tagged variant.

    Records written before model tagging carry no ``modelType`` and are read
    as statistical models.

    Raises:
        UnknownModelTypeError: If the record carries an unsupported tag
        CorruptModelError: If the record is missing fields or is inconsistent
    """
    if isinstance(data, (AutoencoderModel, StatisticalModel)):
        return data

    record = dict(data)
    model_type = record.setdefault("modelType", "statistical")
    if model_type not in KNOWN_MODEL_TYPES:
        raise UnknownModelTypeError(model_type)
    try:
        return _stored_model_adapter.validate_python(record)
    except ValidationError as e:
        raise CorruptModelError(e.error_count()) from e


class PitchFrameStats(BaseModel):
    """Pitch summary optionally attached to a frame."""

    mean: float
    variance: float
    range: float


class VoiceFrameFeatures(BaseModel):
    """Features of one audio frame, extracted by an audio collaborator."""

    model_config = ConfigDict(extra="ignore")

    mfcc: List[float]
    spectralCentroid: float = 0.0
    spectralFlatness: float = 0.0
    spectralRolloff: float = 0.0
    spectralFlux: float = 0.0
    perceptualSpread: float = 0.0
    perceptualSharpness: float = 0.0
    spectralKurtosis: float = 0.0
    zcr: float = 0.0
    rms: float = 0.0
    energy: float = 0.0
    pitch: Optional[PitchFrameStats] = None
    jitter: Optional[float] = None
    shimmer: Optional[float] = None
    speakingRate: Optional[float] = None
    formants: Optional[List[float]] = None

    @field_validator('mfcc')
    @classmethod
    def validate_mfcc(cls, v):
        if not v:
            raise ValueError('Frame must carry at least one MFCC coefficient')
        return v


class VoiceSessionProfile(BaseModel):
    """Session-level mean/variance summary of one recording."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    mfccMean: List[float] = Field(default_factory=list)
    mfccVariance: List[float] = Field(default_factory=list)
    spectralCentroidMean: float = 0.0
    spectralCentroidVariance: float = 0.0
    spectralFlatnessMean: float = 0.0
    spectralFlatnessVariance: float = 0.0
    spectralRolloffMean: float = 0.0
    spectralRolloffVariance: float = 0.0
    spectralFluxMean: float = 0.0
    spectralFluxVariance: float = 0.0
    perceptualSpreadMean: float = 0.0
    perceptualSpreadVariance: float = 0.0
    perceptualSharpnessMean: float = 0.0
    perceptualSharpnessVariance: float = 0.0
    spectralKurtosisMean: float = 0.0
    spectralKurtosisVariance: float = 0.0
    zcrMean: float = 0.0
    zcrVariance: float = 0.0
    rmsMean: float = 0.0
    rmsVariance: float = 0.0
    energyMean: float = 0.0
    energyVariance: float = 0.0
    pitchMean: Optional[float] = None
    pitchVariance: Optional[float] = None
    pitchRange: Optional[float] = None
    jitter: Optional[float] = None
    shimmer: Optional[float] = None
    speakingRate: Optional[float] = None
    formantsMean: Optional[List[float]] = None
    formantsVariance: Optional[List[float]] = None
