"""
Tests for persisted profile models.
"""

import json
from datetime import datetime, timezone

import numpy as np
import pytest
from pydantic import ValidationError

from behavioral_auth.errors import AuthError, CorruptModelError, UnknownModelTypeError
from behavioral_auth.models.internal_models import Decision, TrainingSample
from behavioral_auth.models.profile_models import (
    AutoencoderModel,
    StatisticalModel,
    TrainingStats,
    VoiceSessionProfile,
    parse_stored_model
)
from behavioral_auth.services.autoencoder import Autoencoder


@pytest.fixture
def stored_record():
    """A stored autoencoder record in the persisted layout."""
    autoencoder = Autoencoder(3, 2, 1, rng=np.random.default_rng(1))
    return {
        "modelType": "autoencoder",
        "inputDim": 3,
        "normalizationParams": {"min": [0.0, 1.0, 2.0], "max": [1.0, 2.0, 3.0]},
        "threshold": 0.03,
        "autoencoder": autoencoder.serialize(),
        "trainingStats": {
            "samples": 5,
            "augmentedSamples": 20,
            "meanError": 0.01,
            "maxError": 0.02,
            "minError": 0.005,
            "finalLoss": 0.011,
        },
        "createdAt": "2024-03-01T12:00:00Z",
    }


class TestStoredModels:
    """Test cases for stored model parsing."""

    def test_parse_autoencoder_record(self, stored_record):
        """Test that a minimal contract record parses."""
        model = parse_stored_model(stored_record)

        assert isinstance(model, AutoencoderModel)
        assert model.inputDim == 3
        assert model.createdAt == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert model.trainingStats.reconstructionErrors == []
        assert model.trainingStats.finalThreshold is None

    def test_json_round_trip_keeps_field_names(self, stored_record):
        """Test that dumping keeps the persisted camelCase layout."""
        model = parse_stored_model(stored_record)

        dumped = json.loads(json.dumps(model.model_dump(mode="json")))

        assert set(stored_record) <= set(dumped)
        assert set(stored_record["autoencoder"]) == set(dumped["autoencoder"])
        assert parse_stored_model(dumped) == model

    def test_input_dim_must_match_network(self, stored_record):
        """Test that inconsistent dimensions are rejected."""
        stored_record["inputDim"] = 4

        with pytest.raises(CorruptModelError) as exc_info:
            parse_stored_model(stored_record)

        assert isinstance(exc_info.value, AuthError)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_incomplete_record_is_corrupt(self):
        """Test that a tagged record missing its weights is rejected with a reason."""
        with pytest.raises(CorruptModelError) as exc_info:
            parse_stored_model({"modelType": "autoencoder", "threshold": 0.03})

        assert exc_info.value.error_count > 0
        assert "corrupt or incomplete" in exc_info.value.reason

    def test_untagged_record_is_statistical(self):
        """Test that records without modelType are legacy statistical models."""
        model = parse_stored_model({"means": [1.0], "stds": [0.5]})

        assert isinstance(model, StatisticalModel)
        assert model.mseStats.percentileThreshold == 0.1
        assert model.mseStats.percentileUsed == 95

    def test_unknown_tag(self):
        """Test that unsupported tags raise the taxonomy error."""
        with pytest.raises(UnknownModelTypeError):
            parse_stored_model({"modelType": "gmm"})

    def test_parsed_models_pass_through(self):
        """Test that already parsed models are returned unchanged."""
        model = StatisticalModel(means=[1.0], stds=[1.0])

        assert parse_stored_model(model) is model

    def test_statistical_lengths_must_match(self):
        """Test mean/std length validation."""
        with pytest.raises(ValidationError):
            StatisticalModel(means=[1.0, 2.0], stds=[1.0])

    def test_training_stats_ignore_unknown_fields(self):
        """Test that extra stored statistics are ignored."""
        stats = TrainingStats(
            samples=5, augmentedSamples=20, meanError=0.1, maxError=0.2,
            minError=0.05, finalLoss=0.1, legacyField="ignored",
        )

        assert not hasattr(stats, "legacyField")


class TestInternalModels:
    """Test cases for per-call dataclasses."""

    def test_training_sample_round_trip(self):
        """Test sample serialization with and without raw events."""
        sample = TrainingSample(features=[1, 2, 3], sample_index=2, raw_events=[{"key": "a"}])

        with_raw = sample.to_dict()
        without_raw = sample.to_dict(include_raw=False)

        assert with_raw["rawKeystrokes"] == [{"key": "a"}]
        assert "rawKeystrokes" not in without_raw
        restored = TrainingSample.from_dict(with_raw)
        assert restored.features == [1.0, 2.0, 3.0]
        assert restored.sample_index == 2
        assert restored.captured_at == sample.captured_at

    def test_training_sample_requires_features(self):
        """Test that empty samples are rejected."""
        with pytest.raises(ValueError):
            TrainingSample(features=[])

    def test_decision_to_dict(self):
        """Test the caller-facing decision layout."""
        decision = Decision(
            accepted=True, reconstruction_error=0.01, threshold=0.03,
            confidence=0.9, reason="Authentication successful", deviations=[0.1],
        )

        data = decision.to_dict()

        assert data["authenticated"] is True
        assert data["reconstructionError"] == 0.01
        assert data["method"] == "autoencoder"


class TestVoiceSessionProfile:
    """Test cases for the voice session profile model."""

    def test_defaults(self):
        """Test that unspecified scalars default to zero or None."""
        profile = VoiceSessionProfile(mfccMean=[1.0])

        assert profile.zcrMean == 0.0
        assert profile.pitchMean is None

    def test_frozen(self):
        """Test that profiles are immutable."""
        profile = VoiceSessionProfile(mfccMean=[1.0])

        with pytest.raises(ValidationError):
            profile.zcrMean = 1.0
