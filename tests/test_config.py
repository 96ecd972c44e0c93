"""
Tests for engine settings.
"""

import pytest
from pydantic import ValidationError

from behavioral_auth.config import Settings, get_settings


class TestSettings:
    """Test cases for Settings."""

    def test_defaults(self):
        """Test the tuned default values."""
        settings = Settings()

        assert settings.minimum_training_samples == 5
        assert settings.augmentation_noise == 0.1
        assert settings.augmentation_multiplier == 3
        assert settings.hidden_size == 16
        assert settings.bottleneck_size == 8
        assert settings.training_epochs == 200
        assert settings.learning_rate == 0.01
        assert settings.default_threshold == 0.03
        assert settings.threshold_percentile == 0.95
        assert settings.threshold_safety_margin == 1.2
        assert settings.deviation_length == 10
        assert settings.voice_match_threshold == 0.65

    def test_environment_override(self, monkeypatch):
        """Test that prefixed environment variables are read."""
        monkeypatch.setenv("BEHAVIORAL_AUTH_TRAINING_EPOCHS", "50")
        monkeypatch.setenv("BEHAVIORAL_AUTH_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.training_epochs == 50
        assert settings.log_level == "DEBUG"

    def test_frozen(self):
        """Test that settings cannot be mutated after construction."""
        settings = Settings()

        with pytest.raises(ValidationError):
            settings.default_threshold = 0.5

    @pytest.mark.parametrize("field,value", [
        ("minimum_training_samples", 0),
        ("training_epochs", -1),
        ("augmentation_noise", 1.5),
        ("threshold_percentile", 0.0),
        ("threshold_safety_margin", 0.9),
        ("default_threshold", 0.0),
        ("voice_match_threshold", 1.2),
        ("statistical_percentile", 101),
        ("augmentation_multiplier", -1),
        ("log_level", "VERBOSE"),
    ])
    def test_invalid_values_rejected(self, field, value):
        """Test validator coverage."""
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_get_settings_is_cached(self):
        """Test that the getter returns one shared instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
