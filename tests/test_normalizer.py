"""
Tests for min/max feature normalization and augmentation.
"""

import numpy as np
import pytest

from behavioral_auth.config import Settings
from behavioral_auth.models.internal_models import NormalizationParams
from behavioral_auth.services.normalizer import FeatureNormalizer


class TestFeatureNormalizer:
    """Test cases for FeatureNormalizer."""

    @pytest.fixture
    def normalizer(self):
        """Create a normalizer with a seeded random source."""
        return FeatureNormalizer(Settings(), rng=np.random.default_rng(7))

    @pytest.fixture
    def samples(self):
        """Random positive feature vectors."""
        rng = np.random.default_rng(11)
        return rng.uniform(10.0, 300.0, size=(12, 34)).tolist()

    def test_fit_computes_per_feature_min_max(self, normalizer):
        """Test that fit returns the column-wise min and max."""
        params = normalizer.fit([[1.0, 5.0, 2.0], [3.0, 4.0, 2.0], [2.0, 6.0, 2.0]])

        assert params.min.tolist() == [1.0, 4.0, 2.0]
        assert params.max.tolist() == [3.0, 6.0, 2.0]
        assert params.dimension == 3

    def test_fit_empty_raises(self, normalizer):
        """Test that fitting an empty dataset is rejected."""
        with pytest.raises(ValueError, match="empty"):
            normalizer.fit([])

    def test_fit_mismatched_lengths_raises(self, normalizer):
        """Test that vectors of different lengths are rejected."""
        with pytest.raises(ValueError, match="same length"):
            normalizer.fit([[1.0, 2.0], [1.0, 2.0, 3.0]])

    def test_transform_fitted_samples_within_unit_interval(self, normalizer, samples):
        """Test that every fitted sample maps into [0, 1]."""
        params = normalizer.fit(samples)

        for sample in samples:
            normalized = normalizer.transform(sample, params)
            assert np.all(normalized >= 0.0)
            assert np.all(normalized <= 1.0)

    def test_transform_degenerate_feature_maps_to_zero(self, normalizer):
        """Test that a feature with zero range maps to exactly 0."""
        params = normalizer.fit([[5.0, 1.0], [5.0, 3.0]])

        normalized = normalizer.transform([5.0, 2.0], params)

        assert normalized[0] == 0.0
        assert normalized[1] == pytest.approx(0.5)

    def test_transform_unseen_values_are_not_clamped(self):
        """Test that values outside the fitted range fall outside [0, 1]."""
        params = NormalizationParams(min=[0.0], max=[10.0])

        assert FeatureNormalizer.transform([20.0], params)[0] == pytest.approx(2.0)
        assert FeatureNormalizer.transform([-5.0], params)[0] == pytest.approx(-0.5)

    def test_transform_length_mismatch_raises(self):
        """Test that a sample of the wrong length is rejected."""
        params = NormalizationParams(min=[0.0, 0.0], max=[1.0, 1.0])

        with pytest.raises(ValueError, match="features"):
            FeatureNormalizer.transform([0.5], params)

    def test_transform_all_stacks_rows(self, normalizer, samples):
        """Test that transform_all returns one row per sample."""
        params = normalizer.fit(samples)

        matrix = normalizer.transform_all(samples, params)

        assert matrix.shape == (12, 34)

    def test_augment_stays_within_noise_band(self, normalizer):
        """Test that augmented values stay within +/- noise of the original."""
        sample = [100.0, 50.0, 10.0, 0.0]

        for _ in range(50):
            augmented = normalizer.augment(sample, noise_level=0.1)
            for original, value in zip(sample, augmented):
                assert original * 0.9 - 1e-9 <= value <= original * 1.1 + 1e-9

    def test_augment_never_negative(self, normalizer):
        """Test that augmentation clamps at zero."""
        augmented = normalizer.augment([0.0, 1e-6, 3.0], noise_level=1.0)

        assert np.all(augmented >= 0.0)

    def test_augment_uses_configured_noise_by_default(self):
        """Test that augment falls back to the configured noise level."""
        normalizer = FeatureNormalizer(Settings(augmentation_noise=0.0), rng=np.random.default_rng(0))

        augmented = normalizer.augment([4.0, 8.0])

        assert augmented.tolist() == [4.0, 8.0]

    def test_reseed_makes_augmentation_reproducible(self, normalizer):
        """Test that reseeding replays the same noise."""
        normalizer.reseed(123)
        first = normalizer.augment([10.0, 20.0, 30.0])
        normalizer.reseed(123)
        second = normalizer.augment([10.0, 20.0, 30.0])

        np.testing.assert_array_equal(first, second)


class TestNormalizationParams:
    """Test cases for the NormalizationParams container."""

    def test_rejects_shape_mismatch(self):
        """Test that min and max must have equal length."""
        with pytest.raises(ValueError):
            NormalizationParams(min=[0.0, 1.0], max=[1.0])

    def test_rejects_max_below_min(self):
        """Test that max must not be below min."""
        with pytest.raises(ValueError, match=">= min"):
            NormalizationParams(min=[2.0], max=[1.0])

    def test_to_dict(self):
        """Test the JSON-compatible representation."""
        params = NormalizationParams(min=[0.0, 1.0], max=[2.0, 3.0])

        assert params.to_dict() == {"min": [0.0, 1.0], "max": [2.0, 3.0]}
