"""
Tests for keystroke verification.
"""

import numpy as np
import pytest

from behavioral_auth.config import Settings
from behavioral_auth.errors import UnknownModelTypeError
from behavioral_auth.models.profile_models import StatisticalModel
from behavioral_auth.services.authenticator import Authenticator, fit_to_length
from behavioral_auth.services.trainer import Trainer


@pytest.fixture(scope="module")
def settings():
    """Settings with a short training schedule."""
    return Settings(training_epochs=40)


@pytest.fixture(scope="module")
def enrolled_samples():
    """Enrollment vectors for one identity."""
    rng = np.random.default_rng(314)
    baseline = rng.uniform(80.0, 220.0, size=34)
    return [(baseline * rng.uniform(0.92, 1.08, size=34)).tolist() for _ in range(6)]


@pytest.fixture(scope="module")
def trained_model(settings, enrolled_samples):
    """Autoencoder model trained once for the module."""
    return Trainer(settings, rng=np.random.default_rng(8)).train(enrolled_samples, identity="alice")


class TestFitToLength:
    """Test cases for live sample length adjustment."""

    def test_pads_with_zeros(self):
        """Test that short samples are zero-padded."""
        assert fit_to_length([1.0, 2.0], 4).tolist() == [1.0, 2.0, 0.0, 0.0]

    def test_truncates_trailing_features(self):
        """Test that long samples are truncated."""
        assert fit_to_length([1.0, 2.0, 3.0], 2).tolist() == [1.0, 2.0]

    def test_exact_length_unchanged(self):
        """Test that correctly sized samples pass through."""
        assert fit_to_length([1.0, 2.0], 2).tolist() == [1.0, 2.0]


class TestAutoencoderAuthentication:
    """Test cases for authentication against autoencoder models."""

    @pytest.fixture
    def authenticator(self, settings):
        """Create an authenticator."""
        return Authenticator(settings)

    def test_enrolled_sample_accepted(self, authenticator, trained_model, enrolled_samples):
        """Test that an enrolled sample is accepted."""
        decision = authenticator.authenticate(enrolled_samples[0], trained_model, identity="alice")

        assert decision.accepted is True
        assert decision.reason == "Authentication successful"
        assert decision.method == "autoencoder"
        assert decision.threshold == trained_model.threshold

    def test_impostor_sample_rejected(self, authenticator, trained_model, enrolled_samples):
        """Test that a very different typing rhythm is rejected."""
        impostor = [value * 6.0 for value in enrolled_samples[0]]

        decision = authenticator.authenticate(impostor, trained_model)

        assert decision.accepted is False
        assert decision.reconstruction_error > decision.threshold
        assert decision.reason.startswith("Reconstruction error too high: ")
        assert f"{decision.reconstruction_error:.6f} > {decision.threshold:.6f}" in decision.reason

    def test_confidence_formula(self, authenticator, trained_model, enrolled_samples):
        """Test confidence against the max expected error."""
        decision = authenticator.authenticate(enrolled_samples[1], trained_model)

        max_expected = max(trained_model.trainingStats.maxError, trained_model.threshold * 2)
        expected = min(1.0, max(0.0, 1 - decision.reconstruction_error / (max_expected * 2)))
        assert decision.confidence == pytest.approx(expected)
        assert 0.0 <= decision.confidence <= 1.0

    def test_confidence_zero_for_far_samples(self, authenticator, trained_model, enrolled_samples):
        """Test that confidence is clamped at zero."""
        decision = authenticator.authenticate([v * 50.0 for v in enrolled_samples[0]], trained_model)

        assert decision.confidence == 0.0

    def test_deviations(self, authenticator, trained_model, enrolled_samples):
        """Test that deviations are the first ten clamped normalized values."""
        decision = authenticator.authenticate([v * 6.0 for v in enrolled_samples[0]], trained_model)

        assert len(decision.deviations) == 10
        assert all(0.0 <= value <= 1.0 for value in decision.deviations)
        assert max(decision.deviations) == 1.0

    def test_short_live_sample_is_padded(self, authenticator, trained_model, enrolled_samples):
        """Test that a short live sample is scored instead of rejected outright."""
        decision = authenticator.authenticate(enrolled_samples[0][:30], trained_model)

        assert decision.method == "autoencoder"
        assert decision.reconstruction_error >= 0.0

    def test_long_live_sample_is_truncated(self, authenticator, trained_model, enrolled_samples):
        """Test that extra trailing features are ignored."""
        extended = enrolled_samples[0] + [999.0, 999.0]

        decision = authenticator.authenticate(extended, trained_model)
        reference = authenticator.authenticate(enrolled_samples[0], trained_model)

        assert decision.reconstruction_error == reference.reconstruction_error

    def test_stored_record_dict_accepted(self, authenticator, trained_model, enrolled_samples):
        """Test that a JSON record authenticates the same as the model object."""
        record = trained_model.model_dump(mode="json")

        from_record = authenticator.authenticate(enrolled_samples[2], record)
        from_model = authenticator.authenticate(enrolled_samples[2], trained_model)

        assert from_record.reconstruction_error == from_model.reconstruction_error
        assert from_record.accepted == from_model.accepted

    def test_authentication_does_not_mutate_model(self, authenticator, trained_model, enrolled_samples):
        """Test that scoring leaves the stored model untouched."""
        before = trained_model.model_dump()
        authenticator.authenticate(enrolled_samples[3], trained_model)

        assert trained_model.model_dump() == before


class TestStatisticalAuthentication:
    """Test cases for the legacy statistical model."""

    @pytest.fixture
    def authenticator(self):
        """Create an authenticator with default settings."""
        return Authenticator(Settings())

    @pytest.fixture
    def model(self):
        """Small statistical model."""
        return StatisticalModel(means=[1.0, 2.0], stds=[1.0, 0.0])

    def test_matching_sample_accepted(self, authenticator, model):
        """Test that the mean vector is accepted."""
        decision = authenticator.authenticate([1.0, 2.0], model)

        assert decision.accepted is True
        assert decision.reconstruction_error == 0.0
        assert decision.method == "statistical"
        assert decision.confidence == 1.0

    def test_distant_sample_rejected(self, authenticator, model):
        """Test the rejection reason of the statistical path."""
        decision = authenticator.authenticate([4.0, 2.0], model)

        assert decision.accepted is False
        assert decision.reconstruction_error == pytest.approx(4.5)
        assert decision.reason == "MSE (4.50000) exceeds 95th percentile threshold (0.10000)"
        assert decision.deviations == [1.0, 0.0]

    def test_record_without_model_type_is_statistical(self, authenticator):
        """Test that untagged records are read as statistical models."""
        record = {"means": [0.0, 0.0], "stds": [1.0, 1.0], "mseStats": {"percentileThreshold": 0.5}}

        decision = authenticator.authenticate([0.5, 0.5], record)

        assert decision.method == "statistical"
        assert decision.reconstruction_error == pytest.approx(0.25)
        assert decision.accepted is True

    def test_unknown_model_type(self, authenticator):
        """Test that unsupported model tags are rejected."""
        with pytest.raises(UnknownModelTypeError) as exc_info:
            authenticator.authenticate([1.0], {"modelType": "lstm", "means": [1.0], "stds": [1.0]})

        assert exc_info.value.model_type == "lstm"
