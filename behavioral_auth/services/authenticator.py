"""
Keystroke verification against a trained profile.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..config import Settings
from ..errors import UnknownModelTypeError
from ..models.internal_models import Decision, NormalizationParams
from ..models.profile_models import AutoencoderModel, StatisticalModel, parse_stored_model
from .autoencoder import Autoencoder, reconstruction_error
from .normalizer import FeatureNormalizer

logger = logging.getLogger(__name__)

ModelInput = Union[AutoencoderModel, StatisticalModel, Dict[str, Any]]


def fit_to_length(sample: Sequence[float], length: int) -> np.ndarray:
    """Zero-pad or truncate trailing features so the sample has ``length`` features."""
    values = np.asarray(sample, dtype=np.float64)[:length]
    if values.shape[0] < length:
        values = np.concatenate([values, np.zeros(length - values.shape[0])])
    return values


class Authenticator:
    """Scores a live feature vector against a stored model and emits a Decision."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def authenticate(self, live_sample: Sequence[float], model: ModelInput, identity: Optional[str] = None) -> Decision:
        """
        Verify a live sample against a stored model.

        Args:
            live_sample: Live feature vector; length mismatches are padded or truncated
            model: Parsed model or raw stored record
            identity: Identity being verified, used for logging only

        Returns:
            Decision for this attempt

        Raises:
            UnknownModelTypeError: If the stored model variant is not supported
            CorruptModelError: If the stored record cannot be parsed
        """
        parsed = parse_stored_model(model)

        if isinstance(parsed, AutoencoderModel):
            decision = self._authenticate_autoencoder(live_sample, parsed)
        elif isinstance(parsed, StatisticalModel):
            decision = self._authenticate_statistical(live_sample, parsed)
        else:
            raise UnknownModelTypeError(getattr(parsed, "modelType", None))

        logger.info(
            f"{decision.method.capitalize()} authentication for {identity or 'anonymous'}: "
            f"error={decision.reconstruction_error:.6f}, threshold={decision.threshold:.6f}, "
            f"accepted={decision.accepted}, confidence={decision.confidence:.3f}"
        )
        return decision

    def _authenticate_autoencoder(self, live_sample: Sequence[float], model: AutoencoderModel) -> Decision:
        params = NormalizationParams(min=model.normalizationParams.min, max=model.normalizationParams.max)
        features = fit_to_length(live_sample, params.dimension)
        normalized = FeatureNormalizer.transform(features, params)

        autoencoder = Autoencoder.deserialize(model.autoencoder)
        error = reconstruction_error(normalized, autoencoder.predict(normalized))

        threshold = model.threshold
        accepted = error <= threshold

        # Heuristic closeness score, not a calibrated probability.
        max_expected_error = max(model.trainingStats.maxError, threshold * 2)
        confidence = float(np.clip(1 - error / (max_expected_error * 2), 0.0, 1.0))

        deviations = np.minimum(np.abs(normalized[:self.settings.deviation_length]), 1.0)

        reason = (
            "Authentication successful" if accepted
            else f"Reconstruction error too high: {error:.6f} > {threshold:.6f}"
        )
        return Decision(
            accepted=bool(accepted),
            reconstruction_error=error,
            threshold=threshold,
            confidence=confidence,
            reason=reason,
            deviations=deviations.tolist(),
            method="autoencoder",
        )

    def _authenticate_statistical(self, live_sample: Sequence[float], model: StatisticalModel) -> Decision:
        values = np.asarray(live_sample, dtype=np.float64)
        overlap = min(values.shape[0], len(model.means))
        means = np.asarray(model.means[:overlap], dtype=np.float64)
        stds = np.asarray(model.stds[:overlap], dtype=np.float64)

        z_scores = (values[:overlap] - means) / np.where(stds == 0, 1.0, stds)
        error = float(np.sum(z_scores ** 2) / values.shape[0]) if values.shape[0] else 0.0

        threshold = model.mseStats.percentileThreshold or self.settings.statistical_default_threshold
        accepted = error <= threshold
        percentile_used = model.mseStats.percentileUsed or self.settings.statistical_percentile
        confidence = float(np.clip(1 - error / (threshold * 4), 0.0, 1.0))
        deviations = np.minimum(np.abs(z_scores), 1.0)[:self.settings.deviation_length]

        reason = (
            "Authentication successful" if accepted
            else f"MSE ({error:.5f}) exceeds {percentile_used}th percentile threshold ({threshold:.5f})"
        )
        return Decision(
            accepted=bool(accepted),
            reconstruction_error=error,
            threshold=threshold,
            confidence=confidence,
            reason=reason,
            deviations=deviations.tolist(),
            method="statistical",
        )
