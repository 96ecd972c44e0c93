"""
Enrollment training for keystroke profiles.

This module turns a set of enrollment samples into a persistable model:
- data augmentation with proportional noise
- min/max normalization fitted on the augmented set
- autoencoder training
- percentile threshold calibration on the original samples
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Union

import numpy as np

from ..config import Settings
from ..errors import DegenerateFeatureSetError, DimensionMismatchError, InsufficientSamplesError
from ..models.internal_models import TrainingSample
from ..models.profile_models import (
    AutoencoderModel,
    MseStats,
    StatisticalModel,
    TrainingStats
)
from .autoencoder import Autoencoder, reconstruction_error
from .normalizer import FeatureNormalizer

logger = logging.getLogger(__name__)

SampleInput = Union[TrainingSample, Sequence[float]]


def _feature_vector(sample: SampleInput) -> List[float]:
    if isinstance(sample, TrainingSample):
        return sample.features
    return [float(v) for v in sample]


class Trainer:
    """Trains an autoencoder profile for one identity."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[np.random.Generator] = None):
        """
        Initialize the trainer.

        Args:
            settings: Engine settings. If None, defaults are used.
            rng: Random source shared by augmentation and weight initialization.
                Pass a seeded generator for reproducible training.
        """
        self.settings = settings or Settings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.normalizer = FeatureNormalizer(self.settings, rng=self.rng)

    def _collect(self, samples: Sequence[SampleInput]) -> List[List[float]]:
        required = self.settings.minimum_training_samples
        if len(samples) < required:
            raise InsufficientSamplesError(required=required, provided=len(samples))

        vectors = [_feature_vector(sample) for sample in samples]
        expected = len(vectors[0])
        for vector in vectors[1:]:
            if len(vector) != expected:
                raise DimensionMismatchError(expected=expected, provided=len(vector))
        return vectors

    def augment(self, vectors: Sequence[Sequence[float]]) -> List[np.ndarray]:
        """Return every original vector followed by its noisy variants."""
        augmented = []
        for vector in vectors:
            augmented.append(np.asarray(vector, dtype=np.float64))
            for _ in range(self.settings.augmentation_multiplier):
                augmented.append(self.normalizer.augment(vector, self.settings.augmentation_noise))
        return augmented

    def calibrate_threshold(self, errors: Sequence[float]) -> tuple:
        """
        Pick the acceptance threshold from reconstruction errors.

        The error at index ``floor(percentile * n)`` of the sorted errors is
        multiplied by the safety margin and floored at the default threshold.
        When that error is missing, non-finite or not positive, the default
        threshold is used as-is.

        Returns:
            Tuple of (calculated_threshold, final_threshold)
        """
        default = self.settings.default_threshold
        sorted_errors = sorted(errors)

        calculated = None
        if sorted_errors:
            index = min(math.floor(self.settings.threshold_percentile * len(sorted_errors)), len(sorted_errors) - 1)
            calculated = sorted_errors[index]

        if calculated is None or not math.isfinite(calculated) or calculated <= 0:
            logger.warning(f"Threshold calibration fell back to default {default} (calculated={calculated})")
            return default, default

        return calculated, max(default, calculated * self.settings.threshold_safety_margin)

    def train(self,
              samples: Sequence[SampleInput],
              identity: Optional[str] = None,
              privacy_mode: bool = True) -> AutoencoderModel:
        """
        Train an autoencoder model from enrollment samples.

        Args:
            samples: Original enrollment samples, all of the same length
            identity: Identity being enrolled, used for logging only
            privacy_mode: Whether collaborators drop raw event traces; no effect on training

        Returns:
            AutoencoderModel ready to be persisted

        Raises:
            InsufficientSamplesError: If fewer than the minimum samples are supplied
            DimensionMismatchError: If the samples differ in length
            DegenerateFeatureSetError: If every feature is constant across the augmented set
        """
        vectors = self._collect(samples)
        logger.info(
            f"Training autoencoder for {identity or 'anonymous'} with {len(vectors)} samples "
            f"(privacy_mode={privacy_mode})"
        )

        # Step 1: Augment
        augmented = self.augment(vectors)

        # Step 2: Normalize
        params = self.normalizer.fit(augmented)
        if np.all(params.max == params.min):
            raise DegenerateFeatureSetError(
                "All training samples are identical in every feature - cannot learn a typing pattern"
            )
        normalized = self.normalizer.transform_all(augmented, params)

        # Step 3: Train
        input_dim = normalized.shape[1]
        autoencoder = Autoencoder(
            input_dim,
            self.settings.hidden_size,
            self.settings.bottleneck_size,
            rng=self.rng,
        )
        loss_history = autoencoder.train(
            normalized,
            epochs=self.settings.training_epochs,
            learning_rate=self.settings.learning_rate,
        )

        # Step 4: Measure generalization on the original samples
        errors = []
        for vector in vectors:
            normalized_sample = self.normalizer.transform(vector, params)
            errors.append(reconstruction_error(normalized_sample, autoencoder.predict(normalized_sample)))

        # Step 5: Calibrate threshold
        calculated_threshold, threshold = self.calibrate_threshold(errors)

        stats = TrainingStats(
            samples=len(vectors),
            augmentedSamples=len(augmented),
            meanError=float(np.mean(errors)),
            maxError=float(np.max(errors)),
            minError=float(np.min(errors)),
            finalLoss=float(loss_history[-1]),
            reconstructionErrors=errors,
            calculatedThreshold=calculated_threshold,
            finalThreshold=threshold,
            finalLosses=loss_history[-self.settings.loss_history_tail:],
        )

        logger.info(
            f"Autoencoder trained for {identity or 'anonymous'}: threshold={threshold:.6f}, "
            f"mean_error={stats.meanError:.6f}, final_loss={stats.finalLoss:.6f}"
        )

        return AutoencoderModel(
            inputDim=input_dim,
            normalizationParams=params.to_dict(),
            threshold=threshold,
            autoencoder=autoencoder.serialize(),
            trainingStats=stats,
            createdAt=datetime.now(timezone.utc),
        )

    def train_statistical(self, samples: Sequence[SampleInput], identity: Optional[str] = None) -> StatisticalModel:
        """
        Fit a legacy mean/std model.

        The threshold is the configured percentile of the per-sample z-score
        MSEs; it falls back to the statistical default when not positive.
        """
        vectors = np.asarray(self._collect(samples), dtype=np.float64)

        means = vectors.mean(axis=0)
        stds = vectors.std(axis=0)
        safe_stds = np.where(stds == 0, 1.0, stds)
        errors = np.mean(((vectors - means) / safe_stds) ** 2, axis=1)

        percentile = self.settings.statistical_percentile
        threshold = float(np.percentile(errors, percentile))
        if not math.isfinite(threshold) or threshold <= 0:
            threshold = self.settings.statistical_default_threshold

        logger.info(f"Statistical model fitted for {identity or 'anonymous'}: threshold={threshold:.6f}")

        return StatisticalModel(
            means=means.tolist(),
            stds=stds.tolist(),
            mseStats=MseStats(percentileThreshold=threshold, percentileUsed=percentile),
            createdAt=datetime.now(timezone.utc),
        )
