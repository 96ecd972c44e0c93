"""
Min/max feature scaling and noise augmentation for keystroke feature vectors.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..config import Settings
from ..models.internal_models import NormalizationParams

logger = logging.getLogger(__name__)


class FeatureNormalizer:
    """Fits, applies and augments per-feature min/max scaling."""

    def __init__(self, settings: Optional[Settings] = None, rng: Optional[np.random.Generator] = None):
        """
        Initialize the normalizer.

        Args:
            settings: Engine settings. If None, defaults are used.
            rng: Random source for augmentation noise. If None, an unseeded generator is created.
        """
        self.settings = settings or Settings()
        self.rng = rng if rng is not None else np.random.default_rng()

    def reseed(self, seed: Optional[int]) -> None:
        """Replace the augmentation random source with a freshly seeded one."""
        self.rng = np.random.default_rng(seed)

    @staticmethod
    def _as_matrix(samples: Sequence[Sequence[float]]) -> np.ndarray:
        if len(samples) == 0:
            raise ValueError("Cannot normalize empty feature dataset")

        lengths = {len(sample) for sample in samples}
        if len(lengths) != 1:
            raise ValueError(f"All samples must have the same length, got lengths {sorted(lengths)}")

        return np.asarray(samples, dtype=np.float64)

    def fit(self, samples: Sequence[Sequence[float]]) -> NormalizationParams:
        """
        Compute per-feature min/max over all samples.

        Args:
            samples: Feature vectors of equal length

        Returns:
            NormalizationParams with one min/max pair per feature

        Raises:
            ValueError: If samples is empty or vector lengths differ
        """
        matrix = self._as_matrix(samples)
        params = NormalizationParams(min=matrix.min(axis=0), max=matrix.max(axis=0))
        logger.debug(f"Fitted normalization over {matrix.shape[0]} samples x {matrix.shape[1]} features")
        return params

    @staticmethod
    def transform(sample: Sequence[float], params: NormalizationParams) -> np.ndarray:
        """
        Scale each feature to (v - min) / (max - min).

        Features whose min equals max map to exactly 0.
        """
        values = np.asarray(sample, dtype=np.float64)
        if values.shape != params.min.shape:
            raise ValueError(
                f"Sample has {values.shape[0]} features, normalization expects {params.dimension}"
            )

        feature_range = params.max - params.min
        degenerate = feature_range == 0
        safe_range = np.where(degenerate, 1.0, feature_range)
        return np.where(degenerate, 0.0, (values - params.min) / safe_range)

    def transform_all(self, samples: Sequence[Sequence[float]], params: NormalizationParams) -> np.ndarray:
        return np.vstack([self.transform(sample, params) for sample in samples])

    def augment(self, sample: Sequence[float], noise_level: Optional[float] = None) -> np.ndarray:
        """
        Add proportional uniform noise to every feature, clamped at zero.

        Each feature becomes ``max(0, v + uniform(-1, 1) * noise_level * v)``.
        """
        if noise_level is None:
            noise_level = self.settings.augmentation_noise

        values = np.asarray(sample, dtype=np.float64)
        noise = self.rng.uniform(-1.0, 1.0, size=values.shape) * noise_level * values
        return np.maximum(0.0, values + noise)
