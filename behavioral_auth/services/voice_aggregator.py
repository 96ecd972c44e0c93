"""
Reduction of per-frame voice features into a session-level profile.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np
from pydantic import ValidationError

from ..errors import EmptyFrameSetError, InvalidFrameError
from ..models.profile_models import VoiceFrameFeatures, VoiceSessionProfile
from ..utils.audio_utils import estimate_pitch_statistics, estimate_voice_quality

logger = logging.getLogger(__name__)

FrameInput = Union[VoiceFrameFeatures, Dict[str, Any]]

SCALAR_FEATURES = (
    "spectralCentroid",
    "spectralFlatness",
    "spectralRolloff",
    "spectralFlux",
    "perceptualSpread",
    "perceptualSharpness",
    "spectralKurtosis",
    "zcr",
    "rms",
    "energy",
)


def mean_and_variance(values: np.ndarray) -> tuple:
    """
    Column means and population variances via ``E[X^2] - E[X]^2``.

    Works on a 1-D array of observations or a 2-D (frames x coefficients) array.
    """
    mean = values.mean(axis=0)
    variance = (values * values).mean(axis=0) - mean * mean
    return mean, variance


class VoiceFeatureAggregator:
    """Builds a VoiceSessionProfile from frame features."""

    @staticmethod
    def _parse_frames(frames: Sequence[FrameInput]) -> list:
        parsed = []
        for index, frame in enumerate(frames):
            if isinstance(frame, VoiceFrameFeatures):
                parsed.append(frame)
                continue
            try:
                parsed.append(VoiceFrameFeatures.model_validate(frame))
            except ValidationError as e:
                fields = sorted({".".join(str(part) for part in error["loc"]) or "frame" for error in e.errors()})
                raise InvalidFrameError(f"Invalid voice frame {index}: bad or missing {', '.join(fields)}") from e
        return parsed

    def aggregate(self, frames: Sequence[FrameInput]) -> VoiceSessionProfile:
        """
        Compute mean and variance of every frame feature.

        MFCC coefficients are summarized independently. Formants are summarized
        only when every frame carries the same number of them.

        Raises:
            EmptyFrameSetError: If no frames are given
            InvalidFrameError: If a frame is malformed or frames disagree on the
                number of MFCC coefficients
        """
        if len(frames) == 0:
            raise EmptyFrameSetError()

        parsed = self._parse_frames(frames)

        mfcc_lengths = {len(frame.mfcc) for frame in parsed}
        if len(mfcc_lengths) != 1:
            raise InvalidFrameError(f"Frames disagree on MFCC length: {sorted(mfcc_lengths)}")

        mfcc_mean, mfcc_variance = mean_and_variance(np.array([frame.mfcc for frame in parsed], dtype=np.float64))
        summary: Dict[str, Any] = {
            "mfccMean": mfcc_mean.tolist(),
            "mfccVariance": mfcc_variance.tolist(),
        }

        for name in SCALAR_FEATURES:
            values = np.array([getattr(frame, name) for frame in parsed], dtype=np.float64)
            mean, variance = mean_and_variance(values)
            summary[f"{name}Mean"] = float(mean)
            summary[f"{name}Variance"] = float(variance)

        formants = [frame.formants for frame in parsed]
        if all(formants) and len({len(f) for f in formants}) == 1:
            formant_mean, formant_variance = mean_and_variance(np.array(formants, dtype=np.float64))
            summary["formantsMean"] = formant_mean.tolist()
            summary["formantsVariance"] = formant_variance.tolist()

        logger.debug(f"Aggregated {len(parsed)} frames with {len(mfcc_mean)} MFCC coefficients")
        return VoiceSessionProfile(**summary)

    def build_session_profile(self,
                              frames: Sequence[FrameInput],
                              rng: Optional[np.random.Generator] = None,
                              speaking_rate: Optional[float] = None) -> VoiceSessionProfile:
        """
        Aggregate frames and attach session-level pitch and voice-quality scalars.

        Pitch, jitter and shimmer come from the stand-in estimators in
        ``utils.audio_utils`` and are random by nature.
        """
        profile = self.aggregate(frames)
        rng = rng if rng is not None else np.random.default_rng()

        pitch = estimate_pitch_statistics(rng)
        jitter, shimmer = estimate_voice_quality(rng)

        profile = profile.model_copy(update={
            "pitchMean": pitch.mean,
            "pitchVariance": pitch.variance,
            "pitchRange": pitch.range,
            "jitter": jitter,
            "shimmer": shimmer,
            "speakingRate": speaking_rate,
        })

        logger.info(
            f"Voice session profile built: mfcc_dims={len(profile.mfccMean)}, "
            f"spectral_centroid={profile.spectralCentroidMean:.2f}, pitch={pitch.mean:.1f}, "
            f"jitter={jitter:.4f}, shimmer={shimmer:.4f}"
        )
        return profile
