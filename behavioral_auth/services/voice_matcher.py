"""
Multi-metric similarity between two voice session profiles.

Each profile is log-normalized three independent ways before comparison:
- pitch pass: pitch mean and speaking rate (relative, perceptual comparison)
- temporal pass: zero-crossing rate
- spectral pass: RMS, energy and spectral centroid (gain invariance)

MFCC distance dominates the overall score.
"""

import logging
import math
from typing import Any, Dict, Optional, Union

import numpy as np

from ..config import Settings
from ..errors import MissingMfccError
from ..models.internal_models import VoiceMatchResult, VoiceMetricDetails
from ..models.profile_models import VoiceSessionProfile

logger = logging.getLogger(__name__)

ProfileInput = Union[VoiceSessionProfile, Dict[str, Any]]

MFCC_SCALE = 2.0

# (weight, scale) pairs for the combined sub-scores
SPECTRAL_TERMS = {"centroid": (0.4, 1.0), "flatness": (0.3, 0.3), "rolloff": (0.3, 1.0)}
VOICE_QUALITY_TERMS = {"spread": (0.5, 0.3), "sharpness": (0.5, 0.3)}
TEMPORAL_TERMS = {"zcr": (0.6, 0.5), "energy": (0.4, 1.0)}
PITCH_SCALE = 1.0
PITCH_ABSENT_SIMILARITY = 0.5

OVERALL_WEIGHTS = {
    "mfcc": 0.6,
    "spectral": 0.25,
    "voice_quality": 0.1,
    "temporal": 0.03,
    "pitch": 0.02,
}


def apply_pitch_normalization(profile: VoiceSessionProfile) -> VoiceSessionProfile:
    """Log-transform pitch mean and speaking rate."""
    update = {}
    if profile.pitchMean and profile.pitchMean > 0:
        update["pitchMean"] = math.log(profile.pitchMean)
    if profile.speakingRate and profile.speakingRate > 0:
        update["speakingRate"] = math.log(profile.speakingRate)
    return profile.model_copy(update=update)


def apply_temporal_normalization(profile: VoiceSessionProfile) -> VoiceSessionProfile:
    """Log-transform the zero-crossing rate."""
    update = {}
    if profile.zcrMean > 0:
        update["zcrMean"] = math.log(profile.zcrMean + 1)
    return profile.model_copy(update=update)


def apply_spectral_normalization(profile: VoiceSessionProfile) -> VoiceSessionProfile:
    """Log-transform energy, RMS and spectral centroid to cancel recording gain."""
    update = {}
    if profile.energyMean > 0:
        update["energyMean"] = math.log(profile.energyMean + 1)
    if profile.rmsMean > 0:
        update["rmsMean"] = math.log(profile.rmsMean + 1)
    if profile.spectralCentroidMean > 0:
        update["spectralCentroidMean"] = math.log(profile.spectralCentroidMean)
    return profile.model_copy(update=update)


def _bounded_similarity(distance: float, scale: float) -> float:
    return max(0.0, 1.0 - distance / scale)


def _combined_similarity(diffs: Dict[str, float], terms: Dict[str, tuple]) -> float:
    penalty = sum(weight * diffs[name] / scale for name, (weight, scale) in terms.items())
    return max(0.0, 1.0 - penalty)


class VoiceMatcher:
    """Scores how closely a live voice profile matches an enrolled one."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    @staticmethod
    def _parse(profile: ProfileInput) -> VoiceSessionProfile:
        if isinstance(profile, VoiceSessionProfile):
            return profile
        return VoiceSessionProfile.model_validate(profile)

    def match(self, enrolled: ProfileInput, live: ProfileInput) -> VoiceMatchResult:
        """
        Compare two profiles.

        The matcher never decides acceptance; see ``verify`` for the
        caller-side threshold comparison.

        Raises:
            MissingMfccError: If either profile has no MFCC means
        """
        profile1 = self._parse(enrolled)
        profile2 = self._parse(live)

        if not profile1.mfccMean or not profile2.mfccMean:
            raise MissingMfccError()

        pitch1, pitch2 = apply_pitch_normalization(profile1), apply_pitch_normalization(profile2)
        tempo1, tempo2 = apply_temporal_normalization(profile1), apply_temporal_normalization(profile2)
        spectral1, spectral2 = apply_spectral_normalization(profile1), apply_spectral_normalization(profile2)

        # MFCC RMS distance over the overlapping coefficients
        overlap = min(len(profile1.mfccMean), len(profile2.mfccMean))
        mfcc_diff = np.asarray(profile1.mfccMean[:overlap]) - np.asarray(profile2.mfccMean[:overlap])
        mfcc_distance = float(np.sqrt(np.sum(mfcc_diff ** 2) / overlap))

        diffs = {
            "centroid": abs(spectral1.spectralCentroidMean - spectral2.spectralCentroidMean),
            "flatness": abs(profile1.spectralFlatnessMean - profile2.spectralFlatnessMean),
            "rolloff": abs(profile1.spectralRolloffMean - profile2.spectralRolloffMean),
            "zcr": abs(tempo1.zcrMean - tempo2.zcrMean),
            "energy": abs(spectral1.energyMean - spectral2.energyMean),
            "spread": abs(profile1.perceptualSpreadMean - profile2.perceptualSpreadMean),
            "sharpness": abs(profile1.perceptualSharpnessMean - profile2.perceptualSharpnessMean),
        }

        pitch_diff = None
        if profile1.pitchMean and profile2.pitchMean:
            pitch_diff = abs(pitch1.pitchMean - pitch2.pitchMean)

        mfcc_similarity = _bounded_similarity(mfcc_distance, MFCC_SCALE)
        spectral_similarity = _combined_similarity(diffs, SPECTRAL_TERMS)
        voice_quality_similarity = _combined_similarity(diffs, VOICE_QUALITY_TERMS)
        temporal_similarity = _combined_similarity(diffs, TEMPORAL_TERMS)
        pitch_similarity = (
            _bounded_similarity(pitch_diff, PITCH_SCALE) if pitch_diff is not None else PITCH_ABSENT_SIMILARITY
        )

        scores = {
            "mfcc": mfcc_similarity,
            "spectral": spectral_similarity,
            "voice_quality": voice_quality_similarity,
            "temporal": temporal_similarity,
            "pitch": pitch_similarity,
        }
        overall = sum(scores[name] * weight for name, weight in OVERALL_WEIGHTS.items())

        # Low disagreement between metrics means high confidence
        confidence = max(0.0, 1.0 - 2.0 * float(np.var(list(scores.values()))))

        result = VoiceMatchResult(
            overall_similarity=overall,
            pitch_normalized_similarity=mfcc_similarity * 0.7 + spectral_similarity * 0.2 + pitch_similarity * 0.1,
            tempo_normalized_similarity=mfcc_similarity * 0.6 + spectral_similarity * 0.3 + temporal_similarity * 0.1,
            mfcc_similarity=mfcc_similarity,
            spectral_similarity=spectral_similarity,
            voice_quality_similarity=voice_quality_similarity,
            temporal_similarity=temporal_similarity,
            pitch_similarity=pitch_similarity,
            confidence=confidence,
            detailed_metrics=VoiceMetricDetails(
                mfcc_distance=mfcc_distance,
                spectral_centroid_diff=diffs["centroid"],
                zcr_diff=diffs["zcr"],
                pitch_diff=pitch_diff,
                energy_diff=diffs["energy"],
            ),
        )

        logger.debug(
            f"Voice match: overall={overall:.4f}, mfcc_distance={mfcc_distance:.4f}, confidence={confidence:.3f}"
        )
        return result

    def verify(self, enrolled: ProfileInput, live: ProfileInput, threshold: Optional[float] = None) -> tuple:
        """
        Match two profiles and compare the overall similarity with a threshold.

        Returns:
            Tuple of (accepted, match_result, threshold_used)
        """
        threshold = self.settings.voice_match_threshold if threshold is None else threshold
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"Threshold must be between 0.0 and 1.0, got: {threshold}")

        result = self.match(enrolled, live)
        return result.overall_similarity >= threshold, result, threshold


def calculate_similarity_score(enrolled: ProfileInput, live: ProfileInput) -> float:
    """Overall similarity only, for callers that do not need the breakdown."""
    return VoiceMatcher().match(enrolled, live).overall_similarity
