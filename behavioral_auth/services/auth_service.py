"""
Authentication service for keystroke and voice enrollment and verification workflows.

This module provides the orchestration layer for:
- Collecting keystroke enrollment samples and (re)training the identity's model
- Keystroke verification against the stored model
- Voice profile enrollment and verification
- Per-identity locking around every read and write of stored profiles
"""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from ..clients.profile_repository import ProfileRepository
from ..config import Settings
from ..errors import AggregationError, AuthError, DimensionMismatchError, MatchError, TrainingError
from ..models.internal_models import (
    Decision,
    EnrollmentResult,
    TrainingSample,
    VoiceVerificationResult
)
from ..models.profile_models import AutoencoderModel, StatisticalModel
from ..observability import (
    record_authentication_metrics,
    record_training_metrics,
    record_verification_metrics,
    trace_function
)
from ..utils.keystroke_features import KeystrokeEvent, extract_keystroke_features
from .authenticator import Authenticator
from .trainer import Trainer
from .voice_aggregator import FrameInput, VoiceFeatureAggregator
from .voice_matcher import VoiceMatcher

logger = logging.getLogger(__name__)

ModelInput = Union[AutoencoderModel, StatisticalModel, Dict[str, Any]]


def rejected_decision(reason: str) -> Decision:
    """Decision for an attempt that could not be scored."""
    return Decision(
        accepted=False,
        reconstruction_error=0.0,
        threshold=0.0,
        confidence=0.0,
        reason=reason,
        deviations=[],
        method="none",
    )


class AuthenticationService:
    """
    Core authentication service handling enrollment and verification workflows.

    Owns no numeric logic: it wires the trainer, authenticator, aggregator and
    matcher to a ProfileRepository and turns engine errors into structured
    results carrying a ``reason``.
    """

    def __init__(self,
                 repository: Optional[ProfileRepository] = None,
                 settings: Optional[Settings] = None,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize authentication service.

        Args:
            repository: Profile repository. If None, creates an in-memory one.
            settings: Engine settings. If None, defaults are used.
            rng: Random source for training and voice estimators.
        """
        self.settings = settings or Settings()
        self.repository = repository or ProfileRepository()
        self.rng = rng if rng is not None else np.random.default_rng()

        self.trainer = Trainer(self.settings, rng=self.rng)
        self.authenticator = Authenticator(self.settings)
        self.aggregator = VoiceFeatureAggregator()
        self.matcher = VoiceMatcher(self.settings)

        logger.info(
            f"Authentication service initialized: minimum_samples={self.settings.minimum_training_samples}, "
            f"voice_threshold={self.settings.voice_match_threshold}"
        )

    # Keystroke enrollment

    def submit_keystroke_sample(self,
                                identity: str,
                                features: Sequence[float],
                                raw_events: Optional[List[Dict[str, Any]]] = None,
                                privacy_mode: bool = True) -> EnrollmentResult:
        """
        Store one enrollment sample and train once enough have been collected.

        Every submission past the minimum retrains on all stored samples and
        overwrites the identity's model.

        Args:
            identity: Identity being enrolled
            features: Keystroke feature vector
            raw_events: Raw keystroke trace, kept only when privacy mode is off
            privacy_mode: Whether raw traces are discarded

        Returns:
            EnrollmentResult; ``enrolled`` is True once a model exists
        """
        required = self.settings.minimum_training_samples

        with self.repository.identity_lock(identity):
            try:
                sample = TrainingSample(features=list(features), raw_events=raw_events)
            except (TypeError, ValueError) as e:
                logger.warning(f"Invalid sample rejected for {identity}: {e}")
                return EnrollmentResult(
                    identity=identity,
                    enrolled=self.repository.has_model(identity),
                    reason=f"Invalid keystroke sample: {e}",
                    samples_collected=self.repository.sample_count(identity),
                )

            stored = self.repository.load_samples(identity)
            if stored and len(stored[0].features) != len(sample.features):
                mismatch = DimensionMismatchError(expected=len(stored[0].features), provided=len(sample.features))
                logger.warning(f"Sample rejected for {identity}: {mismatch.reason}")
                return EnrollmentResult(
                    identity=identity,
                    enrolled=self.repository.has_model(identity),
                    reason=mismatch.reason,
                    samples_collected=len(stored),
                )

            count = self.repository.save_sample(identity, sample, privacy_mode=privacy_mode)
            if count < required:
                logger.info(f"Collected sample {count}/{required} for {identity}")
                return EnrollmentResult(
                    identity=identity,
                    enrolled=False,
                    reason=f"Sample {count} of {required} recorded",
                    samples_collected=count,
                )

            samples = self.repository.load_samples(identity)
            return self.train(identity, samples, privacy_mode=privacy_mode)

    def submit_keystroke_events(self,
                                identity: str,
                                events: Sequence[Union[KeystrokeEvent, Dict[str, Any]]],
                                privacy_mode: bool = True) -> EnrollmentResult:
        """Extract features from a raw event trace and submit them as a sample."""
        extracted = extract_keystroke_features(events, self.settings.keystroke_password_length)
        raw_events = [
            e if isinstance(e, dict) else {"key": e.key, "type": e.type, "timestamp": e.timestamp}
            for e in events
        ]
        return self.submit_keystroke_sample(identity, extracted.features, raw_events, privacy_mode)

    @trace_function("keystroke.train")
    def train(self,
              identity: str,
              samples: Sequence[Union[TrainingSample, Sequence[float]]],
              privacy_mode: bool = True) -> EnrollmentResult:
        """
        Train and store an autoencoder model for an identity.

        Returns:
            EnrollmentResult with the stored model, or a failure reason
        """
        start_time = time.perf_counter()

        with self.repository.identity_lock(identity):
            try:
                model = self.trainer.train(samples, identity=identity, privacy_mode=privacy_mode)
            except TrainingError as e:
                logger.warning(f"Training failed for {identity}: {e.reason}")
                record_training_metrics(False, time.perf_counter() - start_time, identity)
                return EnrollmentResult(
                    identity=identity,
                    enrolled=False,
                    reason=e.reason,
                    samples_collected=len(samples),
                )

            self.repository.save_model(identity, model)

        record_training_metrics(True, time.perf_counter() - start_time, identity)
        logger.info(f"Enrollment completed for {identity}: threshold={model.threshold:.6f}")
        return EnrollmentResult(
            identity=identity,
            enrolled=True,
            reason="Model trained successfully",
            samples_collected=len(samples),
            threshold=model.threshold,
            model=model,
        )

    # Keystroke verification

    @trace_function("keystroke.authenticate")
    def authenticate(self,
                     identity: str,
                     live_sample: Sequence[float],
                     model: Optional[ModelInput] = None) -> Decision:
        """
        Verify a live keystroke sample.

        Args:
            identity: Identity being verified
            live_sample: Live feature vector
            model: Model to verify against. If None, the stored model is loaded.

        Returns:
            Decision; failures to evaluate are returned as rejected decisions
        """
        start_time = time.perf_counter()

        with self.repository.identity_lock(identity):
            try:
                stored = model if model is not None else self.repository.load_model(identity)
                decision = self.authenticator.authenticate(live_sample, stored, identity=identity)
            except AuthError as e:
                logger.warning(f"Authentication could not be evaluated for {identity}: {e.reason}")
                decision = rejected_decision(e.reason)
                record_authentication_metrics(False, time.perf_counter() - start_time, None, identity)
                return decision

        record_authentication_metrics(
            decision.accepted, time.perf_counter() - start_time, decision.reconstruction_error, identity
        )
        return decision

    # Voice

    def _check_frame_count(self, frames: Sequence[FrameInput]) -> Optional[str]:
        required = self.settings.min_voice_frames
        if 0 < len(frames) < required:
            return f"Need at least {required} voice frames, got {len(frames)}"
        return None

    @trace_function("voice.enroll")
    def enroll_voice(self,
                     identity: str,
                     frames: Sequence[FrameInput],
                     rng: Optional[np.random.Generator] = None) -> EnrollmentResult:
        """
        Build and store a voice session profile for an identity.

        Returns:
            EnrollmentResult whose ``model`` is the stored VoiceSessionProfile
        """
        problem = self._check_frame_count(frames)
        if problem:
            logger.warning(f"Voice enrollment rejected for {identity}: {problem}")
            return EnrollmentResult(identity=identity, enrolled=False, reason=problem, samples_collected=len(frames))

        try:
            profile = self.aggregator.build_session_profile(frames, rng=rng if rng is not None else self.rng)
        except AggregationError as e:
            logger.warning(f"Voice enrollment failed for {identity}: {e.reason}")
            return EnrollmentResult(identity=identity, enrolled=False, reason=e.reason, samples_collected=len(frames))

        self.repository.save_voice_profile(identity, profile)
        logger.info(f"Voice enrollment completed for {identity} from {len(frames)} frames")
        return EnrollmentResult(
            identity=identity,
            enrolled=True,
            reason="Voice profile enrolled",
            samples_collected=len(frames),
            model=profile,
        )

    @trace_function("voice.verify")
    def verify_voice(self,
                     identity: str,
                     frames: Sequence[FrameInput],
                     rng: Optional[np.random.Generator] = None,
                     threshold: Optional[float] = None) -> VoiceVerificationResult:
        """
        Verify live voice frames against the enrolled voice profile.

        Returns:
            VoiceVerificationResult; failures are returned as rejections
        """
        start_time = time.perf_counter()
        threshold = self.settings.voice_match_threshold if threshold is None else threshold

        def rejected(reason: str) -> VoiceVerificationResult:
            logger.warning(f"Voice verification failed for {identity}: {reason}")
            record_verification_metrics(False, time.perf_counter() - start_time, None, identity)
            return VoiceVerificationResult(
                identity=identity,
                accepted=False,
                similarity=0.0,
                confidence=0.0,
                threshold=threshold,
                reason=reason,
            )

        enrolled = self.repository.load_voice_profile(identity)
        if enrolled is None:
            return rejected(f"No voice profile found for user {identity}. Please enroll first.")

        problem = self._check_frame_count(frames)
        if problem:
            return rejected(problem)

        try:
            live = self.aggregator.build_session_profile(frames, rng=rng if rng is not None else self.rng)
            accepted, match, threshold = self.matcher.verify(enrolled, live, threshold)
        except (AggregationError, MatchError) as e:
            return rejected(e.reason)

        if accepted:
            reason = "Voice verification successful"
        else:
            reason = (
                f"Voice verification failed: similarity {match.overall_similarity:.3f} "
                f"below threshold {threshold}"
            )

        logger.info(
            f"Voice comparison for {identity}: similarity={match.overall_similarity:.4f}, "
            f"threshold={threshold}, match={accepted}"
        )
        record_verification_metrics(accepted, time.perf_counter() - start_time, match.overall_similarity, identity)

        return VoiceVerificationResult(
            identity=identity,
            accepted=accepted,
            similarity=match.overall_similarity,
            confidence=match.confidence,
            threshold=threshold,
            reason=reason,
            match=match,
        )


# Global service instance
_auth_service: Optional[AuthenticationService] = None


def get_auth_service() -> AuthenticationService:
    """
    Get the global authentication service instance.

    Returns:
        AuthenticationService: The global authentication service instance
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthenticationService()
    return _auth_service
