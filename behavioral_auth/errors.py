"""Error taxonomy for the behavioral authentication engine.

Every error carries a human-readable ``reason`` so the orchestration layer can
turn it into a structured result without exposing the exception itself.
"""

from typing import Optional


class BiometricAuthError(Exception):
    """Base exception for all recoverable engine errors."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TrainingError(BiometricAuthError):
    """Raised when a model cannot be trained from the supplied samples."""
    pass


class InsufficientSamplesError(TrainingError):
    """Raised when fewer than the configured minimum samples are supplied."""

    def __init__(self, required: int, provided: int):
        super().__init__(
            f"Need at least {required} samples for reliable training, got {provided}"
        )
        self.required = required
        self.provided = provided


class DegenerateFeatureSetError(TrainingError):
    """Raised when every feature has zero range across the training set."""
    pass


class DimensionMismatchError(TrainingError):
    """Raised when feature vectors of one identity differ in length."""

    def __init__(self, expected: int, provided: int):
        super().__init__(
            f"Feature vector length mismatch: expected {expected} features, got {provided}"
        )
        self.expected = expected
        self.provided = provided


class AggregationError(BiometricAuthError):
    """Raised when frame features cannot be reduced to a session profile."""
    pass


class EmptyFrameSetError(AggregationError):
    """Raised when a voice session contains no frames."""

    def __init__(self, reason: str = "Cannot aggregate features - no frame data provided"):
        super().__init__(reason)


class InvalidFrameError(AggregationError):
    """Raised when voice frames are malformed or disagree on their layout."""
    pass


class MatchError(BiometricAuthError):
    """Raised when two voice profiles cannot be compared."""
    pass


class MissingMfccError(MatchError):
    """Raised when either voice profile lacks MFCC means."""

    def __init__(self, reason: str = "Missing MFCC features - cannot perform voice comparison"):
        super().__init__(reason)


class AuthError(BiometricAuthError):
    """Raised when an authentication attempt cannot be evaluated."""
    pass


class ModelNotFoundError(AuthError):
    """Raised when no model has been stored for an identity."""

    def __init__(self, identity: str):
        super().__init__(f"No model found for user {identity}. Please register first.")
        self.identity = identity


class UnknownModelTypeError(AuthError):
    """Raised when a stored model carries an unsupported ``modelType`` tag."""

    def __init__(self, model_type: Optional[str]):
        super().__init__(f"Unknown model type: {model_type!r}")
        self.model_type = model_type


class CorruptModelError(AuthError):
    """Raised when a stored model record is incomplete or inconsistent."""

    def __init__(self, error_count: int):
        super().__init__(
            f"Stored model is corrupt or incomplete ({error_count} invalid fields). Please register again."
        )
        self.error_count = error_count
