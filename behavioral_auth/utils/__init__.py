# Utilities module

from .audio_utils import (
    AudioProcessingError,
    PitchStatistics,
    decode_wav,
    estimate_pitch_statistics,
    estimate_voice_quality,
    get_audio_duration,
    pcm_to_wav,
    validate_voice_audio_bytes,
    validate_voice_audio_quality,
)
from .keystroke_features import (
    KeystrokeEvent,
    KeystrokeFeatures,
    extract_keystroke_features,
    feature_length,
)

__all__ = [
    "AudioProcessingError",
    "PitchStatistics",
    "decode_wav",
    "estimate_pitch_statistics",
    "estimate_voice_quality",
    "get_audio_duration",
    "pcm_to_wav",
    "validate_voice_audio_bytes",
    "validate_voice_audio_quality",
    "KeystrokeEvent",
    "KeystrokeFeatures",
    "extract_keystroke_features",
    "feature_length",
]
