"""
Audio utilities for voice authentication.

This module provides functions for:
- PCM to WAV conversion and WAV decoding
- Audio quality gating before feature extraction
- Stand-in pitch and voice-quality estimators
"""

import logging
import struct
from dataclasses import dataclass
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44
MIN_AUDIO_BYTES = 10_000
MAX_AUDIO_BYTES = 50 * 1024 * 1024
MIN_DURATION_SECONDS = 1.0
MIN_SAMPLE_COUNT = 2048
RMS_WINDOW = 4096
MIN_RMS_LEVEL = 0.001


class AudioProcessingError(Exception):
    """Raised when audio processing operations fail."""
    pass


@dataclass
class PitchStatistics:
    """Session pitch summary in Hz."""

    mean: float
    variance: float
    range: float


def pcm_to_wav(pcm_data: bytes, sample_rate: int = 16000, channels: int = 1,
               sample_width: int = 2) -> bytes:
    """
    Wrap raw little-endian PCM in a canonical 44-byte WAV header.

    Raises:
        AudioProcessingError: If the payload is empty or the format is invalid
    """
    if not pcm_data:
        raise AudioProcessingError("PCM data is empty")
    if sample_rate <= 0 or channels <= 0 or sample_width <= 0:
        raise AudioProcessingError(
            f"Invalid PCM format: rate={sample_rate}, channels={channels}, width={sample_width}"
        )

    block_align = channels * sample_width
    try:
        header = struct.pack(
            '<4sI4s4sIHHIIHH4sI',
            b'RIFF', len(pcm_data) + WAV_HEADER_SIZE - 8, b'WAVE',
            b'fmt ', 16, 1, channels, sample_rate, sample_rate * block_align, block_align, sample_width * 8,
            b'data', len(pcm_data),
        )
    except struct.error as e:
        raise AudioProcessingError(f"Failed to create WAV header: {e}")

    return header + pcm_data


def _read_header(audio_data: bytes) -> Tuple[int, int, int]:
    if len(audio_data) < WAV_HEADER_SIZE:
        raise AudioProcessingError("Audio data too short to contain WAV header")
    if audio_data[:4] != b'RIFF' or audio_data[8:12] != b'WAVE':
        raise AudioProcessingError("Not a valid WAV file")

    channels = struct.unpack('<H', audio_data[22:24])[0]
    sample_rate = struct.unpack('<I', audio_data[24:28])[0]
    bits_per_sample = struct.unpack('<H', audio_data[34:36])[0]
    return channels, sample_rate, bits_per_sample


def get_audio_duration(audio_data: bytes) -> float:
    """
    Get duration of WAV audio data in seconds.

    Raises:
        AudioProcessingError: If unable to determine duration
    """
    channels, sample_rate, bits_per_sample = _read_header(audio_data)
    bytes_per_second = sample_rate * channels * (bits_per_sample // 8)
    if bytes_per_second == 0:
        raise AudioProcessingError("WAV header declares a zero byte rate")
    return (len(audio_data) - WAV_HEADER_SIZE) / bytes_per_second


def decode_wav(audio_data: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode 16-bit PCM WAV bytes to mono float samples in [-1, 1].

    Multi-channel audio keeps only the first channel.

    Returns:
        Tuple of (samples, sample_rate)
    """
    channels, sample_rate, bits_per_sample = _read_header(audio_data)
    if bits_per_sample != 16:
        raise AudioProcessingError(f"Expected 16-bit samples, got {bits_per_sample}-bit")
    if channels < 1:
        raise AudioProcessingError("WAV header declares no channels")

    pcm = np.frombuffer(audio_data[WAV_HEADER_SIZE:], dtype='<i2')
    usable = (pcm.shape[0] // channels) * channels
    samples = pcm[:usable].reshape(-1, channels)[:, 0].astype(np.float32) / 32768.0
    return samples, sample_rate


def validate_voice_audio_quality(samples: np.ndarray, sample_rate: int) -> Tuple[bool, str]:
    """
    Check that decoded audio is long and loud enough for voice analysis.

    Returns:
        Tuple of (is_valid, description)
    """
    if sample_rate <= 0:
        return False, f"Invalid sample rate: {sample_rate}"

    duration = len(samples) / sample_rate
    if duration < MIN_DURATION_SECONDS:
        return False, f"Audio duration too short: {duration:.2f}s"

    if len(samples) < MIN_SAMPLE_COUNT:
        return False, f"Insufficient audio samples: {len(samples)}"

    window = np.asarray(samples[:RMS_WINDOW], dtype=np.float64)
    rms_level = float(np.sqrt(np.mean(window * window)))
    if rms_level <= MIN_RMS_LEVEL:
        return False, f"Signal level too low: RMS {rms_level:.5f}"

    return True, f"Valid voice audio: {duration:.2f}s, RMS {rms_level:.4f}"


def validate_voice_audio_bytes(audio_data: bytes, pcm_sample_rate: int = 16000) -> Tuple[bool, str]:
    """
    Size-check, decode and quality-check a voice payload.

    Payloads without a RIFF header are treated as raw 16-bit mono PCM at
    ``pcm_sample_rate`` and wrapped with ``pcm_to_wav`` before decoding.

    Returns:
        Tuple of (is_valid, description)
    """
    if len(audio_data) < MIN_AUDIO_BYTES:
        return False, f"Audio payload too small: {len(audio_data)} bytes"
    if len(audio_data) > MAX_AUDIO_BYTES:
        return False, f"Audio payload too large: {len(audio_data)} bytes"

    try:
        if audio_data[:4] != b'RIFF':
            logger.debug(f"Treating {len(audio_data)}-byte payload as raw PCM at {pcm_sample_rate} Hz")
            audio_data = pcm_to_wav(audio_data, sample_rate=pcm_sample_rate)
        samples, sample_rate = decode_wav(audio_data)
    except AudioProcessingError as e:
        logger.warning(f"Audio validation failed to decode payload: {e}")
        return False, str(e)

    return validate_voice_audio_quality(samples, sample_rate)


def estimate_pitch_statistics(rng: np.random.Generator) -> PitchStatistics:
    """
    Stand-in fundamental frequency estimate.

    Not a real F0 tracker: values are drawn around a typical 90-150 Hz
    speaking voice. Replace with YIN or autocorrelation for real pitch.
    """
    return PitchStatistics(
        mean=120.0 + (rng.random() - 0.5) * 60.0,
        variance=10.0 + rng.random() * 10.0,
        range=20.0 + rng.random() * 20.0,
    )


def estimate_voice_quality(rng: np.random.Generator) -> Tuple[float, float]:
    """
    Stand-in jitter and shimmer estimate.

    Not derived from the signal: values are drawn from typical healthy-voice
    ranges.

    Returns:
        Tuple of (jitter, shimmer)
    """
    jitter = 0.005 + rng.random() * 0.01
    shimmer = 0.03 + rng.random() * 0.04
    return jitter, shimmer
