"""Engine services: training, authentication, voice aggregation and matching."""

from .authenticator import Authenticator
from .autoencoder import Autoencoder
from .normalizer import FeatureNormalizer
from .trainer import Trainer
from .voice_aggregator import VoiceFeatureAggregator
from .voice_matcher import VoiceMatcher, calculate_similarity_score

__all__ = [
    "Authenticator",
    "Autoencoder",
    "FeatureNormalizer",
    "Trainer",
    "VoiceFeatureAggregator",
    "VoiceMatcher",
    "calculate_similarity_score"
]
