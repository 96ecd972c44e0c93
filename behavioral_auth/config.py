"""Configuration management for the behavioral authentication engine."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables.

    Instances are frozen; pass one explicitly into the trainer, authenticator
    and matcher instead of reading shared state.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BEHAVIORAL_AUTH_",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
        frozen=True,
    )

    # Keystroke capture
    keystroke_password_length: int = 11
    required_password_length: int = 8

    # Enrollment
    minimum_training_samples: int = 5
    augmentation_noise: float = 0.1
    augmentation_multiplier: int = 3

    # Autoencoder architecture and training
    hidden_size: int = 16
    bottleneck_size: int = 8
    training_epochs: int = 200
    learning_rate: float = 0.01

    # Threshold calibration
    default_threshold: float = 0.03
    threshold_percentile: float = 0.95
    threshold_safety_margin: float = 1.2
    loss_history_tail: int = 10
    deviation_length: int = 10

    # Legacy statistical models
    statistical_default_threshold: float = 0.1
    statistical_percentile: int = 95

    # Voice matching
    voice_match_threshold: float = 0.65
    min_voice_frames: int = 5

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator(
        'keystroke_password_length',
        'minimum_training_samples',
        'hidden_size',
        'bottleneck_size',
        'training_epochs',
        'loss_history_tail',
        'deviation_length',
    )
    @classmethod
    def validate_positive_int(cls, v, info):
        if v <= 0:
            raise ValueError(f'{info.field_name.upper()} must be a positive integer')
        return v

    @field_validator('augmentation_multiplier', 'min_voice_frames')
    @classmethod
    def validate_non_negative_int(cls, v, info):
        if v < 0:
            raise ValueError(f'{info.field_name.upper()} must not be negative')
        return v

    @field_validator('augmentation_noise')
    @classmethod
    def validate_augmentation_noise(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('AUGMENTATION_NOISE must be between 0.0 and 1.0')
        return v

    @field_validator('learning_rate', 'default_threshold', 'statistical_default_threshold')
    @classmethod
    def validate_positive_float(cls, v, info):
        if v <= 0:
            raise ValueError(f'{info.field_name.upper()} must be greater than 0')
        return v

    @field_validator('threshold_percentile')
    @classmethod
    def validate_threshold_percentile(cls, v):
        if not 0.0 < v <= 1.0:
            raise ValueError('THRESHOLD_PERCENTILE must be in (0.0, 1.0]')
        return v

    @field_validator('threshold_safety_margin')
    @classmethod
    def validate_safety_margin(cls, v):
        if v < 1.0:
            raise ValueError('THRESHOLD_SAFETY_MARGIN must be at least 1.0')
        return v

    @field_validator('statistical_percentile')
    @classmethod
    def validate_statistical_percentile(cls, v):
        if not 0 < v <= 100:
            raise ValueError('STATISTICAL_PERCENTILE must be between 1 and 100')
        return v

    @field_validator('voice_match_threshold')
    @classmethod
    def validate_voice_match_threshold(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError('VOICE_MATCH_THRESHOLD must be between 0.0 and 1.0')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'LOG_LEVEL must be a standard logging level, got {v}')
        return level


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance for collaborators that need one."""
    return Settings()
