"""In-memory profile repository with per-identity locking."""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Union

from ..errors import ModelNotFoundError
from ..models.internal_models import TrainingSample
from ..models.profile_models import (
    AutoencoderModel,
    StatisticalModel,
    VoiceSessionProfile,
    parse_stored_model
)

logger = logging.getLogger(__name__)

ModelRecord = Union[AutoencoderModel, StatisticalModel, Dict[str, Any]]


class ProfileRepository:
    """
    Repository for keystroke models, enrollment samples and voice profiles.

    Records are held as JSON-compatible dicts in the persisted camelCase
    layout, so callers can write them to any storage medium unchanged.
    Writers and readers for one identity serialize through ``identity_lock``.
    """

    def __init__(self):
        self._models: Dict[str, Dict[str, Any]] = {}
        self._samples: Dict[str, List[Dict[str, Any]]] = {}
        self._voice_profiles: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, identity: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.RLock()
            return lock

    @contextmanager
    def identity_lock(self, identity: str) -> Iterator[None]:
        """Hold the mutual-exclusion lock for one identity."""
        lock = self._lock_for(identity)
        with lock:
            yield

    # Models

    def save_model(self, identity: str, model: ModelRecord) -> Dict[str, Any]:
        """Store (or overwrite) the model for an identity and return the stored record."""
        parsed = parse_stored_model(model)
        record = parsed.model_dump(mode="json")
        with self.identity_lock(identity):
            self._models[identity] = record
        logger.info(f"Stored {record['modelType']} model for {identity}")
        return copy.deepcopy(record)

    def load_model(self, identity: str) -> Dict[str, Any]:
        """
        Return the stored model record for an identity.

        Raises:
            ModelNotFoundError: If no model has been stored
        """
        with self.identity_lock(identity):
            record = self._models.get(identity)
            if record is None:
                raise ModelNotFoundError(identity)
            return copy.deepcopy(record)

    def has_model(self, identity: str) -> bool:
        with self.identity_lock(identity):
            return identity in self._models

    # Enrollment samples

    def save_sample(self, identity: str, sample: TrainingSample, privacy_mode: bool = True) -> int:
        """
        Append an enrollment sample.

        Raw event traces are dropped in privacy mode.

        Returns:
            Number of samples stored for the identity
        """
        with self.identity_lock(identity):
            samples = self._samples.setdefault(identity, [])
            sample.sample_index = len(samples) + 1
            samples.append(sample.to_dict(include_raw=not privacy_mode))
            count = len(samples)
        logger.debug(f"Stored sample {count} for {identity} (privacy_mode={privacy_mode})")
        return count

    def load_samples(self, identity: str) -> List[TrainingSample]:
        with self.identity_lock(identity):
            return [TrainingSample.from_dict(data) for data in self._samples.get(identity, [])]

    def sample_count(self, identity: str) -> int:
        with self.identity_lock(identity):
            return len(self._samples.get(identity, []))

    # Voice profiles

    def save_voice_profile(self, identity: str, profile: VoiceSessionProfile) -> None:
        with self.identity_lock(identity):
            self._voice_profiles[identity] = profile.model_dump(mode="json")
        logger.info(f"Stored voice profile for {identity}")

    def load_voice_profile(self, identity: str) -> Optional[VoiceSessionProfile]:
        with self.identity_lock(identity):
            data = self._voice_profiles.get(identity)
        return VoiceSessionProfile.model_validate(data) if data is not None else None

    def delete_identity(self, identity: str) -> bool:
        """
        Remove every record stored for an identity.

        Returns:
            True if anything was deleted
        """
        with self.identity_lock(identity):
            removed = any([
                self._models.pop(identity, None) is not None,
                self._samples.pop(identity, None) is not None,
                self._voice_profiles.pop(identity, None) is not None,
            ])
        if removed:
            logger.info(f"Deleted all records for {identity}")
        return removed
