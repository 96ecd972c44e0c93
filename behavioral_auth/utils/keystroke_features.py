"""
Keystroke timing feature extraction.

Turns a raw keydown/keyup event trace into the fixed-length vector used for
enrollment and verification:

    hold[:L] + down_down[:L-1] + up_down[:L-1] + [speed, flight, errors, pressure]

zero-padded and truncated to ``3 * L + 1`` features (34 for L = 11).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence, Union

import numpy as np

DEFAULT_PASSWORD_LENGTH = 11
MIN_TYPING_TIME_MS = 0.001


@dataclass
class KeystrokeEvent:
    """One key event with a millisecond timestamp."""

    key: str
    type: Literal["keydown", "keyup"]
    timestamp: float

    def __post_init__(self):
        if self.type not in ("keydown", "keyup"):
            raise ValueError(f"Event type must be 'keydown' or 'keyup', got {self.type!r}")


@dataclass
class KeystrokeFeatures:
    """Timing measurements and the final feature vector for one typing sample."""

    hold_times: List[float]
    dd_times: List[float]
    ud_times: List[float]
    typing_speed: float
    flight_time: float
    error_count: int
    press_pressure: float
    features: List[float] = field(default_factory=list)


def feature_length(password_length: int = DEFAULT_PASSWORD_LENGTH) -> int:
    return password_length * 3 + 1


def _find_release(events: Sequence[KeystrokeEvent], key: str, after: float) -> Optional[KeystrokeEvent]:
    return next((e for e in events if e.key == key and e.timestamp > after), None)


def extract_keystroke_features(events: Sequence[Union[KeystrokeEvent, Dict[str, Any]]],
                               password_length: int = DEFAULT_PASSWORD_LENGTH) -> KeystrokeFeatures:
    """
    Extract timing features from a keystroke event trace.

    Args:
        events: Events in capture order
        password_length: Number of timing slots in the feature layout

    Returns:
        KeystrokeFeatures with a vector of exactly ``3 * password_length + 1`` values
    """
    parsed = [e if isinstance(e, KeystrokeEvent) else KeystrokeEvent(**e) for e in events]
    key_downs = [e for e in parsed if e.type == "keydown"]
    key_ups = [e for e in parsed if e.type == "keyup"]

    hold_times = []
    for down in key_downs:
        release = _find_release(key_ups, down.key, down.timestamp)
        if release is not None:
            hold_times.append(release.timestamp - down.timestamp)

    dd_times = [nxt.timestamp - cur.timestamp for cur, nxt in zip(key_downs, key_downs[1:])]

    ud_times = []
    for cur, nxt in zip(key_downs, key_downs[1:]):
        release = _find_release(key_ups, cur.key, cur.timestamp)
        # A missing keyup falls back to the down-down interval
        ud_times.append(nxt.timestamp - (release.timestamp if release is not None else cur.timestamp))

    total_time_ms = max(sum(hold_times), sum(dd_times), sum(ud_times)) or MIN_TYPING_TIME_MS
    typing_speed = len(key_downs) / (total_time_ms / 1000.0)
    flight_time = float(np.mean(ud_times)) if ud_times else 0.0
    error_count = sum(1 for e in parsed if e.key == "Backspace")
    press_pressure = float(np.std(hold_times)) if hold_times else 0.0

    vector = (
        hold_times[:password_length]
        + dd_times[:password_length - 1]
        + ud_times[:password_length - 1]
        + [typing_speed, flight_time, float(error_count), press_pressure]
    )
    length = feature_length(password_length)
    vector = (vector + [0.0] * length)[:length]

    return KeystrokeFeatures(
        hold_times=hold_times,
        dd_times=dd_times,
        ud_times=ud_times,
        typing_speed=typing_speed,
        flight_time=flight_time,
        error_count=error_count,
        press_pressure=press_pressure,
        features=[float(v) for v in vector],
    )
