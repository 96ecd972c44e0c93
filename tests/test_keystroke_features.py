"""
Tests for keystroke feature extraction.
"""

import pytest

from behavioral_auth.utils.keystroke_features import (
    KeystrokeEvent,
    extract_keystroke_features,
    feature_length
)


def typed(text, hold=80.0, gap=120.0, start=0.0):
    """Build an event trace typing ``text`` with a fixed rhythm."""
    events = []
    timestamp = start
    for char in text:
        events.append({"key": char, "type": "keydown", "timestamp": timestamp})
        events.append({"key": char, "type": "keyup", "timestamp": timestamp + hold})
        timestamp += gap
    return events


class TestKeystrokeFeatures:
    """Test cases for extract_keystroke_features."""

    def test_feature_length(self):
        """Test the fixed vector length."""
        assert feature_length() == 34
        assert feature_length(8) == 25

    def test_two_key_trace(self):
        """Test every measurement on a hand-checked trace."""
        events = [
            KeystrokeEvent("a", "keydown", 0.0),
            KeystrokeEvent("a", "keyup", 100.0),
            KeystrokeEvent("b", "keydown", 150.0),
            KeystrokeEvent("b", "keyup", 230.0),
        ]

        features = extract_keystroke_features(events)

        assert features.hold_times == [100.0, 80.0]
        assert features.dd_times == [150.0]
        assert features.ud_times == [50.0]
        assert features.typing_speed == pytest.approx(2 / 0.18)
        assert features.flight_time == 50.0
        assert features.error_count == 0
        assert features.press_pressure == pytest.approx(10.0)
        assert len(features.features) == 34
        assert features.features[:8] == pytest.approx([100.0, 80.0, 150.0, 50.0, 2 / 0.18, 50.0, 0.0, 10.0])
        assert features.features[8:] == [0.0] * 26

    def test_accepts_event_dicts(self):
        """Test that plain dict events are accepted."""
        features = extract_keystroke_features(typed("hello"))

        assert features.hold_times == [80.0] * 5
        assert features.dd_times == [120.0] * 4
        assert features.ud_times == [40.0] * 4

    def test_missing_keyup_falls_back_to_down_down(self):
        """Test the flight time when a key release was not captured."""
        events = [
            {"key": "a", "type": "keydown", "timestamp": 0.0},
            {"key": "b", "type": "keydown", "timestamp": 100.0},
            {"key": "b", "type": "keyup", "timestamp": 180.0},
        ]

        features = extract_keystroke_features(events)

        assert features.hold_times == [80.0]
        assert features.ud_times == [100.0]

    def test_backspace_counted_as_error(self):
        """Test that corrections are counted."""
        events = typed("ab") + typed(["Backspace"], start=300.0) + typed("c", start=500.0)

        features = extract_keystroke_features(events)

        assert features.error_count == 2
        assert features.features[9] == 2.0

    def test_long_trace_truncated_to_fixed_length(self):
        """Test that long passwords still give exactly 34 features."""
        features = extract_keystroke_features(typed("correcthorsebattery"))

        assert len(features.features) == 34
        assert features.features[:11] == [80.0] * 11
        assert features.features[11:21] == [120.0] * 10
        assert features.features[21:31] == [40.0] * 10

    def test_full_length_password(self):
        """Test an eleven character password fills every timing slot."""
        features = extract_keystroke_features(typed("password123"))

        assert len(features.features) == 34
        assert features.features[31] == pytest.approx(11 / 1.2)
        assert features.features[32] == pytest.approx(40.0)

    def test_empty_trace(self):
        """Test that an empty trace gives an all-zero vector."""
        features = extract_keystroke_features([])

        assert features.features == [0.0] * 34
        assert features.typing_speed == 0.0

    def test_custom_password_length(self):
        """Test the vector layout for another password length."""
        features = extract_keystroke_features(typed("abc"), password_length=4)

        assert len(features.features) == 13

    def test_invalid_event_type(self):
        """Test that unknown event types are rejected."""
        with pytest.raises(ValueError, match="keydown"):
            KeystrokeEvent("a", "keypress", 0.0)
