"""Shared fixtures and helpers for the test suite."""

from datetime import datetime, timedelta

import pytest

from camera.gaze import Keypoint
from camera.presence import PresenceSnapshot
from storage.base import StorageError
from storage.memory_store import InMemorySessionStore
from tracking.session import FocusSession


def frontal_keypoints(nose_x=150.0, nose_y=150.0):
    """Named landmarks for a face looking straight at the camera."""
    return [
        Keypoint(x=nose_x, y=nose_y, name="noseTip"),
        Keypoint(x=130.0, y=100.0, name="leftEyeInner"),
        Keypoint(x=170.0, y=100.0, name="rightEyeInner"),
        Keypoint(x=100.0, y=100.0, name="leftEyeOuter"),
        Keypoint(x=200.0, y=100.0, name="rightEyeOuter"),
        Keypoint(x=150.0, y=250.0, name="chin"),
    ]


def snapshot(face=True, looking=True, confidence=90, timestamp=0.0):
    return PresenceSnapshot(
        face_detected=face,
        is_looking_at_screen=looking and face,
        confidence=confidence if face else 0,
        fps=0,
        timestamp=timestamp,
    )


def make_session(start, duration=1500.0, focus=80.0, distractions=0, completed=True, tags=None, user_id="u1"):
    return FocusSession(
        user_id=user_id,
        target_duration=1500,
        start_time=start,
        duration=duration,
        focus_percentage=focus,
        distraction_count=distractions,
        is_completed=completed,
        tags=list(tags or []),
    )


class SteppingClock:
    """Wall clock that advances one second per call."""

    def __init__(self, start=datetime(2024, 1, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


class FlakyStore(InMemorySessionStore):
    """In-memory store whose individual operations can be made to fail."""

    def __init__(self):
        super().__init__()
        self.fail_create = False
        self.fail_update = False
        self.fail_append = False
        self.update_calls = 0

    def create_session(self, fields):
        if self.fail_create:
            raise StorageError("disk full")
        return super().create_session(fields)

    def update_session(self, session_id, fields):
        self.update_calls += 1
        if self.fail_update:
            raise StorageError("connection lost")
        super().update_session(session_id, fields)

    def append_distraction(self, session_id, event):
        if self.fail_append:
            raise StorageError("connection lost")
        super().append_distraction(session_id, event)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def clock():
    return SteppingClock()
