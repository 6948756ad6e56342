"""Tests for the per-frame face focus engine."""

import logging
import threading
import time

import pytest

from camera.face_focus import FaceFocusEngine
from tests.conftest import frontal_keypoints


class ScriptedDetector:
    """Returns queued results frame by frame; an Exception entry is raised."""

    def __init__(self, results):
        self.results = list(results)
        self.closed = False

    def detect(self, frame):
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed = True


class GatedDetector:
    """Blocks inside detect() until the gate is opened."""

    def __init__(self):
        self.gate = threading.Event()
        self.entered = threading.Event()

    def detect(self, frame):
        self.entered.set()
        self.gate.wait(timeout=5)
        return frontal_keypoints()

    def close(self):
        pass


def _wait_until_idle(engine, timeout=5.0):
    deadline = time.monotonic() + timeout
    while engine._in_flight.locked() and time.monotonic() < deadline:
        time.sleep(0.01)


def test_looking_face_produces_focused_snapshot():
    engine = FaceFocusEngine(ScriptedDetector([frontal_keypoints()]))

    snap = engine.process_frame("frame", now=1.0)

    assert snap.face_detected is True
    assert snap.is_looking_at_screen is True
    assert snap.confidence == 100
    assert snap.timestamp == 1.0
    assert snap.keypoints is None
    assert engine.latest_snapshot is snap


def test_short_dropout_holds_last_gaze():
    engine = FaceFocusEngine(ScriptedDetector([frontal_keypoints(), []]))
    engine.process_frame("frame", now=1.0)

    snap = engine.process_frame("frame", now=1.1)

    assert snap.face_detected is True
    assert snap.is_looking_at_screen is True
    assert snap.confidence == 100


def test_long_dropout_reports_no_face():
    engine = FaceFocusEngine(ScriptedDetector([frontal_keypoints(), [], []]))
    engine.process_frame("frame", now=1.0)
    engine.process_frame("frame", now=1.1)

    snap = engine.process_frame("frame", now=1.5)

    assert snap.face_detected is False
    assert snap.is_looking_at_screen is False
    assert snap.confidence == 0


def test_detector_failure_is_treated_as_no_face(caplog):
    engine = FaceFocusEngine(ScriptedDetector([RuntimeError("model crashed")]))

    with caplog.at_level(logging.WARNING, logger="camera.face_focus"):
        snap = engine.process_frame("frame", now=0.0)

    assert snap.face_detected is False
    assert "model crashed" in caplog.text


def test_include_keypoints_attaches_landmarks():
    keypoints = frontal_keypoints()
    engine = FaceFocusEngine(ScriptedDetector([keypoints]), include_keypoints=True)

    snap = engine.process_frame("frame", now=0.0)

    assert snap.keypoints == keypoints


def test_subscribers_called_in_order_despite_failures():
    engine = FaceFocusEngine(ScriptedDetector([frontal_keypoints()]))
    calls = []

    def failing(snap):
        calls.append("failing")
        raise ValueError("boom")

    engine.subscribe(lambda snap: calls.append("first"))
    engine.subscribe(failing)
    engine.subscribe(lambda snap: calls.append("last"))

    engine.process_frame("frame", now=0.0)

    assert calls == ["first", "failing", "last"]


def test_unsubscribe_stops_delivery():
    engine = FaceFocusEngine(ScriptedDetector([frontal_keypoints(), frontal_keypoints()]))
    received = []
    unsubscribe = engine.subscribe(received.append)

    engine.process_frame("frame", now=0.0)
    unsubscribe()
    engine.process_frame("frame", now=0.1)

    assert len(received) == 1


def test_submit_frame_rejected_when_not_started():
    engine = FaceFocusEngine(ScriptedDetector([]))

    assert engine.submit_frame("frame") is False


def test_submit_frame_skips_while_detection_in_flight():
    detector = GatedDetector()
    engine = FaceFocusEngine(detector)
    delivered = threading.Event()
    engine.subscribe(lambda snap: delivered.set())
    engine.start()
    try:
        assert engine.submit_frame("frame-1") is True
        assert detector.entered.wait(timeout=5)

        assert engine.submit_frame("frame-2") is False
        assert engine.frames_skipped == 1

        detector.gate.set()
        assert delivered.wait(timeout=5)
        assert engine.latest_snapshot.face_detected is True
    finally:
        engine.stop()


def test_stop_discards_pending_result():
    detector = GatedDetector()
    engine = FaceFocusEngine(detector)
    received = []
    engine.subscribe(received.append)
    engine.start()

    assert engine.submit_frame("frame") is True
    assert detector.entered.wait(timeout=5)

    engine.stop()
    detector.gate.set()
    _wait_until_idle(engine)

    assert received == []
    assert engine.submit_frame("frame") is False


def test_close_releases_detector():
    detector = ScriptedDetector([])
    engine = FaceFocusEngine(detector)
    engine.start()

    engine.close()

    assert detector.closed is True
    assert engine.is_running is False


class SlowDetector:
    """Takes a while inside detect() and records whether close() interrupted it."""

    def __init__(self, delay):
        self.delay = delay
        self.entered = threading.Event()
        self.detecting = False
        self.closed_during_detect = False
        self.closed = False

    def detect(self, frame):
        self.detecting = True
        self.entered.set()
        time.sleep(self.delay)
        self.detecting = False
        return frontal_keypoints()

    def close(self):
        self.closed_during_detect = self.detecting
        self.closed = True


def test_close_waits_for_in_flight_detection():
    detector = SlowDetector(0.3)
    engine = FaceFocusEngine(detector)
    engine.start()

    assert engine.submit_frame("frame") is True
    assert detector.entered.wait(timeout=5)

    engine.close()

    assert detector.closed is True
    assert detector.closed_during_detect is False


def test_close_leaves_detector_open_when_detection_hangs():
    detector = GatedDetector()
    closed = []
    detector.close = lambda: closed.append(True)
    engine = FaceFocusEngine(detector)
    engine.start()

    assert engine.submit_frame("frame") is True
    assert detector.entered.wait(timeout=5)

    engine.close(timeout=0.1)
    detector.gate.set()
    _wait_until_idle(engine)

    assert closed == []


@pytest.mark.parametrize("results", [[[]], [frontal_keypoints()]])
def test_is_looking_never_true_without_face(results):
    engine = FaceFocusEngine(ScriptedDetector(results))

    snap = engine.process_frame("frame", now=0.0)

    assert not (snap.is_looking_at_screen and not snap.face_detected)
