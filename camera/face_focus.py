"""
Per-frame face focus pipeline.

Wires a landmark detector, the presence debouncer and the gaze classifier
into one caller-owned engine. Each processed frame yields a
PresenceSnapshot that is handed synchronously to every subscriber.
"""

import logging
import threading
import time
from typing import Any, Callable, List, Optional, Sequence

from camera.base_detector import LandmarkDetectorProtocol
from camera.gaze import GazeResult, NOT_LOOKING, check_gaze_direction
from camera.presence import PresenceDebouncer, PresenceSnapshot

logger = logging.getLogger(__name__)

Subscriber = Callable[[PresenceSnapshot], None]


class FaceFocusEngine:
    """
    Turns camera frames into debounced presence snapshots.
    
    Frames can be processed inline with process_frame(), or handed off with
    submit_frame(), which runs detection on a daemon worker thread and
    skips the frame if a detection is already in flight.
    """
    
    def __init__(
        self,
        detector: LandmarkDetectorProtocol,
        debouncer: Optional[PresenceDebouncer] = None,
        include_keypoints: bool = False,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the engine.
        
        Args:
            detector: Landmark detector (see LandmarkDetectorProtocol)
            debouncer: Presence debouncer (a fresh one by default)
            include_keypoints: Attach raw keypoints to published snapshots
            clock: Monotonic time source in seconds
        """
        self.detector = detector
        self.debouncer = debouncer or PresenceDebouncer()
        self.include_keypoints = include_keypoints
        self._clock = clock
        
        self._subscribers: List[Subscriber] = []
        self._subscribers_lock = threading.Lock()
        
        # Guards debouncer and last gaze between worker and caller threads
        self._state_lock = threading.Lock()
        self._last_gaze: GazeResult = NOT_LOOKING
        
        self._in_flight = threading.Lock()
        self._worker: Optional[threading.Thread] = None
        self._generation = 0
        self.is_running = False
        
        self.latest_snapshot: Optional[PresenceSnapshot] = None
        self.frames_skipped = 0
    
    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------
    
    def subscribe(self, handler: Subscriber) -> Callable[[], None]:
        """
        Register a snapshot handler.
        
        Args:
            handler: Called with every published snapshot
        
        Returns:
            Function that removes the handler again
        """
        with self._subscribers_lock:
            self._subscribers.append(handler)
        
        def unsubscribe() -> None:
            with self._subscribers_lock:
                if handler in self._subscribers:
                    self._subscribers.remove(handler)
        
        return unsubscribe
    
    def publish(self, snapshot: PresenceSnapshot) -> PresenceSnapshot:
        """
        Deliver a snapshot to every handler in registration order.
        
        A failing handler is logged and does not stop delivery to the rest.
        
        Args:
            snapshot: Snapshot to deliver
        
        Returns:
            The same snapshot
        """
        self.latest_snapshot = snapshot
        
        with self._subscribers_lock:
            handlers = list(self._subscribers)
        
        for handler in handlers:
            try:
                handler(snapshot)
            except Exception as e:
                logger.error(f"Snapshot subscriber {handler!r} failed: {e}")
        
        return snapshot
    
    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    
    def start(self) -> None:
        """Start accepting frames through submit_frame()."""
        if self.is_running:
            return
        
        with self._state_lock:
            self.debouncer.reset()
            self._last_gaze = NOT_LOOKING
        
        self._generation += 1
        self.is_running = True
        logger.info("Face focus engine started")
    
    def stop(self) -> None:
        """
        Stop accepting frames and drop the result of any pending detection.
        """
        if not self.is_running:
            return
        
        self.is_running = False
        self._generation += 1
        
        logger.info("Face focus engine stopped")
    
    def close(self, timeout: float = 2.0) -> None:
        """
        Stop the engine and release the detector.
        
        Waits for an in-flight detection to return first. If it is still
        running after timeout seconds the detector is left open.
        
        Args:
            timeout: Seconds to wait for the worker thread
        """
        worker = self._worker
        self.stop()
        
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning("Detection still running after stop, detector left open")
                return
        self._worker = None
        
        close = getattr(self.detector, "close", None)
        if callable(close):
            close()
    
    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------
    
    def process_frame(self, frame: Any, now: Optional[float] = None) -> PresenceSnapshot:
        """
        Run the full pipeline on one frame and publish the result.
        
        Args:
            frame: Camera frame passed to the detector
            now: Frame time in seconds (defaults to the engine clock)
        
        Returns:
            The published snapshot
        """
        keypoints = self._detect(frame)
        if now is None:
            now = self._clock()
        return self.publish(self._build_snapshot(keypoints, now))
    
    def submit_frame(self, frame: Any) -> bool:
        """
        Queue a frame for background processing unless one is in flight.
        
        Args:
            frame: Camera frame passed to the detector
        
        Returns:
            True if the frame was accepted, False if it was skipped
        """
        if not self.is_running:
            return False
        
        if not self._in_flight.acquire(blocking=False):
            self.frames_skipped += 1
            return False
        
        self._worker = threading.Thread(
            target=self._run_detection,
            args=(frame, self._generation),
            daemon=True,
            name="face-focus-detect"
        )
        self._worker.start()
        
        return True
    
    def _run_detection(self, frame: Any, generation: int) -> None:
        try:
            keypoints = self._detect(frame)
            
            if generation != self._generation or not self.is_running:
                logger.debug("Discarding detection result from a stopped run")
                return
            
            self.publish(self._build_snapshot(keypoints, self._clock()))
        finally:
            self._in_flight.release()
    
    def _detect(self, frame: Any) -> Sequence[Any]:
        """Call the detector, treating any failure as no face."""
        try:
            return list(self.detector.detect(frame) or [])
        except Exception as e:
            logger.warning(f"Landmark detection failed, treating frame as no face: {e}")
            return []
    
    def _build_snapshot(self, keypoints: Sequence[Any], now: float) -> PresenceSnapshot:
        """
        Combine raw detection, debounce state and gaze into a snapshot.
        
        While presence is only held by the debounce window (no landmarks
        this frame) the last gaze result is carried forward.
        """
        raw_detected = len(keypoints) > 0
        
        with self._state_lock:
            has_face = self.debouncer.update(raw_detected, now)
            
            if raw_detected:
                gaze = check_gaze_direction(keypoints)
                self._last_gaze = gaze
            elif has_face:
                gaze = self._last_gaze
            else:
                gaze = NOT_LOOKING
                self._last_gaze = NOT_LOOKING
            
            fps = self.debouncer.tick_fps(now)
        
        return PresenceSnapshot(
            face_detected=has_face,
            is_looking_at_screen=gaze.is_looking and has_face,
            confidence=gaze.confidence if has_face else 0,
            fps=fps,
            timestamp=now,
            keypoints=list(keypoints) if (self.include_keypoints and raw_detected) else None
        )
