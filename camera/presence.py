"""Debounced face presence and frame-rate measurement."""

import logging
from dataclasses import dataclass
from typing import List, Optional

import config
from camera.gaze import Keypoint

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PresenceSnapshot:
    """
    Per-frame output of the face focus pipeline.
    
    is_looking_at_screen is never True while face_detected is False.
    """
    
    face_detected: bool
    is_looking_at_screen: bool
    confidence: int
    fps: int
    timestamp: float
    keypoints: Optional[List[Keypoint]] = None


class PresenceDebouncer:
    """
    Suppresses short face-detection dropouts.
    
    A frame with no detected face only clears presence once no face has
    been seen for longer than the debounce window. Also counts frames to
    report an fps figure once per measurement window.
    """
    
    def __init__(
        self,
        debounce_seconds: Optional[float] = None,
        fps_window_seconds: Optional[float] = None
    ):
        """
        Initialize debouncer state.
        
        Args:
            debounce_seconds: Dropout tolerance (defaults to config.PRESENCE_DEBOUNCE_SECONDS)
            fps_window_seconds: FPS window length (defaults to config.FPS_WINDOW_SECONDS)
        """
        self.debounce_seconds = (
            config.PRESENCE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.fps_window_seconds = (
            config.FPS_WINDOW_SECONDS if fps_window_seconds is None else fps_window_seconds
        )
        self.reset()
    
    def reset(self) -> None:
        """Forget all presence history and restart fps measurement."""
        self.last_face_seen: Optional[float] = None
        self.debounced_presence = False
        self.fps_window_start: Optional[float] = None
        self.frame_count = 0
        self.fps = 0
    
    def update(self, raw_detected: bool, now: float) -> bool:
        """
        Feed one frame's raw detection result.
        
        Args:
            raw_detected: True if the detector reported at least one face
            now: Frame time in seconds (monotonic clock)
        
        Returns:
            Debounced face presence (raw detection OR debounced presence)
        """
        if raw_detected:
            self.last_face_seen = now
            self.debounced_presence = True
        elif self.last_face_seen is None or now - self.last_face_seen > self.debounce_seconds:
            if self.debounced_presence:
                logger.debug("Face lost beyond debounce window")
            self.debounced_presence = False
        
        return raw_detected or self.debounced_presence
    
    def tick_fps(self, now: float) -> int:
        """
        Count a processed frame and emit fps at window boundaries.
        
        Args:
            now: Frame time in seconds (monotonic clock)
        
        Returns:
            Frames per second for a completed window, otherwise 0
        """
        if self.fps_window_start is None:
            self.fps_window_start = now
        
        self.frame_count += 1
        elapsed = now - self.fps_window_start
        
        if elapsed >= self.fps_window_seconds and elapsed > 0:
            self.fps = int(round(self.frame_count / elapsed))
            self.frame_count = 0
            self.fps_window_start = now
            return self.fps
        
        return 0
