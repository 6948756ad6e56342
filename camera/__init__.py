"""
Face presence and gaze detection.

The MediaPipe detector is imported lazily so the pure parts of the
pipeline can be used without the vision stack installed.
"""

import logging
from typing import Optional

from camera.base_detector import LandmarkDetectorProtocol
from camera.face_focus import FaceFocusEngine
from camera.gaze import GazeResult, Keypoint, check_gaze_direction
from camera.presence import PresenceDebouncer, PresenceSnapshot

logger = logging.getLogger(__name__)


def create_landmark_detector(mirrored: bool = True) -> LandmarkDetectorProtocol:
    """
    Create the default landmark detector (MediaPipe Face Mesh).
    
    Args:
        mirrored: Flip frames horizontally before inference
    
    Returns:
        Detector instance
    """
    from camera.detection import MediaPipeLandmarkDetector
    
    logger.info("Using MediaPipe Face Mesh landmark detector")
    return MediaPipeLandmarkDetector(mirrored=mirrored)


def create_face_focus_engine(
    detector: Optional[LandmarkDetectorProtocol] = None,
    mirrored: bool = True
) -> FaceFocusEngine:
    """
    Build a FaceFocusEngine, creating the default detector if none is given.
    
    Args:
        detector: Landmark detector to use
        mirrored: Mirror setting for the default detector
    
    Returns:
        FaceFocusEngine owned by the caller
    """
    if detector is None:
        detector = create_landmark_detector(mirrored=mirrored)
    return FaceFocusEngine(detector)


__all__ = [
    "FaceFocusEngine",
    "GazeResult",
    "Keypoint",
    "LandmarkDetectorProtocol",
    "PresenceDebouncer",
    "PresenceSnapshot",
    "check_gaze_direction",
    "create_face_focus_engine",
    "create_landmark_detector",
]
