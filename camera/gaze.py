"""Landmark-geometry gaze classification."""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence


# Empirically fixed thresholds (not learned)
HORIZONTAL_THRESHOLD = 0.18
VERTICAL_LOW = 0.25
VERTICAL_HIGH = 0.75

# MediaPipe Face Mesh indices used when a keypoint carries no name
LANDMARK_INDICES = {
    "noseTip": 1,
    "leftEyeInner": 133,
    "rightEyeInner": 362,
    "leftEyeOuter": 33,
    "rightEyeOuter": 263,
    "chin": 152,
}


@dataclass(frozen=True)
class Keypoint:
    """A 2D (optionally 3D) facial landmark position."""
    
    x: float
    y: float
    z: Optional[float] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class GazeResult:
    """Whether the face is oriented at the screen, with a 0-100 confidence."""
    
    is_looking: bool
    confidence: int


NOT_LOOKING = GazeResult(is_looking=False, confidence=0)


def _coord(point: Any, axis: str) -> Optional[float]:
    """Read a numeric coordinate from a Keypoint or a plain mapping."""
    if isinstance(point, Mapping):
        value = point.get(axis)
    else:
        value = getattr(point, axis, None)
    
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def _name_of(point: Any) -> Optional[str]:
    if isinstance(point, Mapping):
        return point.get("name")
    return getattr(point, "name", None)


def _find_landmark(keypoints: Sequence[Any], name: str) -> Optional[Keypoint]:
    """
    Locate a landmark by name, falling back to its Face Mesh index.
    
    Args:
        keypoints: Landmarks produced by the detector for one face
        name: Landmark name, one of LANDMARK_INDICES
    
    Returns:
        Keypoint with numeric x/y, or None if the landmark is missing
    """
    candidate = None
    for point in keypoints:
        if point is not None and _name_of(point) == name:
            candidate = point
            break
    
    if candidate is None:
        index = LANDMARK_INDICES[name]
        if index < len(keypoints):
            candidate = keypoints[index]
    
    if candidate is None:
        return None
    
    x = _coord(candidate, "x")
    y = _coord(candidate, "y")
    if x is None or y is None:
        return None
    return Keypoint(x=x, y=y, name=name)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def check_gaze_direction(keypoints: Optional[Sequence[Any]]) -> GazeResult:
    """
    Classify whether a face is looking at the screen from six landmarks.
    
    Compares the nose tip against the midpoint of the inner eye corners.
    Horizontal offset is normalised by the outer-eye span, vertical offset
    by the nose-to-chin distance (both floored at 1 to avoid division by
    zero). A face counts as looking when the horizontal ratio is below
    0.18 and the vertical ratio lies strictly between 0.25 and 0.75.
    
    Confidence averages two sub-scores that fall linearly from 1 at the
    ideal position to 0 at the edge of each window.
    
    Never raises: a missing landmark or an empty keypoint list returns a
    neutral "not looking, zero confidence" result.
    
    Args:
        keypoints: Landmarks for a single face (Keypoint objects or mappings
            with x, y and optional name)
    
    Returns:
        GazeResult with is_looking and confidence (0-100)
    """
    if not keypoints:
        return NOT_LOOKING
    
    nose = _find_landmark(keypoints, "noseTip")
    left_inner = _find_landmark(keypoints, "leftEyeInner")
    right_inner = _find_landmark(keypoints, "rightEyeInner")
    left_outer = _find_landmark(keypoints, "leftEyeOuter")
    right_outer = _find_landmark(keypoints, "rightEyeOuter")
    chin = _find_landmark(keypoints, "chin")
    
    if None in (nose, left_inner, right_inner, left_outer, right_outer, chin):
        return NOT_LOOKING
    
    eye_center_x = (left_inner.x + right_inner.x) / 2
    eye_center_y = (left_inner.y + right_inner.y) / 2
    
    eye_width = max(1.0, abs(right_outer.x - left_outer.x))
    horizontal_ratio = abs(nose.x - eye_center_x) / eye_width
    
    nose_to_chin = max(1.0, abs(chin.y - nose.y))
    vertical_ratio = abs(nose.y - eye_center_y) / nose_to_chin
    
    is_looking = (
        horizontal_ratio < HORIZONTAL_THRESHOLD
        and VERTICAL_LOW < vertical_ratio < VERTICAL_HIGH
    )
    
    horiz_conf = max(0.0, 1 - horizontal_ratio / HORIZONTAL_THRESHOLD)
    vertical_center = (VERTICAL_LOW + VERTICAL_HIGH) / 2
    vertical_half_window = (VERTICAL_HIGH - VERTICAL_LOW) / 2
    vert_conf = max(0.0, 1 - abs(vertical_ratio - vertical_center) / vertical_half_window)
    
    confidence = _round_half_up((horiz_conf + vert_conf) / 2 * 100)
    confidence = min(100, max(0, confidence))
    
    return GazeResult(is_looking=is_looking, confidence=confidence)
