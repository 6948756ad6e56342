"""Tests for landmark-geometry gaze classification."""

from camera.gaze import (
    GazeResult,
    Keypoint,
    LANDMARK_INDICES,
    NOT_LOOKING,
    check_gaze_direction,
)
from tests.conftest import frontal_keypoints


def test_frontal_face_is_looking_with_full_confidence():
    result = check_gaze_direction(frontal_keypoints())

    assert result == GazeResult(is_looking=True, confidence=100)


def test_head_turned_sideways_is_not_looking():
    # horizontal ratio 20 / 100 = 0.2, above the 0.18 threshold
    result = check_gaze_direction(frontal_keypoints(nose_x=170.0))

    assert result.is_looking is False
    assert result.confidence == 50


def test_partial_turn_scales_confidence():
    # horizontal ratio 0.09 gives half horizontal confidence
    result = check_gaze_direction(frontal_keypoints(nose_x=159.0))

    assert result.is_looking is True
    assert result.confidence == 75


def test_head_tilted_up_is_not_looking():
    # vertical ratio 10 / 140 is below the 0.25 window
    result = check_gaze_direction(frontal_keypoints(nose_y=110.0))

    assert result.is_looking is False


def test_empty_or_missing_keypoints_are_neutral():
    assert check_gaze_direction([]) == NOT_LOOKING
    assert check_gaze_direction(None) == NOT_LOOKING


def test_missing_required_landmark_is_neutral():
    keypoints = [k for k in frontal_keypoints() if k.name != "chin"]

    assert check_gaze_direction(keypoints) == NOT_LOOKING


def test_landmarks_found_by_face_mesh_index():
    named = {k.name: k for k in frontal_keypoints()}
    keypoints = [Keypoint(x=0.0, y=0.0) for _ in range(400)]
    for name, index in LANDMARK_INDICES.items():
        keypoints[index] = Keypoint(x=named[name].x, y=named[name].y)

    assert check_gaze_direction(keypoints) == GazeResult(is_looking=True, confidence=100)


def test_short_unnamed_list_counts_as_missing():
    keypoints = [Keypoint(x=1.0, y=1.0) for _ in range(10)]

    assert check_gaze_direction(keypoints) == NOT_LOOKING


def test_plain_mappings_are_accepted():
    keypoints = [{"x": k.x, "y": k.y, "name": k.name} for k in frontal_keypoints()]

    assert check_gaze_direction(keypoints).is_looking is True


def test_non_numeric_coordinates_count_as_missing():
    keypoints = [{"x": k.x, "y": k.y, "name": k.name} for k in frontal_keypoints()]
    keypoints[0]["x"] = None

    assert check_gaze_direction(keypoints) == NOT_LOOKING


def test_confidence_stays_in_range():
    for nose_x in range(0, 301, 25):
        for nose_y in range(0, 301, 25):
            result = check_gaze_direction(frontal_keypoints(float(nose_x), float(nose_y)))
            assert 0 <= result.confidence <= 100


def test_degenerate_face_does_not_divide_by_zero():
    keypoints = [Keypoint(x=5.0, y=5.0, name=name) for name in LANDMARK_INDICES]

    result = check_gaze_direction(keypoints)

    assert result.is_looking is False
    assert 0 <= result.confidence <= 100
