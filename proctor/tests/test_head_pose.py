import pytest

from proctor.head_pose import face_center, horizontal_ratio, is_looking_away

from proctor.tests.helpers import make_landmarks


def test_nose_on_face_center_is_focused():
    landmarks = make_landmarks(nose_x=50.0)
    assert horizontal_ratio(landmarks) == 0.0
    assert is_looking_away(landmarks) is False


def test_offset_above_threshold_is_looking_away():
    landmarks = make_landmarks(nose_x=70.0)
    assert abs(horizontal_ratio(landmarks) - 0.2) < 1e-9
    assert is_looking_away(landmarks) is True


def test_offset_to_the_left_counts_too():
    assert is_looking_away(make_landmarks(nose_x=25.0)) is True


def test_ratio_equal_to_threshold_is_not_looking_away():
    assert is_looking_away(make_landmarks(nose_x=65.0)) is False


def test_custom_threshold():
    landmarks = make_landmarks(nose_x=70.0)
    assert is_looking_away(landmarks, ratio_threshold=0.25) is False


def test_zero_face_width_cannot_determine():
    landmarks = make_landmarks(nose_x=80.0, jaw_left=50.0, jaw_right=50.0)
    assert horizontal_ratio(landmarks) is None
    assert is_looking_away(landmarks) is False


def test_face_center_uses_jaw_and_eye():
    assert face_center(make_landmarks()) == (50.0, 65.0)


def test_wrong_landmark_count_rejected():
    with pytest.raises(ValueError):
        is_looking_away([(0.0, 0.0)] * 5)
