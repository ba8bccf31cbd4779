from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

LANDMARK_COUNT = 68

# 68-point iBUG layout
JAW = list(range(0, 17))
NOSE = list(range(27, 36))
LEFT_EYE = list(range(36, 42))

JAW_LEFT = JAW[0]
JAW_RIGHT = JAW[16]
JAW_BOTTOM = JAW[8]
NOSE_TIP = NOSE[3]
LEFT_EYE_TOP = LEFT_EYE[0]

DEFAULT_RATIO_THRESHOLD = 0.15


def _as_points(landmarks: Sequence[Sequence[float]]) -> np.ndarray:
    points = np.asarray(landmarks, dtype=np.float64)
    if points.shape != (LANDMARK_COUNT, 2):
        raise ValueError(f"expected {LANDMARK_COUNT} (x, y) landmarks, got shape {points.shape}")
    return points


def face_center(landmarks: Sequence[Sequence[float]]) -> tuple[float, float]:
    points = _as_points(landmarks)
    x = (points[JAW_LEFT, 0] + points[JAW_RIGHT, 0]) / 2.0
    y = (points[JAW_BOTTOM, 1] + points[LEFT_EYE_TOP, 1]) / 2.0
    return float(x), float(y)


def horizontal_ratio(landmarks: Sequence[Sequence[float]]) -> Optional[float]:
    """
    Nose-tip offset from the jaw midpoint, as a fraction of jaw width.

    Returns None when the jaw has no horizontal extent.
    """
    points = _as_points(landmarks)
    face_width = abs(points[JAW_RIGHT, 0] - points[JAW_LEFT, 0])
    if face_width == 0:
        return None
    center_x, _ = face_center(points)
    offset = abs(points[NOSE_TIP, 0] - center_x)
    return float(offset / face_width)


def is_looking_away(
    landmarks: Sequence[Sequence[float]],
    ratio_threshold: float = DEFAULT_RATIO_THRESHOLD,
) -> bool:
    ratio = horizontal_ratio(landmarks)
    if ratio is None:
        return False
    return ratio > ratio_threshold
