import numpy as np

from proctor.detector import Detection
from proctor.errors import CameraAccessError


def make_landmarks(nose_x: float = 50.0, jaw_left: float = 0.0, jaw_right: float = 100.0):
    points = [(50.0, 50.0)] * 68
    points[0] = (jaw_left, 40.0)
    points[16] = (jaw_right, 40.0)
    points[8] = (50.0, 100.0)
    points[36] = (30.0, 30.0)
    points[30] = (nose_x, 60.0)
    return points


def face(nose_x: float = 50.0) -> Detection:
    return Detection(bbox=(0, 0, 100, 100), landmarks=make_landmarks(nose_x))


class FakeCamera:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.opened = 0
        self.released = 0
        self.frame = np.zeros((4, 4, 3), dtype=np.uint8)

    async def open(self) -> None:
        if self.fail:
            raise CameraAccessError("permission denied")
        self.opened += 1

    async def read(self):
        return self.frame

    def release(self) -> None:
        self.released += 1


class StepClock:
    """Returns 0, 1, 2, ... on successive calls."""

    def __init__(self, start: float = 0.0, step: float = 1.0):
        self.now = start - step
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


