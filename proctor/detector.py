from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Union

from .errors import DetectionError


@dataclass
class Detection:
    bbox: tuple[int, int, int, int]
    landmarks: Sequence[tuple[float, float]]


DetectionResult = List[Detection]


class FaceDetector:
    """Capability consumed by the session: frame in, faces with 68 landmarks out."""

    ready: bool = False

    async def load_models(self) -> None:
        raise NotImplementedError

    async def detect(self, frame: Any) -> DetectionResult:
        raise NotImplementedError

    def close(self) -> None:
        pass


ScriptStep = Union[DetectionResult, BaseException]


class ScriptedFaceDetector(FaceDetector):
    """
    Replays a fixed sequence of detection results, one per ``detect`` call.

    An exception instance in the script is raised for that call instead.
    Once the script runs out every call raises DetectionError and
    ``drained`` is set.
    """

    def __init__(self, script: Iterable[ScriptStep], ready: bool = True):
        self.script: List[ScriptStep] = list(script)
        self.ready = ready
        self.calls = 0
        self.frames: List[Any] = []
        self.drained = asyncio.Event()
        self.closed = False

    async def load_models(self) -> None:
        self.ready = True

    async def detect(self, frame: Any) -> DetectionResult:
        self.frames.append(frame)
        if self.calls >= len(self.script):
            self.drained.set()
            raise DetectionError("detection script exhausted")
        step = self.script[self.calls]
        self.calls += 1
        if self.calls == len(self.script):
            self.drained.set()
        if isinstance(step, BaseException):
            raise step
        return list(step)

    def close(self) -> None:
        self.closed = True
