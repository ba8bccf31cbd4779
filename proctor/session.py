from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .attention import AttentionStateMachine, TickOutcome
from .config import ProctorSettings
from .detector import DetectionResult, FaceDetector
from .errors import CameraAccessError, DetectionError, ModelLoadError, ModelsNotReadyError
from .violations import ViolationCategory, ViolationEvent, ViolationLog

logger = logging.getLogger(__name__)


def format_duration(seconds: float) -> str:
    total = max(int(seconds), 0)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


@dataclass
class SessionTimer:
    start_instant: Optional[float] = None
    stop_instant: Optional[float] = None
    is_running: bool = False

    def start(self, now: float) -> None:
        self.start_instant = now
        self.stop_instant = None
        self.is_running = True

    def stop(self, now: float) -> None:
        if self.is_running:
            self.stop_instant = now
            self.is_running = False

    def elapsed(self, now: float) -> float:
        if self.start_instant is None:
            return 0.0
        end = now if self.is_running else (self.stop_instant or self.start_instant)
        return max(end - self.start_instant, 0.0)


@dataclass
class SessionReport:
    total_violations: int = 0
    counts: Dict[ViolationCategory, int] = field(default_factory=lambda: {c: 0 for c in ViolationCategory})
    events: List[ViolationEvent] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def duration(self) -> str:
        return format_duration(self.duration_seconds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_violations": self.total_violations,
            "counts": {category.value: count for category, count in self.counts.items()},
            "events": [event.to_dict() for event in self.events],
            "duration_seconds": self.duration_seconds,
            "duration": self.duration,
        }


class SessionPhase(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"


class SessionController:
    """
    Owns one proctoring session at a time: camera, sampling loop, duration
    ticker, violation log and report.

    Every state mutation made by the loops is checked against the epoch the
    loop was started with, so nothing a loop does after ``stop`` returns can
    touch the session.
    """

    def __init__(
        self,
        settings: ProctorSettings,
        detector: FaceDetector,
        camera,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.detector = detector
        self.camera = camera
        self.clock = clock

        self.log = ViolationLog()
        self.machine = AttentionStateMachine(
            self.log,
            no_face_threshold=settings.attention.no_face_threshold_ms / 1000.0,
            ratio_threshold=settings.attention.looking_away_ratio,
        )
        self.timer = SessionTimer()
        self.phase = SessionPhase.IDLE
        self.epoch = 0

        self.sample_task: Optional[asyncio.Task] = None
        self.duration_task: Optional[asyncio.Task] = None
        self.listeners: List[asyncio.Queue] = []
        self.last_outcome: Optional[TickOutcome] = None
        self._latest: Optional[Tuple[Any, DetectionResult]] = None
        self._starting = False

    @property
    def running(self) -> bool:
        return self.phase == SessionPhase.RUNNING

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self.listeners.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self.listeners:
            self.listeners.remove(queue)

    def _broadcast(self, payload: Dict[str, Any]) -> None:
        for queue in self.listeners:
            queue.put_nowait(payload)

    def _status(self, message: str, level: str) -> None:
        self._broadcast({"type": "status", "message": message, "level": level})

    async def load_models(self) -> None:
        self._status("Loading models...", "warning")
        try:
            await self.detector.load_models()
        except ModelLoadError:
            logger.exception("model loading failed")
            self._status("Error loading models", "danger")
            raise
        self._status("Ready to start", "success")

    async def start(self) -> None:
        if self.running or self._starting:
            logger.warning("start requested while a session is already active")
            return
        if not self.detector.ready:
            raise ModelsNotReadyError("models are still loading")

        pending_epoch = self.epoch
        self._starting = True
        try:
            await self.camera.open()
        except CameraAccessError:
            logger.error("camera access denied")
            self._status("Camera access denied", "danger")
            raise
        finally:
            self._starting = False

        if self.epoch != pending_epoch:
            logger.info("start abandoned: stop requested while opening the camera")
            self.camera.release()
            return

        now = self.clock()
        self.log.clear()
        self.machine.reset(now)
        self.timer.start(now)
        self.last_outcome = None
        self._latest = None
        self.epoch += 1
        self.phase = SessionPhase.RUNNING

        epoch = self.epoch
        self.sample_task = asyncio.create_task(self._sample_loop(epoch))
        self.duration_task = asyncio.create_task(self._duration_loop(epoch))
        logger.info("session %d started", epoch)
        self._status("Proctoring Active", "success")

    def stop(self) -> SessionReport:
        if not self.running:
            if self._starting:
                self.epoch += 1
            return self.report()

        self.epoch += 1
        self.phase = SessionPhase.IDLE
        for task in (self.sample_task, self.duration_task):
            if task is not None:
                task.cancel()
        self.sample_task = None
        self.duration_task = None
        self.timer.stop(self.clock())
        self._latest = None

        try:
            self.camera.release()
        except Exception:
            logger.exception("camera release failed")

        report = self.report()
        logger.info(
            "session ended: %d violations (no face %d, multiple faces %d, looking away %d) in %s",
            report.total_violations,
            report.counts[ViolationCategory.NO_FACE],
            report.counts[ViolationCategory.MULTIPLE_FACES],
            report.counts[ViolationCategory.LOOKING_AWAY],
            report.duration,
        )
        self._status("Proctoring Stopped", "warning")
        return report

    def report(self) -> SessionReport:
        return SessionReport(
            total_violations=self.log.total,
            counts=self.log.counts_by_category(),
            events=self.log.events(),
            duration_seconds=self.timer.elapsed(self.clock()),
        )

    def elapsed(self) -> str:
        return format_duration(self.timer.elapsed(self.clock()))

    def recent(self, n: Optional[int] = None) -> List[ViolationEvent]:
        return self.log.recent(self.settings.attention.recent_limit if n is None else n)

    def counts_by_category(self) -> Dict[ViolationCategory, int]:
        return self.log.counts_by_category()

    def latest_frame(self) -> Optional[Tuple[Any, DetectionResult]]:
        return self._latest

    def _is_current(self, epoch: int) -> bool:
        return self.running and self.epoch == epoch

    def _publish_tick(self, outcome: TickOutcome) -> None:
        self._broadcast(
            {
                "type": "tick",
                "timestamp": outcome.timestamp,
                "face_count": outcome.face_count,
                "face_detected": outcome.face_detected,
                "state": outcome.state.value,
            }
        )
        if outcome.violation is not None:
            payload = {"type": "violation", **outcome.violation.to_dict()}
            payload["counts"] = {c.value: n for c, n in self.log.counts_by_category().items()}
            payload["total"] = self.log.total
            self._broadcast(payload)

    async def _sample_loop(self, epoch: int) -> None:
        interval = self.settings.attention.sample_interval_ms / 1000.0
        while self._is_current(epoch):
            try:
                frame = await self.camera.read()
                detections = await self.detector.detect(frame)
            except DetectionError as exc:
                logger.warning("detection failed, skipping tick: %s", exc)
            except Exception:
                logger.exception("detector raised unexpectedly, skipping tick")
            else:
                if not self._is_current(epoch):
                    return
                try:
                    outcome = self.machine.process(detections, self.clock())
                except (TypeError, ValueError):
                    logger.exception("malformed detection result, skipping tick")
                else:
                    self._latest = (frame, detections)
                    self.last_outcome = outcome
                    self._publish_tick(outcome)
            await asyncio.sleep(interval)

    async def _duration_loop(self, epoch: int) -> None:
        interval = self.settings.attention.duration_tick_ms / 1000.0
        while self._is_current(epoch):
            await asyncio.sleep(interval)
            if not self._is_current(epoch):
                return
            self._broadcast({"type": "duration", "elapsed": self.elapsed()})
