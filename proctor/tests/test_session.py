import asyncio

import pytest

from proctor.config import ProctorSettings
from proctor.detector import Detection, ScriptedFaceDetector
from proctor.errors import CameraAccessError, DetectionError, ModelLoadError, ModelsNotReadyError
from proctor.session import SessionController, SessionPhase, SessionTimer, format_duration
from proctor.violations import ViolationCategory

from proctor.tests.helpers import FakeCamera, StepClock, face


def _settings(sample_ms: int = 1, duration_ms: int = 60_000) -> ProctorSettings:
    return ProctorSettings.from_dict(
        {"attention": {"sample_interval_ms": sample_ms, "duration_tick_ms": duration_ms}}
    )


def _drain(queue: asyncio.Queue) -> list:
    items = []
    while not queue.empty():
        items.append(queue.get_nowait())
    return items


class BlockingDetector(ScriptedFaceDetector):
    def __init__(self):
        super().__init__([])
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def detect(self, frame):
        self.entered.set()
        await self.release.wait()
        return [face(), face()]


class SlowOpeningCamera(FakeCamera):
    def __init__(self):
        super().__init__()
        self.opening = asyncio.Event()
        self.proceed = asyncio.Event()

    async def open(self) -> None:
        self.opening.set()
        await self.proceed.wait()
        self.opened += 1


class FailingLoadDetector(ScriptedFaceDetector):
    async def load_models(self) -> None:
        raise ModelLoadError("download failed")


def test_format_duration():
    assert format_duration(0) == "00:00:00"
    assert format_duration(3661.9) == "01:01:01"
    assert format_duration(36000 + 59) == "10:00:59"
    assert format_duration(-5) == "00:00:00"


def test_session_timer_freezes_on_stop():
    timer = SessionTimer()
    assert timer.elapsed(50.0) == 0.0
    timer.start(10.0)
    assert timer.elapsed(12.5) == 2.5
    timer.stop(15.0)
    assert timer.is_running is False
    assert timer.elapsed(100.0) == 5.0


def test_stop_when_never_started_returns_empty_report(camera):
    controller = SessionController(_settings(), ScriptedFaceDetector([]), camera)
    report = controller.stop()
    assert controller.phase == SessionPhase.IDLE
    assert report.total_violations == 0
    assert set(report.counts.values()) == {0}
    assert report.events == []
    assert report.duration == "00:00:00"
    assert camera.released == 0


@pytest.mark.asyncio
async def test_start_requires_loaded_models(camera):
    controller = SessionController(_settings(), ScriptedFaceDetector([], ready=False), camera)
    with pytest.raises(ModelsNotReadyError):
        await controller.start()
    assert controller.phase == SessionPhase.IDLE
    assert camera.opened == 0


@pytest.mark.asyncio
async def test_camera_failure_is_surfaced():
    controller = SessionController(_settings(), ScriptedFaceDetector([]), FakeCamera(fail=True))
    queue = controller.subscribe()
    with pytest.raises(CameraAccessError):
        await controller.start()
    assert controller.phase == SessionPhase.IDLE
    assert {"type": "status", "message": "Camera access denied", "level": "danger"} in _drain(queue)


@pytest.mark.asyncio
async def test_load_models_reports_status():
    controller = SessionController(_settings(), ScriptedFaceDetector([], ready=False), FakeCamera())
    queue = controller.subscribe()
    await controller.load_models()
    assert controller.detector.ready
    assert [p["message"] for p in _drain(queue)] == ["Loading models...", "Ready to start"]

    failing = SessionController(_settings(), FailingLoadDetector([], ready=False), FakeCamera())
    queue = failing.subscribe()
    with pytest.raises(ModelLoadError):
        await failing.load_models()
    assert _drain(queue)[-1]["message"] == "Error loading models"


@pytest.mark.asyncio
async def test_session_records_violations_and_reports(camera):
    script = [
        [],
        [],
        [],
        [face()],
        [face(nose_x=85.0)],
        [face(), face(), face()],
        DetectionError("blip"),
        [face()],
    ]
    detector = ScriptedFaceDetector(script)
    controller = SessionController(_settings(), detector, camera, clock=StepClock())
    queue = controller.subscribe()

    await controller.start()
    assert controller.running
    assert camera.opened == 1
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)

    report = controller.stop()
    assert controller.phase == SessionPhase.IDLE
    assert camera.released == 1

    assert report.total_violations == 3
    assert report.counts == {
        ViolationCategory.NO_FACE: 1,
        ViolationCategory.MULTIPLE_FACES: 1,
        ViolationCategory.LOOKING_AWAY: 1,
    }
    assert [e.category for e in report.events] == [
        ViolationCategory.NO_FACE,
        ViolationCategory.LOOKING_AWAY,
        ViolationCategory.MULTIPLE_FACES,
    ]
    assert report.events[2].message == "Multiple faces detected (3)"
    timestamps = [e.timestamp for e in report.events]
    assert timestamps == sorted(timestamps)
    assert report.to_dict()["counts"]["NO_FACE"] == 1

    payloads = _drain(queue)
    ticks = [p for p in payloads if p["type"] == "tick"]
    violations = [p for p in payloads if p["type"] == "violation"]
    assert [t["face_count"] for t in ticks] == [0, 0, 0, 1, 1, 3, 1]
    assert [t["face_detected"] for t in ticks][-2:] == ["Yes (Multiple)", "Yes"]
    assert [v["total"] for v in violations] == [1, 2, 3]
    assert violations[-1]["counts"]["MULTIPLE_FACES"] == 1
    assert payloads[0]["message"] == "Proctoring Active"
    assert payloads[-1]["message"] == "Proctoring Stopped"


@pytest.mark.asyncio
async def test_no_mutation_after_stop(camera):
    detector = ScriptedFaceDetector([[face(nose_x=90.0)]] * 3)
    controller = SessionController(_settings(), detector, camera)
    await controller.start()
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)

    report = controller.stop()
    seen = len(detector.frames)
    await asyncio.sleep(0.05)

    assert controller.log.total == report.total_violations == 3
    assert len(detector.frames) == seen
    assert controller.sample_task is None


@pytest.mark.asyncio
async def test_stop_discards_in_flight_detection(camera):
    detector = BlockingDetector()
    controller = SessionController(_settings(), detector, camera)
    await controller.start()
    await asyncio.wait_for(detector.entered.wait(), timeout=2.0)

    report = controller.stop()
    detector.release.set()
    await asyncio.sleep(0.02)

    assert report.total_violations == 0
    assert controller.log.total == 0
    assert controller.last_outcome is None


@pytest.mark.asyncio
async def test_restart_clears_previous_session(camera):
    detector = ScriptedFaceDetector([[face(), face()]])
    controller = SessionController(_settings(), detector, camera)
    await controller.start()
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)
    assert controller.stop().total_violations == 1

    # stopping again is a no-op that still reports the finished session
    assert controller.stop().total_violations == 1
    assert camera.released == 1

    controller.detector = ScriptedFaceDetector([[face()]])
    await controller.start()
    assert controller.log.total == 0
    assert set(controller.counts_by_category().values()) == {0}
    await asyncio.wait_for(controller.detector.drained.wait(), timeout=2.0)
    assert controller.stop().total_violations == 0


@pytest.mark.asyncio
async def test_duration_ticks_are_published(camera):
    detector = ScriptedFaceDetector([])
    controller = SessionController(_settings(sample_ms=50, duration_ms=10), detector, camera)
    queue = controller.subscribe()
    await controller.start()
    await asyncio.sleep(0.06)
    controller.stop()

    durations = [p for p in _drain(queue) if p["type"] == "duration"]
    assert durations
    assert all(p["elapsed"] == "00:00:00" for p in durations)


@pytest.mark.asyncio
async def test_recent_uses_configured_limit(camera):
    settings = _settings()
    settings.attention.recent_limit = 2
    detector = ScriptedFaceDetector([[face(nose_x=95.0)]] * 5)
    controller = SessionController(settings, detector, camera, clock=StepClock())
    await controller.start()
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)
    controller.stop()

    recent = controller.recent()
    assert len(recent) == 2
    assert recent[0].timestamp > recent[1].timestamp
    assert controller.counts_by_category()[ViolationCategory.LOOKING_AWAY] == 5


@pytest.mark.asyncio
async def test_unexpected_detector_error_only_skips_that_tick(camera):
    detector = ScriptedFaceDetector([[face()], TypeError("adapter bug"), [face(), face()], [face(), face()]])
    controller = SessionController(_settings(), detector, camera, clock=StepClock())
    await controller.start()
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)

    assert controller.running
    assert not controller.sample_task.done()
    report = controller.stop()
    assert report.counts[ViolationCategory.MULTIPLE_FACES] == 2


@pytest.mark.asyncio
async def test_malformed_landmarks_skip_tick(camera):
    broken = Detection(bbox=(0, 0, 10, 10), landmarks=[(0.0, 0.0)] * 5)
    detector = ScriptedFaceDetector([[broken], [face(nose_x=90.0)]])
    controller = SessionController(_settings(), detector, camera, clock=StepClock())
    queue = controller.subscribe()
    await controller.start()
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)
    report = controller.stop()

    ticks = [p for p in _drain(queue) if p["type"] == "tick"]
    assert len(ticks) == 1
    assert ticks[0]["state"] == "LOOKING_AWAY"
    assert report.total_violations == 1


@pytest.mark.asyncio
async def test_stop_while_camera_opening_abandons_start():
    camera = SlowOpeningCamera()
    detector = ScriptedFaceDetector([[face(), face()]] * 5)
    controller = SessionController(_settings(), detector, camera)

    starting = asyncio.create_task(controller.start())
    await asyncio.wait_for(camera.opening.wait(), timeout=2.0)
    report = controller.stop()
    camera.proceed.set()
    await starting
    await asyncio.sleep(0.02)

    assert report.total_violations == 0
    assert controller.phase == SessionPhase.IDLE
    assert controller.sample_task is None
    assert controller.log.total == 0
    assert detector.frames == []
    assert camera.released == 1

    await controller.start()
    assert controller.running
    await asyncio.wait_for(detector.drained.wait(), timeout=2.0)
    assert controller.stop().total_violations == 5
