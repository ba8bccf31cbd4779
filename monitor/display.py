from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import cv2

from proctor.attention import TickOutcome
from proctor.detector import Detection
from proctor.head_pose import face_center
from proctor.violations import Severity, ViolationCategory, ViolationEvent

WHITE = (255, 255, 255)
GREEN = (0, 255, 0)
CYAN = (255, 255, 0)
SEVERITY_COLORS = {
    Severity.WARNING: (0, 200, 255),
    Severity.DANGER: (0, 0, 255),
}

COUNT_LABELS = {
    ViolationCategory.NO_FACE: "no face",
    ViolationCategory.MULTIPLE_FACES: "multiple",
    ViolationCategory.LOOKING_AWAY: "away",
}


def _put(frame, text: str, origin: tuple[int, int], color=WHITE, scale: float = 0.6) -> None:
    cv2.putText(frame, text, origin, cv2.FONT_HERSHEY_SIMPLEX, scale, color, 2, cv2.LINE_AA)


def draw_overlay(
    frame,
    detections: Sequence[Detection],
    outcome: Optional[TickOutcome],
    counts: Dict[ViolationCategory, int],
    recent: Sequence[ViolationEvent],
    elapsed: str,
) -> Any:
    overlay = frame.copy()
    for detection in detections:
        x, y, w, h = detection.bbox
        cv2.rectangle(overlay, (x, y), (x + w, y + h), GREEN, 2)
        for px, py in detection.landmarks:
            cv2.circle(overlay, (int(px), int(py)), 1, CYAN, -1)
        cx, cy = face_center(detection.landmarks)
        cv2.drawMarker(overlay, (int(cx), int(cy)), WHITE, cv2.MARKER_CROSS, 12, 1)

    if outcome is None:
        status = "waiting for first frame"
    else:
        status = f"faces {outcome.face_count} ({outcome.face_detected}) | {outcome.state.value}"
    _put(overlay, f"{status} | {elapsed}", (20, 30))

    total = sum(counts.values())
    summary = " | ".join(f"{COUNT_LABELS[c]} {counts.get(c, 0)}" for c in ViolationCategory)
    _put(overlay, f"violations {total}: {summary}", (20, 58))

    for row, event in enumerate(recent):
        color = SEVERITY_COLORS.get(event.severity, WHITE)
        _put(overlay, f"{event.clock_time} {event.message}", (20, 90 + row * 22), color, 0.5)
    return overlay
