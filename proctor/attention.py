from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .detector import Detection
from .head_pose import DEFAULT_RATIO_THRESHOLD, is_looking_away
from .violations import Severity, ViolationCategory, ViolationEvent, ViolationLog

logger = logging.getLogger(__name__)


class AttentionState(str, Enum):
    NO_FACE = "NO_FACE"
    FOCUSED = "FOCUSED"
    LOOKING_AWAY = "LOOKING_AWAY"
    MULTIPLE_FACES = "MULTIPLE_FACES"


FACE_DETECTED_LABELS = {
    AttentionState.NO_FACE: "No",
    AttentionState.FOCUSED: "Yes",
    AttentionState.LOOKING_AWAY: "Yes",
    AttentionState.MULTIPLE_FACES: "Yes (Multiple)",
}


@dataclass
class TickOutcome:
    timestamp: float
    face_count: int
    state: AttentionState
    violation: Optional[ViolationEvent] = None

    @property
    def face_detected(self) -> str:
        return FACE_DETECTED_LABELS[self.state]


def classify(detections: Sequence[Detection], ratio_threshold: float = DEFAULT_RATIO_THRESHOLD) -> AttentionState:
    if not detections:
        return AttentionState.NO_FACE
    if len(detections) > 1:
        return AttentionState.MULTIPLE_FACES
    if is_looking_away(detections[0].landmarks, ratio_threshold):
        return AttentionState.LOOKING_AWAY
    return AttentionState.FOCUSED


class AttentionStateMachine:
    """
    Turns one detection result per tick into violations on a ViolationLog.

    Only absence is debounced: a NO_FACE violation fires once the last face is
    more than ``no_face_threshold`` seconds old and re-arms when a face is seen
    again. Looking away and multiple faces fire on every qualifying tick.
    """

    def __init__(
        self,
        log: ViolationLog,
        no_face_threshold: float = 2.0,
        ratio_threshold: float = DEFAULT_RATIO_THRESHOLD,
    ):
        self.log = log
        self.no_face_threshold = no_face_threshold
        self.ratio_threshold = ratio_threshold
        self.last_face_seen_at = 0.0
        self.no_face_warning_active = False

    def reset(self, now: float) -> None:
        self.last_face_seen_at = now
        self.no_face_warning_active = False

    def process(self, detections: Sequence[Detection], now: float) -> TickOutcome:
        face_count = len(detections)
        state = classify(detections, self.ratio_threshold)
        violation: Optional[ViolationEvent] = None

        if state == AttentionState.NO_FACE:
            absent_for = now - self.last_face_seen_at
            if absent_for > self.no_face_threshold and not self.no_face_warning_active:
                violation = ViolationEvent(
                    category=ViolationCategory.NO_FACE,
                    message="No face detected",
                    severity=Severity.WARNING,
                    timestamp=now,
                )
                self.no_face_warning_active = True
        else:
            self.last_face_seen_at = now
            self.no_face_warning_active = False

            if state == AttentionState.LOOKING_AWAY:
                violation = ViolationEvent(
                    category=ViolationCategory.LOOKING_AWAY,
                    message="Looking away from screen",
                    severity=Severity.WARNING,
                    timestamp=now,
                )
            elif state == AttentionState.MULTIPLE_FACES:
                violation = ViolationEvent(
                    category=ViolationCategory.MULTIPLE_FACES,
                    message=f"Multiple faces detected ({face_count})",
                    severity=Severity.DANGER,
                    timestamp=now,
                )

        if violation is not None:
            self.log.append(violation)
            logger.info("violation %s: %s", violation.category.value, violation.message)

        return TickOutcome(timestamp=now, face_count=face_count, state=state, violation=violation)
