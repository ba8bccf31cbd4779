from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List


class ViolationCategory(str, Enum):
    NO_FACE = "NO_FACE"
    MULTIPLE_FACES = "MULTIPLE_FACES"
    LOOKING_AWAY = "LOOKING_AWAY"


class Severity(str, Enum):
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class ViolationEvent:
    category: ViolationCategory
    message: str
    severity: Severity
    timestamp: float

    @property
    def clock_time(self) -> str:
        return datetime.fromtimestamp(self.timestamp).strftime("%H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["category"] = self.category.value
        payload["severity"] = self.severity.value
        payload["clock_time"] = self.clock_time
        return payload


def _zero_counts() -> Dict[ViolationCategory, int]:
    return {category: 0 for category in ViolationCategory}


class ViolationLog:
    """
    Append-only record of one session's violations.

    Counters are updated by ``append`` only, so their sum always matches
    the number of stored events.
    """

    def __init__(self) -> None:
        self._events: List[ViolationEvent] = []
        self._counts = _zero_counts()

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: ViolationEvent) -> None:
        self._events.append(event)
        self._counts[event.category] += 1

    def recent(self, n: int = 10) -> List[ViolationEvent]:
        if n <= 0:
            return []
        return list(reversed(self._events[-n:]))

    def events(self) -> List[ViolationEvent]:
        return list(self._events)

    def counts_by_category(self) -> Dict[ViolationCategory, int]:
        return dict(self._counts)

    @property
    def total(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()
        self._counts = _zero_counts()
