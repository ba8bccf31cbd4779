from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CameraConfig:
    index: int = 0
    width: int = 640
    height: int = 480


@dataclass
class AttentionConfig:
    no_face_threshold_ms: int = 2000
    looking_away_ratio: float = 0.15
    sample_interval_ms: int = 1000
    duration_tick_ms: int = 1000
    recent_limit: int = 10


@dataclass
class DetectorConfig:
    max_faces: int = 4
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_path: Optional[str] = None


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class ProctorSettings:
    camera: CameraConfig = field(default_factory=CameraConfig)
    attention: AttentionConfig = field(default_factory=AttentionConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, payload: dict) -> "ProctorSettings":
        camera_data = payload.get("camera") or {}
        attention_data = payload.get("attention") or {}
        detector_data = payload.get("detector") or {}
        logging_data = payload.get("logging") or {}

        camera = CameraConfig(
            index=int(camera_data.get("index", 0)),
            width=int(camera_data.get("width", 640)),
            height=int(camera_data.get("height", 480)),
        )
        attention = AttentionConfig(
            no_face_threshold_ms=int(attention_data.get("no_face_threshold_ms", 2000)),
            looking_away_ratio=float(attention_data.get("looking_away_ratio", 0.15)),
            sample_interval_ms=int(attention_data.get("sample_interval_ms", 1000)),
            duration_tick_ms=int(attention_data.get("duration_tick_ms", 1000)),
            recent_limit=int(attention_data.get("recent_limit", 10)),
        )
        model_path = detector_data.get("model_path")
        detector = DetectorConfig(
            max_faces=int(detector_data.get("max_faces", 4)),
            min_detection_confidence=float(detector_data.get("min_detection_confidence", 0.5)),
            min_tracking_confidence=float(detector_data.get("min_tracking_confidence", 0.5)),
            model_path=str(model_path) if model_path else None,
        )
        logging_cfg = LoggingConfig(level=str(logging_data.get("level", "INFO")).upper())
        return cls(camera=camera, attention=attention, detector=detector, logging=logging_cfg)
