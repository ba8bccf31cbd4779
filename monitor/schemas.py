from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CameraSchema(BaseModel):
    index: int = Field(0, ge=0)
    width: int = Field(640, gt=0)
    height: int = Field(480, gt=0)


class AttentionSchema(BaseModel):
    no_face_threshold_ms: int = Field(2000, ge=0)
    looking_away_ratio: float = Field(0.15, gt=0.0)
    sample_interval_ms: int = Field(1000, gt=0)
    duration_tick_ms: int = Field(1000, gt=0)
    recent_limit: int = Field(10, ge=0)


class DetectorSchema(BaseModel):
    max_faces: int = Field(4, ge=2)
    min_detection_confidence: float = Field(0.5, ge=0.0, le=1.0)
    min_tracking_confidence: float = Field(0.5, ge=0.0, le=1.0)
    model_path: Optional[str] = None


class LoggingSchema(BaseModel):
    level: str = "INFO"


class SettingsSchema(BaseModel):
    camera: CameraSchema = CameraSchema()
    attention: AttentionSchema = AttentionSchema()
    detector: DetectorSchema = DetectorSchema()
    logging: LoggingSchema = LoggingSchema()


class ViolationSchema(BaseModel):
    category: str
    message: str
    severity: str
    timestamp: float
    clock_time: str


class SessionReportSchema(BaseModel):
    total_violations: int
    counts: Dict[str, int]
    events: List[ViolationSchema]
    duration_seconds: float
    duration: str
