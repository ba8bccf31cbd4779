"""
Attention and violation bookkeeping for webcam-proctored exam sessions.
"""

from .attention import AttentionState, AttentionStateMachine, TickOutcome
from .config import ProctorSettings
from .detector import Detection, FaceDetector, ScriptedFaceDetector
from .errors import CameraAccessError, DetectionError, ModelLoadError, ModelsNotReadyError, ProctorError
from .head_pose import is_looking_away
from .session import SessionController, SessionReport
from .violations import Severity, ViolationCategory, ViolationEvent, ViolationLog

__all__ = [
    "AttentionState",
    "AttentionStateMachine",
    "CameraAccessError",
    "Detection",
    "DetectionError",
    "FaceDetector",
    "ModelLoadError",
    "ModelsNotReadyError",
    "ProctorError",
    "ProctorSettings",
    "ScriptedFaceDetector",
    "SessionController",
    "SessionReport",
    "Severity",
    "TickOutcome",
    "ViolationCategory",
    "ViolationEvent",
    "ViolationLog",
    "is_looking_away",
]
