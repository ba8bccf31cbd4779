from __future__ import annotations

import asyncio
import logging
import urllib.request
from pathlib import Path
from typing import Any, Iterable, Optional

import cv2
import mediapipe as mp

from .config import DetectorConfig
from .detector import Detection, DetectionResult, FaceDetector
from .errors import DetectionError, ModelLoadError

logger = logging.getLogger(__name__)

MODEL_URL = "https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
MODEL_PATH = Path(__file__).resolve().parent.parent / "artifacts" / "face_landmarker.task"

# Face mesh indices for each point of the 68-point iBUG layout.
MESH_TO_68 = [
    # jaw
    162, 234, 93, 58, 172, 136, 149, 148, 152, 377, 378, 365, 397, 288, 323, 454, 389,
    # brows
    71, 63, 105, 66, 107,
    336, 296, 334, 293, 301,
    # nose
    168, 197, 5, 4,
    75, 97, 2, 326, 305,
    # eyes
    33, 160, 158, 133, 153, 144,
    362, 385, 387, 263, 373, 380,
    # lips
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    78, 82, 13, 312, 308, 317, 14, 87,
]


def _iter_landmarks(face_landmarks: Any):
    return getattr(face_landmarks, "landmark", face_landmarks)


def _to_68_points(face_landmarks: Any, width: int, height: int) -> list[tuple[float, float]]:
    mesh = _iter_landmarks(face_landmarks)
    return [(mesh[i].x * width, mesh[i].y * height) for i in MESH_TO_68]


def _bbox_from_points(points: Iterable[tuple[float, float]]) -> tuple[int, int, int, int]:
    xs, ys = zip(*points)
    x_min, x_max = int(min(xs)), int(max(xs))
    y_min, y_max = int(min(ys)), int(max(ys))
    return x_min, y_min, x_max - x_min, y_max - y_min


def _ensure_model(model_path: Path) -> None:
    if model_path.exists():
        return
    model_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("downloading face landmarker model to %s", model_path)
    urllib.request.urlretrieve(MODEL_URL, model_path)


class MediapipeFaceDetector(FaceDetector):
    def __init__(self, config: DetectorConfig):
        self.config = config
        self.mode = "solutions" if getattr(mp, "solutions", None) else "tasks"
        self.face_mesh: Optional[Any] = None
        self.landmarker: Optional[Any] = None
        self.ready = False

    def _load(self) -> None:
        if self.mode == "solutions":
            from mediapipe import solutions as mp_solutions  # type: ignore

            self.face_mesh = mp_solutions.face_mesh.FaceMesh(
                max_num_faces=self.config.max_faces,
                refine_landmarks=False,
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
        else:
            from mediapipe.tasks import python as mp_python
            from mediapipe.tasks.python import vision as mp_vision

            model_path = Path(self.config.model_path) if self.config.model_path else MODEL_PATH
            _ensure_model(model_path)
            base_options = mp_python.BaseOptions(model_asset_path=str(model_path))
            options = mp_vision.FaceLandmarkerOptions(
                base_options=base_options,
                output_face_blendshapes=False,
                output_facial_transformation_matrixes=False,
                num_faces=self.config.max_faces,
                min_face_detection_confidence=self.config.min_detection_confidence,
                running_mode=mp_vision.RunningMode.IMAGE,
            )
            self.landmarker = mp_vision.FaceLandmarker.create_from_options(options)

    async def load_models(self) -> None:
        if self.ready:
            return
        try:
            await asyncio.to_thread(self._load)
        except Exception as exc:
            raise ModelLoadError(f"failed to load face landmark model: {exc}") from exc
        self.ready = True
        logger.info("face landmark model loaded (%s)", self.mode)

    def _infer(self, frame) -> DetectionResult:
        height, width = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

        if self.mode == "solutions":
            result = self.face_mesh.process(rgb) if self.face_mesh else None
            faces = result.multi_face_landmarks if result and result.multi_face_landmarks else []
        else:
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
            result = self.landmarker.detect(mp_image) if self.landmarker else None
            faces = result.face_landmarks if result and result.face_landmarks else []

        detections: DetectionResult = []
        for face_landmarks in faces:
            points = _to_68_points(face_landmarks, width, height)
            detections.append(Detection(bbox=_bbox_from_points(points), landmarks=points))
        return detections

    async def detect(self, frame: Any) -> DetectionResult:
        if not self.ready:
            raise DetectionError("face landmark model is not loaded")
        try:
            return await asyncio.to_thread(self._infer, frame)
        except (cv2.error, RuntimeError, ValueError) as exc:
            raise DetectionError(str(exc)) from exc

    def close(self) -> None:
        if self.face_mesh:
            self.face_mesh.close()
            self.face_mesh = None
        if self.landmarker:
            self.landmarker.close()
            self.landmarker = None
        self.ready = False
