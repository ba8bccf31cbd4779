from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Optional

import cv2

from .config import CameraConfig
from .errors import CameraAccessError, DetectionError

logger = logging.getLogger(__name__)


class Camera:
    def __init__(self, config: CameraConfig):
        self.config = config
        self.capture: Optional[cv2.VideoCapture] = None
        self.lock = threading.Lock()
        self._release_pending = False

    @property
    def is_open(self) -> bool:
        return self.capture is not None

    def _open(self) -> cv2.VideoCapture:
        capture = cv2.VideoCapture(self.config.index)
        if not capture.isOpened():
            capture.release()
            raise CameraAccessError(f"unable to open camera {self.config.index}")
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        return capture

    async def open(self) -> None:
        if self.capture is not None:
            return
        self._release_pending = False
        try:
            self.capture = await asyncio.to_thread(self._open)
        except cv2.error as exc:
            raise CameraAccessError(str(exc)) from exc
        logger.info("camera %d opened", self.config.index)

    def _read(self) -> Any:
        try:
            with self.lock:
                if self.capture is None:
                    raise DetectionError("camera is not open")
                ok, frame = self.capture.read()
        finally:
            if self._release_pending:
                self.release()
        if not ok or frame is None:
            raise DetectionError("frame grab failed")
        return frame

    async def read(self) -> Any:
        return await asyncio.to_thread(self._read)

    def release(self) -> None:
        """
        Release the device without waiting on an in-flight frame grab; a busy
        reader releases it on its way out instead.
        """
        self._release_pending = True
        if not self.lock.acquire(blocking=False):
            return
        try:
            if self.capture is None:
                return
            self.capture.release()
            self.capture = None
        finally:
            self.lock.release()
        logger.info("camera %d released", self.config.index)
