from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import cv2

from proctor.camera import Camera
from proctor.config import ProctorSettings
from proctor.errors import CameraAccessError, ModelLoadError
from proctor.landmarks import MediapipeFaceDetector
from proctor.session import SessionController, SessionReport

from .config_loader import load_settings
from .display import draw_overlay
from .schemas import SessionReportSchema

logger = logging.getLogger(__name__)

ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = ROOT / "configs" / "default.yaml"
WINDOW_NAME = "proctor"


def render_report(report: SessionReport) -> str:
    return SessionReportSchema.model_validate(report.to_dict()).model_dump_json(indent=2)


async def _preview(controller: SessionController) -> None:
    queue = controller.subscribe()
    try:
        while controller.running:
            while not queue.empty():
                payload = queue.get_nowait()
                if payload["type"] == "status":
                    logger.info("status: %s", payload["message"])

            latest = controller.latest_frame()
            if latest is not None:
                frame, detections = latest
                overlay = draw_overlay(
                    frame,
                    detections,
                    controller.last_outcome,
                    controller.counts_by_category(),
                    controller.recent(),
                    controller.elapsed(),
                )
                cv2.imshow(WINDOW_NAME, overlay)
            if (cv2.waitKey(1) & 0xFF) == ord("q"):
                break
            await asyncio.sleep(0.05)
    finally:
        controller.unsubscribe(queue)


async def run(settings: ProctorSettings) -> Optional[SessionReport]:
    detector = MediapipeFaceDetector(settings.detector)
    controller = SessionController(settings, detector, Camera(settings.camera))
    try:
        await controller.load_models()
        await controller.start()
    except (ModelLoadError, CameraAccessError) as exc:
        logger.error("%s", exc)
        detector.close()
        return None

    try:
        await _preview(controller)
    finally:
        report = controller.stop()
        detector.close()
        cv2.destroyAllWindows()
        print(render_report(report))
    return report


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Webcam attention monitor for exam sessions")
    parser.add_argument("--config", default=str(CONFIG_PATH), help="path to a YAML settings file")
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    logging.basicConfig(
        level=getattr(logging, settings.logging.level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = asyncio.run(run(settings))
    except KeyboardInterrupt:
        return 0
    return 0 if report is not None else 1


if __name__ == "__main__":
    sys.exit(main())
