# epi_core/live.py
"""
Live camera window for on-demand EPI checks.

Shows the camera feed with the last evaluation's boxes composited on top,
plus status / stats lines. Frames are only sent to the relay on request:

- c: capture and analyze the current frame
- a: toggle automatic capture every AUTO_DETECT_INTERVAL seconds
- t: test mode (simulated detections, no relay call)
- h: clear history
- l: print the last 10 history entries
- e: mark every EPI as required, r: restore the default required set
- z: reset statistics
- q: quit
"""
from __future__ import annotations

import logging
from typing import Optional

import cv2

from epi_core.config import Settings
from epi_core.controller import DetectionController
from epi_core.errors import CaptureUnavailable
from epi_core.overlay import draw_status
from epi_core.report import format_history, format_stats, format_summary_lines

logger = logging.getLogger(__name__)

WINDOW_NAME = "EPI Check (q to quit)"


def run_live_monitor(settings: Settings,
                     camera_index: Optional[int] = None,
                     controller: Optional[DetectionController] = None) -> DetectionController:
    """
    Open the camera and run the keyboard-driven capture loop until 'q'.

    Raises:
        CaptureUnavailable: the camera cannot be opened.
    """
    if controller is None:
        from epi_core.capture import CameraCapture
        controller = DetectionController(settings, camera=CameraCapture(settings, camera_index))

    if not controller.start_camera():
        raise CaptureUnavailable(controller.status)

    logger.info(f"[live] EPIs obrigatórios configurados: {', '.join(controller.required.labels)}")
    try:
        while True:
            try:
                frame = controller.camera.read_frame()
            except CaptureUnavailable:
                logger.warning("[live] camera stopped delivering frames")
                break

            annotated = controller.renderer.composite(frame)
            level = controller.last_report.level if controller.last_report else "info"
            lines = [controller.status]
            if controller.last_evaluation is not None:
                lines += format_summary_lines(controller.last_evaluation)
            lines += format_stats(controller.history.stats)[:1]
            if controller.auto_detecting:
                lines.append("[auto]")
            draw_status(annotated, lines, level)
            cv2.imshow(WINDOW_NAME, annotated)

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("c"):
                controller.on_capture_requested()
            elif key == ord("t"):
                controller.on_capture_requested(use_mock=True)
            elif key == ord("a"):
                if controller.auto_detecting:
                    controller.stop_auto_detect()
                else:
                    controller.start_auto_detect()
            elif key == ord("h"):
                controller.clear_history()
            elif key == ord("l"):
                print("\n".join(format_history(controller.history.history)))
            elif key == ord("e"):
                controller.select_all_required()
            elif key == ord("r"):
                controller.reset_required()
            elif key == ord("z"):
                controller.reset_stats()
    finally:
        controller.stop_camera()
        cv2.destroyAllWindows()
    return controller
