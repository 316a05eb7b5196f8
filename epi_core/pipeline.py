# epi_core/pipeline.py
from __future__ import annotations
from typing import Dict, Optional
import logging
import os

import cv2

from epi_core.capture import encode_jpeg, load_image
from epi_core.config import Settings
from epi_core.controller import DetectionController
from epi_core.errors import NetworkError, UpstreamError
from epi_core.mock import generate_mock_response

logger = logging.getLogger(__name__)

def analyze_image_pipeline(image_path: str,
                           settings: Settings,
                           use_mock: bool = False,
                           mock_on_error: bool = False,
                           annotated_path: Optional[str] = None,
                           controller: Optional[DetectionController] = None) -> Dict:
    """
    Check a still image file: encode, relay, evaluate against the required EPIs,
    record in history and build the status report.
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")

    logger.debug(f"[pipeline] analyze_image_pipeline start image_path={image_path}")
    frame = load_image(image_path)
    h, w = frame.shape[:2]
    controller = controller or DetectionController(settings)

    source = "file"
    if use_mock:
        response, source = generate_mock_response(), "mock"
    else:
        payload = encode_jpeg(frame, settings.MAX_IMAGE_WIDTH, settings.JPEG_QUALITY)
        logger.debug(f"[pipeline] relaying {len(payload)} bytes")
        try:
            response = controller.client.detect(payload)
        except (UpstreamError, NetworkError):
            if not mock_on_error:
                raise
            logger.warning("[pipeline] relay failed; using simulated data")
            response, source = generate_mock_response(), "mock"

    evaluation = controller.process_response(response, (w, h), source=source)
    if annotated_path:
        os.makedirs(os.path.dirname(annotated_path) or ".", exist_ok=True)
        cv2.imwrite(annotated_path, controller.renderer.composite(frame))
        logger.debug(f"[pipeline] annotated image -> {annotated_path}")

    payload = {
        "evaluation": evaluation.model_dump(mode="json"),
        "report": controller.last_report.model_dump(mode="json"),
        "stats": controller.history.stats.model_dump(mode="json"),
    }
    logger.debug("[pipeline] analyze_image_pipeline finished successfully")
    return payload
