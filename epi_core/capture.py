"""
Camera capture adapter and frame encoding helpers (OpenCV).
"""
from __future__ import annotations
import base64
import logging
import os
import threading
from typing import Optional, Tuple

import cv2
import numpy as np

from epi_core.config import Settings
from epi_core.errors import CaptureUnavailable

logger = logging.getLogger(__name__)


class CameraCapture:
    """Live camera feed from which single still frames are taken."""

    def __init__(self, settings: Settings, camera_index: Optional[int] = None):
        self.s = settings
        self.camera_index = settings.CAMERA_INDEX if camera_index is None else camera_index
        self._cap = None
        self._frame_size: Optional[Tuple[int, int]] = None
        # display loop and auto-detect thread share the device
        self._read_lock = threading.Lock()

    # ---- lifecycle ----
    def start(self) -> None:
        """
        Open the camera at the configured resolution.

        Raises:
            CaptureUnavailable: the device cannot be opened.
        """
        if self._cap is not None:
            return
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CaptureUnavailable(f"Could not open camera index {self.camera_index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.s.CAPTURE_WIDTH)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.s.CAPTURE_HEIGHT)
        self._cap = cap
        logger.debug(f"[capture] camera {self.camera_index} opened")

    def stop(self) -> None:
        with self._read_lock:
            if self._cap is None:
                return
            self._cap.release()
            self._cap = None
            self._frame_size = None
        logger.debug(f"[capture] camera {self.camera_index} released")

    def __enter__(self) -> "CameraCapture":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    # ---- state ----
    @property
    def is_open(self) -> bool:
        return self._cap is not None

    @property
    def native_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) of the feed, None until known."""
        if self._frame_size:
            return self._frame_size
        if self._cap is None:
            return None
        w = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        h = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        return (w, h) if w and h else None

    @property
    def is_ready(self) -> bool:
        return self.is_open and self.native_size is not None

    def read_frame(self) -> np.ndarray:
        """
        Grab one BGR still frame.

        Raises:
            CaptureUnavailable: camera not started or read failed.
        """
        with self._read_lock:
            cap = self._cap
            if cap is None:
                raise CaptureUnavailable("Câmera não está pronta.")
            ok, frame = cap.read()
            if not ok or frame is None:
                raise CaptureUnavailable(f"Failed to read frame from camera {self.camera_index}")
            h, w = frame.shape[:2]
            self._frame_size = (w, h)
        return frame


def encode_jpeg(frame: np.ndarray, max_width: int = 1280, quality: int = 80) -> bytes:
    """Downscale wider-than-max frames (aspect preserved) and JPEG-encode them."""
    h, w = frame.shape[:2]
    if max_width > 0 and w > max_width:
        new_h = max(1, int(round(h * max_width / float(w))))
        frame = cv2.resize(frame, (max_width, new_h), interpolation=cv2.INTER_AREA)
    ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return buf.tobytes()


def to_data_uri(image_bytes: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def load_image(path: str) -> np.ndarray:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")
    frame = cv2.imread(path, cv2.IMREAD_COLOR)
    if frame is None:
        raise CaptureUnavailable(f"Could not decode image: {path}")
    return frame
