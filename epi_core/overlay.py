"""Bounding-box overlay for evaluated frames.

- OverlayRenderer: transparent BGRA layer sized to the video's native resolution,
  redrawn from scratch for every evaluated capture
- composite: blend the layer onto a BGR frame for display or export

Detections carry center coordinates (x, y) plus box width/height in source pixels.
"""
from __future__ import annotations
import cv2
import numpy as np
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from epi_core.catalog import EPI_CLASSES, label_for
from epi_core.models import Detection

# BGR(A) colors
REQUIRED_COLOR: Tuple[int, int, int] = (69, 167, 40)     # #28a745
OTHER_COLOR: Tuple[int, int, int] = (234, 126, 102)      # #667eea
TEXT_COLOR: Tuple[int, int, int] = (255, 255, 255)

BOX_THICKNESS = 3
LABEL_HEIGHT = 20
LABEL_PAD = 5
FONT = cv2.FONT_HERSHEY_SIMPLEX
FONT_SCALE = 0.5
FONT_THICKNESS = 1


def tag_text(label: str, confidence: float) -> str:
    return f"{label} {confidence * 100:.0f}%"


def box_corners(det: Detection) -> Tuple[int, int, int, int]:
    """(x1, y1, x2, y2) of a center-based detection."""
    x1 = int(round(det.x - det.width / 2.0))
    y1 = int(round(det.y - det.height / 2.0))
    x2 = int(round(det.x + det.width / 2.0))
    y2 = int(round(det.y + det.height / 2.0))
    return x1, y1, x2, y2


def tag_rect(x1: int, y1: int, text_w: int, surface_w: int, surface_h: int) -> Tuple[int, int, int, int]:
    """Label tag placed just above the box, kept inside the surface."""
    tag_w = text_w + 2 * LABEL_PAD
    bottom = max(LABEL_HEIGHT, y1 - LABEL_PAD)
    bottom = min(bottom, max(LABEL_HEIGHT, surface_h))
    left = max(0, min(x1, surface_w - tag_w))
    return left, bottom - LABEL_HEIGHT, left + tag_w, bottom


def _blank(width: int, height: int) -> np.ndarray:
    return np.zeros((max(0, height), max(0, width), 4), dtype=np.uint8)


class OverlayRenderer:
    """Draws detection boxes on a transparent layer aligned with the video."""

    def __init__(self, width: int = 0, height: int = 0):
        self.surface = _blank(width, height)

    @property
    def size(self) -> Tuple[int, int]:
        h, w = self.surface.shape[:2]
        return w, h

    def clear(self) -> None:
        w, h = self.size
        self.surface = _blank(w, h)

    def render(self,
               detections: Optional[Sequence[Detection]],
               width: int,
               height: int,
               required: Iterable[str] = (),
               catalog: Mapping[int, str] = EPI_CLASSES) -> np.ndarray:
        """Clear the layer, match the native size, and draw every detection.

        Args:
            detections: boxes to draw (left untouched)
            width, height: native pixel size of the source video
            required: labels drawn in the "required" color
            catalog: class id -> label mapping

        Returns:
            The BGRA surface (owned by the renderer)
        """
        # drawn off-screen and swapped in whole; composite() may run on another thread
        surface = _blank(int(width), int(height))
        if not detections:
            self.surface = surface
            return surface

        required_set = set(required)
        sh, sw = surface.shape[:2]
        for det in detections:
            label = label_for(det.class_id, catalog)
            color = REQUIRED_COLOR if label in required_set else OTHER_COLOR
            rgba = (*color, 255)

            x1, y1, x2, y2 = box_corners(det)
            cv2.rectangle(surface, (x1, y1), (x2, y2), rgba, BOX_THICKNESS)

            text = tag_text(label, det.confidence)
            (tw, _th), _base = cv2.getTextSize(text, FONT, FONT_SCALE, FONT_THICKNESS)
            tx1, ty1, tx2, ty2 = tag_rect(x1, y1, tw, sw, sh)
            cv2.rectangle(surface, (tx1, ty1), (tx2, ty2), rgba, -1)
            cv2.putText(surface, text, (tx1 + LABEL_PAD, ty2 - LABEL_PAD),
                        FONT, FONT_SCALE, (*TEXT_COLOR, 255), FONT_THICKNESS, cv2.LINE_AA)
        self.surface = surface
        return surface

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Alpha-blend the layer onto a BGR frame (returns a new array)."""
        out = frame.copy()
        h, w = out.shape[:2]
        layer = self.surface
        if layer.size == 0:
            return out
        if layer.shape[:2] != (h, w):
            layer = cv2.resize(layer, (w, h), interpolation=cv2.INTER_NEAREST)
        alpha = layer[:, :, 3:4].astype(np.float32) / 255.0
        if not alpha.any():
            return out
        blended = out.astype(np.float32) * (1.0 - alpha) + layer[:, :, :3].astype(np.float32) * alpha
        return blended.astype(np.uint8)


def draw_status(frame: np.ndarray, lines: Sequence[str], level: str = "info") -> np.ndarray:
    """Write status lines in the top-left corner of a BGR frame (in place)."""
    colors = {"success": REQUIRED_COLOR, "warning": (0, 165, 255), "error": (0, 0, 255)}
    color = colors.get(level, TEXT_COLOR)
    y = 24
    for line in lines:
        cv2.putText(frame, line, (10, y), FONT, 0.6, (0, 0, 0), 3, cv2.LINE_AA)
        cv2.putText(frame, line, (10, y), FONT, 0.6, color, 1, cv2.LINE_AA)
        y += 22
    return frame
