"""
Simulated detection payloads for test mode and API-failure fallback.
"""
from __future__ import annotations
import random
from typing import Optional

from epi_core.catalog import AVAILABLE_EPIS
from epi_core.models import Detection, DetectionResponse, ImageSize


def generate_mock_response(rng: Optional[random.Random] = None) -> DetectionResponse:
    """1-5 distinct required-able EPIs with plausible boxes on a 640x480 image."""
    rng = rng or random.Random()
    class_ids = list(AVAILABLE_EPIS.keys())
    picked = rng.sample(class_ids, rng.randint(1, 5))

    predictions = [
        Detection(
            class_id=cid,
            confidence=0.7 + rng.random() * 0.25,
            x=200 + i * 150,
            y=200 + i * 100,
            width=100 + rng.random() * 50,
            height=100 + rng.random() * 50,
        )
        for i, cid in enumerate(picked)
    ]
    return DetectionResponse(
        success=True,
        predictions=predictions,
        image=ImageSize(width=640, height=480),
        time=0.5,
    )
