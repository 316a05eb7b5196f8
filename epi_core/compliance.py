"""
Compliance evaluation of a single frame's detections against the required EPI labels.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Sequence
import logging

from epi_core.catalog import EPI_CLASSES, label_for
from epi_core.models import Detection, Evaluation, EvaluationResult, LabelSummary

logger = logging.getLogger(__name__)


def group_by_label(detections: Iterable[Detection],
                   catalog: Mapping[int, str] = EPI_CLASSES) -> Dict[str, Dict]:
    """
    Group detections by display label.

    Returns:
        dict label -> {"count": int, "max_confidence": float}, in first-seen order.
    """
    groups: Dict[str, Dict] = {}
    for det in detections:
        label = label_for(det.class_id, catalog)
        g = groups.setdefault(label, {"count": 0, "max_confidence": 0.0})
        g["count"] += 1
        g["max_confidence"] = max(g["max_confidence"], float(det.confidence))
    return groups


def evaluate(detections: Sequence[Detection],
             required: Sequence[str],
             *,
             catalog: Mapping[int, str] = EPI_CLASSES,
             now: Optional[datetime] = None,
             source: str = "camera") -> Evaluation:
    """
    Compare detected labels with the required set.

    Args:
        detections: detections of one captured frame (not modified).
        required: ordered required labels.
        catalog: class id -> label mapping.
        now: evaluation timestamp (defaults to current UTC time).
        source: origin of the detections ("camera", "mock", "file", "api").

    Returns:
        Evaluation with the immutable result plus a per-label summary.
    """
    groups = group_by_label(detections, catalog)
    detected = list(groups.keys())
    seen = set(detected)

    missing = []
    for label in required:
        if label not in seen and label not in missing:
            missing.append(label)

    required_set = set(required)
    summaries = [
        LabelSummary(
            label=label,
            count=g["count"],
            max_confidence=g["max_confidence"],
            required=label in required_set,
        )
        for label, g in groups.items()
    ]

    result = EvaluationResult(
        timestamp=now or datetime.now(timezone.utc),
        detected_labels=detected,
        missing_labels=missing,
        total_detections=len(detections),
        compliant=not missing,
    )
    logger.debug(f"[compliance] detections={len(detections)} detected={detected} missing={missing}")
    return Evaluation(result=result, summaries=summaries, source=source)
