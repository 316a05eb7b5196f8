"""
Pydantic data models for detections, evaluations and persisted aggregates.
"""
from __future__ import annotations
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Literal, Optional


class Detection(BaseModel):
    """One predicted box: center (x, y) and size in source-image pixels."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    class_id: int = Field(alias="class")
    confidence: float = Field(ge=0.0, le=1.0)
    x: float
    y: float
    width: float
    height: float


class ImageSize(BaseModel):
    width: int = 0
    height: int = 0


class DetectionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = True
    predictions: List[Detection] = Field(default_factory=list)
    image: ImageSize = Field(default_factory=ImageSize)
    time: float = 0.0


class LabelSummary(BaseModel):
    label: str
    count: int
    max_confidence: float
    required: bool = False


class EvaluationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    detected_labels: List[str] = Field(default_factory=list)
    missing_labels: List[str] = Field(default_factory=list)
    total_detections: int = 0
    compliant: bool = False


class Evaluation(BaseModel):
    result: EvaluationResult
    summaries: List[LabelSummary] = Field(default_factory=list)
    source: Literal["camera", "mock", "file", "api"] = "camera"

    @property
    def nothing_detected(self) -> bool:
        return self.result.total_detections == 0


class StatsAggregate(BaseModel):
    total_evaluations: int = 0
    compliant_count: int = 0
    non_compliant_count: int = 0
    per_label_counts: Dict[str, int] = Field(default_factory=dict)

    @property
    def compliance_rate(self) -> float:
        if self.total_evaluations <= 0:
            return 0.0
        return round(self.compliant_count / self.total_evaluations * 100.0, 1)


class StatusReport(BaseModel):
    level: Literal["success", "warning", "info", "error"]
    title: str
    message: str
    missing: List[str] = Field(default_factory=list)
    total_detections: Optional[int] = None
