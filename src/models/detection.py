"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates of the original image.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x1, self.y1, self.x2, self.y2)

    @classmethod
    def from_tuple(cls, t: Tuple[float, float, float, float]) -> "BoundingBox":
        """Create from (x1, y1, x2, y2) tuple."""
        return cls(x1=float(t[0]), y1=float(t[1]), x2=float(t[2]), y2=float(t[3]))


@dataclass(frozen=True)
class Detection:
    """
    A single detection decoded from the model output.

    Attributes:
        bbox: Bounding box in original-image pixel coordinates.
        confidence: Class score (0-1). YOLOv8 heads have no objectness term,
            so the class score is the confidence.
        class_id: Index into the detector's label list.
        class_name: Human-readable class label.
    """
    bbox: BoundingBox
    confidence: float
    class_id: int
    class_name: str

    @property
    def x1(self) -> float:
        return self.bbox.x1

    @property
    def y1(self) -> float:
        return self.bbox.y1

    @property
    def x2(self) -> float:
        return self.bbox.x2

    @property
    def y2(self) -> float:
        return self.bbox.y2

    @classmethod
    def from_xyxy(
        cls,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        confidence: float,
        class_id: int,
        class_name: str,
    ) -> "Detection":
        """Create Detection from x1, y1, x2, y2 coordinates."""
        return cls(
            bbox=BoundingBox(x1=float(x1), y1=float(y1), x2=float(x2), y2=float(y2)),
            confidence=float(confidence),
            class_id=int(class_id),
            class_name=class_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire names callers expect (box/score/classIndex/className)."""
        return {
            "box": list(self.bbox.as_tuple()),
            "score": self.confidence,
            "classIndex": self.class_id,
            "className": self.class_name,
        }


@dataclass
class DetectionResult:
    """
    Output of one detect call (single image or single video frame).

    Attributes:
        detections: Final detections after suppression and recovery merge.
        inference_time_ms: Time spent in the model runtime.
        post_process_time_ms: Time spent decoding and suppressing.
        total_time_ms: Wall time for the whole call.
        debug_info: Decoder statistics (max sensitive scores, scale, ...).
    """
    detections: List[Detection]
    inference_time_ms: int = 0
    post_process_time_ms: int = 0
    total_time_ms: int = 0
    debug_info: Dict[str, Any] = field(default_factory=dict)

    def above(self, confidence_threshold: float) -> List[Detection]:
        """Detections scoring at or above the threshold."""
        return [d for d in self.detections if d.confidence >= confidence_threshold]

    def to_dict(self, confidence_threshold: Optional[float] = None) -> Dict[str, Any]:
        dets = self.detections if confidence_threshold is None else self.above(confidence_threshold)
        return {
            "detections": [d.to_dict() for d in dets],
            "inferenceTime": self.inference_time_ms,
            "postProcessTime": self.post_process_time_ms,
            "totalTime": self.total_time_ms,
            "debugInfo": self.debug_info,
        }
