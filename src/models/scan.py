"""
Video scan models: scan modes, per-frame results and the aggregate result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .detection import Detection


class ScanMode(str, Enum):
    """Frame sampling strategies for a video scan."""
    QUICK_CHECK = "quick_check"
    SAMPLED = "sampled"
    FULL_SHORT_CIRCUIT = "full_short_circuit"
    THOROUGH = "thorough"
    BINARY_SEARCH = "binary_search"

    @classmethod
    def parse(cls, value: "ScanMode | str") -> "ScanMode":
        """Accept a ScanMode or its string value; raise ValueError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown scan mode '{value}' (expected one of: {valid})") from None


@dataclass
class FrameResult:
    """
    Result from analyzing a single video frame.

    Attributes:
        timestamp: Position of the frame in seconds.
        is_sensitive: True iff a sensitive-class detection passed the threshold.
        confidence: Highest sensitive score on this frame (0 when not sensitive).
        detections: Detections at or above the scan's confidence threshold.
        processing_time_ms: Extraction + detection time for this frame.
    """
    timestamp: float
    is_sensitive: bool
    confidence: float
    detections: List[Detection] = field(default_factory=list)
    processing_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "isSensitive": self.is_sensitive,
            "confidence": self.confidence,
            "detections": [d.to_dict() for d in self.detections],
            "processingTime": self.processing_time_ms,
        }


@dataclass
class VideoResult:
    """
    Aggregate result of one video scan.

    highest_confidence is taken over every analyzed frame; non-sensitive
    frames carry 0 so it reduces to the best sensitive score.
    """
    is_sensitive: bool
    sensitive_frame_count: int
    total_frames_analyzed: int
    first_sensitive_timestamp: Optional[float]
    sensitive_timestamps: List[float]
    highest_confidence: float
    scan_mode: ScanMode
    human_frames_detected: int = 0
    total_processing_time_ms: int = 0
    video_duration: float = 0.0
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isSensitive": self.is_sensitive,
            "sensitiveFrameCount": self.sensitive_frame_count,
            "totalFramesAnalyzed": self.total_frames_analyzed,
            "firstSensitiveTimestamp": self.first_sensitive_timestamp,
            "sensitiveTimestamps": list(self.sensitive_timestamps),
            "highestConfidence": self.highest_confidence,
            "scanMode": self.scan_mode.value,
            "humanFramesDetected": self.human_frames_detected,
            "totalProcessingTime": self.total_processing_time_ms,
            "videoDuration": self.video_duration,
            "cancelled": self.cancelled,
        }
