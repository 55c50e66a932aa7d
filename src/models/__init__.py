"""
Typed models for the SafeScan detector.

Detections, frames, scan results and configuration are plain dataclasses
shared by the inference, observation, pipeline and web layers.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, DetectionResult
from .scan import ScanMode, FrameResult, VideoResult
from .config import (
    Config,
    DetectorConfig,
    ScanConfig,
    ServerConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "DetectionResult",
    # Scanning
    "ScanMode",
    "FrameResult",
    "VideoResult",
    # Config
    "Config",
    "DetectorConfig",
    "ScanConfig",
    "ServerConfig",
]
