"""
Video scan pipeline.

The pipeline orchestrates one video scan:
- Timestamp generation for the selected scan mode
- Frame extraction and per-frame detection
- Cooperative cancellation and listener notifications
- Aggregation into a VideoResult
"""

from .aggregate import build_result
from .engine import EngineConfig, ScanListener, ScanSession, VideoScanEngine
from .service import analyze_video, create_engine, detect_image, open_video, quick_check_video

__all__ = [
    "VideoScanEngine",
    "EngineConfig",
    "ScanSession",
    "ScanListener",
    "build_result",
    "detect_image",
    "analyze_video",
    "quick_check_video",
    "create_engine",
    "open_video",
]
