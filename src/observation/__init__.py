"""
Observation layer for video frame access.

This layer abstracts how frames are pulled out of a video file from the scan
engine. Each extractor implements the FrameExtractor interface and returns
FrameData objects for requested timestamps.
"""

from .base import FrameExtractor, ExtractorConfig
from .human_presence import HogHumanPresenceCheck, HumanPresenceCheck, create_human_check
from .opencv_source import OpenCVFrameExtractor, OpenCVExtractorConfig

__all__ = [
    "FrameExtractor",
    "ExtractorConfig",
    "OpenCVFrameExtractor",
    "OpenCVExtractorConfig",
    "HumanPresenceCheck",
    "HogHumanPresenceCheck",
    "create_human_check",
]
