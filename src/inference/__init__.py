"""
Detection pipeline: preprocessing, model runtime, output decoding and NMS.
"""

from .detector import DetectorHandle
from .registry import DetectorRegistry
from .errors import (
    VisionError,
    ModelNotLoaded,
    DetectorNotFound,
    DecodeFailure,
    ResizeFailure,
    InferenceFailure,
    InvalidOutput,
    AssetUnavailable,
    ScanCancelled,
)

__all__ = [
    "DetectorHandle",
    "DetectorRegistry",
    "VisionError",
    "ModelNotLoaded",
    "DetectorNotFound",
    "DecodeFailure",
    "ResizeFailure",
    "InferenceFailure",
    "InvalidOutput",
    "AssetUnavailable",
    "ScanCancelled",
]
