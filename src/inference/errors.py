"""
Error taxonomy for the detection pipeline and video scans.

Every error carries a stable ``code`` so the web layer and CLI can report it
without string matching on messages.
"""

from __future__ import annotations


class VisionError(Exception):
    """Base class for all detector and scan errors."""

    code = "VISION_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or (self.__class__.__doc__ or self.code)


class ModelNotLoaded(VisionError):
    """Detector session is not loaded or has been disposed."""

    code = "MODEL_NOT_LOADED"


class DetectorNotFound(VisionError):
    """No detector is registered under the given id."""

    code = "DETECTOR_NOT_FOUND"


class DecodeFailure(VisionError):
    """Image data could not be decoded or exceeds the size ceiling."""

    code = "DECODE_FAILURE"


class ResizeFailure(VisionError):
    """Letterbox resize failed."""

    code = "RESIZE_FAILURE"


class InferenceFailure(VisionError):
    """The model runtime raised during inference."""

    code = "INFERENCE_FAILURE"


class InvalidOutput(VisionError):
    """Model output size does not match 4 + number of classes."""

    code = "INVALID_OUTPUT"


class AssetUnavailable(VisionError):
    """The video or a requested frame could not be read."""

    code = "ASSET_UNAVAILABLE"


class ScanCancelled(VisionError):
    """
    The scan was cancelled by its caller.

    Scans never raise this: a cancelled scan returns a partial VideoResult
    with cancelled=True. Callers that treat cancellation as a failure raise
    it themselves.
    """

    code = "CANCELLED"
