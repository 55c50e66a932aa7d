from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CreateDetectorRequest(BaseModel):
    """
    Detector load request. Omitted fields fall back to the server's
    detector configuration.
    """
    model: Optional[str] = Field(None, description="Path to the ONNX model")
    labels: Optional[List[str]] = Field(None, min_length=1, description="Ordered class labels")
    labels_file: Optional[str] = Field(None, description="File with one class label per line")
    input_size: Optional[int] = Field(None, gt=0, description="Square model input size")
    providers: Optional[List[str]] = None
    sensitive_classes: Optional[List[int]] = None


class CreateDetectorResponse(BaseModel):
    detector_id: str
    num_classes: int
    input_size: int


class DisposeResponse(BaseModel):
    disposed: int


class DetectPathRequest(BaseModel):
    image_path: str = Field(..., description="Filesystem path or file:// URI")
    confidence_threshold: Optional[float] = Field(None, ge=0, le=1)
    iou_threshold: Optional[float] = Field(None, ge=0, le=1)


class AnalyzeVideoRequest(BaseModel):
    video_path: str = Field(..., description="Filesystem path or file:// URI")
    mode: Optional[str] = Field(None, description="quick_check|sampled|full_short_circuit|thorough|binary_search")
    sample_interval: Optional[float] = Field(None, gt=0)
    confidence_threshold: Optional[float] = Field(None, ge=0, le=1)
    scan_id: Optional[str] = Field(None, description="Caller-chosen id, usable with the cancel endpoint")
    include_frames: bool = False


class CancelResponse(BaseModel):
    scan_id: str
    cancelled: bool


class HealthResponse(BaseModel):
    status: str
    detectors: List[str]
    active_scans: List[str]
    uptime_seconds: int
    platform: str
    python: str
    timestamp: float
