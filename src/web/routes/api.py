from __future__ import annotations

import logging
import platform
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from inference.errors import DecodeFailure
from models.config import DetectorConfig
from models.scan import ScanMode
from pipeline.engine import ScanSession
from pipeline.service import analyze_video, detect_image
from ..api_models import (
    AnalyzeVideoRequest,
    CancelResponse,
    CreateDetectorRequest,
    CreateDetectorResponse,
    DetectPathRequest,
    DisposeResponse,
    HealthResponse,
)
from ..state import state

router = APIRouter()


def _detector_config(req: CreateDetectorRequest) -> DetectorConfig:
    """Overlay the request onto the configured detector defaults."""
    merged: Dict[str, Any] = state.get_config().detector.to_dict()
    for key, value in req.model_dump(exclude_none=True).items():
        merged[key] = value
    if req.labels is not None:
        merged.pop("labels_file", None)
    elif req.labels_file is not None:
        merged.pop("labels", None)
    return DetectorConfig.from_dict(merged)


def _thresholds(conf: Optional[float], iou: Optional[float]):
    cfg = state.get_config().detector
    return (
        cfg.conf_threshold if conf is None else conf,
        cfg.iou_threshold if iou is None else iou,
    )


@router.get("/health", response_model=HealthResponse)
def health():
    now = time.time()
    return {
        "status": "ok",
        "detectors": state.registry.ids(),
        "active_scans": state.active_scan_ids(),
        "uptime_seconds": int(now - state.start_time),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "timestamp": now,
    }


@router.post("/detectors", response_model=CreateDetectorResponse)
def create_detector(req: CreateDetectorRequest):
    cfg = _detector_config(req)
    if not cfg.model:
        raise HTTPException(status_code=400, detail="model path is required")
    try:
        detector_id = state.registry.create(cfg)
    except ImportError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except (OSError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    handle = state.registry.get(detector_id)
    return {
        "detector_id": detector_id,
        "num_classes": len(handle.labels),
        "input_size": handle.input_size,
    }


@router.delete("/detectors/{detector_id}", response_model=DisposeResponse)
def dispose_detector(detector_id: str):
    state.registry.dispose(detector_id)
    return {"disposed": 1}


@router.delete("/detectors", response_model=DisposeResponse)
def dispose_all_detectors():
    return {"disposed": state.registry.dispose_all()}


@router.post("/detectors/{detector_id}/detect")
def detect_upload(
    detector_id: str,
    file: UploadFile = File(...),
    confidence_threshold: Optional[float] = Form(None),
    iou_threshold: Optional[float] = Form(None),
):
    """
    Detect on an uploaded image. Only detections at or above the confidence
    threshold are returned; debugInfo still reports raw maximum scores.
    """
    conf, iou = _thresholds(confidence_threshold, iou_threshold)
    data = file.file.read()
    if not data:
        raise DecodeFailure("Uploaded file is empty")
    result = detect_image(state.registry, detector_id, data, conf, iou)
    return result.to_dict(confidence_threshold=conf)


@router.post("/detectors/{detector_id}/detect-path")
def detect_path(detector_id: str, req: DetectPathRequest):
    conf, iou = _thresholds(req.confidence_threshold, req.iou_threshold)
    result = detect_image(state.registry, detector_id, req.image_path, conf, iou)
    return result.to_dict(confidence_threshold=conf)


@router.post("/detectors/{detector_id}/analyze-video")
def analyze_video_route(detector_id: str, req: AnalyzeVideoRequest):
    """
    Scan a video synchronously. Give a scan_id to be able to cancel the
    scan from another request while it runs.
    """
    cfg = state.get_config()
    try:
        mode = ScanMode.parse(req.mode or cfg.scan.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session_kwargs: Dict[str, Any] = {}
    if req.scan_id:
        session_kwargs["scan_id"] = req.scan_id
    session = ScanSession(
        mode=mode,
        sample_interval=req.sample_interval or cfg.scan.sample_interval,
        confidence_threshold=(
            cfg.detector.conf_threshold if req.confidence_threshold is None else req.confidence_threshold
        ),
        **session_kwargs,
    )
    if not state.register_scan(session):
        raise HTTPException(status_code=409, detail=f"Scan '{session.scan_id}' is already running")

    try:
        result = analyze_video(
            state.registry,
            detector_id,
            req.video_path,
            session=session,
            scan_config=cfg.scan,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        state.unregister_scan(session.scan_id)

    body = result.to_dict()
    body["scanId"] = session.scan_id
    if req.include_frames:
        body["frames"] = [f.to_dict() for f in session.frames]
    return body


@router.post("/scans/{scan_id}/cancel", response_model=CancelResponse)
def cancel_scan(scan_id: str):
    session = state.get_scan(scan_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"No running scan with ID '{scan_id}'")
    session.cancel()
    logging.info(f"Cancel requested for scan {scan_id}")
    return {"scan_id": scan_id, "cancelled": True}
