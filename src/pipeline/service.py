"""
Caller-facing detection and scan operations.

These functions address detectors by registry id so the CLI and the web layer
share one entry point per operation.
"""

from __future__ import annotations

import os
from typing import Iterable, Optional, Union

from inference.preprocess import ImageSource
from inference.registry import DetectorRegistry
from models.config import ScanConfig
from models.detection import DetectionResult
from models.scan import ScanMode, VideoResult
from observation.base import FrameExtractor
from observation.human_presence import HumanPresenceCheck, create_human_check
from observation.opencv_source import OpenCVExtractorConfig, OpenCVFrameExtractor
from .engine import EngineConfig, ScanListener, ScanSession, VideoScanEngine

VideoSource = Union[str, os.PathLike, FrameExtractor]


def detect_image(
    registry: DetectorRegistry,
    detector_id: str,
    source: ImageSource,
    confidence_threshold: float = 0.6,
    iou_threshold: float = 0.45,
) -> DetectionResult:
    """
    Run single-image detection with a registered detector.

    Raises:
        DetectorNotFound, ModelNotLoaded, DecodeFailure, ResizeFailure,
        InferenceFailure, InvalidOutput
    """
    handle = registry.get(detector_id)
    return handle.detect_image(source, confidence_threshold, iou_threshold)


def open_video(video: VideoSource) -> FrameExtractor:
    """Adapter: wrap a path or file:// URI in an OpenCV extractor; extractors pass through."""
    if isinstance(video, FrameExtractor):
        return video
    return OpenCVFrameExtractor(OpenCVExtractorConfig.for_path(os.fspath(video)))


def create_engine(
    registry: DetectorRegistry,
    detector_id: str,
    mode: ScanMode,
    scan_config: Optional[ScanConfig] = None,
    iou_threshold: float = 0.45,
    human_check: Optional[HumanPresenceCheck] = None,
) -> VideoScanEngine:
    """
    Factory function to build a scan engine for a registered detector.

    The human presence check is only built for thorough scans.
    """
    scan_config = scan_config or ScanConfig()
    if mode == ScanMode.THOROUGH and human_check is None:
        human_check = create_human_check(scan_config.human_check)
    return VideoScanEngine(
        registry.get(detector_id),
        human_check=human_check,
        config=EngineConfig(
            iou_threshold=iou_threshold,
            binary_search_window=scan_config.binary_search_window,
            binary_search_depth=scan_config.binary_search_depth,
        ),
    )


def analyze_video(
    registry: DetectorRegistry,
    detector_id: str,
    video: VideoSource,
    mode: Union[ScanMode, str] = ScanMode.SAMPLED,
    sample_interval: float = 5.0,
    confidence_threshold: float = 0.6,
    session: Optional[ScanSession] = None,
    listeners: Iterable[ScanListener] = (),
    scan_config: Optional[ScanConfig] = None,
    human_check: Optional[HumanPresenceCheck] = None,
) -> VideoResult:
    """
    Scan a video with a registered detector.

    Pass a pre-built session to be able to cancel the scan from another
    thread; its mode, interval and threshold take precedence over the
    keyword arguments.

    Raises:
        DetectorNotFound, ModelNotLoaded, AssetUnavailable, ValueError
    """
    if session is None:
        session = ScanSession(
            mode=ScanMode.parse(mode),
            sample_interval=sample_interval,
            confidence_threshold=confidence_threshold,
        )
    engine = create_engine(registry, detector_id, session.mode, scan_config, human_check=human_check)
    for listener in listeners:
        engine.add_listener(listener)
    return engine.run(session, open_video(video))


def quick_check_video(
    registry: DetectorRegistry,
    detector_id: str,
    video: VideoSource,
    confidence_threshold: float = 0.6,
    session: Optional[ScanSession] = None,
) -> VideoResult:
    """Three-frame check of start, middle and end."""
    if session is None:
        session = ScanSession(mode=ScanMode.QUICK_CHECK, confidence_threshold=confidence_threshold)
    return analyze_video(registry, detector_id, video, session=session)
