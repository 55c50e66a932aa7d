"""
Video scan engine.

Turns a video into a handful of analyzed frames under one of five sampling
strategies and reduces them to a VideoResult:

- quick_check: start, middle and end frames
- sampled: fixed interval plus a near-end frame
- full_short_circuit: sampled, stopping at the first sensitive frame
- thorough: cheap human check on sampled frames, detector only where a person was found
- binary_search: window around the middle, expanding around sensitive hits

The frame loop is sequential. Cancellation is cooperative: the session flag is
checked before every frame and a cancelled scan still returns a valid partial
result marked cancelled.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from inference.detector import DetectorHandle
from inference.errors import AssetUnavailable, ModelNotLoaded, VisionError
from models.scan import FrameResult, ScanMode, VideoResult
from observation.base import FrameExtractor
from observation.human_presence import HumanPresenceCheck
from .aggregate import build_result
from .timestamps import (
    binary_search_seed,
    quick_check_timestamps,
    rounded_key,
    sampled_timestamps,
)

# Binary search progress is reported against this many frames at most
BINARY_SEARCH_PROGRESS_CAP = 50


class ScanListener(Protocol):
    def on_progress(self, fraction: float) -> None:
        ...

    def on_sensitive_found(self, timestamp: float, confidence: float) -> None:
        ...

    def on_complete(self, result: VideoResult) -> None:
        ...


@dataclass
class ScanSession:
    """
    State of one video scan.

    The caller may hold on to the session to cancel it from another thread;
    everything else is written only by the engine.
    """
    mode: ScanMode
    sample_interval: float = 5.0
    confidence_threshold: float = 0.6
    scan_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    duration: float = 0.0
    frames: List[FrameResult] = field(default_factory=list)
    human_frames: int = 0
    stopped_early: bool = False
    _cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        """Request a stop before the next frame."""
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()


@dataclass
class EngineConfig:
    """
    Tunables for the scan engine.

    Attributes:
        iou_threshold: NMS threshold for every analyzed frame.
        binary_search_window: Seconds around the middle to seed, and the jump
            size when expanding around a sensitive hit.
        binary_search_depth: Maximum number of binary search rounds.
    """
    iou_threshold: float = 0.45
    binary_search_window: float = 5.0
    binary_search_depth: int = 3


class VideoScanEngine:
    """
    Runs scan sessions against one detector.

    Example:
        engine = VideoScanEngine(detector, human_check=HogHumanPresenceCheck())
        with OpenCVFrameExtractor(OpenCVExtractorConfig.for_path("clip.mp4")) as video:
            result = engine.scan(video, ScanMode.SAMPLED, sample_interval=5.0)
    """

    def __init__(
        self,
        detector: DetectorHandle,
        human_check: Optional[HumanPresenceCheck] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.detector = detector
        self.human_check = human_check
        self.config = config or EngineConfig()
        self._listeners: List[ScanListener] = []
        self._handlers: Dict[ScanMode, Callable[[ScanSession, FrameExtractor], None]] = {
            ScanMode.QUICK_CHECK: self._scan_quick_check,
            ScanMode.SAMPLED: self._scan_sampled,
            ScanMode.FULL_SHORT_CIRCUIT: self._scan_short_circuit,
            ScanMode.THOROUGH: self._scan_thorough,
            ScanMode.BINARY_SEARCH: self._scan_binary_search,
        }

    def add_listener(self, listener: ScanListener) -> None:
        """Register a listener for progress, hits and completion."""
        self._listeners.append(listener)

    def scan(
        self,
        extractor: FrameExtractor,
        mode: ScanMode | str = ScanMode.SAMPLED,
        sample_interval: float = 5.0,
        confidence_threshold: float = 0.6,
    ) -> VideoResult:
        """Create a session and run it."""
        session = ScanSession(
            mode=ScanMode.parse(mode),
            sample_interval=sample_interval,
            confidence_threshold=confidence_threshold,
        )
        return self.run(session, extractor)

    def run(self, session: ScanSession, extractor: FrameExtractor) -> VideoResult:
        """
        Run a prepared session.

        Opens the extractor if needed and closes it again only in that case.

        Raises:
            ModelNotLoaded: If the detector was disposed before the scan started.
            AssetUnavailable: If the video cannot be opened.
            ValueError: If the sample interval is not positive.
        """
        if not self.detector.is_loaded:
            raise ModelNotLoaded("Detector has been disposed")
        if session.sample_interval <= 0:
            raise ValueError(f"sample interval must be positive, got {session.sample_interval}")

        start = time.perf_counter()
        opened_here = not extractor.is_open
        if opened_here:
            extractor.open()
        try:
            session.duration = extractor.duration
            logging.info(
                f"Scan {session.scan_id}: video={extractor.source_id} duration={session.duration:.1f}s "
                f"mode={session.mode.value} interval={session.sample_interval:.1f}s"
            )
            self._handlers[session.mode](session, extractor)
        finally:
            if opened_here:
                extractor.close()

        result = build_result(
            session.frames,
            session.mode,
            duration=session.duration,
            human_frames=session.human_frames,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
            cancelled=session.stopped_early,
        )
        logging.info(
            f"Scan {session.scan_id} finished: sensitive={result.is_sensitive} "
            f"frames={result.total_frames_analyzed} hits={result.sensitive_frame_count} "
            f"cancelled={result.cancelled} ({result.total_processing_time_ms}ms)"
        )
        self._notify("on_complete", result)
        self._notify("on_progress", 1.0)
        return result

    # Mode handlers

    def _scan_quick_check(self, session: ScanSession, extractor: FrameExtractor) -> None:
        self._scan_timestamps(session, extractor, quick_check_timestamps(session.duration))

    def _scan_sampled(self, session: ScanSession, extractor: FrameExtractor) -> None:
        timestamps = sampled_timestamps(session.duration, session.sample_interval)
        logging.info(f"Sampling {len(timestamps)} frames at {session.sample_interval:.1f}s intervals")
        self._scan_timestamps(session, extractor, timestamps)

    def _scan_short_circuit(self, session: ScanSession, extractor: FrameExtractor) -> None:
        timestamps = sampled_timestamps(session.duration, session.sample_interval)
        self._scan_timestamps(session, extractor, timestamps, stop_on_hit=True)

    def _scan_thorough(self, session: ScanSession, extractor: FrameExtractor) -> None:
        if self.human_check is None:
            raise ValueError("Thorough scan requires a human presence check")

        timestamps = sampled_timestamps(session.duration, session.sample_interval)
        logging.info(f"Phase 1: checking {len(timestamps)} frames for people")

        human_timestamps: List[float] = []
        for index, timestamp in enumerate(timestamps):
            if self._stop_requested(session):
                return
            self._notify("on_progress", index / len(timestamps) * 0.5)
            if self._has_human(extractor, timestamp):
                human_timestamps.append(timestamp)
                session.human_frames += 1

        logging.info(f"Found {len(human_timestamps)} frames with people")
        if not human_timestamps:
            return

        logging.info(f"Phase 2: running detector on {len(human_timestamps)} candidate frames")
        for index, timestamp in enumerate(human_timestamps):
            if self._stop_requested(session):
                return
            self._notify("on_progress", 0.5 + index / len(human_timestamps) * 0.5)
            self._record(session, self._analyze_frame(session, extractor, timestamp))

    def _scan_binary_search(self, session: ScanSession, extractor: FrameExtractor) -> None:
        window = self.config.binary_search_window
        duration = session.duration
        expected = max(1, min(BINARY_SEARCH_PROGRESS_CAP, int(duration / 2)))

        analyzed = set()
        queue = binary_search_seed(duration, window)
        depth = 0
        while depth < self.config.binary_search_depth and queue:
            next_queue: List[float] = []
            for timestamp in queue:
                if self._stop_requested(session):
                    return
                key = rounded_key(timestamp)
                if key in analyzed:
                    continue
                analyzed.add(key)
                self._notify("on_progress", min(1.0, len(analyzed) / expected))

                frame = self._analyze_frame(session, extractor, timestamp)
                if self._record(session, frame):
                    logging.info(f"Binary search: sensitive frame at {timestamp:.1f}s, expanding")
                    before = timestamp - window
                    after = timestamp + window
                    if before >= 0:
                        next_queue.append(before)
                    if after <= duration:
                        next_queue.append(after)
            queue = next_queue
            depth += 1

    # Frame primitives

    def _scan_timestamps(
        self,
        session: ScanSession,
        extractor: FrameExtractor,
        timestamps: List[float],
        stop_on_hit: bool = False,
    ) -> None:
        for index, timestamp in enumerate(timestamps):
            if self._stop_requested(session):
                return
            self._notify("on_progress", index / len(timestamps))
            if self._record(session, self._analyze_frame(session, extractor, timestamp)) and stop_on_hit:
                logging.info(f"Sensitive frame at {timestamp:.1f}s, short-circuiting")
                return

    def _record(self, session: ScanSession, frame: Optional[FrameResult]) -> bool:
        """Store a frame result; returns True when it is sensitive."""
        if frame is None:
            return False
        session.frames.append(frame)
        if frame.is_sensitive:
            self._notify("on_sensitive_found", frame.timestamp, frame.confidence)
        return frame.is_sensitive

    def _stop_requested(self, session: ScanSession) -> bool:
        if session.cancel_requested:
            if not session.stopped_early:
                logging.info(f"Scan {session.scan_id} cancelled after {len(session.frames)} frames")
            session.stopped_early = True
        return session.stopped_early

    def _analyze_frame(
        self,
        session: ScanSession,
        extractor: FrameExtractor,
        timestamp: float,
    ) -> Optional[FrameResult]:
        """
        Extract and classify one frame.

        Returns None when the frame cannot be extracted or analyzed; a single
        bad frame never aborts the scan.
        """
        start = time.perf_counter()
        try:
            frame_data = extractor.frame_at(timestamp)
            if frame_data is None:
                raise AssetUnavailable(f"No frame at {timestamp:.2f}s")
            try:
                result = self.detector.detect_pixels(
                    frame_data.frame,
                    confidence_threshold=session.confidence_threshold,
                    iou_threshold=self.config.iou_threshold,
                )
            finally:
                frame_data.release()
        except VisionError as e:
            logging.warning(f"Skipping frame at {timestamp:.2f}s: [{e.code}] {e}")
            return None
        except Exception as e:
            logging.warning(f"Skipping frame at {timestamp:.2f}s: {e}")
            return None

        detections = result.above(session.confidence_threshold)
        sensitive = [d for d in detections if self.detector.is_sensitive(d)]
        return FrameResult(
            timestamp=timestamp,
            is_sensitive=bool(sensitive),
            confidence=max((d.confidence for d in sensitive), default=0.0),
            detections=detections,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )

    def _has_human(self, extractor: FrameExtractor, timestamp: float) -> bool:
        try:
            frame_data = extractor.frame_at(timestamp)
            if frame_data is None:
                logging.debug(f"No frame at {timestamp:.2f}s for human check")
                return False
            try:
                return bool(self.human_check.has_human(frame_data.frame))
            finally:
                frame_data.release()
        except Exception as e:
            logging.warning(f"Human check failed at {timestamp:.2f}s: {e}")
            return False

    def _notify(self, event: str, *args) -> None:
        for listener in self._listeners:
            callback = getattr(listener, event, None)
            if callback is None:
                continue
            try:
                callback(*args)
            except Exception as e:
                logging.warning(f"Listener error in {event}: {e}")
