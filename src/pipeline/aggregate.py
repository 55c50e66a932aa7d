"""
Reduction of per-frame results into one VideoResult.
"""

from __future__ import annotations

from typing import Sequence

from models.scan import FrameResult, ScanMode, VideoResult


def build_result(
    frames: Sequence[FrameResult],
    mode: ScanMode,
    duration: float = 0.0,
    human_frames: int = 0,
    processing_time_ms: int = 0,
    cancelled: bool = False,
) -> VideoResult:
    """
    Aggregate analyzed frames.

    first_sensitive_timestamp is the minimum sensitive timestamp, not the
    first one analyzed; binary search visits the middle of the video first.
    """
    sensitive = sorted(f.timestamp for f in frames if f.is_sensitive)
    return VideoResult(
        is_sensitive=bool(sensitive),
        sensitive_frame_count=len(sensitive),
        total_frames_analyzed=len(frames),
        first_sensitive_timestamp=sensitive[0] if sensitive else None,
        sensitive_timestamps=sensitive,
        highest_confidence=max((f.confidence for f in frames), default=0.0),
        scan_mode=mode,
        human_frames_detected=human_frames,
        total_processing_time_ms=processing_time_ms,
        video_duration=duration,
        cancelled=cancelled,
    )
