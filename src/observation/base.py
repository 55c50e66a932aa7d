"""
FrameExtractor interface for random-access frame extraction from videos.

The scan engine asks for frames at arbitrary timestamps instead of reading a
stream sequentially, so sources expose seek-and-decode rather than read().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import FrameData


@dataclass
class ExtractorConfig:
    """
    Base configuration for frame extractors.

    Attributes:
        source_id: Identifier for this video (e.g., a file name or asset id).
        max_size: Longest side of returned frames; larger frames are
            downscaled. None keeps the native resolution.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "video"
    max_size: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class FrameExtractor(ABC):
    """
    Abstract base class for video frame extractors.

    Lifecycle:
        1. Create instance with config
        2. Call open() to load the video and its duration
        3. Call frame_at() for each timestamp of interest
        4. Call close() to release the decoder

    Can also be used as a context manager:
        with OpenCVFrameExtractor(config) as video:
            frame = video.frame_at(12.5)
    """

    def __init__(self, config: ExtractorConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Number of frames extracted since open."""
        return self._frame_index

    @property
    @abstractmethod
    def duration(self) -> float:
        """Video duration in seconds (0 when unknown)."""

    @abstractmethod
    def open(self) -> None:
        """
        Open the video.

        Raises:
            AssetUnavailable: If the video cannot be opened.
        """

    @abstractmethod
    def frame_at(self, timestamp: float) -> Optional[FrameData]:
        """
        Decode the frame closest to timestamp (seconds).

        Returns:
            FrameData, or None when no frame is available (past EOF, decode error).
        """

    @abstractmethod
    def close(self) -> None:
        """Release the decoder. Safe to call multiple times."""

    def __enter__(self) -> "FrameExtractor":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
