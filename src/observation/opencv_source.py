"""
OpenCV-based frame extractor.

Supports video files given as a filesystem path or a file:// URI. Frames are
located by seeking with CAP_PROP_POS_MSEC, so any container FFmpeg can seek in
works.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from inference.errors import AssetUnavailable
from models.frame import FrameData
from .base import ExtractorConfig, FrameExtractor


@dataclass
class OpenCVExtractorConfig(ExtractorConfig):
    """
    Configuration for the OpenCV frame extractor.

    Attributes:
        path: Video file path or file:// URI.
    """
    path: str = ""

    @classmethod
    def for_path(cls, path: str, max_size: Optional[int] = None) -> "OpenCVExtractorConfig":
        """Adapter: build a config whose source_id is the file name."""
        clean = path[len("file://"):] if path.startswith("file://") else path
        return cls(source_id=os.path.basename(clean) or clean, max_size=max_size, path=clean)


class OpenCVFrameExtractor(FrameExtractor):
    """
    Random-access frame extraction with cv2.VideoCapture.

    Example:
        config = OpenCVExtractorConfig.for_path("clip.mp4")
        with OpenCVFrameExtractor(config) as video:
            frame_data = video.frame_at(video.duration / 2)
    """

    def __init__(self, config: OpenCVExtractorConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._duration = 0.0

    @property
    def path(self) -> str:
        return self._cv_config.path

    @property
    def duration(self) -> float:
        return self._duration

    def open(self) -> None:
        """Open the video file and read its duration."""
        if self._is_open:
            return

        if not os.path.isfile(self.path):
            raise AssetUnavailable(f"Video not found: {self.path}")

        self._cap = cv2.VideoCapture(self.path)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise AssetUnavailable(f"Failed to open video: {self.path}")

        fps = self._cap.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        self._duration = float(frame_count / fps) if fps > 0 and frame_count > 0 else 0.0

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"OpenCVFrameExtractor opened: source_id={self.source_id}, "
            f"duration={self._duration:.2f}s, fps={fps:.2f}, frames={int(frame_count)}"
        )

    def frame_at(self, timestamp: float) -> Optional[FrameData]:
        """Seek to timestamp (seconds) and decode one frame."""
        if not self._is_open or self._cap is None:
            return None

        self._cap.set(cv2.CAP_PROP_POS_MSEC, max(0.0, timestamp) * 1000.0)
        ret, frame = self._cap.read()
        if not ret or frame is None:
            logging.debug(f"No frame at {timestamp:.2f}s in {self.source_id}")
            return None

        frame = self._limit_size(frame)
        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=timestamp,
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _limit_size(self, frame: np.ndarray) -> np.ndarray:
        max_size = self._cv_config.max_size
        if not max_size:
            return frame
        h, w = frame.shape[:2]
        longest = max(w, h)
        if longest <= max_size:
            return frame
        scale = max_size / float(longest)
        return cv2.resize(frame, (max(1, int(w * scale)), max(1, int(h * scale))), interpolation=cv2.INTER_AREA)

    def close(self) -> None:
        """Release the capture."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"OpenCVFrameExtractor closed: source_id={self.source_id}")
        self._is_open = False
