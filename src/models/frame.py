"""
Decoded video frame handed from an extractor to the scan engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass
class FrameData:
    """
    One frame pulled out of a video at a requested position.

    The pixel buffer dominates memory during a scan; call release() once the
    frame has been analyzed so buffers never pile up across the frame loop.

    Attributes:
        frame: BGR pixels, or None after release().
        timestamp: Requested position in the video, in seconds.
        frame_index: Number of frames the extractor produced since open.
        source: Video identifier (usually the file name).
    """
    frame: Optional[np.ndarray]
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        return cls(frame=frame, timestamp=timestamp, frame_index=frame_index, source=source)

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height); (0, 0) once released."""
        if self.frame is None:
            return (0, 0)
        h, w = self.frame.shape[:2]
        return (w, h)

    def release(self) -> None:
        self.frame = None
