"""
Fast human-presence pre-filter for thorough video scans.

Much cheaper than the content detector: it only answers "is there a person
in this frame?" so the full model runs on fewer frames.
"""

from __future__ import annotations

import logging
from typing import Protocol

import cv2
import numpy as np

from inference.errors import ModelNotLoaded


class HumanPresenceCheck(Protocol):
    def has_human(self, frame: np.ndarray) -> bool:
        ...


class HogHumanPresenceCheck:
    """
    Person check using OpenCV's default HOG people detector.

    Frames are downscaled so their longest side is at most max_size before
    detection.
    """

    def __init__(
        self,
        max_size: int = 320,
        win_stride: tuple = (8, 8),
        padding: tuple = (4, 4),
        scale: float = 1.05,
        min_weight: float = 0.0,
    ):
        self.max_size = max_size
        self.win_stride = win_stride
        self.padding = padding
        self.scale = scale
        self.min_weight = min_weight
        self.hog = cv2.HOGDescriptor()
        self.hog.setSVMDetector(cv2.HOGDescriptor_getDefaultPeopleDetector())

    def _downscale(self, frame: np.ndarray) -> np.ndarray:
        h, w = frame.shape[:2]
        longest = max(w, h)
        if self.max_size is None or longest <= self.max_size:
            return frame
        ratio = self.max_size / float(longest)
        size = (max(1, int(w * ratio)), max(1, int(h * ratio)))
        return cv2.resize(frame, size, interpolation=cv2.INTER_AREA)

    def has_human(self, frame: np.ndarray) -> bool:
        """Return True if at least one person is found. Detector errors count as no person."""
        if frame is None or frame.size == 0:
            return False
        small = self._downscale(frame)
        try:
            boxes, weights = self.hog.detectMultiScale(
                small, winStride=self.win_stride, padding=self.padding, scale=self.scale
            )
        except cv2.error as e:
            logging.warning(f"Human presence check failed: {e}")
            return False
        if len(boxes) == 0:
            return False
        return bool(np.any(np.asarray(weights).ravel() > self.min_weight))


def create_human_check(name: str) -> HumanPresenceCheck:
    """
    Build a human presence check by name.

    Args:
        name: "hog" (default OpenCV people detector).

    Raises:
        ValueError: If the name is unknown.
        ModelNotLoaded: If the installed OpenCV cannot build the detector.
    """
    kind = (name or "hog").strip().lower()
    if kind == "hog":
        try:
            return HogHumanPresenceCheck()
        except (AttributeError, cv2.error) as e:
            logging.error(f"HOG people detector unavailable: {e}")
            raise ModelNotLoaded(f"HOG people detector unavailable: {e}") from e
    raise ValueError(f"Unknown human check '{name}' (expected: hog)")
