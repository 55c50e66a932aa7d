"""
Table of loaded detectors addressed by opaque ids.

The table lock only guards the dict itself. Inference exclusivity lives on
each DetectorHandle, so independent detectors never wait on each other.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Dict, List

from models.config import DetectorConfig
from .detector import DetectorHandle
from .errors import DetectorNotFound


class DetectorRegistry:
    def __init__(self):
        self._detectors: Dict[str, DetectorHandle] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def add(self, handle: DetectorHandle) -> str:
        """Register an already constructed handle and return its id."""
        with self._lock:
            detector_id = f"detector_{next(self._ids)}"
            self._detectors[detector_id] = handle
        logging.info(f"Registered {detector_id} ({len(handle.labels)} classes, input {handle.input_size})")
        return detector_id

    def create(self, cfg: DetectorConfig) -> str:
        """Load a model from configuration and register it."""
        # Loading happens outside the table lock; it can take seconds.
        return self.add(DetectorHandle.load(cfg))

    def get(self, detector_id: str) -> DetectorHandle:
        with self._lock:
            handle = self._detectors.get(detector_id)
        if handle is None:
            raise DetectorNotFound(f"Detector with ID '{detector_id}' not found")
        return handle

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._detectors)

    def dispose(self, detector_id: str) -> None:
        with self._lock:
            handle = self._detectors.pop(detector_id, None)
        if handle is None:
            raise DetectorNotFound(f"Detector with ID '{detector_id}' not found")
        handle.dispose()
        logging.info(f"Disposed {detector_id}")

    def dispose_all(self) -> int:
        """Dispose every registered detector; returns how many were removed."""
        with self._lock:
            handles = list(self._detectors.values())
            self._detectors.clear()
        for handle in handles:
            handle.dispose()
        logging.info(f"Disposed {len(handles)} detectors")
        return len(handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._detectors)
