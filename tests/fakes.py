"""
Test doubles shared across test modules.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from models.frame import FrameData
from observation.base import ExtractorConfig, FrameExtractor

NUDENET_LABELS = [
    "FEMALE_GENITALIA_COVERED",
    "FACE_FEMALE",
    "BUTTOCKS_EXPOSED",
    "FEMALE_BREAST_EXPOSED",
    "FEMALE_GENITALIA_EXPOSED",
    "MALE_BREAST_EXPOSED",
    "ANUS_EXPOSED",
    "FEET_EXPOSED",
    "BELLY_COVERED",
    "FEET_COVERED",
    "ARMPITS_COVERED",
    "ARMPITS_EXPOSED",
    "FACE_MALE",
    "BELLY_EXPOSED",
    "MALE_GENITALIA_EXPOSED",
    "ANUS_COVERED",
    "FEMALE_BREAST_COVERED",
    "BUTTOCKS_COVERED",
]

Anchor = Tuple[Sequence[float], Dict[int, float]]

# Pixel values the fake extractor paints; the fake runtime reads them back.
SENSITIVE_PIXEL = 255
HUMAN_PIXEL = 128


def make_output(anchors: List[Anchor], num_classes: int = len(NUDENET_LABELS)) -> np.ndarray:
    """
    Build a [1, 4 + num_classes, N] output buffer.

    Each anchor is ((cx, cy, w, h), {class_id: score}).
    """
    out = np.zeros((1, 4 + num_classes, len(anchors)), dtype=np.float32)
    for i, (box, scores) in enumerate(anchors):
        out[0, :4, i] = box
        for class_id, score in scores.items():
            out[0, 4 + class_id, i] = score
    return out


class FakeRuntime:
    """ModelRuntime returning a fixed buffer or the result of a function of the input tensor."""

    def __init__(
        self,
        output: Optional[np.ndarray] = None,
        fn: Optional[Callable[[np.ndarray], np.ndarray]] = None,
        error: Optional[Exception] = None,
    ):
        self.output = output
        self.fn = fn
        self.error = error
        self.calls: List[Tuple[int, ...]] = []
        self.closed = False

    def run(self, tensor: np.ndarray) -> np.ndarray:
        self.calls.append(tuple(tensor.shape))
        if self.error is not None:
            raise self.error
        if self.fn is not None:
            return self.fn(tensor)
        return self.output

    def close(self) -> None:
        self.closed = True


def pixel_runtime(sensitive_score: float = 0.9) -> FakeRuntime:
    """
    Runtime that reports one FEMALE_BREAST_EXPOSED box when the frame was
    painted with SENSITIVE_PIXEL and nothing otherwise.
    """
    hit = make_output([((32, 32, 32, 32), {3: sensitive_score, 1: 0.3})])
    miss = make_output([((32, 32, 32, 32), {1: 0.3})])

    def fn(tensor: np.ndarray) -> np.ndarray:
        return hit if float(tensor.max()) > 0.9 else miss

    return FakeRuntime(fn=fn)


class FakeExtractor(FrameExtractor):
    """
    FrameExtractor over a synthetic video.

    Frames are uniform images whose value says what they contain:
    SENSITIVE_PIXEL for sensitive frames, HUMAN_PIXEL for frames with a
    person only, 0 otherwise.
    """

    def __init__(
        self,
        duration: float,
        sensitive: Callable[[float], bool] = lambda t: False,
        human: Callable[[float], bool] = lambda t: False,
        missing: Callable[[float], bool] = lambda t: False,
        on_frame: Optional[Callable[[float], None]] = None,
    ):
        super().__init__(ExtractorConfig(source_id="fake-video"))
        self._duration = duration
        self._sensitive = sensitive
        self._human = human
        self._missing = missing
        self._on_frame = on_frame
        self.requested: List[float] = []
        self.open_count = 0
        self.close_count = 0

    @property
    def duration(self) -> float:
        return self._duration

    def open(self) -> None:
        self.open_count += 1
        self._is_open = True

    def frame_at(self, timestamp: float) -> Optional[FrameData]:
        self.requested.append(timestamp)
        if self._on_frame is not None:
            self._on_frame(timestamp)
        if self._missing(timestamp):
            return None
        if self._sensitive(timestamp):
            value = SENSITIVE_PIXEL
        elif self._human(timestamp):
            value = HUMAN_PIXEL
        else:
            value = 0
        self._frame_index += 1
        frame = np.full((48, 64, 3), value, dtype=np.uint8)
        return FrameData.from_numpy(frame, timestamp=timestamp, frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        self.close_count += 1
        self._is_open = False


class FakeHumanCheck:
    """Reports a person on any frame painted at or above HUMAN_PIXEL."""

    def __init__(self):
        self.checked = 0

    def has_human(self, frame: np.ndarray) -> bool:
        self.checked += 1
        return int(frame.max()) >= HUMAN_PIXEL


class RecordingListener:
    def __init__(self):
        self.progress: List[float] = []
        self.found: List[Tuple[float, float]] = []
        self.completed = []

    def on_progress(self, fraction: float) -> None:
        self.progress.append(fraction)

    def on_sensitive_found(self, timestamp: float, confidence: float) -> None:
        self.found.append((timestamp, confidence))

    def on_complete(self, result) -> None:
        self.completed.append(result)
