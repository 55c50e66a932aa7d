"""
YOLOv8 output decoding.

The detector emits one tensor shaped [1, 4 + num_classes, num_predictions]:
rows 0-3 hold cx, cy, w, h for every anchor and each following row holds one
class score per anchor. Class scores are used directly as confidence.

Two independent passes read the same buffer:

- decode_predictions: best class per anchor (exclusive, one label per anchor)
- decode_all_classes / recover_sensitive: every class above the caller's
  threshold, so a sensitive label that loses the arg-max to a co-located
  class (typically a face) is still reported

Boxes are mapped back with scale = max(orig_w, orig_h) / input_size. There is
no offset term because the letterbox pads right/bottom only.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from models.detection import Detection
from .errors import InvalidOutput


NOISE_FLOOR = 0.01
MIN_BOX_SIZE = 10.0


def reshape_output(output: np.ndarray, num_classes: int) -> np.ndarray:
    """
    View a raw output buffer as a [4 + num_classes, num_predictions] grid.

    Raises:
        InvalidOutput: If the buffer size is not a multiple of 4 + num_classes.
    """
    if num_classes <= 0:
        raise InvalidOutput("Detector has no class labels")
    flat = np.asarray(output, dtype=np.float32).ravel()
    rows = 4 + num_classes
    if flat.size % rows != 0:
        raise InvalidOutput(
            f"Output size {flat.size} is not divisible by {rows} (4 box params + {num_classes} classes)"
        )
    return flat.reshape(rows, flat.size // rows)


def _scaled_corners(
    grid: np.ndarray,
    input_size: int,
    original_width: int,
    original_height: int,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    cx, cy, w, h = grid[0], grid[1], grid[2], grid[3]
    scale = max(original_width, original_height) / float(input_size)

    x1 = np.clip((cx - w / 2) * scale, 0.0, float(original_width))
    y1 = np.clip((cy - h / 2) * scale, 0.0, float(original_height))
    x2 = np.clip((cx + w / 2) * scale, 0.0, float(original_width))
    y2 = np.clip((cy + h / 2) * scale, 0.0, float(original_height))
    return x1, y1, x2, y2


def _size_mask(x1: np.ndarray, y1: np.ndarray, x2: np.ndarray, y2: np.ndarray) -> np.ndarray:
    bw = x2 - x1
    bh = y2 - y1
    # Thin but long boxes pass; only boxes small in both directions are dropped.
    return (bw > 0) & (bh > 0) & ~((bw < MIN_BOX_SIZE) & (bh < MIN_BOX_SIZE))


def _label(labels: Sequence[str], class_id: int) -> str:
    return labels[class_id] if 0 <= class_id < len(labels) else str(class_id)


def decode_predictions(
    output: np.ndarray,
    labels: Sequence[str],
    input_size: int,
    original_width: int,
    original_height: int,
) -> List[Detection]:
    """
    Best-class-per-anchor pass.

    Anchors whose best score is under NOISE_FLOOR are dropped; the caller's
    confidence threshold is applied downstream.

    Returns:
        Detections in anchor order, before suppression.
    """
    grid = reshape_output(output, len(labels))
    num_predictions = grid.shape[1]
    if num_predictions == 0:
        return []

    scores = grid[4:]
    best = np.argmax(scores, axis=0)
    confidence = scores[best, np.arange(num_predictions)]

    x1, y1, x2, y2 = _scaled_corners(grid, input_size, original_width, original_height)
    keep = (confidence >= NOISE_FLOOR) & _size_mask(x1, y1, x2, y2)

    detections = [
        Detection.from_xyxy(
            x1[i], y1[i], x2[i], y2[i],
            confidence=confidence[i],
            class_id=int(best[i]),
            class_name=_label(labels, int(best[i])),
        )
        for i in np.flatnonzero(keep)
    ]
    logging.debug(f"Primary pass: {len(detections)} of {num_predictions} anchors kept")
    return detections


def decode_all_classes(
    output: np.ndarray,
    labels: Sequence[str],
    input_size: int,
    original_width: int,
    original_height: int,
    confidence_threshold: float,
) -> List[Detection]:
    """
    Multi-label pass: one detection per (anchor, class) scoring at or above
    confidence_threshold.
    """
    grid = reshape_output(output, len(labels))
    if grid.shape[1] == 0:
        return []

    x1, y1, x2, y2 = _scaled_corners(grid, input_size, original_width, original_height)
    size_ok = _size_mask(x1, y1, x2, y2)

    # scores.T is [anchor, class] so nonzero() yields anchor-major order
    scores = grid[4:].T
    anchors, classes = np.nonzero((scores >= confidence_threshold) & size_ok[:, np.newaxis])

    detections = [
        Detection.from_xyxy(
            x1[i], y1[i], x2[i], y2[i],
            confidence=scores[i, c],
            class_id=int(c),
            class_name=_label(labels, int(c)),
        )
        for i, c in zip(anchors, classes)
    ]
    logging.debug(f"All-class pass: {len(detections)} detections at threshold {confidence_threshold}")
    return detections


def recover_sensitive(
    output: np.ndarray,
    labels: Sequence[str],
    input_size: int,
    original_width: int,
    original_height: int,
    confidence_threshold: float,
    sensitive_classes: Iterable[int],
) -> List[Detection]:
    """All-class pass restricted to the sensitive class subset."""
    sensitive = set(sensitive_classes)
    return [
        d for d in decode_all_classes(
            output, labels, input_size, original_width, original_height, confidence_threshold
        )
        if d.class_id in sensitive
    ]


def summarize_scores(
    output: np.ndarray,
    labels: Sequence[str],
    input_size: int,
    original_width: int,
    original_height: int,
    sensitive_classes: Iterable[int],
) -> Dict[str, Any]:
    """Debug statistics for one output buffer: max score per sensitive class and the geometry used."""
    grid = reshape_output(output, len(labels))
    num_predictions = grid.shape[1]
    max_dim = max(original_width, original_height)

    max_scores: Dict[str, float] = {}
    for c in sorted(set(sensitive_classes)):
        if 0 <= c < len(labels):
            row = grid[4 + c]
            max_scores[labels[c]] = float(row.max()) if num_predictions else 0.0

    return {
        "maxSensitiveScores": max_scores,
        "numPredictions": int(num_predictions),
        "originalWidth": int(original_width),
        "originalHeight": int(original_height),
        "maxDim": int(max_dim),
        "scaleFactor": max_dim / float(input_size),
        "letterboxStyle": "right-bottom",
    }
