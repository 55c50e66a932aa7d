"""
Non-maximum suppression and recovery merge.

Suppression is class-agnostic: two boxes of different classes overlapping
above the threshold still suppress each other. The merge of recovered
sensitive boxes into the kept list is class-matched.
"""

from __future__ import annotations

from typing import List, Sequence

from models.detection import BoundingBox, Detection

MERGE_TOLERANCE_PX = 10.0


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Intersection over union of two boxes.

    Returns 0.0 when the union has no area.
    """
    ix1 = max(a.x1, b.x1)
    iy1 = max(a.y1, b.y1)
    ix2 = min(a.x2, b.x2)
    iy2 = min(a.y2, b.y2)

    intersection = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    union = (a.x2 - a.x1) * (a.y2 - a.y1) + (b.x2 - b.x1) * (b.y2 - b.y1) - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def non_max_suppression(detections: Sequence[Detection], iou_threshold: float = 0.45) -> List[Detection]:
    """
    Greedy NMS.

    Args:
        detections: Candidate detections in any order.
        iou_threshold: Boxes overlapping a kept box by more than this are dropped.

    Returns:
        Kept detections, highest confidence first.
    """
    if not detections:
        return []

    ordered = sorted(detections, key=lambda d: d.confidence, reverse=True)
    suppressed = [False] * len(ordered)
    keep: List[Detection] = []

    for i, det in enumerate(ordered):
        if suppressed[i]:
            continue
        keep.append(det)
        for j in range(i + 1, len(ordered)):
            if not suppressed[j] and iou(det.bbox, ordered[j].bbox) > iou_threshold:
                suppressed[j] = True

    return keep


def merge_recovered(
    kept: Sequence[Detection],
    recovered: Sequence[Detection],
    tolerance: float = MERGE_TOLERANCE_PX,
) -> List[Detection]:
    """
    Append recovered detections that are not already represented.

    A recovered box is a duplicate when a box of the same class in the merged
    list has its top-left corner within tolerance on both x and y.
    """
    merged = list(kept)
    for det in recovered:
        duplicate = any(
            existing.class_id == det.class_id
            and abs(existing.x1 - det.x1) < tolerance
            and abs(existing.y1 - det.y1) < tolerance
            for existing in merged
        )
        if not duplicate:
            merged.append(det)
    return merged
