"""
Frame timestamp generation for the scan modes.

All values are seconds into the video. Generators are pure and never return
a timestamp outside [0, duration] except quick_check on sub-0.1 s videos,
where max(0.1, ...) keeps the check points at or above 0.
"""

from __future__ import annotations

import math
from typing import List

QUICK_CHECK_POINTS = (0.0, 0.5, 1.0)
NEAR_END_GAP = 1.0
NEAR_END_OFFSET = 0.5


def quick_check_timestamps(duration: float) -> List[float]:
    """Start, middle and end of the video."""
    span = max(0.1, duration - 0.1)
    return [r * span for r in QUICK_CHECK_POINTS]


def sampled_timestamps(duration: float, interval: float) -> List[float]:
    """
    Fixed-interval timestamps [0, interval, 2*interval, ...] strictly below
    duration, plus one near-end frame when the last sample leaves more than a
    second uncovered.

    Raises:
        ValueError: If interval is not positive.
    """
    if interval <= 0:
        raise ValueError(f"sample interval must be positive, got {interval}")

    timestamps: List[float] = []
    i = 0
    while i * interval < duration:
        timestamps.append(i * interval)
        i += 1

    last = timestamps[-1] if timestamps else 0.0
    if last < duration - NEAR_END_GAP:
        timestamps.append(max(0.0, duration - NEAR_END_OFFSET))
    return timestamps


def binary_search_seed(duration: float, window: float) -> List[float]:
    """Whole-second offsets from -window to +window around the middle, kept inside [0, duration]."""
    middle = duration / 2.0
    seed: List[float] = []
    steps = int(math.floor(2 * window + 1e-9))
    for k in range(steps + 1):
        t = middle - window + k
        if 0 <= t <= duration:
            seed.append(t)
    return seed


def rounded_key(timestamp: float) -> float:
    """Timestamp rounded to the nearest half second (halves round up)."""
    return math.floor(timestamp * 2 + 0.5) / 2
