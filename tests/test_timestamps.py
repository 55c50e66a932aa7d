"""
Tests for scan timestamp generation.
"""

import pytest

from pipeline.timestamps import (
    binary_search_seed,
    quick_check_timestamps,
    rounded_key,
    sampled_timestamps,
)


class TestQuickCheck:
    def test_start_middle_end(self):
        assert quick_check_timestamps(20.0) == pytest.approx([0.0, 9.95, 19.9])

    def test_zero_duration(self):
        """Sub-0.1 s videos still get three check points at or above zero."""
        assert quick_check_timestamps(0.0) == pytest.approx([0.0, 0.05, 0.1])


class TestSampled:
    def test_exact_multiple_with_near_end(self):
        assert sampled_timestamps(20.0, 5.0) == pytest.approx([0.0, 5.0, 10.0, 15.0, 19.5])

    def test_no_near_end_when_last_sample_close(self):
        """No extra frame when the last sample is within a second of the end."""
        assert sampled_timestamps(10.5, 5.0) == pytest.approx([0.0, 5.0, 10.0])

    def test_short_video(self):
        assert sampled_timestamps(3.0, 5.0) == pytest.approx([0.0, 2.5])

    def test_zero_duration(self):
        assert sampled_timestamps(0.0, 5.0) == []

    def test_sorted_and_in_range(self):
        ts = sampled_timestamps(61.3, 2.0)

        assert ts == sorted(ts)
        assert all(0 <= t <= 61.3 for t in ts)

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            sampled_timestamps(10.0, 0)


class TestBinarySearchSeed:
    def test_window_around_middle(self):
        seed = binary_search_seed(20.0, 5.0)

        assert seed == pytest.approx([5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15])

    def test_clipped_to_video(self):
        seed = binary_search_seed(4.0, 5.0)

        assert seed == pytest.approx([0.0, 1.0, 2.0, 3.0, 4.0])
        assert all(0 <= t <= 4.0 for t in seed)


class TestRoundedKey:
    @pytest.mark.parametrize("timestamp,key", [
        (0.0, 0.0),
        (0.2, 0.0),
        (0.25, 0.5),
        (0.74, 0.5),
        (0.75, 1.0),
        (10.1, 10.0),
    ])
    def test_nearest_half_second(self, timestamp, key):
        assert rounded_key(timestamp) == key
