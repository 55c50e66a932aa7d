"""
Tests for the video scan engine and the service functions around it.
"""

import cv2
import numpy as np
import pytest

from fakes import (
    NUDENET_LABELS,
    FakeExtractor,
    FakeHumanCheck,
    FakeRuntime,
    RecordingListener,
    pixel_runtime,
)
from inference.detector import DetectorHandle
from inference.errors import ModelNotLoaded
from inference.registry import DetectorRegistry
from models.scan import ScanMode
from observation.human_presence import HogHumanPresenceCheck
from pipeline import (
    EngineConfig,
    ScanSession,
    VideoScanEngine,
    analyze_video,
    create_engine,
    detect_image,
    open_video,
    quick_check_video,
)


def at(*timestamps):
    """Predicate matching the given timestamps."""
    return lambda t: any(abs(t - s) < 1e-6 for s in timestamps)


class TestSampledModes:
    def test_sampled(self, detector):
        video = FakeExtractor(20.0, sensitive=lambda t: 9 <= t <= 16)
        engine = VideoScanEngine(detector)

        result = engine.scan(video, ScanMode.SAMPLED, sample_interval=5.0)

        assert video.requested == pytest.approx([0.0, 5.0, 10.0, 15.0, 19.5])
        assert result.is_sensitive
        assert result.total_frames_analyzed == 5
        assert result.sensitive_frame_count == 2
        assert result.sensitive_timestamps == [10.0, 15.0]
        assert result.first_sensitive_timestamp == 10.0
        assert result.highest_confidence == pytest.approx(0.9)
        assert result.scan_mode is ScanMode.SAMPLED
        assert not result.cancelled

    def test_clean_video(self, detector):
        result = VideoScanEngine(detector).scan(FakeExtractor(20.0), "sampled")

        assert not result.is_sensitive
        assert result.first_sensitive_timestamp is None
        assert result.sensitive_timestamps == []
        assert result.highest_confidence == 0.0

    def test_short_circuit_stops_at_first_hit(self, detector):
        video = FakeExtractor(60.0, sensitive=lambda t: t >= 10)

        result = VideoScanEngine(detector).scan(video, ScanMode.FULL_SHORT_CIRCUIT, sample_interval=5.0)

        assert video.requested == pytest.approx([0.0, 5.0, 10.0])
        assert result.total_frames_analyzed == 3
        assert result.sensitive_frame_count == 1
        assert not result.cancelled

    def test_quick_check(self, detector):
        video = FakeExtractor(20.0, sensitive=at(19.9))

        result = VideoScanEngine(detector).scan(video, ScanMode.QUICK_CHECK)

        assert video.requested == pytest.approx([0.0, 9.95, 19.9])
        assert result.first_sensitive_timestamp == pytest.approx(19.9)

    def test_quick_check_zero_duration(self, detector):
        video = FakeExtractor(0.0)

        result = VideoScanEngine(detector).scan(video, ScanMode.QUICK_CHECK)

        assert result.total_frames_analyzed == 3
        assert all(t >= 0 for t in video.requested)

    def test_threshold_applied_per_frame(self, detector):
        """A hit below the scan threshold does not make the frame sensitive."""
        video = FakeExtractor(20.0, sensitive=lambda t: True)

        result = VideoScanEngine(detector).scan(video, ScanMode.SAMPLED, confidence_threshold=0.95)

        assert result.total_frames_analyzed == 5
        assert not result.is_sensitive


class TestThorough:
    def test_detector_runs_only_on_human_frames(self):
        runtime = pixel_runtime()
        detector = DetectorHandle(runtime, NUDENET_LABELS, input_size=64)
        human_check = FakeHumanCheck()
        video = FakeExtractor(20.0, sensitive=at(15.0), human=lambda t: t >= 10)
        listener = RecordingListener()
        engine = VideoScanEngine(detector, human_check=human_check)
        engine.add_listener(listener)

        result = engine.scan(video, ScanMode.THOROUGH, sample_interval=5.0)

        assert human_check.checked == 5
        assert len(runtime.calls) == 3
        assert result.human_frames_detected == 3
        assert result.total_frames_analyzed == 3
        assert result.sensitive_timestamps == [15.0]
        phase_one = listener.progress[:5]
        phase_two = listener.progress[5:8]
        assert all(0 <= p < 0.5 for p in phase_one)
        assert all(0.5 <= p < 1.0 for p in phase_two)
        assert listener.progress[-1] == 1.0

    def test_no_humans(self, detector):
        video = FakeExtractor(20.0, sensitive=lambda t: False)

        result = VideoScanEngine(detector, human_check=FakeHumanCheck()).scan(video, ScanMode.THOROUGH)

        assert not result.is_sensitive
        assert result.total_frames_analyzed == 0
        assert result.human_frames_detected == 0

    def test_requires_human_check(self, detector):
        with pytest.raises(ValueError):
            VideoScanEngine(detector).scan(FakeExtractor(20.0), ScanMode.THOROUGH)

    def test_human_check_errors_count_as_no_person(self, detector):
        class Broken:
            def has_human(self, frame):
                raise RuntimeError("boom")

        result = VideoScanEngine(detector, human_check=Broken()).scan(FakeExtractor(20.0), ScanMode.THOROUGH)

        assert result.total_frames_analyzed == 0


class TestBinarySearch:
    def test_single_hit_in_the_middle(self, detector):
        """20 s video, sensitive only at 10 s: the seed window finds it and the expansion adds nothing new."""
        video = FakeExtractor(20.0, sensitive=at(10.0))

        result = VideoScanEngine(detector).scan(video, ScanMode.BINARY_SEARCH)

        assert result.total_frames_analyzed == 11
        assert result.sensitive_timestamps == [10.0]
        assert result.first_sensitive_timestamp == 10.0

    def test_expands_around_hits_without_revisiting(self, detector):
        """
        Seed covers 5..15; the hit at 7 queues 2 and 12, 12 is already
        analyzed, the hit at 2 queues 7 again which is skipped.
        """
        video = FakeExtractor(20.0, sensitive=at(2.0, 7.0))

        result = VideoScanEngine(detector).scan(video, ScanMode.BINARY_SEARCH)

        assert result.total_frames_analyzed == 12
        assert len(video.requested) == 12
        assert result.sensitive_timestamps == [2.0, 7.0]
        assert result.first_sensitive_timestamp == 2.0

    def test_depth_limit(self, detector):
        video = FakeExtractor(100.0, sensitive=lambda t: True)
        engine = VideoScanEngine(detector, config=EngineConfig(binary_search_window=5.0, binary_search_depth=1))

        result = engine.scan(video, ScanMode.BINARY_SEARCH)

        assert result.total_frames_analyzed == 11
        assert min(video.requested) == 45.0
        assert max(video.requested) == 55.0

    def test_progress_bounded(self, detector):
        listener = RecordingListener()
        engine = VideoScanEngine(detector)
        engine.add_listener(listener)

        engine.scan(FakeExtractor(6.0, sensitive=lambda t: True), ScanMode.BINARY_SEARCH)

        assert all(0 <= p <= 1.0 for p in listener.progress)


class TestCancellation:
    def test_cancel_returns_partial_result(self, detector):
        session = ScanSession(mode=ScanMode.SAMPLED, sample_interval=5.0)

        def cancel_at_five(t):
            if t == 5.0:
                session.cancel()

        video = FakeExtractor(60.0, sensitive=at(5.0), on_frame=cancel_at_five)
        listener = RecordingListener()
        engine = VideoScanEngine(detector)
        engine.add_listener(listener)

        result = engine.run(session, video)

        assert result.cancelled
        assert result.total_frames_analyzed == 2
        assert result.sensitive_timestamps == [5.0]
        assert session.stopped_early
        assert len(listener.completed) == 1
        assert listener.progress[-1] == 1.0

    def test_cancel_before_start(self, detector):
        session = ScanSession(mode=ScanMode.BINARY_SEARCH)
        session.cancel()
        video = FakeExtractor(20.0)

        result = VideoScanEngine(detector).run(session, video)

        assert result.cancelled
        assert result.total_frames_analyzed == 0
        assert video.requested == []
        assert video.close_count == 1


class TestFailures:
    def test_missing_frame_skipped(self, detector):
        video = FakeExtractor(20.0, missing=at(5.0))

        result = VideoScanEngine(detector).scan(video, ScanMode.SAMPLED)

        assert result.total_frames_analyzed == 4

    def test_inference_errors_skipped(self):
        detector = DetectorHandle(FakeRuntime(error=RuntimeError("bad session")), NUDENET_LABELS, input_size=64)

        result = VideoScanEngine(detector).scan(FakeExtractor(20.0), ScanMode.SAMPLED)

        assert result.total_frames_analyzed == 0
        assert not result.is_sensitive
        assert not result.cancelled

    def test_listener_errors_do_not_abort(self, detector):
        class Exploding:
            def on_progress(self, fraction):
                raise RuntimeError("listener down")

        recorder = RecordingListener()
        engine = VideoScanEngine(detector)
        engine.add_listener(Exploding())
        engine.add_listener(recorder)

        result = engine.scan(FakeExtractor(20.0, sensitive=at(10.0)), ScanMode.SAMPLED)

        assert result.sensitive_frame_count == 1
        assert [t for t, _ in recorder.found] == [10.0]
        assert recorder.found[0][1] == pytest.approx(0.9)
        assert recorder.completed == [result]

    def test_disposed_detector(self, detector):
        detector.dispose()

        with pytest.raises(ModelNotLoaded):
            VideoScanEngine(detector).scan(FakeExtractor(20.0))

    def test_interval_must_be_positive(self, detector):
        with pytest.raises(ValueError):
            VideoScanEngine(detector).scan(FakeExtractor(20.0), ScanMode.SAMPLED, sample_interval=0)


class TestExtractorLifecycle:
    def test_opened_and_closed_by_engine(self, detector):
        video = FakeExtractor(20.0)

        VideoScanEngine(detector).scan(video)

        assert video.open_count == 1
        assert video.close_count == 1

    def test_caller_owned_extractor_left_open(self, detector):
        video = FakeExtractor(20.0)
        video.open()

        VideoScanEngine(detector).scan(video)

        assert video.open_count == 1
        assert video.close_count == 0
        assert video.is_open


class TestService:
    def test_analyze_video_by_id(self, detector):
        registry = DetectorRegistry()
        detector_id = registry.add(detector)
        listener = RecordingListener()

        result = analyze_video(
            registry,
            detector_id,
            FakeExtractor(20.0, sensitive=at(15.0)),
            mode="full_short_circuit",
            listeners=[listener],
        )

        assert result.scan_mode is ScanMode.FULL_SHORT_CIRCUIT
        assert result.total_frames_analyzed == 4
        assert listener.completed == [result]

    def test_session_overrides_arguments(self, detector):
        registry = DetectorRegistry()
        detector_id = registry.add(detector)
        session = ScanSession(mode=ScanMode.QUICK_CHECK)

        result = analyze_video(registry, detector_id, FakeExtractor(20.0), mode="sampled", session=session)

        assert result.scan_mode is ScanMode.QUICK_CHECK

    def test_quick_check_video(self, detector):
        registry = DetectorRegistry()
        detector_id = registry.add(detector)

        result = quick_check_video(registry, detector_id, FakeExtractor(30.0, sensitive=lambda t: True))

        assert result.total_frames_analyzed == 3
        assert result.sensitive_frame_count == 3

    def test_detect_image_by_id(self, detector):
        registry = DetectorRegistry()
        detector_id = registry.add(detector)
        ok, buf = cv2.imencode(".png", np.full((64, 64, 3), 255, dtype=np.uint8))

        result = detect_image(registry, detector_id, buf.tobytes())

        assert any(d.class_id == 3 for d in result.above(0.6))

    def test_thorough_engine_gets_hog(self, detector):
        registry = DetectorRegistry()
        detector_id = registry.add(detector)

        thorough = create_engine(registry, detector_id, ScanMode.THOROUGH)
        sampled = create_engine(registry, detector_id, ScanMode.SAMPLED)

        assert isinstance(thorough.human_check, HogHumanPresenceCheck)
        assert sampled.human_check is None

    def test_open_video(self, tmp_path):
        video = FakeExtractor(1.0)

        assert open_video(video) is video
        assert open_video(str(tmp_path / "clip.mp4")).source_id == "clip.mp4"
