"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from fakes import NUDENET_LABELS, pixel_runtime  # noqa: E402
from inference.detector import DetectorHandle  # noqa: E402


@pytest.fixture
def labels():
    return list(NUDENET_LABELS)


@pytest.fixture
def detector(labels):
    """Detector whose fake runtime flags frames painted with the sensitive pixel value."""
    return DetectorHandle(pixel_runtime(), labels, input_size=64)


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
detector:
  model: "models/test.onnx"
  input_size: 320
  labels: ["A", "B", "C", "D", "E", "F", "G"]
  sensitive_classes: [2, 3, 4, 6]
  conf_threshold: 0.6
  iou_threshold: 0.45

scan:
  mode: "sampled"
  sample_interval: 5.0

server:
  host: "127.0.0.1"
  port: 5000

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config(labels):
    """Return a valid configuration dictionary."""
    return {
        "detector": {
            "model": "models/test.onnx",
            "labels": list(labels),
            "input_size": 320,
            "providers": ["CPUExecutionProvider"],
            "sensitive_classes": [2, 3, 4, 6, 14],
            "conf_threshold": 0.6,
            "iou_threshold": 0.45,
        },
        "scan": {
            "mode": "sampled",
            "sample_interval": 5.0,
            "binary_search_window": 5.0,
            "binary_search_depth": 3,
            "human_check": "hog",
        },
        "server": {
            "host": "0.0.0.0",
            "port": 5000,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def video_path(tmp_path):
    """
    Write a 4 second, 10 fps MJPG clip. Each second has its own brightness;
    the last second is painted with the sensitive pixel value.
    """
    import cv2
    import numpy as np

    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG")
    for value in (20, 90, 160, 255):
        for _ in range(10):
            writer.write(np.full((48, 64, 3), value, dtype=np.uint8))
    writer.release()
    return str(path)
