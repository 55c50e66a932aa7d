"""
Logging setup for the CLI and the HTTP service.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: str, log_level: str = "INFO") -> None:
    """
    Log to a file and to stderr.

    Args:
        log_path: Log file; its directory is created when missing. An empty
            path logs to stderr only.
        log_level: Standard level name, case-insensitive.
    """
    handlers = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.insert(0, logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, str(log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
    # onnxruntime and OpenCV are chatty at DEBUG; keep third-party noise down.
    for name in ("onnxruntime", "multipart"):
        logging.getLogger(name).setLevel(logging.WARNING)
