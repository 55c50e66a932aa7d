"""
Image preprocessing for YOLO-style detectors.

The letterbox used here pads on the RIGHT and BOTTOM only: the image sits at
the top-left corner of a square black canvas before it is scaled to the model
input size. Model-space boxes therefore map back to the original image with a
single scale factor (max(w, h) / input_size) and no offset.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Union

import cv2
import numpy as np

from .errors import DecodeFailure, ResizeFailure


MAX_ALLOWED_DIMENSION = 8192

ImageSource = Union[bytes, bytearray, str, os.PathLike]


@dataclass
class PreprocessedImage:
    """
    Model-ready image data.

    Attributes:
        data: Normalized RGB float32 pixels in [0, 1], HWC layout, size x size.
        size: Square model input size.
        original_width: Width of the oriented source image.
        original_height: Height of the oriented source image.
    """
    data: np.ndarray
    size: int
    original_width: int
    original_height: int

    @property
    def max_dim(self) -> int:
        return max(self.original_width, self.original_height)

    @property
    def scale(self) -> float:
        """Factor mapping model coordinates back to original pixels."""
        return self.max_dim / float(self.size)


def decode_image(data: Union[bytes, bytearray]) -> np.ndarray:
    """
    Decode encoded image bytes to a BGR pixel buffer.

    IMREAD_COLOR applies EXIF orientation, so the returned buffer is already
    upright and its shape gives the oriented dimensions.
    """
    if not data:
        raise DecodeFailure("Empty image data")
    buf = np.frombuffer(bytes(data), dtype=np.uint8)
    try:
        image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    except cv2.error as e:
        raise DecodeFailure(f"Failed to decode image: {e}") from e
    if image is None:
        raise DecodeFailure("Failed to decode image: unsupported or corrupt data")
    return image


def _path_from_uri(uri: str) -> str:
    if uri.startswith("file://"):
        return uri[len("file://"):]
    return uri


def load_image(source: ImageSource) -> np.ndarray:
    """
    Load an image from raw bytes, a filesystem path or a file:// URI.

    Returns:
        BGR pixel buffer with orientation applied.
    """
    if isinstance(source, (bytes, bytearray)):
        return decode_image(source)

    path = _path_from_uri(os.fspath(source))
    if not os.path.isfile(path):
        raise DecodeFailure(f"Image not found: {path}")
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise DecodeFailure(f"Failed to read image {path}: {e}") from e
    return decode_image(data)


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """Normalize grayscale or BGRA buffers to 3-channel BGR."""
    if image is None or image.size == 0:
        raise DecodeFailure("Empty pixel buffer")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise DecodeFailure(f"Unsupported pixel buffer shape {image.shape}")


def letterbox(image: np.ndarray, size: int) -> np.ndarray:
    """
    Pad to a square on the right/bottom, then scale to size x size.

    Args:
        image: HxWxC pixel buffer.
        size: Target square size.

    Returns:
        size x size buffer with the same dtype and channel count.
    """
    h, w = image.shape[:2]
    max_dim = max(w, h)
    logging.debug(f"Letterbox: {w}x{h} -> {max_dim}x{max_dim} (pad right={max_dim - w} bottom={max_dim - h}) -> {size}")

    try:
        canvas = np.zeros((max_dim, max_dim) + image.shape[2:], dtype=image.dtype)
        canvas[:h, :w] = image
        interpolation = cv2.INTER_AREA if max_dim > size else cv2.INTER_LINEAR
        return cv2.resize(canvas, (size, size), interpolation=interpolation)
    except (cv2.error, ValueError, MemoryError) as e:
        raise ResizeFailure(f"Letterbox resize failed: {e}") from e


def preprocess(image: np.ndarray, size: int) -> PreprocessedImage:
    """
    Turn a BGR pixel buffer into a normalized RGB letterboxed tensor.

    Raises:
        DecodeFailure: If the buffer is empty or larger than the size ceiling.
        ResizeFailure: If the letterbox step fails.
    """
    image = ensure_bgr(image)
    h, w = image.shape[:2]
    if w > MAX_ALLOWED_DIMENSION or h > MAX_ALLOWED_DIMENSION:
        raise DecodeFailure(f"Image too large: {w}x{h} (max {MAX_ALLOWED_DIMENSION})")

    resized = letterbox(image, size)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    del resized
    data = rgb.astype(np.float32) / 255.0
    return PreprocessedImage(data=data, size=size, original_width=w, original_height=h)


def to_nchw(hwc: np.ndarray) -> np.ndarray:
    """Reshape an HWC float buffer to the [1, 3, H, W] layout ONNX models take."""
    return np.ascontiguousarray(np.transpose(hwc, (2, 0, 1))[np.newaxis, ...], dtype=np.float32)
