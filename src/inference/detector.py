"""
Detector handle: one loaded model plus the full single-image pipeline.

    decode -> letterbox -> NCHW tensor -> runtime -> primary decode -> NMS
           -> sensitive recovery decode -> NMS -> class-matched merge

A handle owns its runtime session. The session is not assumed safe for
concurrent inference, so calls are serialized per handle; separate handles
run independently.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Iterable, List, Optional, Sequence

import numpy as np

from models.config import DEFAULT_SENSITIVE_CLASSES, DetectorConfig
from models.detection import Detection, DetectionResult
from .backend import ModelRuntime, OnnxRuntimeBackend
from .decoder import decode_predictions, recover_sensitive, summarize_scores
from .errors import InferenceFailure, ModelNotLoaded, VisionError
from .nms import merge_recovered, non_max_suppression
from .preprocess import ImageSource, PreprocessedImage, load_image, preprocess, to_nchw


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class DetectorHandle:
    """
    A loaded detector.

    Attributes:
        labels: Ordered class labels; index = class id in the model output.
        input_size: Square model input size.
        sensitive_classes: Class ids treated as sensitive content.
    """

    def __init__(
        self,
        runtime: ModelRuntime,
        labels: Sequence[str],
        input_size: int = 320,
        sensitive_classes: Optional[Iterable[int]] = None,
    ):
        if not labels:
            raise ValueError("Detector requires at least one class label")
        if input_size <= 0:
            raise ValueError("input_size must be positive")
        self.labels: List[str] = list(labels)
        self.input_size = int(input_size)
        self.sensitive_classes = frozenset(
            DEFAULT_SENSITIVE_CLASSES if sensitive_classes is None else sensitive_classes
        )
        self._runtime: Optional[ModelRuntime] = runtime
        self._lock = threading.Lock()

    @classmethod
    def load(cls, cfg: DetectorConfig) -> "DetectorHandle":
        """
        Create a handle from configuration, opening an onnxruntime session.

        Raises:
            ModelNotLoaded: If the model cannot be loaded.
        """
        labels = cfg.resolve_labels()
        if not labels:
            raise ModelNotLoaded("No class labels configured for detector")
        try:
            runtime = OnnxRuntimeBackend(cfg.model, providers=cfg.providers)
        except ImportError:
            raise
        except Exception as e:
            logging.error(f"Failed to load model {cfg.model}: {e}")
            raise ModelNotLoaded(f"Failed to load model {cfg.model}: {e}") from e
        return cls(runtime, labels, input_size=cfg.input_size, sensitive_classes=cfg.sensitive_classes)

    @property
    def is_loaded(self) -> bool:
        return self._runtime is not None

    def is_sensitive(self, detection: Detection) -> bool:
        return detection.class_id in self.sensitive_classes

    def detect_image(
        self,
        source: ImageSource,
        confidence_threshold: float = 0.6,
        iou_threshold: float = 0.45,
    ) -> DetectionResult:
        """
        Run the pipeline on encoded image bytes, a path or a file:// URI.

        Raises:
            ModelNotLoaded, DecodeFailure, ResizeFailure, InferenceFailure, InvalidOutput
        """
        start = time.perf_counter()
        if not self.is_loaded:
            raise ModelNotLoaded("Detector has been disposed")
        image = load_image(source)
        try:
            result = self.detect_pixels(image, confidence_threshold, iou_threshold)
        finally:
            del image
        result.total_time_ms = _elapsed_ms(start)
        return result

    def detect_pixels(
        self,
        image: np.ndarray,
        confidence_threshold: float = 0.6,
        iou_threshold: float = 0.45,
    ) -> DetectionResult:
        """Run the pipeline on an already decoded BGR pixel buffer."""
        start = time.perf_counter()
        prepared = preprocess(image, self.input_size)
        tensor = to_nchw(prepared.data)
        prepared.data = None

        infer_start = time.perf_counter()
        try:
            output = self._infer(tensor)
        finally:
            del tensor
        inference_ms = _elapsed_ms(infer_start)

        post_start = time.perf_counter()
        detections = self._postprocess(output, prepared, confidence_threshold, iou_threshold)
        debug_info = summarize_scores(
            output, self.labels, self.input_size,
            prepared.original_width, prepared.original_height, self.sensitive_classes,
        )
        debug_info["detectionsAfterMerge"] = len(detections)
        del output
        post_ms = _elapsed_ms(post_start)

        logging.debug(
            f"Detected {len(detections)} objects in {_elapsed_ms(start)}ms "
            f"(inference: {inference_ms}ms, post-process: {post_ms}ms)"
        )
        return DetectionResult(
            detections=detections,
            inference_time_ms=inference_ms,
            post_process_time_ms=post_ms,
            total_time_ms=_elapsed_ms(start),
            debug_info=debug_info,
        )

    def _infer(self, tensor: np.ndarray) -> np.ndarray:
        with self._lock:
            if self._runtime is None:
                raise ModelNotLoaded("Detector has been disposed")
            try:
                return np.asarray(self._runtime.run(tensor), dtype=np.float32)
            except VisionError:
                raise
            except Exception as e:
                raise InferenceFailure(f"Inference failed: {e}") from e

    def _postprocess(
        self,
        output: np.ndarray,
        prepared: PreprocessedImage,
        confidence_threshold: float,
        iou_threshold: float,
    ) -> List[Detection]:
        w, h = prepared.original_width, prepared.original_height

        primary = decode_predictions(output, self.labels, self.input_size, w, h)
        kept = non_max_suppression(primary, iou_threshold)

        recovered = recover_sensitive(
            output, self.labels, self.input_size, w, h,
            confidence_threshold, self.sensitive_classes,
        )
        recovered = non_max_suppression(recovered, iou_threshold)

        merged = merge_recovered(kept, recovered)
        logging.debug(
            f"Final: {len(kept)} standard + {len(merged) - len(kept)} recovered = {len(merged)} total"
        )
        return merged

    def dispose(self) -> None:
        """Release the runtime session. Later detect calls raise ModelNotLoaded."""
        with self._lock:
            if self._runtime is not None:
                self._runtime.close()
                self._runtime = None
        logging.info("Detector session disposed")
