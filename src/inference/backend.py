"""
Model runtime interface.

A runtime takes a [1, 3, S, S] float32 tensor and returns the raw output
buffer of the detector. The detection pipeline never talks to onnxruntime
directly, so tests can substitute a fake runtime.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

import numpy as np


class ModelRuntime(Protocol):
    def run(self, tensor: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...


class OnnxRuntimeBackend:
    """
    onnxruntime session wrapper.

    The first graph input receives the tensor and the first graph output is
    returned (output0 for YOLOv8 exports).
    """

    def __init__(self, model_path: str, providers: Optional[Sequence[str]] = None):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is not installed. Install with `pip install onnxruntime`."
            ) from e

        self.model_path = model_path
        options = ort.SessionOptions()
        options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL

        requested: List[str] = list(providers or ["CPUExecutionProvider"])
        available = set(ort.get_available_providers())
        usable = [p for p in requested if p in available] or ["CPUExecutionProvider"]
        if len(usable) != len(requested):
            logging.warning(f"Execution providers {requested} requested, using {usable}")

        self._session = ort.InferenceSession(model_path, sess_options=options, providers=usable)
        self._input_name = self._session.get_inputs()[0].name
        self._output_name = self._session.get_outputs()[0].name
        logging.info(
            f"Loaded model {model_path}: input '{self._input_name}' "
            f"{self._session.get_inputs()[0].shape}, output '{self._output_name}'"
        )

    @property
    def input_name(self) -> str:
        return self._input_name

    def run(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self._session.run([self._output_name], {self._input_name: tensor})
        return outputs[0]

    def close(self) -> None:
        # InferenceSession has no explicit close; dropping the reference frees it.
        self._session = None
