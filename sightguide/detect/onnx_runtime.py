from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import numpy as np

from ..config import resolve_config_path
from .base import DetectorUnavailable, ModelRuntime

LOGGER = logging.getLogger(__name__)


class OnnxRuntime(ModelRuntime):
    """ONNX Runtime session for YOLO models exported from Ultralytics."""

    def __init__(self, cfg: Dict[str, Any]):
        try:
            import onnxruntime as ort
        except Exception as exc:  # pragma: no cover - dependency missing
            raise DetectorUnavailable("onnxruntime is not installed, pip install onnxruntime") from exc

        model_path = cfg.get("model")
        if not model_path:
            raise DetectorUnavailable("detect.model is not configured")
        model_file = Path(resolve_config_path(str(model_path)))
        if not model_file.exists():
            raise DetectorUnavailable(f"ONNX model file not found: {model_file}")

        opts = ort.SessionOptions()
        opts.intra_op_num_threads = int(cfg.get("intra_op_threads", 2))
        opts.inter_op_num_threads = int(cfg.get("inter_op_threads", 1))
        providers = list(cfg.get("providers") or ["CPUExecutionProvider"])
        try:
            self.session = ort.InferenceSession(str(model_file), sess_options=opts, providers=providers)
        except Exception as exc:
            raise DetectorUnavailable(f"ONNX session creation failed: {exc}") from exc

        inputs = self.session.get_inputs()
        outputs = self.session.get_outputs()
        for info in inputs:
            LOGGER.info("ort_input name=%s shape=%s type=%s", info.name, info.shape, info.type)
        for info in outputs:
            LOGGER.info("ort_output name=%s shape=%s type=%s", info.name, info.shape, info.type)
        self.input_name = inputs[0].name
        self.input_size = int(cfg.get("input_size", 640))
        LOGGER.info("ort_session created providers=%s", ",".join(self.session.get_providers()))

    def run(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self.session.run(None, {self.input_name: tensor})
        if not outputs:
            return np.zeros((0,), dtype=np.float32)
        return np.asarray(outputs[0])

    def close(self) -> None:
        self.session = None


__all__ = ["OnnxRuntime"]
