from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import resolve_config_path
from .base import DetectorUnavailable, ModelRuntime


class TensorRTRuntime(ModelRuntime):
    """TensorRT engine returning the raw first output binding."""

    def __init__(self, cfg: Dict[str, object]):
        try:
            import tensorrt as trt
        except Exception as exc:  # pragma: no cover - dependency missing
            raise DetectorUnavailable("TensorRT Python package is not installed") from exc

        try:
            import pycuda.driver as cuda  # type: ignore
            import pycuda.autoinit  # type: ignore  # noqa: F401
        except Exception as exc:  # pragma: no cover - dependency missing
            raise DetectorUnavailable("pycuda is not installed, pip install pycuda") from exc

        self.trt = trt
        self.cuda = cuda
        self.stream = cuda.Stream()
        self.logger = trt.Logger(trt.Logger.WARNING)

        engine_path = cfg.get("engine") or cfg.get("model")
        if not engine_path:
            raise DetectorUnavailable("detect.engine is not configured")
        engine_file = Path(resolve_config_path(str(engine_path)))
        if not engine_file.exists():
            raise DetectorUnavailable(f"TensorRT engine file not found: {engine_file}")

        with open(engine_file, "rb") as f:
            engine_bytes = f.read()

        runtime = trt.Runtime(self.logger)
        engine = runtime.deserialize_cuda_engine(engine_bytes)
        if engine is None:
            raise DetectorUnavailable("TensorRT engine deserialization failed")
        context = engine.create_execution_context()
        if context is None:
            raise DetectorUnavailable("TensorRT execution context creation failed")

        self.engine = engine
        self.context = context
        self.bindings: List[int] = [0] * self.engine.num_bindings
        self._input_host: Optional[np.ndarray] = None
        self._input_device = None
        self._output_specs: List[tuple[int, np.ndarray, object, Sequence[int]]] = []
        self.input_binding: Optional[int] = None
        self.input_size = int(cfg.get("input_size", 640))

        self._setup_bindings()

    def _setup_bindings(self) -> None:
        trt = self.trt
        for idx in range(self.engine.num_bindings):
            if not self.engine.binding_is_input(idx):
                continue
            dtype = np.dtype(trt.nptype(self.engine.get_binding_dtype(idx)))
            shape = list(self.engine.get_binding_shape(idx))
            if any(dim == -1 for dim in shape):
                shape = [1, 3, self.input_size, self.input_size]
                self.context.set_binding_shape(idx, tuple(shape))
            elif shape[2] != shape[3]:
                raise DetectorUnavailable("TensorRT engine input must be square")
            size = int(math.prod(shape))
            host_mem = self.cuda.pagelocked_empty(size, dtype=dtype)
            device_mem = self.cuda.mem_alloc(host_mem.nbytes)
            self._input_host = host_mem
            self._input_device = device_mem
            self.bindings[idx] = int(device_mem)
            self.input_binding = idx
            self.input_size = int(shape[2])
            break

        if self.input_binding is None:
            raise DetectorUnavailable("No TensorRT input binding found")

        for idx in range(self.engine.num_bindings):
            if self.engine.binding_is_input(idx):
                continue
            dtype = np.dtype(trt.nptype(self.engine.get_binding_dtype(idx)))
            shape = tuple(self.context.get_binding_shape(idx))
            if any(dim == -1 for dim in shape):
                raise DetectorUnavailable("TensorRT output shape is dynamic, re-export the engine")
            size = int(math.prod(shape))
            host_mem = self.cuda.pagelocked_empty(size, dtype=dtype)
            device_mem = self.cuda.mem_alloc(host_mem.nbytes)
            self.bindings[idx] = int(device_mem)
            self._output_specs.append((idx, host_mem, device_mem, shape))

    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._input_host is None or self._input_device is None:
            raise RuntimeError("TensorRT input buffer is not initialized")
        np.copyto(self._input_host, tensor.reshape(-1))
        self.cuda.memcpy_htod_async(self._input_device, self._input_host, self.stream)
        self.context.execute_async_v2(bindings=self.bindings, stream_handle=self.stream.handle)
        outputs: List[np.ndarray] = []
        for _, host_mem, device_mem, shape in self._output_specs:
            self.cuda.memcpy_dtoh_async(host_mem, device_mem, self.stream)
            outputs.append(host_mem.reshape(shape))
        self.stream.synchronize()
        if not outputs:
            return np.zeros((0,), dtype=np.float32)
        return outputs[0].copy()

    def close(self) -> None:
        try:
            for _, _, device_mem, _ in self._output_specs:
                device_mem.free()
        except Exception:
            pass
        if self._input_device is not None:
            try:
                self._input_device.free()
            except Exception:
                pass
        self._output_specs.clear()
        self._input_host = None
        self._input_device = None
        self.context = None
        self.engine = None


__all__ = ["TensorRTRuntime"]
