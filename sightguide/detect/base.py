from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import cv2
import numpy as np

from .pipeline import DetectionPipeline
from .types import Detection


class DetectorUnavailable(RuntimeError):
    """The inference backend could not be set up; detection stays off."""


class ModelRuntime(ABC):
    input_size: int = 640

    @abstractmethod
    def run(self, tensor: np.ndarray) -> np.ndarray:
        """输入 NCHW float32，返回第一个原始输出张量"""
        raise NotImplementedError()

    def close(self) -> None:  # 预留资源释放
        pass


def rotate_frame(image: np.ndarray, degrees: int) -> np.ndarray:
    deg = int(degrees) % 360
    if deg == 0:
        return image
    if deg == 90:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    if deg == 180:
        return cv2.rotate(image, cv2.ROTATE_180)
    if deg == 270:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    raise ValueError(f"Unsupported rotation: {degrees}")


def preprocess(image: np.ndarray, input_size: int) -> np.ndarray:
    """Stretch a BGR frame to an ``input_size`` square NCHW float tensor."""
    resized = cv2.resize(image, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
    tensor = rgb.astype(np.float32) / 255.0
    tensor = np.transpose(tensor, (2, 0, 1))
    tensor = np.expand_dims(tensor, 0)
    return np.ascontiguousarray(tensor, dtype=np.float32)


class Detector:
    """Model runtime + decode pipeline."""

    def __init__(self, runtime: ModelRuntime, pipeline: DetectionPipeline) -> None:
        if runtime.input_size != pipeline.input_size:
            raise ValueError(
                f"runtime input {runtime.input_size} != decoder input {pipeline.input_size}"
            )
        self.runtime = runtime
        self.pipeline = pipeline

    def infer(self, bgr: np.ndarray) -> List[Detection]:
        """输入 BGR uint8(H,W,3)，返回检测结果列表"""
        h, w = bgr.shape[:2]
        tensor = preprocess(bgr, self.runtime.input_size)
        output = self.runtime.run(tensor)
        return self.pipeline.run(output, w, h)

    def close(self) -> None:
        self.runtime.close()


__all__ = ["Detector", "DetectorUnavailable", "ModelRuntime", "preprocess", "rotate_frame"]
