from __future__ import annotations

from typing import Tuple

import numpy as np

from .types import POSITION_CENTER, POSITION_LEFT, POSITION_RIGHT, Candidate

NormBox = Tuple[float, float, float, float]


class CoordinateMapper:
    """Input-space box -> frame-normalized corners.

    Preprocessing stretches the frame to a square input (no letterbox), so
    the two axes scale independently.
    """

    def __init__(self, input_size: int, frame_w: int, frame_h: int) -> None:
        if frame_w <= 0 or frame_h <= 0 or input_size <= 0:
            raise ValueError("frame and input sizes must be positive")
        self.frame_w = float(frame_w)
        self.frame_h = float(frame_h)
        self.scale_x = self.frame_w / float(input_size)
        self.scale_y = self.frame_h / float(input_size)

    @classmethod
    def with_scale(cls, scale_x: float, scale_y: float, frame_w: int, frame_h: int) -> "CoordinateMapper":
        mapper = cls(1, frame_w, frame_h)
        mapper.scale_x = float(scale_x)
        mapper.scale_y = float(scale_y)
        return mapper

    def to_normalized(self, cand: Candidate) -> NormBox:
        x1, y1, x2, y2 = cand.corners()
        box = np.array(
            [
                x1 * self.scale_x / self.frame_w,
                y1 * self.scale_y / self.frame_h,
                x2 * self.scale_x / self.frame_w,
                y2 * self.scale_y / self.frame_h,
            ],
            dtype=np.float64,
        )
        box = np.clip(box, 0.0, 1.0)
        return float(box[0]), float(box[1]), float(box[2]), float(box[3])


class PositionClassifier:
    """Descriptive left/center/right zones on the normalized box center."""

    def __init__(self, left_max: float = 0.33, right_min: float = 0.66) -> None:
        self.left_max = float(left_max)
        self.right_min = float(right_min)

    def __call__(self, x1: float, x2: float) -> str:
        cx = (float(x1) + float(x2)) / 2.0
        if cx < self.left_max:
            return POSITION_LEFT
        if cx > self.right_min:
            return POSITION_RIGHT
        return POSITION_CENTER


__all__ = ["CoordinateMapper", "PositionClassifier"]
