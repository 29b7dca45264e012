"""绘制检测结果的辅助函数（归一化坐标）。"""
from __future__ import annotations

import threading
from typing import Iterable, List, Tuple

import cv2
import numpy as np

from ..detect.types import Detection

_COLOR_KNOWN = (80, 175, 76)
_COLOR_UNKNOWN = (128, 128, 128)


class LastDetections:
    """Most recent finalized list, kept for on-demand speech."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._dets: List[Detection] = []
        self._frame_size: Tuple[int, int] = (0, 0)

    def update(self, detections: Iterable[Detection], frame_w: int, frame_h: int) -> None:
        dets = list(detections)
        with self._lock:
            self._dets = dets
            self._frame_size = (int(frame_w), int(frame_h))

    def get(self) -> List[Detection]:
        with self._lock:
            return list(self._dets)

    @property
    def frame_size(self) -> Tuple[int, int]:
        with self._lock:
            return self._frame_size


def draw_detections(
    image: np.ndarray,
    detections: Iterable[Detection],
    thickness: int = 2,
    font_scale: float = 0.6,
) -> None:
    """在图像上绘制检测框、标签与距离。"""
    font = cv2.FONT_HERSHEY_SIMPLEX
    thickness = max(1, int(thickness))
    h, w = image.shape[:2]
    for det in detections:
        if det is None:
            continue
        color = _COLOR_KNOWN if det.has_label else _COLOR_UNKNOWN
        x1, x2 = int(det.x1 * w), int(det.x2 * w)
        y1, y2 = int(det.y1 * h), int(det.y2 * h)
        if x2 <= x1 or y2 <= y1:
            continue
        cv2.rectangle(image, (x1, y1), (x2, y2), color, thickness)
        text = f"{det.label} {det.score:.2f} {det.distance_m:.1f} m"
        _draw_label_top(image, text, (x1, y1), color, font_scale, thickness, font)


def _draw_label_top(
    img: np.ndarray,
    text: str,
    topleft: Tuple[int, int],
    color: Tuple[int, int, int],
    font_scale: float,
    thickness: int,
    font: int,
) -> None:
    if not text:
        return
    x, y = topleft
    x = int(max(0, x))
    y = int(max(0, y))
    (tw, th), baseline = cv2.getTextSize(text, font, font_scale, thickness)
    pad = 2
    box_top = max(0, y - th - baseline - pad * 2)
    box_bottom = max(y, box_top + th + baseline + pad * 2)
    cv2.rectangle(img, (x, box_top), (x + tw + pad * 2, box_bottom), color, -1)
    text_org = (x + pad, box_top + th + pad)
    cv2.putText(img, text, text_org, font, font_scale, (255, 255, 255), max(1, thickness - 1), cv2.LINE_AA)
