from __future__ import annotations

import time
from typing import Any, Dict, Iterator, Optional

import cv2
import numpy as np


class Frame:
    __slots__ = ("ok", "image", "ts", "index", "rotation_deg")

    def __init__(self, ok: bool, image: Optional[np.ndarray], ts: float,
                 index: int | None = None, rotation_deg: int = 0):
        self.ok = ok
        self.image = image
        self.ts = ts  # 捕获时间戳（秒，float）
        self.index = index
        self.rotation_deg = rotation_deg


class FrameSource:
    """OpenCV camera/file reader handing out frames plus their display rotation."""

    def __init__(self, config: Dict[str, Any]):
        cfg = config or {}
        self.source = cfg.get("source", 0)
        self.width = int(cfg.get("width", 1280))
        self.height = int(cfg.get("height", 720))
        self.fps_request = cfg.get("fps_request", 30)
        self.rotation_deg = int(cfg.get("rotation_deg", 0)) % 360
        self._counter = 0

        self.cap = cv2.VideoCapture(self.source)
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps_request)
        buffersize = int(cfg.get("buffersize", 2))
        if buffersize > 0:
            self.cap.set(cv2.CAP_PROP_BUFFERSIZE, buffersize)

    def read(self) -> Frame:
        if not self.is_opened():
            return Frame(False, None, time.time(), None, self.rotation_deg)
        ok, img = self.cap.read()
        idx = self._counter
        self._counter += 1
        return Frame(bool(ok), img if ok else None, time.time(), idx, self.rotation_deg)

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.read()
            if not frame.ok:
                return
            yield frame

    def is_opened(self) -> bool:
        return bool(self.cap) and bool(self.cap.isOpened())

    def release(self) -> None:
        if self.cap:
            self.cap.release()

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
