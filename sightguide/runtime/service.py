from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ..detect import Detection, Detector, preprocess, rotate_frame
from .throttle import InferenceThrottle

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class InferencePacket:
    seq_id: int
    timestamp: float
    detections: List[Detection]
    frame_w: int
    frame_h: int
    profile: Dict[str, float] = field(default_factory=dict)


class DetectionService:
    """Throttled hand-off of frames to one inference worker.

    ``submit`` runs on the frame thread. Results land on a bounded queue
    drained by the consumer context with ``get_result``; everything that
    speaks lives on that consumer side.
    """

    def __init__(
        self,
        detector: Detector,
        throttle: Optional[InferenceThrottle] = None,
        queue_size: int = 2,
    ) -> None:
        self.detector = detector
        self.throttle = throttle or InferenceThrottle()
        self.output_queue: queue.Queue = queue.Queue(maxsize=max(1, int(queue_size)))
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sightguide-infer")
        self._seq_lock = threading.Lock()
        self._seq_id = 0
        self._inflight: Optional[Future] = None
        self.failed_cycles = 0

    @classmethod
    def from_config(cls, detector: Detector, runtime_cfg: dict) -> "DetectionService":
        throttle_cfg = runtime_cfg.get("throttle", {}) or {}
        output_cfg = runtime_cfg.get("output", {}) or {}
        return cls(
            detector,
            throttle=InferenceThrottle.from_dict(throttle_cfg),
            queue_size=int(output_cfg.get("queue_size", 2)),
        )

    def submit(self, image: np.ndarray, rotation_deg: int = 0) -> bool:
        """Offer a frame; returns ``False`` when it was dropped."""
        if not self.throttle.try_acquire():
            return False
        with self._seq_lock:
            seq_id = self._seq_id
            self._seq_id += 1
        try:
            self._inflight = self._executor.submit(self._process, seq_id, image, rotation_deg, time.time())
        except RuntimeError:
            # executor already shut down
            self.throttle.release()
            return False
        return True

    def _process(self, seq_id: int, image: np.ndarray, rotation_deg: int, ts: float) -> None:
        infer_ms = -1.0
        pre_ms = -1.0
        try:
            t0 = time.perf_counter()
            frame = rotate_frame(image, rotation_deg)
            h, w = frame.shape[:2]
            tensor = preprocess(frame, self.detector.runtime.input_size)
            t1 = time.perf_counter()
            output = self.detector.runtime.run(tensor)
            t2 = time.perf_counter()
            dets = self.detector.pipeline.run(output, w, h)
            pre_ms = (t1 - t0) * 1000.0
            infer_ms = (t2 - t1) * 1000.0
            if self.throttle.closed:
                return
            self._put(
                InferencePacket(
                    seq_id=seq_id,
                    timestamp=ts,
                    detections=dets,
                    frame_w=w,
                    frame_h=h,
                    profile={"preprocess_ms": pre_ms, "infer_ms": infer_ms},
                )
            )
            LOGGER.debug("frame_done pre_ms=%.1f infer_ms=%.1f dets=%d", pre_ms, infer_ms, len(dets))
        except Exception:
            self.failed_cycles += 1
            LOGGER.exception("inference_failed pre_ms=%.1f infer_ms=%.1f", pre_ms, infer_ms)
        finally:
            self.throttle.release()

    def _put(self, packet: InferencePacket) -> None:
        # 队列满时丢弃最旧的结果
        while True:
            try:
                self.output_queue.put_nowait(packet)
                return
            except queue.Full:
                try:
                    self.output_queue.get_nowait()
                except queue.Empty:
                    pass

    def get_result(self, timeout: float = 0.2) -> Optional[InferencePacket]:
        try:
            return self.output_queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self, wait: bool = True) -> None:
        self.throttle.close()
        self._executor.shutdown(wait=wait, cancel_futures=True)
        self.throttle.release()
        # single worker: the last submitted future finishes after every earlier one
        inflight = self._inflight
        if inflight is None:
            self.detector.close()
        else:
            inflight.add_done_callback(lambda _fut: self.detector.close())


__all__ = ["DetectionService", "InferencePacket"]
