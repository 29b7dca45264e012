from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class _AtomicRef:
    """Lock-guarded value with compare-and-set."""

    def __init__(self, value) -> None:
        self._lock = threading.Lock()
        self._value = value

    def get(self):
        with self._lock:
            return self._value

    def set(self, value) -> None:
        with self._lock:
            self._value = value

    def compare_and_set(self, expected, new) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True


class InferenceThrottle:
    """Single-flight, rate-limited admission in front of the decode pipeline.

    ``try_acquire`` is called from the frame thread; ``release`` from
    whichever thread finished (or failed) the work. A dropped frame is not
    an error.
    """

    def __init__(
        self,
        interval_s: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.interval_s = max(0.0, float(interval_s))
        self._clock = clock
        self._last_accepted: _AtomicRef = _AtomicRef(None)
        self._busy = _AtomicRef(False)
        self._closed = threading.Event()
        self._dropped_lock = threading.Lock()
        self._dropped = 0

    @classmethod
    def from_dict(cls, cfg: dict, clock: Callable[[], float] = time.monotonic) -> "InferenceThrottle":
        return cls(float(cfg.get("interval_ms", 250)) / 1000.0, clock=clock)

    def try_acquire(self) -> bool:
        if self._closed.is_set():
            return False
        now = self._clock()
        last: Optional[float] = self._last_accepted.get()
        if last is not None and now - last < self.interval_s:
            return self._drop()
        # 另一帧抢先更新了时间戳 -> 丢弃本帧
        if not self._last_accepted.compare_and_set(last, now):
            return self._drop()
        if not self._busy.compare_and_set(False, True):
            return self._drop()
        return True

    def _drop(self) -> bool:
        with self._dropped_lock:
            self._dropped += 1
        return False

    @property
    def dropped_frames(self) -> int:
        with self._dropped_lock:
            return self._dropped

    def release(self) -> None:
        self._busy.set(False)

    @property
    def busy(self) -> bool:
        return bool(self._busy.get())

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        self._closed.set()
        self.release()


__all__ = ["InferenceThrottle"]
