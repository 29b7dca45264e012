from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from ..detect.types import POSITION_CENTER, POSITION_LEFT, POSITION_RIGHT, Detection

_POSITION_PHRASES = {
    POSITION_LEFT: "on the left",
    POSITION_CENTER: "in the middle",
    POSITION_RIGHT: "on the right",
}


@dataclass
class RelevanceConfig:
    manual_top_k: int = 4
    auto_top_k: int = 3
    global_interval_s: float = 2.5
    label_cooldown_s: float = 8.0

    @classmethod
    def from_dict(cls, cfg: dict) -> "RelevanceConfig":
        return cls(
            manual_top_k=int(cfg.get("manual_top_k", 4)),
            auto_top_k=int(cfg.get("auto_top_k", 3)),
            global_interval_s=float(cfg.get("global_interval_s", 2.5)),
            label_cooldown_s=float(cfg.get("label_cooldown_s", 8.0)),
        )


def relevance_score(d: Detection) -> float:
    centering = 1.0 - abs(d.center_x - 0.5) * 2.0
    proximity = 1.0 / max(0.3, d.distance_m)
    return d.score * 0.65 + centering * 0.15 + proximity * 0.20


def distance_bucket(distance_m: float) -> str:
    if distance_m < 1.0:
        return "near"
    if distance_m < 2.5:
        return "mid"
    return "far"


def distance_phrase(distance_m: float) -> str:
    if distance_m < 2.0:
        return f"about {distance_m:.1f} meters"
    return f"about {distance_m:.0f} meters"


class RelevancePolicy:
    """Chooses what to say about the current view.

    Not thread-safe: call it from the single consumer context only.
    """

    def __init__(
        self,
        cfg: RelevanceConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cfg = cfg or RelevanceConfig()
        self._clock = clock
        self._last_global: Optional[float] = None
        self._last_per_label: Dict[str, float] = {}
        self._last_signature = ""

    def reset_auto_state(self) -> None:
        self._last_global = None
        self._last_per_label.clear()
        self._last_signature = ""

    def _ranked(self, dets: Sequence[Detection]) -> List[Detection]:
        return sorted(dets, key=relevance_score, reverse=True)

    def pick_for_manual_speech(self, dets: Sequence[Detection]) -> List[Detection]:
        return self._ranked(dets)[: self.cfg.manual_top_k]

    def pick_for_auto_speech(self, dets: Sequence[Detection]) -> List[Detection]:
        now = self._clock()
        if self._last_global is not None and now - self._last_global < self.cfg.global_interval_s:
            return []

        top = self._ranked(dets)[: self.cfg.auto_top_k]
        signature = "|".join(f"{d.label}:{d.position}:{distance_bucket(d.distance_m)}" for d in top)
        if signature == self._last_signature:
            return []

        fresh: List[Detection] = []
        for d in top:
            last = self._last_per_label.get(d.label)
            if last is None or now - last >= self.cfg.label_cooldown_s:
                fresh.append(d)
        if not fresh:
            return []

        self._last_signature = signature
        self._last_global = now
        for d in fresh:
            self._last_per_label[d.label] = now
        return fresh

    @staticmethod
    def format_for_speech(dets: Sequence[Detection], with_positions: bool = True) -> str:
        parts = []
        for d in dets:
            if with_positions:
                where = _POSITION_PHRASES.get(d.position, d.position)
                parts.append(f"{d.label} {where}, {distance_phrase(d.distance_m)}")
            else:
                parts.append(f"{d.label}, {distance_phrase(d.distance_m)}")
        return ". ".join(parts)


__all__ = [
    "RelevanceConfig",
    "RelevancePolicy",
    "distance_bucket",
    "distance_phrase",
    "relevance_score",
]
