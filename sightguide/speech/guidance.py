from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..detect.types import Detection
from .output import SpeechOutput

LOGGER = logging.getLogger(__name__)

# steering band, tighter than the descriptive left/center/right zones
BAND_LEFT = 0.45
BAND_RIGHT = 0.55


@dataclass
class GuidanceConfig:
    update_interval_s: float = 0.9
    not_found_interval_s: float = 2.5
    arrival_distance_m: float = 0.25
    close_distance_m: float = 0.6

    @classmethod
    def from_dict(cls, cfg: dict) -> "GuidanceConfig":
        return cls(
            update_interval_s=float(cfg.get("update_interval_s", 0.9)),
            not_found_interval_s=float(cfg.get("not_found_interval_s", 2.5)),
            arrival_distance_m=float(cfg.get("arrival_distance_m", 0.25)),
            close_distance_m=float(cfg.get("close_distance_m", 0.6)),
        )


@dataclass
class GuidanceState:
    target: Optional[str] = None
    active: bool = False
    last_prompt_at: Optional[float] = None
    last_update_at: Optional[float] = None
    last_spoken: str = ""


def guidance_score(d: Detection) -> float:
    centering = 1.0 - abs(d.center_x - 0.5) * 2.0
    proximity = 1.0 / max(0.15, d.distance_m)
    return d.score * 0.6 + centering * 0.2 + proximity * 0.2


class GuidanceController:
    """Idle / Seeking state machine steering the user towards one label.

    Only touch it from the consumer context that receives detections.
    """

    def __init__(
        self,
        speech: SpeechOutput,
        cfg: GuidanceConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.speech = speech
        self.cfg = cfg or GuidanceConfig()
        self._clock = clock
        self.state = GuidanceState()

    def is_active(self) -> bool:
        return self.state.active

    @property
    def target(self) -> Optional[str]:
        return self.state.target

    def start(self, label: str) -> None:
        self.state = GuidanceState(target=label, active=True)
        LOGGER.info("guidance_start target=%s", label)
        self.speech.speak(f"Looking for {label}. Move the phone slowly until it comes into view.")

    def stop(self) -> None:
        was_active = self.state.active
        self.state = GuidanceState()
        if was_active:
            LOGGER.info("guidance_stop")
            self.speech.speak("Guidance stopped.")

    def _find(self, dets: Sequence[Detection], target: str) -> Optional[Detection]:
        wanted = target.casefold()
        matches = [d for d in dets if d.label.casefold() == wanted]
        if not matches:
            return None
        return max(matches, key=guidance_score)

    def on_detections(self, dets: Sequence[Detection]) -> None:
        st = self.state
        if not st.active or st.target is None:
            return
        now = self._clock()
        if st.last_update_at is not None and now - st.last_update_at < self.cfg.update_interval_s:
            return
        st.last_update_at = now

        target = st.target
        match = self._find(dets, target)
        if match is None:
            if st.last_prompt_at is None or now - st.last_prompt_at > self.cfg.not_found_interval_s:
                st.last_prompt_at = now
                self.speech.speak(f"I do not see {target} yet. Slowly turn the phone from side to side.")
            return

        straddles = match.x1 < BAND_RIGHT and match.x2 > BAND_LEFT
        if straddles and match.distance_m < self.cfg.arrival_distance_m:
            LOGGER.info("guidance_arrived target=%s distance_m=%.2f", target, match.distance_m)
            self.state = GuidanceState()
            self.speech.speak(f"Done. {target} is right in front of you.")
            return

        if match.x2 < BAND_LEFT:
            direction, action = "is on the left", "Turn a little to the left."
        elif match.x1 > BAND_RIGHT:
            direction, action = "is on the right", "Turn a little to the right."
        elif match.distance_m > self.cfg.close_distance_m:
            direction, action = "is straight ahead", "Move closer."
        else:
            direction, action = "is straight ahead", "You are there."

        dist_cm = max(1, int(match.distance_m * 100.0))
        msg = f"{target} {direction}, about {dist_cm} centimeters. {action}"
        if msg == st.last_spoken:
            return
        st.last_spoken = msg
        self.speech.speak(msg)


__all__ = ["GuidanceConfig", "GuidanceController", "GuidanceState", "guidance_score"]
