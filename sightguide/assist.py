"""Consumer-side glue: detections in, sentences out."""
from __future__ import annotations

import logging
import time
import unicodedata
from typing import Callable, Dict, Iterable, List, Optional

from .detect import Detection, filter_unknown
from .speech import (
    GuidanceConfig,
    GuidanceController,
    RelevanceConfig,
    RelevancePolicy,
    SpeechOutput,
)
from .vis import LastDetections

LOGGER = logging.getLogger(__name__)


def normalize_phrase(text: str) -> str:
    lowered = text.casefold().strip()
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def resolve_target(phrase: str, labels: Iterable[str], synonyms: Dict[str, str]) -> Optional[str]:
    """Spoken phrase -> canonical label; unknown phrases pass through stripped."""
    key = normalize_phrase(phrase)
    if not key:
        return None
    by_norm = {normalize_phrase(k): v for k, v in synonyms.items()}
    if key in by_norm:
        return by_norm[key]
    for label in labels:
        if normalize_phrase(label) == key:
            return label
    return phrase.strip()


class AssistController:
    """Owns the policy objects; every method runs on the consumer context."""

    def __init__(
        self,
        speech: SpeechOutput,
        detection_available: bool = True,
        relevance_cfg: RelevanceConfig | None = None,
        guidance_cfg: GuidanceConfig | None = None,
        hide_unknown: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.speech = speech
        self.detection_available = detection_available
        self.policy = RelevancePolicy(relevance_cfg, clock=clock)
        self.guidance = GuidanceController(speech, guidance_cfg, clock=clock)
        self.last = LastDetections()
        self.hide_unknown = hide_unknown
        self.auto_enabled = False

    @classmethod
    def from_config(cls, speech: SpeechOutput, cfg: dict, detection_available: bool = True) -> "AssistController":
        speech_cfg = cfg.get("speech", {}) or {}
        return cls(
            speech,
            detection_available=detection_available,
            relevance_cfg=RelevanceConfig.from_dict(speech_cfg.get("relevance", {}) or {}),
            guidance_cfg=GuidanceConfig.from_dict(speech_cfg.get("guidance", {}) or {}),
            hide_unknown=bool((cfg.get("filters", {}) or {}).get("hide_unknown", False)),
        )

    def on_detections(self, detections: List[Detection], frame_w: int, frame_h: int) -> List[Detection]:
        dets = filter_unknown(detections, self.hide_unknown)
        self.last.update(dets, frame_w, frame_h)
        # guidance has priority over ambient announcements
        self.guidance.on_detections(dets)
        if self.auto_enabled and not self.guidance.is_active():
            picked = self.policy.pick_for_auto_speech(dets)
            if picked:
                self.speech.speak(self.policy.format_for_speech(picked, with_positions=True))
        return dets

    def speak_now(self) -> None:
        dets = filter_unknown(self.last.get(), self.hide_unknown)
        LOGGER.info("manual_speak dets=%d", len(dets))
        picked = self.policy.pick_for_manual_speech(dets)
        if picked:
            self.speech.speak(self.policy.format_for_speech(picked, with_positions=True))
        elif not self.detection_available:
            self.speech.speak("Detection is not available. Check the model configuration.")
        else:
            self.speech.speak("I do not see anything certain right now.")

    def toggle_auto(self) -> bool:
        self.auto_enabled = not self.auto_enabled
        self.policy.reset_auto_state()
        LOGGER.info("auto_toggle enabled=%s", self.auto_enabled)
        self.speech.speak("Continuous announcements on." if self.auto_enabled else "Continuous announcements off.")
        return self.auto_enabled

    def toggle_hide_unknown(self) -> bool:
        self.hide_unknown = not self.hide_unknown
        LOGGER.info("hide_unknown=%s", self.hide_unknown)
        return self.hide_unknown

    def find(self, phrase: str, labels: Iterable[str], synonyms: Dict[str, str]) -> Optional[str]:
        target = resolve_target(phrase, labels, synonyms)
        if target is None:
            self.speech.speak("I did not understand. Please try again.")
            return None
        self.guidance.start(target)
        return target

    def stop_guidance(self) -> None:
        self.guidance.stop()


__all__ = ["AssistController", "normalize_phrase", "resolve_target"]
