"""Speech sinks. ``speak`` replaces whatever was being said."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

LOGGER = logging.getLogger(__name__)


class SpeechOutput(ABC):
    @abstractmethod
    def speak(self, text: str) -> None:
        raise NotImplementedError()

    def close(self) -> None:
        pass


class LogSpeech(SpeechOutput):
    """Headless sink: the sentence goes to the log."""

    def __init__(self) -> None:
        self.last_text: Optional[str] = None

    def speak(self, text: str) -> None:
        self.last_text = text
        LOGGER.info("speak: %s", text)


class Pyttsx3Speech(SpeechOutput):
    """pyttsx3 engine on its own thread; newest sentence wins."""

    def __init__(self, rate: int = 180, volume: float = 1.0) -> None:
        try:
            import pyttsx3  # noqa: F401
        except Exception as exc:  # pragma: no cover - dependency missing
            raise ImportError("pyttsx3 is not installed, pip install pyttsx3") from exc
        self.rate = int(rate)
        self.volume = float(volume)
        self._cond = threading.Condition()
        self._pending: Optional[str] = None
        self._engine = None
        self._stopped = False
        self._thread = threading.Thread(target=self._run, name="sightguide-tts", daemon=True)
        self._thread.start()

    def speak(self, text: str) -> None:
        # the engine is only touched on the TTS thread, see _on_word
        with self._cond:
            self._pending = text
            self._cond.notify()

    def _interrupt_requested(self) -> bool:
        with self._cond:
            return self._pending is not None or self._stopped

    def _on_word(self, name=None, location=None, length=None) -> None:
        # runs inside runAndWait on the TTS thread
        if self._engine is not None and self._interrupt_requested():
            self._engine.stop()

    def _run(self) -> None:  # pragma: no cover - background thread
        import pyttsx3

        engine = pyttsx3.init()
        engine.setProperty("rate", self.rate)
        engine.setProperty("volume", self.volume)
        engine.connect("started-word", self._on_word)
        with self._cond:
            self._engine = engine
        while True:
            with self._cond:
                while self._pending is None and not self._stopped:
                    self._cond.wait()
                if self._stopped:
                    break
                text, self._pending = self._pending, None
            try:
                engine.say(text)
                engine.runAndWait()
            except Exception:
                LOGGER.exception("tts failed")

    def close(self) -> None:
        with self._cond:
            self._stopped = True
            self._cond.notify()
        self._thread.join(timeout=2.0)


def build_speech(cfg: dict) -> SpeechOutput:
    backend = (cfg.get("backend") or "log").lower()
    if backend == "log":
        return LogSpeech()
    if backend == "pyttsx3":
        return Pyttsx3Speech(rate=int(cfg.get("rate", 180)))
    raise ValueError(f"Unknown speech backend: {backend}")


__all__ = ["SpeechOutput", "LogSpeech", "Pyttsx3Speech", "build_speech"]
