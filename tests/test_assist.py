from __future__ import annotations

import threading

from sightguide.assist import AssistController, normalize_phrase, resolve_target
from sightguide.detect.types import Detection
from sightguide.speech import LogSpeech, SpeechOutput, build_speech
from sightguide.speech.output import Pyttsx3Speech

LABELS = ["person", "cup", "cell phone", "dining table"]
SYNONYMS = {"phone": "cell phone", "Stůl": "dining table"}


class _FakeSpeech(SpeechOutput):
    def __init__(self) -> None:
        self.spoken: list[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 10.0

    def __call__(self) -> float:
        return self.now


def _det(label: str, has_label: bool = True) -> Detection:
    return Detection(label, 0.9, 0.4, 0.3, 0.6, 0.7, 1.2, "center", has_label)


def _controller(**kwargs) -> tuple[AssistController, _FakeSpeech, _FakeClock]:
    speech = _FakeSpeech()
    clock = _FakeClock()
    return AssistController(speech, clock=clock, **kwargs), speech, clock


def test_resolve_target() -> None:
    assert resolve_target("  Phone ", LABELS, SYNONYMS) == "cell phone"
    assert resolve_target("stul", LABELS, SYNONYMS) == "dining table"
    assert resolve_target("CUP", LABELS, SYNONYMS) == "cup"
    assert resolve_target(" umbrella ", LABELS, SYNONYMS) == "umbrella"
    assert resolve_target("   ", LABELS, SYNONYMS) is None
    assert normalize_phrase(" Židle ") == "zidle"


def test_manual_speech_reads_last_view() -> None:
    ctl, speech, _ = _controller()
    ctl.on_detections([_det("cup")], 640, 480)

    ctl.speak_now()

    assert speech.spoken == ["cup in the middle, about 1.2 meters"]


def test_manual_speech_fallbacks() -> None:
    ctl, speech, _ = _controller()
    ctl.speak_now()
    assert speech.spoken == ["I do not see anything certain right now."]

    ctl, speech, _ = _controller(detection_available=False)
    ctl.speak_now()
    assert speech.spoken == ["Detection is not available. Check the model configuration."]


def test_hide_unknown_filters_everything_downstream() -> None:
    ctl, speech, _ = _controller(hide_unknown=True)
    kept = ctl.on_detections([_det("object", has_label=False), _det("cup")], 640, 480)

    assert [d.label for d in kept] == ["cup"]
    assert [d.label for d in ctl.last.get()] == ["cup"]
    assert ctl.last.frame_size == (640, 480)
    assert ctl.toggle_hide_unknown() is False


def test_auto_mode_announces_and_toggle_resets_state() -> None:
    ctl, speech, _ = _controller()
    ctl.on_detections([_det("cup")], 640, 480)
    assert speech.spoken == []

    assert ctl.toggle_auto() is True
    ctl.on_detections([_det("cup")], 640, 480)
    ctl.on_detections([_det("cup")], 640, 480)
    assert speech.spoken == ["Continuous announcements on.", "cup in the middle, about 1.2 meters"]

    ctl.toggle_auto()
    ctl.toggle_auto()
    ctl.on_detections([_det("cup")], 640, 480)
    assert speech.spoken[-1] == "cup in the middle, about 1.2 meters"


def test_guidance_takes_priority_over_auto_mode() -> None:
    ctl, speech, _ = _controller()
    ctl.toggle_auto()
    assert ctl.find("phone", LABELS, SYNONYMS) == "cell phone"
    speech.spoken.clear()

    ctl.on_detections([_det("cup")], 640, 480)

    assert speech.spoken == ["I do not see cell phone yet. Slowly turn the phone from side to side."]
    ctl.stop_guidance()
    assert ctl.guidance.is_active() is False


def test_find_with_blank_phrase_asks_again() -> None:
    ctl, speech, _ = _controller()
    assert ctl.find("  ", LABELS, SYNONYMS) is None
    assert speech.spoken == ["I did not understand. Please try again."]


def test_build_speech_defaults_to_log() -> None:
    speech = build_speech({})
    assert isinstance(speech, LogSpeech)
    speech.speak("hello")
    assert speech.last_text == "hello"


class _FakeEngine:
    def __init__(self) -> None:
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1


def _tts_without_thread() -> Pyttsx3Speech:
    speech = Pyttsx3Speech.__new__(Pyttsx3Speech)
    speech._cond = threading.Condition()
    speech._pending = None
    speech._stopped = False
    speech._engine = _FakeEngine()
    return speech


def test_tts_interrupt_happens_on_the_engine_thread() -> None:
    speech = _tts_without_thread()

    speech._on_word("utt", 0, 3)
    assert speech._engine.stop_calls == 0

    speech.speak("newer sentence")
    # the caller thread never drives the engine
    assert speech._engine.stop_calls == 0
    assert speech._pending == "newer sentence"

    speech._on_word("utt", 4, 3)
    assert speech._engine.stop_calls == 1
