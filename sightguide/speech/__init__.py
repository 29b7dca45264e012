from .output import LogSpeech, Pyttsx3Speech, SpeechOutput, build_speech
from .relevance import RelevanceConfig, RelevancePolicy
from .guidance import GuidanceConfig, GuidanceController, GuidanceState

__all__ = [
    "SpeechOutput",
    "LogSpeech",
    "Pyttsx3Speech",
    "build_speech",
    "RelevanceConfig",
    "RelevancePolicy",
    "GuidanceConfig",
    "GuidanceController",
    "GuidanceState",
]
