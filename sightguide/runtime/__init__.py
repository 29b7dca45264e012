from .service import DetectionService, InferencePacket
from .throttle import InferenceThrottle

__all__ = [
    "DetectionService",
    "InferencePacket",
    "InferenceThrottle",
]
