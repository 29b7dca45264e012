from .types import Candidate, Detection
from .base import Detector, DetectorUnavailable, ModelRuntime, preprocess, rotate_frame
from .decoder import DecoderConfig, TensorDecoder
from .nms import NonMaxSuppressor
from .postprocess import CoordinateMapper, PositionClassifier
from .pipeline import DetectionPipeline, filter_unknown
from .registry import build_detector, build_pipeline, try_build_detector

__all__ = [
    "Candidate",
    "Detection",
    "Detector",
    "DetectorUnavailable",
    "ModelRuntime",
    "preprocess",
    "rotate_frame",
    "DecoderConfig",
    "TensorDecoder",
    "NonMaxSuppressor",
    "CoordinateMapper",
    "PositionClassifier",
    "DetectionPipeline",
    "filter_unknown",
    "build_detector",
    "build_pipeline",
    "try_build_detector",
]
