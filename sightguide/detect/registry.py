import logging
from typing import Any, Dict, Optional

from ..config import height_table, load_labels
from ..geometry import DistanceConfig, DistanceEstimator
from .base import Detector, DetectorUnavailable, ModelRuntime
from .pipeline import DetectionPipeline

LOGGER = logging.getLogger(__name__)


def build_runtime(det_cfg: Dict[str, Any]) -> ModelRuntime:
    backend = (det_cfg.get("backend") or "onnx").lower()
    if backend == "onnx":
        from .onnx_runtime import OnnxRuntime
        return OnnxRuntime(det_cfg)
    if backend == "tensorrt":
        from .tensorrt_runtime import TensorRTRuntime
        return TensorRTRuntime(det_cfg)
    raise ValueError(f"Unknown detect backend: {backend}")


def build_pipeline(cfg: Dict[str, Any]) -> DetectionPipeline:
    det_cfg = cfg.get("detect", {}) or {}
    geom_cfg = cfg.get("geometry", {}) or {}
    labels = load_labels(det_cfg.get("labels"))
    distance = DistanceEstimator(DistanceConfig.from_dict(geom_cfg, height_table(geom_cfg)))
    return DetectionPipeline.from_config(det_cfg, labels, distance)


def build_detector(cfg: Dict[str, Any]) -> Detector:
    """Raises :class:`DetectorUnavailable` if the backend cannot start."""
    pipeline = build_pipeline(cfg)
    runtime = build_runtime(cfg.get("detect", {}) or {})
    try:
        return Detector(runtime, pipeline)
    except ValueError as exc:
        runtime.close()
        raise DetectorUnavailable(str(exc)) from exc


def try_build_detector(cfg: Dict[str, Any]) -> Optional[Detector]:
    det_cfg = cfg.get("detect", {}) or {}
    if not det_cfg.get("enabled", True):
        LOGGER.info("detector disabled by config")
        return None
    try:
        detector = build_detector(cfg)
    except (DetectorUnavailable, FileNotFoundError, ValueError) as exc:
        LOGGER.error("detector_init FAILED: %s", exc)
        return None
    LOGGER.info("detector_init OK")
    return detector
