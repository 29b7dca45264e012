from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..geometry import DistanceEstimator
from .decoder import DecoderConfig, TensorDecoder
from .nms import NonMaxSuppressor
from .postprocess import CoordinateMapper, PositionClassifier
from .types import UNKNOWN_LABEL, Detection

LOGGER = logging.getLogger(__name__)


class DetectionPipeline:
    """decode -> NMS -> map to frame -> distance + position."""

    def __init__(
        self,
        labels: Dict[int, str],
        decoder: Optional[TensorDecoder] = None,
        nms: Optional[NonMaxSuppressor] = None,
        distance: Optional[DistanceEstimator] = None,
        position: Optional[PositionClassifier] = None,
        classes_keep: Iterable[int] = (),
        max_det: int = 100,
    ) -> None:
        self.labels = dict(labels)
        self.decoder = decoder or TensorDecoder()
        self.nms = nms or NonMaxSuppressor()
        self.distance = distance or DistanceEstimator()
        self.position = position or PositionClassifier()
        self.keep = {int(x) for x in classes_keep}
        self.max_det = max(1, int(max_det))

    @property
    def input_size(self) -> int:
        return self.decoder.cfg.input_size

    @classmethod
    def from_config(cls, det_cfg: dict, labels: Dict[int, str], distance: DistanceEstimator) -> "DetectionPipeline":
        return cls(
            labels,
            decoder=TensorDecoder(DecoderConfig.from_dict(det_cfg)),
            nms=NonMaxSuppressor(float(det_cfg.get("iou_thres", 0.45))),
            distance=distance,
            classes_keep=det_cfg.get("classes_keep", []) or [],
            max_det=int(det_cfg.get("max_det", 100)),
        )

    def run(
        self,
        output,
        frame_w: int,
        frame_h: int,
        shape: Optional[Sequence[int]] = None,
    ) -> List[Detection]:
        cands = self.decoder.decode(output, shape)
        if self.keep:
            cands = [c for c in cands if c.cls_id in self.keep]
        if not cands:
            return []
        kept = self.nms(cands)
        LOGGER.debug("nms kept=%d of %d", len(kept), len(cands))
        if len(kept) > self.max_det:
            kept = kept[: self.max_det]

        mapper = CoordinateMapper(self.input_size, frame_w, frame_h)
        detections: List[Detection] = []
        for cand in kept:
            x1, y1, x2, y2 = mapper.to_normalized(cand)
            label = self.labels.get(cand.cls_id)
            has_label = label is not None
            if label is None:
                label = UNKNOWN_LABEL
            detections.append(
                Detection(
                    label=label,
                    score=cand.score,
                    x1=x1,
                    y1=y1,
                    x2=x2,
                    y2=y2,
                    distance_m=self.distance.estimate(label, y1, y2, frame_h),
                    position=self.position(x1, x2),
                    has_label=has_label,
                )
            )
        return detections


def filter_unknown(detections: Iterable[Detection], hide_unknown: bool) -> List[Detection]:
    dets = list(detections)
    if not hide_unknown:
        return dets
    return [d for d in dets if d.has_label]


__all__ = ["DetectionPipeline", "filter_unknown"]
