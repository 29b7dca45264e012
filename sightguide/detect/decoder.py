"""Raw YOLO output tensor -> scored candidates.

Export pipelines disagree on two things, both resolved here:

* axis order: ``[1, 4+C, N]`` (channels first, values strided by the anchor
  count) or ``[1, N, 4+C]`` (anchors last, contiguous per anchor);
* coordinate scale: some exports emit ``cx, cy, w, h`` normalized to 0..1,
  others in input pixels. This is decided per anchor, not per tensor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Candidate

LOGGER = logging.getLogger(__name__)

LAYOUT_CHANNELS_FIRST = "channels_first"
LAYOUT_ANCHORS_LAST = "anchors_last"


@dataclass
class DecoderConfig:
    input_size: int = 640
    num_classes: int = 80
    conf_thres: float = 0.25
    normalized_max: float = 1.5

    @classmethod
    def from_dict(cls, cfg: dict) -> "DecoderConfig":
        return cls(
            input_size=int(cfg.get("input_size", 640)),
            num_classes=int(cfg.get("num_classes", 80)),
            conf_thres=float(cfg.get("conf_thres", 0.25)),
            normalized_max=float(cfg.get("normalized_max", 1.5)),
        )


def detect_layout(shape: Sequence[int], num_classes: int) -> Optional[str]:
    """Classify the axis order of a rank-3 output, ``None`` if unsupported."""
    if len(shape) != 3:
        return None
    attrs = 4 + num_classes
    if int(shape[1]) == attrs:
        return LAYOUT_CHANNELS_FIRST
    if int(shape[2]) == attrs:
        return LAYOUT_ANCHORS_LAST
    return None


class TensorDecoder:
    def __init__(self, cfg: DecoderConfig | None = None):
        self.cfg = cfg or DecoderConfig()

    def _as_rows(self, output, shape: Optional[Sequence[int]]) -> Optional[np.ndarray]:
        """Return an ``(N, 4+C)`` view of the first batch item, or ``None``."""
        arr = np.asarray(output, dtype=np.float32)
        if shape is None:
            shape = arr.shape
        shape = tuple(int(s) for s in shape)
        layout = detect_layout(shape, self.cfg.num_classes)
        if layout is None:
            LOGGER.warning("unexpected output shape=%s (expected 1x%dxN or 1xNx%d)",
                           "x".join(str(s) for s in shape),
                           4 + self.cfg.num_classes, 4 + self.cfg.num_classes)
            return None
        if arr.size < int(np.prod(shape)) or int(np.prod(shape)) == 0:
            LOGGER.warning("output buffer too small size=%d shape=%s", arr.size, shape)
            return None
        arr = arr.reshape(-1)[: int(np.prod(shape))].reshape(shape)[0]
        if layout == LAYOUT_CHANNELS_FIRST:
            arr = arr.T
        LOGGER.debug("decode_layout=%s n=%d", layout, arr.shape[0])
        return arr

    def _scale_boxes(self, boxes: np.ndarray) -> np.ndarray:
        # 每个 anchor 单独判断是否为 0..1 归一化坐标
        looks_normalized = np.max(boxes, axis=1) <= self.cfg.normalized_max
        scaled = boxes.copy()
        scaled[looks_normalized] *= float(self.cfg.input_size)
        return scaled

    def decode(self, output, shape: Optional[Sequence[int]] = None) -> List[Candidate]:
        """Decode a raw output into candidates with score >= ``conf_thres``.

        ``output`` may be an array of the logical shape or a flat buffer with
        ``shape`` given explicitly. Malformed input yields ``[]``.
        """
        try:
            rows = self._as_rows(output, shape)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("unreadable output tensor: %s", exc)
            return []
        if rows is None or rows.shape[0] == 0:
            return []

        class_scores = rows[:, 4 : 4 + self.cfg.num_classes]
        cls_ids = np.argmax(class_scores, axis=1)
        scores = class_scores[np.arange(rows.shape[0]), cls_ids]
        mask = scores >= self.cfg.conf_thres
        # degenerate boxes (w or h <= 0, NaN) never become candidates
        mask &= (rows[:, 2] > 0) & (rows[:, 3] > 0)
        max_score = float(scores.max()) if scores.size else 0.0
        if not np.any(mask):
            LOGGER.debug("max_score=%.3f candidates=0", max_score)
            return []

        boxes = self._scale_boxes(rows[mask, :4])
        out: List[Candidate] = []
        for (cx, cy, w, h), score, cls_id in zip(boxes, scores[mask], cls_ids[mask]):
            out.append(Candidate(float(cx), float(cy), float(w), float(h), float(score), int(cls_id)))
        LOGGER.debug("max_score=%.3f candidates=%d", max_score, len(out))
        return out


__all__ = [
    "DecoderConfig",
    "TensorDecoder",
    "detect_layout",
    "LAYOUT_CHANNELS_FIRST",
    "LAYOUT_ANCHORS_LAST",
]
