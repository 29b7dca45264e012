from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import Candidate


def iou(a: Candidate, b: Candidate) -> float:
    ax1, ay1, ax2, ay2 = a.corners()
    bx1, by1, bx2, by2 = b.corners()
    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    union = max(0.0, a.w) * max(0.0, a.h) + max(0.0, b.w) * max(0.0, b.h) - inter
    if union <= 0.0:
        return 0.0
    return float(inter / union)


def _corners(cands: Sequence[Candidate]) -> np.ndarray:
    boxes = np.array([[c.cx, c.cy, c.w, c.h] for c in cands], dtype=np.float64).reshape(-1, 4)
    out = np.empty_like(boxes)
    out[:, 0] = boxes[:, 0] - 0.5 * boxes[:, 2]
    out[:, 1] = boxes[:, 1] - 0.5 * boxes[:, 3]
    out[:, 2] = boxes[:, 0] + 0.5 * boxes[:, 2]
    out[:, 3] = boxes[:, 1] + 0.5 * boxes[:, 3]
    return out


class NonMaxSuppressor:
    """Greedy per-class NMS; equal scores keep their original order."""

    def __init__(self, iou_thres: float = 0.45):
        self.iou_thres = float(iou_thres)

    def __call__(self, cands: Sequence[Candidate]) -> List[Candidate]:
        if not cands:
            return []
        boxes = _corners(cands)
        scores = np.array([c.score for c in cands], dtype=np.float64)
        classes = np.array([c.cls_id for c in cands], dtype=np.int64)
        areas = np.maximum(0.0, boxes[:, 2] - boxes[:, 0]) * np.maximum(0.0, boxes[:, 3] - boxes[:, 1])

        order = np.argsort(-scores, kind="stable")
        keep: List[int] = []
        while order.size > 0:
            i = int(order[0])
            keep.append(i)
            if order.size == 1:
                break
            rest = order[1:]
            xx1 = np.maximum(boxes[i, 0], boxes[rest, 0])
            yy1 = np.maximum(boxes[i, 1], boxes[rest, 1])
            xx2 = np.minimum(boxes[i, 2], boxes[rest, 2])
            yy2 = np.minimum(boxes[i, 3], boxes[rest, 3])

            w = np.maximum(0.0, xx2 - xx1)
            h = np.maximum(0.0, yy2 - yy1)
            inter = w * h
            union = areas[i] + areas[rest] - inter
            ious = np.divide(inter, union, out=np.zeros_like(inter), where=union > 0.0)
            suppressed = (classes[rest] == classes[i]) & (ious > self.iou_thres)
            order = rest[~suppressed]
        return [cands[i] for i in keep]


__all__ = ["NonMaxSuppressor", "iou"]
