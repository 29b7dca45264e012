"""单目距离估计：针孔相机模型 + 每类典型高度先验。

This is a coarse heuristic, not a calibrated measurement: the vertical FOV is
assumed, and every instance of a class is taken to be the same height.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class DistanceConfig:
    vertical_fov_deg: float = 60.0
    default_height_m: float = 0.50
    min_distance_m: float = 0.05
    max_distance_m: float = 20.0
    heights: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, cfg: dict, heights: Optional[Dict[str, float]] = None) -> "DistanceConfig":
        return cls(
            vertical_fov_deg=float(cfg.get("vertical_fov_deg", 60.0)),
            default_height_m=float(cfg.get("default_height_m", 0.50)),
            min_distance_m=float(cfg.get("min_distance_m", 0.05)),
            max_distance_m=float(cfg.get("max_distance_m", 20.0)),
            heights=dict(heights if heights is not None else cfg.get("heights") or {}),
        )


class DistanceEstimator:
    def __init__(self, cfg: DistanceConfig | None = None) -> None:
        self.cfg = cfg or DistanceConfig()
        if not 0.0 < self.cfg.vertical_fov_deg < 180.0:
            raise ValueError("vertical_fov_deg must be in (0, 180)")
        if self.cfg.min_distance_m > self.cfg.max_distance_m:
            raise ValueError("min_distance_m must not exceed max_distance_m")

    def focal_px(self, frame_h: float) -> float:
        """Vertical focal length in pixels for the assumed FOV."""
        return (float(frame_h) / 2.0) / math.tan(math.radians(self.cfg.vertical_fov_deg) / 2.0)

    def real_height(self, label: str) -> float:
        return float(self.cfg.heights.get(label, self.cfg.default_height_m))

    def estimate(self, label: str, y1: float, y2: float, frame_h: float) -> float:
        """Distance in meters from a normalized box's vertical extent."""
        box_h_px = max(1.0, (float(y2) - float(y1)) * float(frame_h))
        dist = self.real_height(label) * self.focal_px(frame_h) / box_h_px
        return min(max(dist, self.cfg.min_distance_m), self.cfg.max_distance_m)


__all__ = ["DistanceConfig", "DistanceEstimator"]
