"""几何相关工具：检测框到近似距离。"""
from .distance import DistanceConfig, DistanceEstimator

__all__ = [
    "DistanceConfig",
    "DistanceEstimator",
]
