from dataclasses import dataclass
from typing import Tuple

POSITION_LEFT = "left"
POSITION_CENTER = "center"
POSITION_RIGHT = "right"

UNKNOWN_LABEL = "object"


@dataclass(frozen=True)
class Candidate:
    """Pre-suppression guess in model input space (e.g. 0..640)."""
    cx: float
    cy: float
    w: float
    h: float
    score: float
    cls_id: int

    def corners(self) -> Tuple[float, float, float, float]:
        hw = self.w / 2.0
        hh = self.h / 2.0
        return self.cx - hw, self.cy - hh, self.cx + hw, self.cy + hh


@dataclass(frozen=True)
class Detection:
    label: str
    score: float
    x1: float  # normalized to the frame, 0..1
    y1: float
    x2: float
    y2: float
    distance_m: float
    position: str
    has_label: bool = True

    @property
    def center_x(self) -> float:
        return (self.x1 + self.x2) / 2.0
