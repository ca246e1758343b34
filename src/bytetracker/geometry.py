"""
Bounding box geometry for tracking.

Boxes are stored as top-left corner plus size (tlwh). The other encodings
used by the tracker are derived on demand:

    tlbr: [x1, y1, x2, y2] top-left and bottom-right corners
    xyah: [cx, cy, aspect, height] center, width/height ratio and height
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle in tlwh form.

    Attributes:
        x: Left edge
        y: Top edge
        width: Box width
        height: Box height

    Example:
        >>> rect = Rect(10, 20, 30, 40)
        >>> rect.tlbr
        (10.0, 20.0, 40.0, 60.0)
        >>> Rect.from_xyah(rect.xyah) == rect
        True
    """
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "width", float(self.width))
        object.__setattr__(self, "height", float(self.height))

    @classmethod
    def from_tlbr(cls, tlbr: Sequence[float]) -> "Rect":
        """Create a rect from [x1, y1, x2, y2] corners."""
        x1, y1, x2, y2 = (float(v) for v in tlbr)
        return cls(x1, y1, x2 - x1, y2 - y1)

    @classmethod
    def from_xyah(cls, xyah: Sequence[float]) -> "Rect":
        """Create a rect from [cx, cy, aspect, height]."""
        cx, cy, aspect, height = (float(v) for v in xyah)
        width = aspect * height
        return cls(cx - width / 2, cy - height / 2, width, height)

    @property
    def tlwh(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    @property
    def tlbr(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    @property
    def xyah(self) -> Tuple[float, float, float, float]:
        return (
            self.x + self.width / 2,
            self.y + self.height / 2,
            self.width / self.height,
            self.height,
        )

    @property
    def center(self) -> Tuple[float, float]:
        """Center point as (cx, cy)."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "Rect") -> float:
        """
        Intersection over Union with another rect.

        Uses the inclusive pixel convention, so each side length is
        counted with one extra pixel.
        """
        iw = (
            min(self.x + self.width, other.x + other.width)
            - max(self.x, other.x) + 1
        )
        if iw <= 0:
            return 0.0

        ih = (
            min(self.y + self.height, other.y + other.height)
            - max(self.y, other.y) + 1
        )
        if ih <= 0:
            return 0.0

        union = (
            (self.width + 1) * (self.height + 1)
            + (other.width + 1) * (other.height + 1)
            - iw * ih
        )
        return iw * ih / union

    def to_numpy(self, fmt: str = "tlwh") -> np.ndarray:
        """Return the rect as a float32 array in 'tlwh', 'tlbr' or 'xyah' form."""
        if fmt not in ("tlwh", "tlbr", "xyah"):
            raise ValueError(f"Unknown box format: {fmt}")
        return np.asarray(getattr(self, fmt), dtype=np.float32)


def rects_to_tlbr(rects: Sequence[Rect]) -> np.ndarray:
    """Stack rects into an (N, 4) float32 array of tlbr boxes."""
    if len(rects) == 0:
        return np.empty((0, 4), dtype=np.float32)
    return np.array([r.tlbr for r in rects], dtype=np.float32)
