"""
Detection data contract consumed by the tracker.

Detections come from an external detector. The tracker only needs the
box, the confidence, the class label and an opaque ID that lets the
caller correlate a track back to the detection it came from.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import numpy as np

from ..geometry import Rect


@dataclass
class Detection:
    """
    Represents a single object detection.

    Attributes:
        rect: Bounding box in tlwh form
        label: Class label
        prob: Detection confidence score [0, 1]
        external_id: Caller supplied ID, propagated unchanged to the track
        feature: Optional embedding vector, carried onto the track
    """
    rect: Rect
    label: int
    prob: float
    external_id: int = 0
    feature: Optional[np.ndarray] = None

    @classmethod
    def from_xyxy(
        cls,
        box: Sequence[float],
        label: int,
        prob: float,
        external_id: int = 0
    ) -> "Detection":
        """Create a detection from a [x1, y1, x2, y2] box."""
        return cls(
            rect=Rect.from_tlbr(box),
            label=int(label),
            prob=float(prob),
            external_id=int(external_id),
        )

    @property
    def width(self) -> float:
        return self.rect.width

    @property
    def height(self) -> float:
        return self.rect.height

    @property
    def area(self) -> float:
        """Bounding box area in pixels."""
        return self.rect.area

    @property
    def center(self) -> np.ndarray:
        """Center point of bounding box as [cx, cy]."""
        return np.array(self.rect.center)

    @property
    def aspect_ratio(self) -> float:
        """Width / height ratio."""
        return self.width / max(self.height, 1e-6)


@dataclass
class DetectionFrame:
    """
    Container for all detections in a single frame.

    Attributes:
        frame_id: 1-based frame number
        detections: List of Detection objects
    """
    frame_id: int
    detections: List[Detection]

    def __len__(self) -> int:
        return len(self.detections)

    def __iter__(self) -> Iterator[Detection]:
        return iter(self.detections)

    def filter_by_class(self, labels: Sequence[int]) -> "DetectionFrame":
        """Return new frame containing only the given labels."""
        filtered = [d for d in self.detections if d.label in labels]
        return DetectionFrame(frame_id=self.frame_id, detections=filtered)

    def filter_by_confidence(self, min_confidence: float) -> "DetectionFrame":
        """Return new frame containing only detections at or above threshold."""
        filtered = [d for d in self.detections if d.prob >= min_confidence]
        return DetectionFrame(frame_id=self.frame_id, detections=filtered)

    def to_numpy(self) -> tuple:
        """
        Convert to numpy arrays for batch processing.

        Returns:
            boxes: (N, 4) array of [x1, y1, x2, y2] boxes
            labels: (N,) array of class labels
            scores: (N,) array of confidence scores
        """
        if not self.detections:
            return (
                np.empty((0, 4), dtype=np.float32),
                np.empty((0,), dtype=np.int32),
                np.empty((0,), dtype=np.float32)
            )

        boxes = np.array([d.rect.tlbr for d in self.detections], dtype=np.float32)
        labels = np.array([d.label for d in self.detections], dtype=np.int32)
        scores = np.array([d.prob for d in self.detections], dtype=np.float32)

        return boxes, labels, scores
