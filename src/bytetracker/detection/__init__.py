"""
Detection input types for the tracker.

Example:
    >>> from bytetracker.detection import Detection
    >>> det = Detection.from_xyxy([79, 205, 169, 609], label=0, prob=0.85)
"""

from .objects import Detection, DetectionFrame

__all__ = [
    "Detection",
    "DetectionFrame",
]
