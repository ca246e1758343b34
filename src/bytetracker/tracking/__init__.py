"""
Tracking module for the ByteTrack engine.

This module provides multi-object tracking using BYTE association,
Kalman filtering for motion prediction and a Jonker-Volgenant solver
for the assignment problem.

Example:
    >>> from bytetracker.tracking import BYTETracker
    >>> tracker = BYTETracker()
    >>> tracks = tracker.update(detections)
"""

from .kalman import KalmanFilter, KalmanUpdateError
from .lapjv import LAPJVError, lapjv, lapjv_square
from .association import (
    compute_iou,
    compute_iou_batch,
    iou_distance,
    linear_assignment,
)
from .strack import STrack, TrackState
from .byte_tracker import (
    BYTETracker,
    TrackOutput,
    TrackingResult,
    joint_stracks,
    sub_stracks,
    remove_duplicate_stracks,
)
from .trail import Trail

__all__ = [
    # Kalman filter
    "KalmanFilter",
    "KalmanUpdateError",
    # Assignment
    "LAPJVError",
    "lapjv",
    "lapjv_square",
    # Association
    "compute_iou",
    "compute_iou_batch",
    "iou_distance",
    "linear_assignment",
    # Tracks
    "STrack",
    "TrackState",
    # ByteTrack
    "BYTETracker",
    "TrackOutput",
    "TrackingResult",
    "joint_stracks",
    "sub_stracks",
    "remove_duplicate_stracks",
    # Trails
    "Trail",
]
