"""
Association utilities for multi-object tracking.

This module provides functions for computing box overlap and solving
the assignment problem between tracks and detections.
"""

from typing import List, Sequence, Tuple

import numpy as np

from ..geometry import Rect, rects_to_tlbr
from .lapjv import lapjv


def compute_iou(box_a: np.ndarray, box_b: np.ndarray) -> float:
    """
    Compute Intersection over Union between two boxes.

    Edges are inclusive pixel coordinates, so a box spans
    (x2 - x1 + 1) x (y2 - y1 + 1) pixels.

    Args:
        box_a: First box [x1, y1, x2, y2]
        box_b: Second box [x1, y1, x2, y2]

    Returns:
        IoU value in [0, 1]
    """
    return Rect.from_tlbr(box_a).iou(Rect.from_tlbr(box_b))


def compute_iou_batch(boxes_a: np.ndarray, boxes_b: np.ndarray) -> np.ndarray:
    """
    Compute IoU matrix between two sets of boxes.

    Vectorized version of compute_iou, same inclusive pixel convention.

    Args:
        boxes_a: First set of boxes, shape (N, 4)
        boxes_b: Second set of boxes, shape (M, 4)

    Returns:
        IoU matrix of shape (N, M), float32
    """
    if len(boxes_a) == 0 or len(boxes_b) == 0:
        return np.empty((len(boxes_a), len(boxes_b)), dtype=np.float32)

    boxes_a = np.asarray(boxes_a, dtype=np.float32)
    boxes_b = np.asarray(boxes_b, dtype=np.float32)

    area_a = (boxes_a[:, 2] - boxes_a[:, 0] + 1) * (boxes_a[:, 3] - boxes_a[:, 1] + 1)
    area_b = (boxes_b[:, 2] - boxes_b[:, 0] + 1) * (boxes_b[:, 3] - boxes_b[:, 1] + 1)

    # (N, M, 2)
    lt = np.maximum(boxes_a[:, None, :2], boxes_b[:, :2])
    rb = np.minimum(boxes_a[:, None, 2:], boxes_b[:, 2:])

    wh = np.maximum(0, rb - lt + 1)
    inter = wh[:, :, 0] * wh[:, :, 1]

    union = area_a[:, None] + area_b - inter

    return (inter / np.maximum(union, 1e-8)).astype(np.float32)


def iou_distance(rects_a: Sequence[Rect], rects_b: Sequence[Rect]) -> np.ndarray:
    """
    Build an IoU distance (1 - IoU) cost matrix between two sets of rects.

    Returns:
        Cost matrix of shape (len(rects_a), len(rects_b))
    """
    ious = compute_iou_batch(rects_to_tlbr(rects_a), rects_to_tlbr(rects_b))
    return np.float32(1.0) - ious


def linear_assignment(
    cost_matrix: np.ndarray,
    threshold: float
) -> Tuple[List[Tuple[int, int]], List[int], List[int]]:
    """
    Solve the linear assignment problem with the LAPJV solver.

    Args:
        cost_matrix: Cost matrix of shape (N, M) where N is number of
                     existing tracks and M is number of new detections.
                     Lower cost = better match.
        threshold: Maximum cost to accept a match. Pairs above it are
                   never matched.

    Returns:
        matches: List of (track_idx, detection_idx) tuples in track order
        unmatched_tracks: List of track indices without matches
        unmatched_detections: List of detection indices without matches
    """
    if cost_matrix.size == 0:
        return (
            [],
            list(range(cost_matrix.shape[0])),
            list(range(cost_matrix.shape[1]))
        )

    row_assignment, col_assignment = lapjv(
        cost_matrix, extend_cost=True, cost_limit=threshold
    )

    matches = []
    unmatched_tracks = []
    for row, col in enumerate(row_assignment):
        if col >= 0:
            matches.append((row, int(col)))
        else:
            unmatched_tracks.append(row)

    unmatched_detections = [
        col for col, row in enumerate(col_assignment) if row < 0
    ]

    return matches, unmatched_tracks, unmatched_detections
