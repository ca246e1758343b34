"""
Per-track history of box centers, used to draw motion trails.
"""

import threading
from collections import deque
from typing import Deque, Dict, List, Tuple

from .strack import STrack

Point = Tuple[int, int]


class Trail:
    """
    Bounded center-point history keyed by track ID.

    Only the most recent `size` points are kept per track. Access is
    guarded by a lock so a renderer thread can read while the tracking
    loop adds points.

    Args:
        size: Maximum number of points kept per track

    Example:
        >>> trail = Trail(size=30)
        >>> for track in tracker.update(detections):
        ...     trail.add(track)
        >>> points = trail.get_points(track.track_id)
    """

    def __init__(self, size: int = 30):
        if size <= 0:
            raise ValueError(f"Trail size must be positive, got {size}")
        self._size = size
        self._history: Dict[int, Deque[Point]] = {}
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return self._size

    def reset(self) -> None:
        """Clear all history."""
        with self._lock:
            self._history = {}

    def add(self, track: STrack) -> None:
        """Append the center of the track's current box to its history."""
        rect = track.rect
        point = (
            int(rect.x + rect.width / 2),
            int(rect.y + rect.height / 2),
        )
        with self._lock:
            points = self._history.setdefault(
                track.track_id, deque(maxlen=self._size)
            )
            points.append(point)

    def get_points(self, track_id: int) -> List[Point]:
        """Points of a track, oldest first. Empty if the track is unknown."""
        with self._lock:
            return list(self._history.get(track_id, ()))

    def track_ids(self) -> List[int]:
        with self._lock:
            return list(self._history)

    def to_dict(self) -> Dict[int, List[Point]]:
        """Copy of the full history."""
        with self._lock:
            return {tid: list(points) for tid, points in self._history.items()}
