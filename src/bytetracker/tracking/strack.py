"""
Single object track with a Kalman filtered box state.
"""

from enum import Enum, auto
from typing import Optional

import numpy as np

from ..detection import Detection
from ..geometry import Rect
from .kalman import KalmanFilter


class TrackState(Enum):
    """Lifecycle state of a track."""
    NEW = auto()      # Built from a detection, not yet activated
    TRACKED = auto()  # Matched on the latest frame
    LOST = auto()     # Unmatched, may still be re-activated
    REMOVED = auto()  # Terminal


class STrack:
    """
    Represents a tracked object.

    A track starts out as a plain detection in the NEW state. Activation
    initiates the Kalman state; from then on the box is derived from the
    Kalman mean.

    Args:
        rect: Detection box in tlwh form
        score: Detection confidence
        detection_id: External ID of the originating detection
        label: Class label
        kalman_filter: Shared filter. A default filter is used if None.
        feature: Optional embedding vector of the detection

    Example:
        >>> track = STrack(Rect(79, 205, 90, 404), 0.85, detection_id=1, label=0)
        >>> track.activate(frame_id=1, track_id=1)
        >>> track.predict()
    """

    shared_kalman = KalmanFilter()

    def __init__(
        self,
        rect: Rect,
        score: float,
        detection_id: int = 0,
        label: int = 0,
        kalman_filter: Optional[KalmanFilter] = None,
        feature: Optional[np.ndarray] = None
    ):
        self._kalman_filter = kalman_filter or self.shared_kalman
        self._detection_rect = rect

        # Mean is kept in single precision, covariance in double
        self.mean: Optional[np.ndarray] = None
        self.covariance: Optional[np.ndarray] = None

        self.state = TrackState.NEW
        self.is_activated = False
        self.score = float(score)
        self.track_id = 0
        self.frame_id = 0
        self.start_frame_id = 0
        self.tracklet_length = 0
        self.detection_id = int(detection_id)
        self.label = int(label)
        self.feature = feature

    @classmethod
    def from_detection(
        cls,
        detection: Detection,
        kalman_filter: Optional[KalmanFilter] = None
    ) -> "STrack":
        """Create an unactivated track from a detection."""
        return cls(
            rect=detection.rect,
            score=detection.prob,
            detection_id=detection.external_id,
            label=detection.label,
            kalman_filter=kalman_filter,
            feature=detection.feature,
        )

    @property
    def rect(self) -> Rect:
        """Current box, derived from the Kalman mean once activated."""
        if self.mean is None:
            return self._detection_rect
        width = self.mean[2] * self.mean[3]
        height = self.mean[3]
        return Rect(
            self.mean[0] - width / 2,
            self.mean[1] - height / 2,
            width,
            height,
        )

    @property
    def tracklet_age(self) -> int:
        """Frames elapsed since the track started."""
        return self.frame_id - self.start_frame_id

    def activate(self, frame_id: int, track_id: int) -> None:
        """
        Start a new track from this detection.

        Tracks born on the very first frame are confirmed immediately,
        later ones must be matched again before they are reported.
        """
        mean, covariance = self._kalman_filter.initiate(
            np.asarray(self._detection_rect.xyah, dtype=np.float32)
        )
        self.mean = mean.astype(np.float32)
        self.covariance = covariance

        self.state = TrackState.TRACKED
        if frame_id == 1:
            self.is_activated = True

        self.track_id = track_id
        self.frame_id = frame_id
        self.start_frame_id = frame_id
        self.tracklet_length = 0

    def re_activate(
        self,
        new_track: "STrack",
        frame_id: int,
        new_track_id: int = -1
    ) -> None:
        """
        Bring a lost track back with a new detection.

        Args:
            new_track: Unactivated track built from the matched detection
            frame_id: Current frame number
            new_track_id: Replacement ID, or -1 to keep the current one

        Raises:
            KalmanUpdateError: If the Kalman correction fails. The track
                is left unchanged.
        """
        self._correct(new_track)

        self.state = TrackState.TRACKED
        self.is_activated = True
        self.score = new_track.score
        self.detection_id = new_track.detection_id
        if new_track_id >= 0:
            self.track_id = new_track_id
        self.frame_id = frame_id
        self.tracklet_length = 0
        self._update_feature(new_track.feature)

    def update(self, new_track: "STrack", frame_id: int) -> None:
        """
        Update a tracked object with a matched detection.

        Raises:
            KalmanUpdateError: If the Kalman correction fails. The track
                is left unchanged.
        """
        self._correct(new_track)

        self.state = TrackState.TRACKED
        self.is_activated = True
        self.score = new_track.score
        self.detection_id = new_track.detection_id
        self.frame_id = frame_id
        self.tracklet_length += 1
        self._update_feature(new_track.feature)

    def predict(self) -> None:
        """Advance the Kalman state by one frame."""
        mean = self.mean.copy()
        if self.state != TrackState.TRACKED:
            # No height velocity while the track is not observed
            mean[7] = 0

        mean, covariance = self._kalman_filter.predict(mean, self.covariance)
        self.mean = mean.astype(np.float32)
        self.covariance = covariance

    def mark_lost(self) -> None:
        self.state = TrackState.LOST

    def mark_removed(self) -> None:
        self.state = TrackState.REMOVED

    def _correct(self, new_track: "STrack") -> None:
        measurement = np.asarray(new_track.rect.xyah, dtype=np.float32)
        mean, covariance = self._kalman_filter.update(
            self.mean, self.covariance, measurement
        )
        self.mean = mean.astype(np.float32)
        self.covariance = covariance

    def _update_feature(self, feature: Optional[np.ndarray]) -> None:
        if feature is not None:
            self.feature = feature

    def __repr__(self) -> str:
        return (
            f"STrack(id={self.track_id}, state={self.state.name}, "
            f"frames={self.start_frame_id}-{self.frame_id}, "
            f"rect={self.rect.tlwh}, score={self.score:.2f})"
        )
