"""
ByteTrack multi-object tracker.

This module implements BYTE association: high confidence detections are
matched first, then low confidence detections are used to recover
tracks that would otherwise be lost, and finally unconfirmed tracks are
confirmed or dropped. Matching uses IoU distance and the LAPJV solver,
motion is modelled with a constant velocity Kalman filter.

Reference:
    Zhang et al., "ByteTrack: Multi-Object Tracking by Associating
    Every Detection Box", ECCV 2022
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import TrackerConfig
from ..detection import Detection
from .association import iou_distance, linear_assignment
from .kalman import KalmanFilter
from .strack import STrack, TrackState

logger = logging.getLogger(__name__)

# Fixed association limits for the second and third stages
LOW_SCORE_MATCH_THRESH = 0.5
UNCONFIRMED_MATCH_THRESH = 0.7
# IoU distance below which a tracked and a lost track are duplicates
DUPLICATE_IOU_DISTANCE = 0.15


@dataclass(frozen=True)
class TrackOutput:
    """
    Snapshot of a confirmed track on one frame.

    Attributes:
        track_id: Stable track identity
        tlwh: Smoothed box as (x, y, width, height)
        score: Confidence of the most recent matched detection
        label: Class label
        detection_id: External ID of the most recent matched detection
    """
    track_id: int
    tlwh: Tuple[float, float, float, float]
    score: float
    label: int
    detection_id: int

    @classmethod
    def from_strack(cls, track: STrack) -> "TrackOutput":
        return cls(
            track_id=track.track_id,
            tlwh=track.rect.tlwh,
            score=track.score,
            label=track.label,
            detection_id=track.detection_id,
        )

    @property
    def tlbr(self) -> Tuple[float, float, float, float]:
        x, y, w, h = self.tlwh
        return (x, y, x + w, y + h)


@dataclass
class TrackingResult:
    """
    Container for tracking results from a single frame.

    Attributes:
        frame_id: 1-based frame number
        tracks: Confirmed tracks in tracker output order
    """
    frame_id: int
    tracks: List[TrackOutput]

    @classmethod
    def from_stracks(cls, frame_id: int, stracks: Sequence[STrack]) -> "TrackingResult":
        return cls(
            frame_id=frame_id,
            tracks=[TrackOutput.from_strack(t) for t in stracks],
        )

    def __len__(self) -> int:
        return len(self.tracks)

    def get_all_tracks(self) -> List[Tuple[int, int, TrackOutput]]:
        """
        Get all tracks as flat list.

        Returns:
            List of (label, track_id, track) tuples
        """
        return [(t.label, t.track_id, t) for t in self.tracks]


def joint_stracks(tlist_a: Sequence[STrack], tlist_b: Sequence[STrack]) -> List[STrack]:
    """Concatenate two track lists, skipping IDs already present."""
    exists = set()
    res = []
    for t in tlist_a:
        exists.add(t.track_id)
        res.append(t)
    for t in tlist_b:
        if t.track_id not in exists:
            exists.add(t.track_id)
            res.append(t)
    return res


def sub_stracks(tlist_a: Sequence[STrack], tlist_b: Sequence[STrack]) -> List[STrack]:
    """Tracks of tlist_a whose ID does not appear in tlist_b."""
    stracks: Dict[int, STrack] = {}
    for t in tlist_a:
        stracks[t.track_id] = t
    for t in tlist_b:
        stracks.pop(t.track_id, None)
    return list(stracks.values())


def remove_duplicate_stracks(
    stracks_a: Sequence[STrack],
    stracks_b: Sequence[STrack]
) -> Tuple[List[STrack], List[STrack]]:
    """
    Drop heavily overlapping tracks between two lists.

    For each pair closer than DUPLICATE_IOU_DISTANCE the track with the
    longer tracklet age is kept, regardless of score. On a tie the entry
    from stracks_a is dropped.
    """
    distances = iou_distance(
        [t.rect for t in stracks_a], [t.rect for t in stracks_b]
    )
    dup_a = set()
    dup_b = set()
    for p, q in zip(*(distances < DUPLICATE_IOU_DISTANCE).nonzero()):
        time_p = stracks_a[p].tracklet_age
        time_q = stracks_b[q].tracklet_age
        if time_p > time_q:
            dup_b.add(q)
        else:
            dup_a.add(p)

    res_a = [t for i, t in enumerate(stracks_a) if i not in dup_a]
    res_b = [t for i, t in enumerate(stracks_b) if i not in dup_b]
    return res_a, res_b


class BYTETracker:
    """
    ByteTrack multi-object tracker.

    Owns every track and counter of one tracking session. Calls to
    update() and reset() must be serialized; use one instance per
    video stream.

    Args:
        config: Tracker configuration

    Example:
        >>> config = TrackerConfig(track_thresh=0.5, high_thresh=0.6)
        >>> tracker = BYTETracker(config)
        >>>
        >>> for frame in frames:
        ...     for track in tracker.update(frame.detections):
        ...         print(track.track_id, track.rect.tlbr, track.detection_id)
    """

    def __init__(self, config: Optional[TrackerConfig] = None):
        """Initialize the tracker."""
        self._config = config or TrackerConfig()
        self.track_thresh = self._config.track_thresh
        self.high_thresh = self._config.high_thresh
        self.match_thresh = self._config.match_thresh
        self.max_time_lost = self._config.max_time_lost

        self.kalman_filter = KalmanFilter(
            std_weight_position=self._config.std_weight_position,
            std_weight_velocity=self._config.std_weight_velocity,
        )

        self.frame_id = 0
        self.track_id_count = 0
        self.tracked_stracks: List[STrack] = []
        self.lost_stracks: List[STrack] = []
        self.removed_stracks: List[STrack] = []

        logger.info(
            f"Initialized BYTETracker (track_thresh={self.track_thresh}, "
            f"high_thresh={self.high_thresh}, "
            f"match_thresh={self.match_thresh}, "
            f"max_time_lost={self.max_time_lost})"
        )

    @property
    def config(self) -> TrackerConfig:
        return self._config

    def reset(self) -> None:
        """Reset all tracking state, restarting frame and ID counters."""
        self.frame_id = 0
        self.track_id_count = 0
        self.tracked_stracks = []
        self.lost_stracks = []
        self.removed_stracks = []
        logger.info("Tracker reset")

    def _next_id(self) -> int:
        self.track_id_count += 1
        return self.track_id_count

    def update(self, detections: Sequence[Detection]) -> List[STrack]:
        """
        Run one tracking step.

        Detections with a non-positive height are skipped.

        Args:
            detections: Detections of the current frame

        Returns:
            Confirmed tracks after this frame

        Raises:
            KalmanUpdateError: If a Kalman correction fails
            LAPJVError: If the assignment solver breaks an invariant
        """
        self.frame_id += 1

        # Step 1: split detections by confidence
        det_high: List[STrack] = []
        det_low: List[STrack] = []
        n_degenerate = 0
        for det in detections:
            if det.rect.height <= 0:
                n_degenerate += 1
                continue
            strack = STrack.from_detection(det, self.kalman_filter)
            if det.prob >= self.track_thresh:
                det_high.append(strack)
            else:
                det_low.append(strack)
        if n_degenerate:
            logger.debug(
                f"Frame {self.frame_id}: skipped {n_degenerate} detections "
                f"with non-positive height"
            )

        active: List[STrack] = []
        unconfirmed: List[STrack] = []
        for track in self.tracked_stracks:
            if track.is_activated:
                active.append(track)
            else:
                unconfirmed.append(track)

        strack_pool = joint_stracks(active, self.lost_stracks)
        for track in strack_pool:
            track.predict()

        # Step 2: first association, high score detections
        current_tracked: List[STrack] = []
        refind: List[STrack] = []

        matches, u_track, u_detection = linear_assignment(
            iou_distance([t.rect for t in strack_pool], [d.rect for d in det_high]),
            threshold=self.match_thresh
        )
        self._apply_matches(matches, strack_pool, det_high, current_tracked, refind)

        remain_det_high = [det_high[i] for i in u_detection]
        remain_tracked = [
            strack_pool[i] for i in u_track
            if strack_pool[i].state == TrackState.TRACKED
        ]
        n_first = len(matches)

        # Step 3: second association, low score detections
        current_lost: List[STrack] = []

        matches, u_track, _ = linear_assignment(
            iou_distance([t.rect for t in remain_tracked], [d.rect for d in det_low]),
            threshold=LOW_SCORE_MATCH_THRESH
        )
        self._apply_matches(matches, remain_tracked, det_low, current_tracked, refind)

        for i in u_track:
            track = remain_tracked[i]
            if track.state != TrackState.LOST:
                track.mark_lost()
                current_lost.append(track)
        n_second = len(matches)

        # Step 4: confirm unconfirmed tracks, start new ones
        current_removed: List[STrack] = []

        matches, u_unconfirmed, u_detection = linear_assignment(
            iou_distance([t.rect for t in unconfirmed], [d.rect for d in remain_det_high]),
            threshold=UNCONFIRMED_MATCH_THRESH
        )
        for track_idx, det_idx in matches:
            track = unconfirmed[track_idx]
            track.update(remain_det_high[det_idx], self.frame_id)
            current_tracked.append(track)

        for i in u_unconfirmed:
            track = unconfirmed[i]
            track.mark_removed()
            current_removed.append(track)

        n_new = 0
        for i in u_detection:
            track = remain_det_high[i]
            if track.score < self.high_thresh:
                continue
            track.activate(self.frame_id, self._next_id())
            current_tracked.append(track)
            n_new += 1

        # Step 5: expire tracks lost for too long
        for track in self.lost_stracks:
            if self.frame_id - track.frame_id > self.max_time_lost:
                track.mark_removed()
                current_removed.append(track)

        self.tracked_stracks = joint_stracks(current_tracked, refind)
        self.removed_stracks = joint_stracks(self.removed_stracks, current_removed)
        # Expired tracks must leave the lost pool on the frame they expire
        self.lost_stracks = sub_stracks(
            joint_stracks(
                sub_stracks(self.lost_stracks, self.tracked_stracks),
                current_lost
            ),
            self.removed_stracks
        )

        self.tracked_stracks, self.lost_stracks = remove_duplicate_stracks(
            self.tracked_stracks, self.lost_stracks
        )

        output = [t for t in self.tracked_stracks if t.is_activated]

        logger.debug(
            f"Frame {self.frame_id}: {len(det_high)} high / {len(det_low)} low "
            f"detections, matched {n_first}+{n_second}, "
            f"refound {len(refind)}, new {n_new}, lost {len(current_lost)}, "
            f"removed {len(current_removed)}, output {len(output)}"
        )
        return output

    def _apply_matches(
        self,
        matches: List[Tuple[int, int]],
        tracks: Sequence[STrack],
        detections: Sequence[STrack],
        current_tracked: List[STrack],
        refind: List[STrack]
    ) -> None:
        """Update tracked matches in place and re-activate lost ones."""
        for track_idx, det_idx in matches:
            track = tracks[track_idx]
            det = detections[det_idx]
            if track.state == TrackState.TRACKED:
                track.update(det, self.frame_id)
                current_tracked.append(track)
            else:
                track.re_activate(det, self.frame_id, new_track_id=-1)
                refind.append(track)

    def get_track_count(self) -> Dict[str, int]:
        """Get number of tracks per pool."""
        return {
            "tracked": len(self.tracked_stracks),
            "lost": len(self.lost_stracks),
            "removed": len(self.removed_stracks),
        }
