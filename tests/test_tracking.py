"""
Unit tests for tracking module.
"""

import numpy as np
import pytest

from bytetracker.config import TrackerConfig
from bytetracker.detection import Detection
from bytetracker.geometry import Rect
from bytetracker.tracking import (
    BYTETracker,
    KalmanUpdateError,
    STrack,
    TrackState,
    TrackingResult,
    Trail,
    compute_iou,
    compute_iou_batch,
    iou_distance,
    joint_stracks,
    linear_assignment,
    remove_duplicate_stracks,
    sub_stracks,
)


def make_tracker(**kwargs) -> BYTETracker:
    params = dict(
        frame_rate=30, track_buffer=30,
        track_thresh=0.5, high_thresh=0.6, match_thresh=0.8,
    )
    params.update(kwargs)
    return BYTETracker(TrackerConfig(**params))


def make_strack(tlwh, track_id=0, start=0, frame=0) -> STrack:
    track = STrack(Rect(*tlwh), 0.9)
    track.track_id = track_id
    track.start_frame_id = start
    track.frame_id = frame
    return track


class TestIoU:
    """Tests for IoU computation."""

    def test_identical_boxes(self):
        box = np.array([0, 0, 100, 100])
        assert compute_iou(box, box) == pytest.approx(1.0)

    def test_no_overlap(self):
        box_a = np.array([0, 0, 50, 50])
        box_b = np.array([100, 100, 150, 150])
        assert compute_iou(box_a, box_b) == pytest.approx(0.0)

    def test_partial_overlap(self):
        box_a = np.array([0, 0, 99, 99])
        box_b = np.array([50, 50, 149, 149])
        # Intersection: 50x50 = 2500
        # Union: 10000 + 10000 - 2500 = 17500
        expected = 2500 / 17500
        assert compute_iou(box_a, box_b) == pytest.approx(expected)

    def test_batch_matches_pairwise(self):
        boxes_a = np.array([[0, 0, 100, 100], [50, 50, 150, 150]])
        boxes_b = np.array([[0, 0, 100, 100], [100, 100, 200, 200], [0, 0, 50, 50]])

        iou_matrix = compute_iou_batch(boxes_a, boxes_b)

        assert iou_matrix.shape == (2, 3)
        for i in range(2):
            for j in range(3):
                assert iou_matrix[i, j] == pytest.approx(
                    compute_iou(boxes_a[i], boxes_b[j]), abs=1e-6
                )

    def test_batch_iou_empty(self):
        boxes_a = np.empty((0, 4))
        boxes_b = np.array([[0, 0, 100, 100]])

        iou_matrix = compute_iou_batch(boxes_a, boxes_b)
        assert iou_matrix.shape == (0, 1)

    def test_iou_distance(self):
        rects_a = [Rect(0, 0, 100, 100)]
        rects_b = [Rect(0, 0, 100, 100), Rect(500, 500, 10, 10)]

        dist = iou_distance(rects_a, rects_b)

        assert dist.shape == (1, 2)
        assert dist[0, 0] == pytest.approx(0.0, abs=1e-6)
        assert dist[0, 1] == pytest.approx(1.0)


class TestLinearAssignment:
    """Tests for thresholded assignment."""

    def test_perfect_match(self):
        cost = np.array([[0.0, 1.0], [1.0, 0.0]], dtype=np.float32)

        matches, unmatched_tracks, unmatched_dets = linear_assignment(cost, 0.5)

        assert matches == [(0, 0), (1, 1)]
        assert unmatched_tracks == []
        assert unmatched_dets == []

    def test_above_threshold_not_matched(self):
        cost = np.array([[0.9]], dtype=np.float32)

        matches, unmatched_tracks, unmatched_dets = linear_assignment(cost, 0.8)

        assert matches == []
        assert unmatched_tracks == [0]
        assert unmatched_dets == [0]

    def test_empty_tracks(self):
        matches, unmatched_tracks, unmatched_dets = linear_assignment(
            np.empty((0, 3), dtype=np.float32), 0.8
        )

        assert matches == []
        assert unmatched_tracks == []
        assert unmatched_dets == [0, 1, 2]

    def test_empty_detections(self):
        matches, unmatched_tracks, unmatched_dets = linear_assignment(
            np.empty((2, 0), dtype=np.float32), 0.8
        )

        assert matches == []
        assert unmatched_tracks == [0, 1]
        assert unmatched_dets == []

    def test_matches_in_track_order(self):
        cost = np.array([
            [0.9, 0.9, 0.1],
            [0.2, 0.9, 0.9],
            [0.9, 0.3, 0.9],
        ], dtype=np.float32)

        matches, _, _ = linear_assignment(cost, 0.8)

        assert matches == [(0, 2), (1, 0), (2, 1)]


class TestSTrack:
    """Tests for single track lifecycle."""

    def test_new_track(self):
        det = Detection.from_xyxy([10, 20, 110, 220], label=3, prob=0.9, external_id=7)
        track = STrack.from_detection(det)

        assert track.state == TrackState.NEW
        assert not track.is_activated
        assert track.mean is None
        assert track.rect == det.rect
        assert track.detection_id == 7
        assert track.label == 3

    def test_activate_on_first_frame_confirms(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9)
        track.activate(frame_id=1, track_id=1)

        assert track.state == TrackState.TRACKED
        assert track.is_activated
        assert track.mean.dtype == np.float32
        assert track.covariance.dtype == np.float64
        assert track.rect.tlwh == pytest.approx((10, 20, 100, 200), abs=1e-3)

    def test_activate_later_not_confirmed(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9)
        track.activate(frame_id=5, track_id=3)

        assert track.state == TrackState.TRACKED
        assert not track.is_activated
        assert track.start_frame_id == 5
        assert track.tracklet_age == 0

    def test_update(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9, detection_id=1)
        track.activate(frame_id=1, track_id=1)
        track.predict()
        track.update(STrack(Rect(12, 22, 100, 200), 0.7, detection_id=2), frame_id=2)

        assert track.tracklet_length == 1
        assert track.frame_id == 2
        assert track.score == pytest.approx(0.7)
        assert track.detection_id == 2
        x, y, _, _ = track.rect.tlwh
        assert 10 < x < 12
        assert 20 < y < 22

    def test_re_activate_keeps_id(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9)
        track.activate(frame_id=1, track_id=4)
        track.mark_lost()
        track.predict()

        track.re_activate(STrack(Rect(10, 20, 100, 200), 0.8, detection_id=9), frame_id=3)

        assert track.track_id == 4
        assert track.state == TrackState.TRACKED
        assert track.is_activated
        assert track.tracklet_length == 0
        assert track.detection_id == 9

    def test_predict_zeroes_height_velocity_when_lost(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9)
        track.activate(frame_id=1, track_id=1)
        track.mean[7] = 5.0
        track.mark_lost()

        track.predict()

        assert track.mean[7] == 0
        assert track.mean[3] == pytest.approx(200.0)

    def test_failed_update_leaves_track_unchanged(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9, detection_id=1)
        track.activate(frame_id=1, track_id=1)
        track.update(STrack(Rect(11, 20, 100, 200), 0.8, detection_id=2), frame_id=2)
        track.covariance[0, 0] = np.nan
        mean, covariance = track.mean.copy(), track.covariance.copy()

        with pytest.raises(KalmanUpdateError):
            track.update(STrack(Rect(12, 20, 100, 200), 0.7, detection_id=3), frame_id=3)

        np.testing.assert_array_equal(track.mean, mean)
        np.testing.assert_array_equal(track.covariance, covariance)
        assert track.score == pytest.approx(0.8)
        assert track.frame_id == 2
        assert track.tracklet_length == 1
        assert track.detection_id == 2

    def test_failed_re_activate_leaves_track_unchanged(self):
        track = STrack(Rect(10, 20, 100, 200), 0.9, detection_id=1)
        track.activate(frame_id=1, track_id=1)
        track.mark_lost()
        track.covariance = -np.eye(8)
        mean = track.mean.copy()

        with pytest.raises(KalmanUpdateError):
            track.re_activate(STrack(Rect(10, 20, 100, 200), 0.8), frame_id=3)

        np.testing.assert_array_equal(track.mean, mean)
        np.testing.assert_array_equal(track.covariance, -np.eye(8))
        assert track.state == TrackState.LOST
        assert track.frame_id == 1
        assert track.score == pytest.approx(0.9)

    def test_feature_carried_over(self):
        feature = np.ones(4, dtype=np.float32)
        det = Detection(Rect(10, 20, 100, 200), label=0, prob=0.9, feature=feature)
        track = STrack.from_detection(det)
        track.activate(frame_id=1, track_id=1)

        new_feature = np.zeros(4, dtype=np.float32)
        det2 = Detection(Rect(10, 20, 100, 200), label=0, prob=0.9, feature=new_feature)
        track.update(STrack.from_detection(det2), frame_id=2)

        np.testing.assert_array_equal(track.feature, new_feature)


class TestTrackListHelpers:
    """Tests for track list set operations."""

    def test_joint_stracks_deduplicates(self):
        a = [make_strack((0, 0, 10, 10), track_id=1), make_strack((0, 0, 10, 10), track_id=2)]
        b = [make_strack((0, 0, 10, 10), track_id=2), make_strack((0, 0, 10, 10), track_id=3)]

        ids = [t.track_id for t in joint_stracks(a, b)]

        assert ids == [1, 2, 3]

    def test_sub_stracks_preserves_order(self):
        a = [make_strack((0, 0, 10, 10), track_id=i) for i in (5, 3, 8, 1)]
        b = [make_strack((0, 0, 10, 10), track_id=8)]

        ids = [t.track_id for t in sub_stracks(a, b)]

        assert ids == [5, 3, 1]

    def test_remove_duplicates_keeps_older(self):
        older = make_strack((0, 0, 100, 100), track_id=1, start=1, frame=10)
        newer = make_strack((1, 1, 100, 100), track_id=2, start=8, frame=10)

        res_a, res_b = remove_duplicate_stracks([newer], [older])
        assert res_a == []
        assert res_b == [older]

        res_a, res_b = remove_duplicate_stracks([older], [newer])
        assert res_a == [older]
        assert res_b == []

    def test_remove_duplicates_tie_drops_first_list(self):
        a = make_strack((0, 0, 100, 100), track_id=1, start=5, frame=10)
        b = make_strack((0, 0, 100, 100), track_id=2, start=5, frame=10)

        res_a, res_b = remove_duplicate_stracks([a], [b])

        assert res_a == []
        assert res_b == [b]

    def test_remove_duplicates_ignores_distant(self):
        a = make_strack((0, 0, 100, 100), track_id=1)
        b = make_strack((300, 300, 100, 100), track_id=2)

        res_a, res_b = remove_duplicate_stracks([a], [b])

        assert res_a == [a]
        assert res_b == [b]


# Detections as (x1, y1, x2, y2, score, detection_id)
SEQUENCE = [
    [
        (79, 205, 169, 609, 85.10, 1), (196, 222, 258, 451, 83.98, 2),
        (270, 247, 331, 456, 82.81, 3), (471, 205, 584, 638, 82.61, 4),
        (158, 302, 201, 506, 78.12, 5), (328, 234, 381, 445, 76.65, 6),
        (364, 218, 434, 450, 76.12, 7), (347, 148, 378, 238, 46.30, 8),
        (296, 184, 342, 408, 43.97, 9), (132, 201, 176, 319, 41.19, 10),
        (69, 191, 120, 391, 31.02, 11), (627, 237, 640, 284, 24.46, 12),
    ],
    [
        (471, 212, 584, 633, 83.76, 13), (197, 219, 259, 453, 83.59, 14),
        (271, 242, 331, 457, 81.64, 15), (83, 220, 166, 610, 78.91, 16),
        (157, 303, 204, 502, 77.43, 17), (364, 218, 434, 450, 74.97, 18),
        (327, 232, 383, 446, 73.54, 19), (346, 149, 377, 238, 50.58, 20),
        (70, 181, 125, 397, 43.71, 21), (297, 185, 343, 416, 42.02, 22),
        (133, 206, 178, 319, 37.11, 23), (589, 280, 639, 554, 34.46, 24),
    ],
    [
        (472, 204, 584, 637, 85.21, 25), (199, 221, 260, 450, 81.64, 26),
        (158, 303, 205, 502, 78.59, 27), (84, 228, 167, 609, 77.73, 28),
        (269, 240, 332, 458, 77.34, 29), (363, 218, 433, 450, 75.57, 30),
        (329, 233, 381, 445, 73.63, 31), (139, 206, 179, 321, 46.31, 32),
        (78, 181, 134, 385, 44.66, 33), (296, 185, 346, 411, 42.80, 34),
        (589, 263, 640, 571, 38.81, 35), (346, 149, 377, 236, 33.45, 36),
    ],
]

# Expected output as (track_id, x1, y1, x2, y2, score, detection_id)
EXPECTED = [
    [
        (1, 79, 205, 169, 609, 85.10, 1), (2, 196, 222, 258, 451, 83.98, 2),
        (3, 270, 247, 331, 456, 82.81, 3), (4, 471, 205, 584, 638, 82.61, 4),
        (5, 158, 302, 201, 506, 78.12, 5), (6, 328, 234, 381, 445, 76.65, 6),
        (7, 364, 218, 434, 450, 76.12, 7), (8, 347, 148, 378, 238, 46.30, 8),
        (9, 296, 184, 342, 408, 43.97, 9), (10, 132, 201, 176, 319, 41.19, 10),
        (11, 69, 191, 120, 391, 31.02, 11), (12, 627, 237, 640, 284, 24.46, 12),
    ],
    [
        (1, 80.82532, 218.01653, 168.04245, 609.86774, 78.91, 16),
        (2, 196.29364, 219.39668, 259.44189, 452.73553, 83.59, 14),
        (3, 269.70096, 242.66116, 332.16684, 456.86777, 81.64, 15),
        (4, 472.32794, 211.07437, 582.67206, 633.66113, 83.76, 13),
        (5, 159.27533, 302.86774, 201.46021, 502.52890, 77.43, 17),
        (6, 328.08496, 232.26445, 381.78284, 445.86774, 73.54, 19),
        (7, 364.00000, 218.00000, 434.00000, 450.00000, 74.97, 18),
        (8, 346.27829, 148.86777, 376.98615, 238.00000, 50.58, 20),
        (9, 296.25809, 184.86777, 343.47742, 414.94214, 42.02, 22),
        (10, 134.08234, 205.33885, 176.52097, 319.00000, 37.11, 23),
        (11, 69.83383, 182.32233, 124.37277, 396.20660, 43.71, 21),
    ],
    [
        (1, 82.73601, 226.55103, 167.85870, 609.22614, 77.73, 28),
        (2, 198.03925, 220.49619, 260.31458, 450.71359, 81.64, 26),
        (3, 268.93002, 240.37213, 332.31552, 457.78845, 77.34, 29),
        (4, 471.73502, 205.81052, 584.05249, 636.07104, 85.21, 25),
        (5, 160.21704, 303.01587, 202.38788, 501.93652, 78.59, 27),
        (6, 328.31689, 232.74213, 381.69986, 445.24115, 73.63, 31),
        (7, 363.22046, 218.00000, 433.22046, 450.00000, 75.57, 30),
        (8, 346.41031, 149.01614, 376.55737, 236.43452, 33.45, 36),
        (9, 297.41403, 185.01706, 344.16153, 412.28278, 42.80, 34),
        (10, 136.95946, 206.07745, 179.62943, 320.58356, 46.31, 32),
        (11, 77.51575, 180.81949, 130.46681, 388.02057, 44.66, 33),
        (13, 586.94348, 266.39999, 641.85657, 567.59998, 38.81, 35),
    ],
]


class TestBYTETracker:
    """Tests for the ByteTrack tracker."""

    def test_reference_sequence(self):
        tracker = make_tracker()

        for frame_dets, expected in zip(SEQUENCE, EXPECTED):
            detections = [
                Detection.from_xyxy(d[:4], label=0, prob=d[4], external_id=d[5])
                for d in frame_dets
            ]
            tracks = tracker.update(detections)

            assert len(tracks) == len(expected)
            for track, (tid, x1, y1, x2, y2, score, det_id) in zip(tracks, expected):
                assert track.track_id == tid
                np.testing.assert_allclose(
                    track.rect.tlbr, (x1, y1, x2, y2), atol=1e-2
                )
                assert track.score == pytest.approx(score, abs=1e-2)
                assert track.detection_id == det_id
                assert track.label == 0

    def test_empty_frames(self):
        tracker = make_tracker()

        assert tracker.update([]) == []
        assert tracker.update([]) == []
        assert tracker.frame_id == 2

    def test_first_frame_tracks_confirmed(self):
        tracker = make_tracker()

        tracks = tracker.update([
            Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9, external_id=1),
            Detection.from_xyxy([200, 200, 300, 300], label=0, prob=0.8, external_id=2),
        ])

        assert [t.track_id for t in tracks] == [1, 2]
        assert all(t.is_activated for t in tracks)

    def test_later_track_needs_second_match(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9, external_id=1)

        tracker.update([])
        assert tracker.update([det]) == []
        assert len(tracker.tracked_stracks) == 1

        tracks = tracker.update([det])
        assert [t.track_id for t in tracks] == [1]

    def test_unconfirmed_track_removed_when_unmatched(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)

        tracker.update([])
        tracker.update([det])
        tracker.update([])

        assert tracker.tracked_stracks == []
        assert len(tracker.removed_stracks) == 1
        assert tracker.removed_stracks[0].state == TrackState.REMOVED

    def test_low_score_detection_never_starts_track(self):
        tracker = make_tracker()

        tracks = tracker.update([
            Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.3),
        ])

        assert tracks == []
        assert tracker.track_id_count == 0

    def test_below_high_thresh_never_starts_track(self):
        tracker = make_tracker()

        tracks = tracker.update([
            Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.55),
        ])

        assert tracks == []
        assert tracker.tracked_stracks == []

    def test_low_score_detection_keeps_track_alive(self):
        tracker = make_tracker()
        box = [0, 0, 100, 100]

        tracker.update([Detection.from_xyxy(box, label=0, prob=0.9, external_id=1)])
        tracks = tracker.update([Detection.from_xyxy(box, label=0, prob=0.3, external_id=2)])

        assert [t.track_id for t in tracks] == [1]
        assert tracks[0].score == pytest.approx(0.3)
        assert tracks[0].detection_id == 2

    def test_lost_track_is_refound(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)

        tracker.update([det])
        assert tracker.update([]) == []
        assert len(tracker.lost_stracks) == 1
        assert tracker.lost_stracks[0].state == TrackState.LOST

        tracks = tracker.update([det])
        assert [t.track_id for t in tracks] == [1]
        assert tracker.lost_stracks == []
        assert tracker.track_id_count == 1

    def test_lost_track_expires(self):
        tracker = make_tracker(track_buffer=2)
        assert tracker.max_time_lost == 2

        tracker.update([Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)])
        tracker.update([])
        tracker.update([])
        assert len(tracker.lost_stracks) == 1

        tracker.update([])
        assert tracker.lost_stracks == []
        assert len(tracker.removed_stracks) == 1

    def test_expired_track_never_returns(self):
        tracker = make_tracker(track_buffer=2)
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)

        tracker.update([det])
        for _ in range(3):
            tracker.update([])
        assert tracker.lost_stracks == []

        # The same box starts a new, unconfirmed track instead
        assert tracker.update([det]) == []
        assert tracker.track_id_count == 2
        assert tracker.removed_stracks[0].track_id == 1
        assert tracker.removed_stracks[0].state == TrackState.REMOVED

    def test_zero_height_detection_skipped(self):
        tracker = make_tracker()

        tracks = tracker.update([
            Detection(Rect(10, 10, 20, 0), label=0, prob=0.9, external_id=1),
            Detection(Rect(100, 100, 20, 40), label=0, prob=0.9, external_id=2),
        ])

        assert [t.detection_id for t in tracks] == [2]
        assert tracker.track_id_count == 1

    def test_kalman_error_propagates(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)

        tracker.update([det])
        tracker.tracked_stracks[0].covariance[:] = np.nan

        with pytest.raises(KalmanUpdateError):
            tracker.update([det])

    def test_max_time_lost_scales_with_frame_rate(self):
        assert make_tracker(frame_rate=15, track_buffer=30).max_time_lost == 15
        assert make_tracker(frame_rate=60, track_buffer=30).max_time_lost == 60

    def test_ids_increase_monotonically(self):
        tracker = make_tracker()
        seen = []

        for i in range(5):
            det = Detection.from_xyxy(
                [i * 300, 0, i * 300 + 100, 100], label=0, prob=0.9
            )
            tracker.update([det])
            tracker.update([det])
            seen.extend(t.track_id for t in tracker.tracked_stracks)

        assert seen == sorted(seen)
        assert tracker.track_id_count == 5

    def test_reset(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=0, prob=0.9)

        tracker.update([det])
        tracker.update([det])
        tracker.reset()

        assert tracker.frame_id == 0
        assert tracker.get_track_count() == {"tracked": 0, "lost": 0, "removed": 0}

        tracks = tracker.update([det])
        assert [t.track_id for t in tracks] == [1]
        assert tracker.frame_id == 1

    def test_tracking_result_snapshot(self):
        tracker = make_tracker()
        det = Detection.from_xyxy([0, 0, 100, 100], label=2, prob=0.9, external_id=5)

        tracks = tracker.update([det])
        result = TrackingResult.from_stracks(tracker.frame_id, tracks)
        tracker.update([Detection.from_xyxy([10, 10, 110, 110], label=2, prob=0.9)])

        assert len(result) == 1
        label, track_id, snapshot = result.get_all_tracks()[0]
        assert (label, track_id) == (2, 1)
        assert snapshot.detection_id == 5
        assert snapshot.tlbr == pytest.approx((0, 0, 100, 100), abs=1e-3)


class TestTrail:
    """Tests for center-point trails."""

    def test_bounded_history(self):
        trail = Trail(size=3)
        track = STrack(Rect(0, 0, 10, 10), 0.9)
        track.track_id = 1

        for _ in range(5):
            trail.add(track)

        assert trail.get_points(1) == [(5, 5)] * 3

    def test_unknown_track(self):
        assert Trail().get_points(42) == []

    def test_reset(self):
        trail = Trail()
        track = STrack(Rect(0, 0, 10, 10), 0.9)
        track.track_id = 1
        trail.add(track)

        trail.reset()

        assert trail.track_ids() == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            Trail(size=0)
