import math

import pytest

from landmark_tracker.config import TrackingSettings
from landmark_tracker.landmarks import Detection, DetectionError, Keypoint
from landmark_tracker.track_assigner import TrackAssigner, TrackState


@pytest.fixture
def assigner():
    # 8% of 360 = 28.8 px, 6 x 33 ms = 198 ms
    return TrackAssigner(TrackingSettings(), frame_size=(640, 360))


def ids(results):
    return [r.track_id for r in results]


def test_threshold_scales_with_smaller_frame_dimension(assigner):
    assert assigner.threshold == pytest.approx(28.8)

    assigner.set_frame_size(1280, 720)
    assert assigner.threshold == pytest.approx(57.6)


def test_concrete_scenario(assigner, make_hand):
    # Frame 1: new track
    assert ids(assigner.update([make_hand(100, 100)], 0.0)) == [1]

    # Frame 2, 20 ms later: ~5.4 px away, same track
    assert ids(assigner.update([make_hand(105, 102)], 20.0)) == [1]
    assert assigner.get_track(1).reference_point == (105.0, 102.0)

    # Frames 3-7: no hand, track ages
    t = 20.0
    for _ in range(5):
        t += 33.0
        assert assigner.update([], t) == []
        assert assigner.get_track(1).state is TrackState.STALE

    # Frame 8: unseen for 198 ms, the staleness bound
    t += 33.0
    assert assigner.update([], t) == []
    assert assigner.get_track(1) is None
    assert assigner.evicted_ids == [1]
    assert assigner.tracks == []

    # Frame 9: same place, new identity
    t += 33.0
    assert ids(assigner.update([make_hand(105, 102)], t)) == [2]
    assert assigner.evicted_ids == []
    assert [tr.track_id for tr in assigner.tracks] == [2]


def test_track_evicted_exactly_at_bound(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)

    assigner.update([], 197.0)
    assert assigner.get_track(1) is not None

    assigner.update([], 198.0)
    assert assigner.get_track(1) is None


def test_smoothly_moving_hand_keeps_its_id(assigner, make_hand):
    seen = set()
    for frame in range(60):
        x = 100 + frame * 8.0
        y = 100 + 10 * math.sin(frame / 5)
        seen.update(ids(assigner.update([make_hand(x, y)], frame * 33.0)))

    assert seen == {1}
    assert assigner.get_track(1).hits == 60


def test_opposite_sides_never_merge(assigner, make_hand):
    results = assigner.update([make_hand(100, 100, "Left"), make_hand(101, 100, "Right")], 0.0)

    assert ids(results) == [1, 2]
    assert [r.side for r in results] == ["Left", "Right"]

    results = assigner.update([make_hand(101, 100, "Right"), make_hand(100, 100, "Left")], 33.0)
    assert ids(results) == [2, 1]


def test_detection_does_not_match_track_of_other_side(assigner, make_hand):
    assigner.update([make_hand(100, 100, "Right")], 0.0)

    assert ids(assigner.update([make_hand(100, 100, "Left")], 33.0)) == [2]
    assert assigner.get_track(1).state is TrackState.STALE


def test_spawns_when_farther_than_threshold(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)

    assert ids(assigner.update([make_hand(130, 100)], 33.0)) == [2]
    assert assigner.get_track(1) is not None
    assert assigner.get_track(1).reference_point == (100.0, 100.0)


def test_match_at_exact_threshold(make_hand):
    assigner = TrackAssigner(TrackingSettings(match_threshold_fraction=0.1), frame_size=(200, 100))
    assigner.update([make_hand(0, 0)], 0.0)

    assert ids(assigner.update([make_hand(10, 0)], 33.0)) == [1]


def test_greedy_picks_globally_closest_pair_first(assigner, make_hand):
    assigner.update([make_hand(100, 100), make_hand(130, 100)], 0.0)

    # Track 2 is closest to the first detection (10 px) and wins it even
    # though track 1 could also reach it (20 px). Track 1 is then 45 px
    # from the remaining detection, so that detection spawns track 3.
    results = assigner.update([make_hand(120, 100), make_hand(145, 100)], 33.0)

    assert ids(results) == [2, 3]
    assert assigner.get_track(1).state is TrackState.STALE


def test_equal_distances_resolve_to_oldest_track(assigner, make_hand):
    assigner.update([make_hand(100, 100), make_hand(140, 100)], 0.0)

    assert ids(assigner.update([make_hand(120, 100)], 33.0)) == [1]


def test_more_detections_than_tracks_spawn_without_cap(assigner, make_hand):
    assigner.update([make_hand(50, 50)], 0.0)

    hands = [make_hand(50 + i * 100, 50) for i in range(5)]
    assert ids(assigner.update(hands, 33.0)) == [1, 2, 3, 4, 5]
    assert len(assigner.tracks) == 5


def test_empty_frame_ages_tracks_without_output(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)

    assert assigner.update([], 100.0) == []
    track = assigner.get_track(1)
    assert track.state is TrackState.STALE
    assert track.last_seen_ms == 0.0
    assert track.age_ms(100.0) == 100.0


def test_stale_track_within_bound_is_reacquired(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    assigner.update([], 100.0)

    assert ids(assigner.update([make_hand(102, 100)], 190.0)) == [1]
    assert assigner.get_track(1).state is TrackState.ACTIVE


def test_new_track_after_eviction_has_fresh_filters(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    assigner.update([make_hand(110, 100)], 33.0)

    results = assigner.update([make_hand(110, 100)], 1000.0)

    assert ids(results) == [2]
    # First sample of a fresh filter bank passes through unchanged
    assert results[0].detection == make_hand(110, 100)
    assert assigner.get_track(2).filter_bank.smoothed_count == 1


def test_matched_output_is_smoothed(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)

    results = assigner.update([make_hand(110, 100)], 33.0)

    wrist = results[0].keypoints[0]
    assert 100.0 < wrist.x < 110.0
    # Matching uses the raw position, not the smoothed one
    assert assigner.get_track(1).reference_point == (110.0, 100.0)


def test_malformed_frame_is_rejected_without_state_change(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    bad = Detection(keypoints=(Keypoint(math.nan, 0.0),) * 21, side="Right")

    with pytest.raises(DetectionError):
        assigner.update([make_hand(105, 100), bad], 33.0)

    track = assigner.get_track(1)
    assert track.last_seen_ms == 0.0
    assert track.reference_point == (100.0, 100.0)
    assert track.hits == 1
    assert len(assigner.tracks) == 1


def test_truncated_hand_is_rejected(assigner, make_hand):
    hand = make_hand(100, 100)
    truncated = Detection(keypoints=hand.keypoints[:10], side="Right")

    with pytest.raises(DetectionError):
        assigner.update([truncated], 0.0)
    assert assigner.tracks == []


def test_keypoint_count_change_rejects_frame(assigner, make_face):
    assigner.update([make_face(300, 200, count=468)], 0.0)

    with pytest.raises(DetectionError):
        assigner.update([make_face(300, 200, count=478)], 33.0)

    assert assigner.get_track(1).last_seen_ms == 0.0


def test_rejected_frame_does_not_evict(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    bad = Detection(keypoints=(), side="Right")

    with pytest.raises(DetectionError):
        assigner.update([bad], 1000.0)

    assert assigner.get_track(1) is not None


def test_ids_are_never_reused_after_reset(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    assigner.reset()

    assert assigner.tracks == []
    assert ids(assigner.update([make_hand(100, 100)], 33.0)) == [2]


def test_plan_leaves_tracks_untouched(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)

    plan = assigner.plan([make_hand(300, 100)], 1000.0)

    assert plan.expired_ids == (1,)
    assert plan.matches == {}
    track = assigner.get_track(1)
    assert track.last_seen_ms == 0.0
    assert track.state is TrackState.ACTIVE

    assert ids(assigner.commit(plan)) == [2]
    assert assigner.get_track(1) is None


def test_outdated_plan_cannot_be_committed(assigner, make_hand):
    assigner.update([make_hand(100, 100)], 0.0)
    plan = assigner.plan([make_hand(105, 100)], 33.0)

    assigner.update([make_hand(110, 100)], 40.0)

    with pytest.raises(RuntimeError):
        assigner.commit(plan)
    assert assigner.get_track(1).reference_point == (110.0, 100.0)
