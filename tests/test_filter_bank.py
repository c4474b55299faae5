import pytest

from landmark_tracker.filter_bank import FilterBank
from landmark_tracker.landmarks import Detection, DetectionError, Keypoint
from landmark_tracker.one_euro_filter import OneEuroParams


def test_first_detection_passes_through(make_hand):
    bank = FilterBank()
    hand = make_hand(100.0, 200.0)

    smoothed = bank.smooth(hand, 0.0)

    assert smoothed == hand
    assert bank.num_keypoints == 21
    assert bank.smoothed_count == 1


def test_smooths_towards_previous_position(make_hand):
    bank = FilterBank(OneEuroParams(min_cutoff=1.0, beta=0.0))
    bank.smooth(make_hand(100.0, 100.0), 0.0)

    smoothed = bank.smooth(make_hand(110.0, 90.0), 33.0)

    wrist = smoothed.keypoints[0]
    assert 100.0 < wrist.x < 110.0
    assert 90.0 < wrist.y < 100.0


def test_axes_are_independent():
    bank = FilterBank(OneEuroParams(min_cutoff=1.0, beta=0.0))
    bank.smooth(Detection((Keypoint(0.0, 0.0),), side="Face"), 0.0)

    # Only x moves; y must not pick up any motion
    smoothed = bank.smooth(Detection((Keypoint(50.0, 0.0),), side="Face"), 33.0)

    assert smoothed.keypoints[0].x > 0.0
    assert smoothed.keypoints[0].y == 0.0
    assert bank.channel_state(0, "y").dx_prev == 0.0
    assert bank.channel_state(0, "x").dx_prev > 0.0


def test_depth_and_scores_pass_through():
    bank = FilterBank()
    bank.smooth(Detection((Keypoint(0.0, 0.0, z=1.0, score=0.5),), side="Face", score=0.7), 0.0)

    smoothed = bank.smooth(Detection((Keypoint(5.0, 5.0, z=-3.0, score=0.25),), side="Face", score=0.6), 33.0)

    assert smoothed.keypoints[0].z == -3.0
    assert smoothed.keypoints[0].score == 0.25
    assert smoothed.score == 0.6
    assert smoothed.side == "Face"


def test_rejects_different_keypoint_count(make_face):
    bank = FilterBank()
    bank.smooth(make_face(100.0, 100.0, count=468), 0.0)

    assert not bank.accepts(make_face(100.0, 100.0, count=478))
    with pytest.raises(DetectionError):
        bank.smooth(make_face(100.0, 100.0, count=478), 33.0)
    assert bank.smoothed_count == 1


def test_banks_do_not_share_state(make_hand):
    a = FilterBank()
    b = FilterBank()
    a.smooth(make_hand(0.0, 0.0), 0.0)

    assert b.channel_state(0, "x") is None
    assert b.smooth(make_hand(300.0, 300.0), 33.0) == make_hand(300.0, 300.0)
