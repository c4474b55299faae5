from types import SimpleNamespace

import pytest

from landmark_tracker.landmarks import (
    Detection,
    DetectionError,
    Keypoint,
    LandmarkIndex,
    TrackedDetection,
    detection_from_normalized,
)


def test_hand_reference_point_is_palm_center(make_hand):
    keypoints = list(make_hand(0, 0).keypoints)
    keypoints[LandmarkIndex.WRIST] = Keypoint(10.0, 50.0)
    keypoints[LandmarkIndex.INDEX_MCP] = Keypoint(0.0, 0.0)
    keypoints[LandmarkIndex.MIDDLE_MCP] = Keypoint(10.0, 0.0)
    keypoints[LandmarkIndex.RING_MCP] = Keypoint(20.0, 0.0)
    keypoints[LandmarkIndex.PINKY_MCP] = Keypoint(30.0, 0.0)
    # Fingertips must not move the reference point
    keypoints[LandmarkIndex.INDEX_TIP] = Keypoint(500.0, -500.0)

    hand = Detection(keypoints=tuple(keypoints), side="Left")

    assert hand.reference_point() == pytest.approx((14.0, 10.0))


def test_face_reference_point_is_centroid():
    face = Detection(
        keypoints=(Keypoint(0.0, 0.0), Keypoint(10.0, 0.0), Keypoint(5.0, 30.0)),
        side="Face"
    )
    assert face.reference_point() == pytest.approx((5.0, 10.0))
    assert not face.is_hand


def test_validate_accepts_well_formed_detections(make_hand, make_face):
    make_hand(10, 10).validate()
    make_face(10, 10).validate()


@pytest.mark.parametrize("keypoints, side", [
    ((), "Face"),
    ((Keypoint(1.0, 1.0),) * 20, "Right"),
    ((Keypoint(float("inf"), 1.0),), "Face"),
])
def test_validate_rejects_malformed_detections(keypoints, side):
    with pytest.raises(DetectionError):
        Detection(keypoints=keypoints, side=side).validate()


def test_detection_error_is_value_error():
    assert issubclass(DetectionError, ValueError)


def test_detection_from_normalized_scales_to_pixels():
    landmarks = [
        SimpleNamespace(x=0.5, y=0.25, z=-0.1, visibility=0.8),
        SimpleNamespace(x=1.0, y=1.0, z=0.0, visibility=None),
        SimpleNamespace(x=0.0, y=0.0, z=0.0),
    ]

    detection = detection_from_normalized(landmarks, "Right", 640, 360, score=0.95)

    first = detection.keypoints[0]
    assert (first.x, first.y) == (320.0, 90.0)
    assert first.z == pytest.approx(-64.0)
    assert first.score == 0.8
    assert detection.keypoints[1].score == 1.0
    assert detection.keypoints[2].score == 1.0
    assert detection.side == "Right"
    assert detection.score == 0.95


def test_tracked_detection_exposes_detection_fields(make_hand):
    tracked = TrackedDetection(track_id=3, detection=make_hand(1, 2, "Left"))
    assert tracked.side == "Left"
    assert len(tracked.keypoints) == 21
