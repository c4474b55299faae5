import pytest

from landmark_tracker.landmarks import (
    FACE_SIDE,
    NUM_FACE_LANDMARKS,
    NUM_HAND_LANDMARKS,
    PALM_INDICES,
    Detection,
    Keypoint,
)


def hand_at(cx: float, cy: float, side: str = "Right") -> Detection:
    """Hand whose palm center is exactly (cx, cy); fingers fan out upwards."""
    keypoints = []
    for i in range(NUM_HAND_LANDMARKS):
        if i in PALM_INDICES:
            keypoints.append(Keypoint(cx, cy))
        else:
            keypoints.append(Keypoint(cx + (i % 4) * 3.0, cy - i * 2.0))
    return Detection(keypoints=tuple(keypoints), side=side, score=0.9)


def face_at(cx: float, cy: float, count: int = NUM_FACE_LANDMARKS) -> Detection:
    """Face whose keypoint centroid is exactly (cx, cy)."""
    keypoints = []
    for i in range(count // 2):
        keypoints.append(Keypoint(cx - 10.0 - i * 0.1, cy, z=-5.0))
        keypoints.append(Keypoint(cx + 10.0 + i * 0.1, cy, z=5.0))
    return Detection(keypoints=tuple(keypoints), side=FACE_SIDE)


@pytest.fixture
def make_hand():
    return hand_at


@pytest.fixture
def make_face():
    return face_at
