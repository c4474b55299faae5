"""
Landmark data types shared by the landmark source, tracker and renderer.

Coordinates are in pixels of the analysed frame. Detections are produced
fresh every frame by the landmark source and never mutated afterwards.
"""

import math
from dataclasses import dataclass
from typing import Final

HAND_SIDES: Final[tuple[str, str]] = ("Left", "Right")
FACE_SIDE: Final[str] = "Face"

NUM_HAND_LANDMARKS: Final[int] = 21
NUM_FACE_LANDMARKS: Final[int] = 468


class DetectionError(ValueError):
    """Raised when a detection violates the landmark source contract."""
    pass


# MediaPipe landmark indices
class LandmarkIndex:
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# Wrist and MCP joints; stable under finger motion
PALM_INDICES: Final[tuple[int, ...]] = (
    LandmarkIndex.WRIST,
    LandmarkIndex.INDEX_MCP,
    LandmarkIndex.MIDDLE_MCP,
    LandmarkIndex.RING_MCP,
    LandmarkIndex.PINKY_MCP,
)

# Hand connections (same as MediaPipe)
HAND_CONNECTIONS: Final[tuple[tuple[int, int], ...]] = (
    (0, 1), (1, 2), (2, 3), (3, 4),  # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),  # Index
    (0, 9), (9, 10), (10, 11), (11, 12),  # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),  # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),  # Pinky
    (5, 9), (9, 13), (13, 17)  # Palm
)


@dataclass(frozen=True)
class Keypoint:
    """Single landmark with pixel coordinates, relative depth and confidence."""
    x: float
    y: float
    z: float = 0.0
    score: float = 1.0


@dataclass(frozen=True)
class Detection:
    """
    One frame's landmarks for one hand or face.

    Attributes:
        keypoints: Ordered keypoints (21 per hand, 468/478 per face).
        side: 'Left', 'Right' or 'Face'.
        score: Detection confidence score.
    """
    keypoints: tuple[Keypoint, ...]
    side: str
    score: float = 1.0

    @property
    def is_hand(self) -> bool:
        return self.side in HAND_SIDES

    def __len__(self) -> int:
        return len(self.keypoints)

    def validate(self) -> None:
        """
        Check the detection against the landmark source contract.

        Raises:
            DetectionError: If keypoints are missing or not finite.
        """
        if not self.keypoints:
            raise DetectionError(f"{self.side} detection has no keypoints")

        if self.is_hand and len(self.keypoints) < NUM_HAND_LANDMARKS:
            raise DetectionError(
                f"{self.side} hand detection has {len(self.keypoints)} keypoints, "
                f"expected {NUM_HAND_LANDMARKS}"
            )

        for i, kp in enumerate(self.keypoints):
            if not (math.isfinite(kp.x) and math.isfinite(kp.y)):
                raise DetectionError(
                    f"{self.side} detection keypoint {i} is not finite: ({kp.x}, {kp.y})"
                )

    def reference_point(self) -> tuple[float, float]:
        """
        Position used to match this detection against existing tracks.

        Returns:
            Palm center for hands, centroid of all keypoints for faces.
        """
        if self.is_hand:
            points = [self.keypoints[i] for i in PALM_INDICES]
        else:
            points = self.keypoints

        x = sum(p.x for p in points) / len(points)
        y = sum(p.y for p in points) / len(points)

        return (x, y)


@dataclass(frozen=True)
class TrackedDetection:
    """Smoothed detection tagged with the identity of its track."""
    track_id: int
    detection: Detection

    @property
    def side(self) -> str:
        return self.detection.side

    @property
    def keypoints(self) -> tuple[Keypoint, ...]:
        return self.detection.keypoints


def detection_from_normalized(
    landmarks,
    side: str,
    frame_width: int,
    frame_height: int,
    score: float = 1.0
) -> Detection:
    """
    Build a pixel-space detection from MediaPipe normalized landmarks.

    Args:
        landmarks: Iterable of objects with x, y, z (and optionally visibility)
                   in normalized [0, 1] image coordinates.
        side: Side label for the detection.
        frame_width: Width of the analysed frame in pixels.
        frame_height: Height of the analysed frame in pixels.
        score: Detection confidence score.

    Returns:
        Detection in pixel coordinates. z is scaled by frame width,
        matching MediaPipe's depth convention.
    """
    keypoints = []
    for lm in landmarks:
        # Tasks API landmarks carry visibility=None
        visibility = getattr(lm, "visibility", None)
        keypoints.append(Keypoint(
            x=lm.x * frame_width,
            y=lm.y * frame_height,
            z=lm.z * frame_width,
            score=visibility if visibility is not None else 1.0
        ))
    return Detection(keypoints=tuple(keypoints), side=side, score=score)
