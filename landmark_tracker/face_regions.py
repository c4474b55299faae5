"""
Face mesh region colouring and depth styling for the renderer.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .config import (
    FACE_DOT_BASE_RADIUS,
    FACE_DOT_DEPTH_RADIUS,
    FACE_DOT_BASE_OPACITY,
    FACE_DOT_DEPTH_OPACITY,
)


class FaceRegion(Enum):
    """Coarse facial region of a face mesh landmark."""
    SKIN = auto()
    LIPS = auto()
    EYES = auto()
    EYEBROWS = auto()


LIP_RANGES: tuple[range, ...] = (range(61, 81), range(308, 325), range(402, 416))
EYE_INDICES: frozenset[int] = frozenset({33, 133, 159, 145, 263, 362, 386, 374})
EYEBROW_INDICES: frozenset[int] = frozenset({46, 52, 65, 55, 276, 282, 295, 285})


def hex_to_bgr(color: str) -> tuple[int, int, int]:
    """Convert '#rrggbb' to an OpenCV BGR tuple."""
    value = color.lstrip("#")
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return (b, g, r)


REGION_COLORS: dict[FaceRegion, tuple[int, int, int]] = {
    FaceRegion.SKIN: hex_to_bgr("#ffffff"),
    FaceRegion.LIPS: hex_to_bgr("#ff6b6b"),
    FaceRegion.EYES: hex_to_bgr("#4ecdc4"),
    FaceRegion.EYEBROWS: hex_to_bgr("#ffe66d"),
}


def classify(index: int) -> FaceRegion:
    """
    Get the facial region of a face mesh landmark index.

    Lips take precedence over eyes, eyes over eyebrows.
    """
    if any(index in r for r in LIP_RANGES):
        return FaceRegion.LIPS
    if index in EYE_INDICES:
        return FaceRegion.EYES
    if index in EYEBROW_INDICES:
        return FaceRegion.EYEBROWS
    return FaceRegion.SKIN


def depth_factor(z: Optional[float]) -> float:
    """
    Map relative depth to [0, 1], 1 being closest to the camera.

    A missing or zero depth maps to the midpoint 0.5.
    """
    if not z:
        return 0.5
    return max(0.0, min(1.0, (-z + 50.0) / 100.0))


@dataclass(frozen=True)
class DotStyle:
    """Drawing style of one face landmark dot."""
    color: tuple[int, int, int]
    radius: float
    opacity: float


def dot_style(index: int, z: Optional[float]) -> DotStyle:
    """Compute colour, radius and opacity for a face landmark."""
    depth = depth_factor(z)
    return DotStyle(
        color=REGION_COLORS[classify(index)],
        radius=FACE_DOT_BASE_RADIUS + depth * FACE_DOT_DEPTH_RADIUS,
        opacity=FACE_DOT_BASE_OPACITY + depth * FACE_DOT_DEPTH_OPACITY
    )
