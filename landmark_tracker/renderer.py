"""
OpenCV renderer for tracked hands and faces.
"""

from collections import defaultdict
from typing import Optional

import cv2
import numpy as np

from .config import BACKGROUND_COLOR_BGR
from .face_regions import dot_style
from .landmarks import HAND_CONNECTIONS, LandmarkIndex, TrackedDetection
from .pipeline import FrameResult

# Per-track colours (BGR), indexed by track id
TRACK_PALETTE: tuple[tuple[int, int, int], ...] = (
    (80, 175, 76),
    (0, 200, 255),
    (255, 120, 60),
    (200, 80, 255),
    (255, 255, 0),
    (60, 60, 255),
)

STATUS_OK_COLOR = (80, 175, 76)
STATUS_MISS_COLOR = (68, 68, 255)
TEXT_COLOR = (255, 255, 255)


def track_color(track_id: int) -> tuple[int, int, int]:
    """Stable colour for a track id."""
    return TRACK_PALETTE[(track_id - 1) % len(TRACK_PALETTE)]


def _point(x: float, y: float) -> tuple[int, int]:
    return (int(round(x)), int(round(y)))


class Renderer:
    """
    Draws tracked landmarks, status line and FPS onto a BGR canvas.

    Attributes:
        show_video: Draw over the camera image instead of a dark background.
    """

    def __init__(self, show_video: bool = False):
        self.show_video = show_video

    def render(
        self,
        frame_rgb: np.ndarray,
        result: Optional[FrameResult],
        fps: int = 0
    ) -> np.ndarray:
        """
        Render one frame.

        Args:
            frame_rgb: Camera frame the landmarks were detected in.
            result: Tracked output, or None when the frame was rejected.
            fps: Frames per second to display.

        Returns:
            BGR image ready for cv2.imshow.
        """
        if self.show_video:
            canvas = cv2.cvtColor(frame_rgb, cv2.COLOR_RGB2BGR)
        else:
            canvas = np.empty_like(frame_rgb)
            canvas[:] = BACKGROUND_COLOR_BGR

        if result is not None:
            for face in result.faces:
                self.draw_face(canvas, face)
            for hand in result.hands:
                self.draw_hand(canvas, hand)
            self.draw_status(canvas, result)

        cv2.putText(
            canvas, f"FPS: {fps}", (10, 24),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, TEXT_COLOR, 1, cv2.LINE_AA
        )
        return canvas

    def draw_hand(self, canvas: np.ndarray, hand: TrackedDetection) -> None:
        """Draw a hand skeleton in its track colour with an id label."""
        color = track_color(hand.track_id)
        keypoints = hand.keypoints

        for start_idx, end_idx in HAND_CONNECTIONS:
            start, end = keypoints[start_idx], keypoints[end_idx]
            cv2.line(canvas, _point(start.x, start.y), _point(end.x, end.y), color, 2, cv2.LINE_AA)

        for kp in keypoints:
            cv2.circle(canvas, _point(kp.x, kp.y), 3, TEXT_COLOR, -1, cv2.LINE_AA)

        wrist = keypoints[LandmarkIndex.WRIST]
        cv2.putText(
            canvas, f"#{hand.track_id} {hand.side}", _point(wrist.x + 8, wrist.y + 16),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1, cv2.LINE_AA
        )

    def draw_face(self, canvas: np.ndarray, face: TrackedDetection) -> None:
        """
        Draw face landmarks as dots coloured by facial region.

        Dot radius and opacity grow as landmarks get closer to the camera.
        Dots are drawn in opacity layers, one blend per layer.
        """
        layers: dict[float, list] = defaultdict(list)
        for index, kp in enumerate(face.keypoints):
            style = dot_style(index, kp.z)
            layers[round(style.opacity, 1)].append((kp, style))

        for opacity in sorted(layers):
            overlay = canvas.copy()
            for kp, style in layers[opacity]:
                radius = max(1, int(round(style.radius)))
                cv2.circle(overlay, _point(kp.x, kp.y), radius, style.color, -1, cv2.LINE_AA)
            cv2.addWeighted(overlay, opacity, canvas, 1.0 - opacity, 0, dst=canvas)

    def draw_status(self, canvas: np.ndarray, result: FrameResult) -> None:
        """Draw the status line, and a hint when nothing is tracked."""
        height, width = canvas.shape[:2]
        color = STATUS_OK_COLOR if result.detected else STATUS_MISS_COLOR

        cv2.putText(
            canvas, result.status, (10, height - 12),
            cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 1, cv2.LINE_AA
        )

        if not result.detected:
            hint = "Move closer to camera"
            (text_w, text_h), _ = cv2.getTextSize(hint, cv2.FONT_HERSHEY_SIMPLEX, 0.9, 2)
            cv2.putText(
                canvas, hint, ((width - text_w) // 2, (height + text_h) // 2),
                cv2.FONT_HERSHEY_SIMPLEX, 0.9, STATUS_MISS_COLOR, 2, cv2.LINE_AA
            )
