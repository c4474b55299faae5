"""
Per-frame processing pipeline.

Routes raw detections from the landmark source through the hand and
face track assigners according to the tracking mode, and produces the
status line shown by the renderer.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .config import (
    CAMERA_WIDTH,
    CAMERA_HEIGHT,
    DEFAULT_TRACKING_MODE,
    TRACKING_MODES,
    FilterSettings,
    TrackingSettings,
)
from .landmarks import Detection, TrackedDetection
from .logger import get_logger
from .one_euro_filter import OneEuroParams
from .track_assigner import TrackAssigner

logger = get_logger("Pipeline")


@dataclass
class FrameResult:
    """Smoothed, identity-tagged output of one frame."""
    hands: list[TrackedDetection] = field(default_factory=list)
    faces: list[TrackedDetection] = field(default_factory=list)
    status: str = ""

    @property
    def detected(self) -> bool:
        return bool(self.hands or self.faces)


class LandmarkPipeline:
    """
    Frame-driven hand and face tracking.

    Attributes:
        mode: 'face', 'hands' or 'both'.
    """

    def __init__(
        self,
        mode: str = DEFAULT_TRACKING_MODE,
        filter_settings: Optional[FilterSettings] = None,
        tracking_settings: Optional[TrackingSettings] = None,
        frame_size: tuple[int, int] = (CAMERA_WIDTH, CAMERA_HEIGHT)
    ):
        """
        Initialize pipeline.

        Args:
            mode: Tracking mode.
            filter_settings: One Euro tuning for all filter banks.
            tracking_settings: Match threshold and staleness configuration.
            frame_size: (width, height) of the analysed frames.
        """
        filter_settings = filter_settings or FilterSettings()
        params = OneEuroParams(
            min_cutoff=filter_settings.min_cutoff,
            beta=filter_settings.beta,
            d_cutoff=filter_settings.d_cutoff
        )

        self.hand_tracker = TrackAssigner(tracking_settings, frame_size, params)
        self.face_tracker = TrackAssigner(tracking_settings, frame_size, params)
        self._mode = DEFAULT_TRACKING_MODE
        self.set_mode(mode)

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def tracks_hands(self) -> bool:
        return self._mode in ("hands", "both")

    @property
    def tracks_face(self) -> bool:
        return self._mode in ("face", "both")

    def set_mode(self, mode: str) -> None:
        """
        Switch tracking mode. Trackers of a disabled mode are reset.

        Raises:
            ValueError: If mode is unknown.
        """
        if mode not in TRACKING_MODES:
            raise ValueError(f"Unknown tracking mode '{mode}', expected one of {TRACKING_MODES}")

        self._mode = mode
        if not self.tracks_hands:
            self.hand_tracker.reset()
        if not self.tracks_face:
            self.face_tracker.reset()
        logger.info(f"Tracking mode: {mode}")

    def set_frame_size(self, width: int, height: int) -> None:
        self.hand_tracker.set_frame_size(width, height)
        self.face_tracker.set_frame_size(width, height)

    def process(
        self,
        hand_detections: Iterable[Detection],
        face_detections: Iterable[Detection],
        timestamp_ms: float
    ) -> FrameResult:
        """
        Process one frame.

        Args:
            hand_detections: Hand detections from the landmark source.
            face_detections: Face detections from the landmark source.
            timestamp_ms: Frame time in milliseconds.

        Returns:
            FrameResult with tracked hands, tracked faces and a status line.

        Raises:
            DetectionError: If the frame is malformed. Neither tracker is
                changed, even when only one of them got bad detections.
        """
        result = FrameResult()

        face_plan = self.face_tracker.plan(face_detections, timestamp_ms) if self.tracks_face else None
        hand_plan = self.hand_tracker.plan(hand_detections, timestamp_ms) if self.tracks_hands else None

        if face_plan is not None:
            result.faces = self.face_tracker.commit(face_plan)
        if hand_plan is not None:
            result.hands = self.hand_tracker.commit(hand_plan)

        result.status = self._status(result)
        return result

    def _status(self, result: FrameResult) -> str:
        parts = []
        if result.faces:
            parts.append(f"Tracking face ({len(result.faces[0].keypoints)} points)")
        if result.hands:
            count = len(result.hands)
            parts.append(f"Tracking {count} hand{'s' if count != 1 else ''}")

        if parts:
            return ", ".join(parts)

        if self._mode == "face":
            return "No face detected"
        if self._mode == "hands":
            return "No hands detected"
        return "No face or hands detected"


class FpsCounter:
    """Frames per second over windows of at least one second."""

    WINDOW_MS = 1000.0

    def __init__(self, now_ms: float = 0.0):
        self._frames = 0
        self._window_start_ms = now_ms
        self._fps = 0

    @property
    def fps(self) -> int:
        return self._fps

    def tick(self, now_ms: float) -> int:
        """
        Count one frame.

        Args:
            now_ms: Current time in milliseconds.

        Returns:
            FPS of the last completed window.
        """
        self._frames += 1
        elapsed = now_ms - self._window_start_ms
        if elapsed >= self.WINDOW_MS:
            self._fps = round(self._frames * 1000.0 / elapsed)
            self._frames = 0
            self._window_start_ms = now_ms
        return self._fps
