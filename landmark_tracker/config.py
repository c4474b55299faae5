"""
Configuration constants for LandmarkTracker.

This module contains all tunable parameters for camera capture,
landmark detection, landmark smoothing and track assignment.
"""

from dataclasses import dataclass
from typing import Final


# Camera configuration
CAMERA_WIDTH: Final[int] = 640
CAMERA_HEIGHT: Final[int] = 360
CAMERA_FPS: Final[int] = 30
CAMERA_MIRROR: Final[bool] = True  # Selfie view

# MediaPipe configuration
MEDIAPIPE_MODEL_COMPLEXITY: Final[int] = 0  # Lite model for performance
MEDIAPIPE_MAX_NUM_HANDS: Final[int] = 2
MEDIAPIPE_MAX_NUM_FACES: Final[int] = 1
MEDIAPIPE_REFINE_LANDMARKS: Final[bool] = True  # Adds 10 iris points (478 total)
MEDIAPIPE_MIN_DETECTION_CONFIDENCE: Final[float] = 0.5
MEDIAPIPE_MIN_TRACKING_CONFIDENCE: Final[float] = 0.5

# Tracking modes
TRACKING_MODES: Final[tuple[str, ...]] = ("face", "hands", "both")
DEFAULT_TRACKING_MODE: Final[str] = "face"

# Landmark smoothing (One Euro Filter, pixel coordinates)
LANDMARK_MIN_CUTOFF: Final[float] = 1.0  # Lower = more smoothing at rest
LANDMARK_BETA: Final[float] = 0.007  # Higher = less lag during fast motion
LANDMARK_D_CUTOFF: Final[float] = 1.0  # Derivative cutoff
MIN_FILTER_DT_MS: Final[float] = 1.0  # Clamp for equal/out-of-order timestamps

# Track assignment
# Match radius as a fraction of the smaller frame dimension (8% of 360 = ~29 px)
MATCH_THRESHOLD_FRACTION: Final[float] = 0.08
NOMINAL_FRAME_INTERVAL_MS: Final[float] = 33.0  # ~30 FPS
STALE_FRAMES: Final[int] = 6  # Evict after ~200 ms without a match

# Renderer
FACE_DOT_BASE_RADIUS: Final[float] = 1.5
FACE_DOT_DEPTH_RADIUS: Final[float] = 2.0
FACE_DOT_BASE_OPACITY: Final[float] = 0.7
FACE_DOT_DEPTH_OPACITY: Final[float] = 0.3
BACKGROUND_COLOR_BGR: Final[tuple[int, int, int]] = (10, 10, 10)
WINDOW_TITLE: Final[str] = "Face & Hand Tracker"

# Logging
LOG_FILENAME: Final[str] = "landmark_tracker.log"
LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT: Final[int] = 3
LOG_CONSOLE_THROTTLE_S: Final[float] = 5.0  # Min gap between repeated console warnings

# Exit codes
EXIT_SUCCESS: Final[int] = 0
EXIT_PROFILE_ERROR: Final[int] = 1
EXIT_CAMERA_ERROR: Final[int] = 2
EXIT_RUNTIME_ERROR: Final[int] = 3


@dataclass
class FilterSettings:
    """Container for landmark smoothing settings (One Euro Filter)."""

    min_cutoff: float = LANDMARK_MIN_CUTOFF
    beta: float = LANDMARK_BETA
    d_cutoff: float = LANDMARK_D_CUTOFF


@dataclass
class TrackingSettings:
    """Container for track assignment settings."""

    match_threshold_fraction: float = MATCH_THRESHOLD_FRACTION
    frame_interval_ms: float = NOMINAL_FRAME_INTERVAL_MS
    stale_frames: int = STALE_FRAMES

    @property
    def stale_bound_ms(self) -> float:
        """Maximum time a track may go unmatched before eviction."""
        return self.stale_frames * self.frame_interval_ms


@dataclass
class CameraSettings:
    """Container for camera capture settings."""

    index: int = -1  # -1 = auto-select
    width: int = CAMERA_WIDTH
    height: int = CAMERA_HEIGHT
    fps: int = CAMERA_FPS
    mirror: bool = CAMERA_MIRROR
