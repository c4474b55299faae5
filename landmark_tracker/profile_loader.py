"""
Profile loader for LandmarkTracker.

Loads and validates optional JSON profile files overriding the defaults
in config.py. Profile properties use camelCase, e.g.:

    {
        "name": "Studio",
        "mode": "both",
        "maxNumHands": 2,
        "refineLandmarks": true,
        "filter": {"minCutoff": 1.0, "beta": 0.007, "dCutoff": 1.0},
        "tracking": {"matchThresholdFraction": 0.08, "staleFrames": 6, "frameIntervalMs": 33},
        "camera": {"index": 0, "width": 640, "height": 360, "fps": 30, "mirror": true}
    }
"""

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .logger import get_logger
from .config import (
    DEFAULT_TRACKING_MODE,
    MEDIAPIPE_MAX_NUM_HANDS,
    MEDIAPIPE_REFINE_LANDMARKS,
    TRACKING_MODES,
    CameraSettings,
    FilterSettings,
    TrackingSettings,
)

logger = get_logger("ProfileLoader")


class ProfileLoadError(Exception):
    """Raised when profile loading or validation fails."""
    pass


@dataclass
class TrackerProfile:
    """
    Profile configuration for a tracking session.

    Attributes:
        name: Profile display name.
        mode: Tracking mode ('face', 'hands' or 'both').
        max_num_hands: Maximum hands reported by the landmark source.
        refine_landmarks: Request iris landmarks from the face model.
        filter: One Euro Filter settings.
        tracking: Track assignment settings.
        camera: Camera capture settings.
    """

    name: str = "Default"
    mode: str = DEFAULT_TRACKING_MODE
    max_num_hands: int = MEDIAPIPE_MAX_NUM_HANDS
    refine_landmarks: bool = MEDIAPIPE_REFINE_LANDMARKS
    filter: FilterSettings = field(default_factory=FilterSettings)
    tracking: TrackingSettings = field(default_factory=TrackingSettings)
    camera: CameraSettings = field(default_factory=CameraSettings)


def load_profile(profile_path: str | Path) -> TrackerProfile:
    """
    Load and validate a profile from a JSON file.

    Args:
        profile_path: Path to the JSON profile file.

    Returns:
        Validated TrackerProfile instance.

    Raises:
        ProfileLoadError: If file cannot be read or validation fails.
    """
    path = Path(profile_path)
    logger.info(f"Loading profile from: {path}")

    if not path.exists():
        raise ProfileLoadError(f"Profile file not found: {path}")

    if not path.is_file():
        raise ProfileLoadError(f"Profile path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ProfileLoadError(f"Invalid JSON in profile: {e}")
    except OSError as e:
        raise ProfileLoadError(f"Cannot read profile file: {e}")

    return parse_profile(data)


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise ProfileLoadError(f"Profile field '{key}' must be an object")
    return section


def _number(section: dict[str, Any], key: str, default: float, minimum: float, inclusive: bool = False) -> float:
    """Read a numeric field, rejecting booleans, NaN, infinities and out-of-range values."""
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProfileLoadError(f"Profile field '{key}' must be a number, got {value!r}")
    # json.load accepts NaN and Infinity
    if not math.isfinite(value):
        raise ProfileLoadError(f"Profile field '{key}' must be finite, got {value}")
    if value < minimum or (value == minimum and not inclusive):
        bound = ">=" if inclusive else ">"
        raise ProfileLoadError(f"Profile field '{key}' must be {bound} {minimum}, got {value}")
    return float(value)


def _integer(section: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProfileLoadError(f"Profile field '{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ProfileLoadError(f"Profile field '{key}' must be >= {minimum}, got {value}")
    return value


def _boolean(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ProfileLoadError(f"Profile field '{key}' must be true or false, got {value!r}")
    return value


def parse_profile(data: Any) -> TrackerProfile:
    """
    Parse and validate profile data from dictionary.

    Args:
        data: Dictionary with camelCase profile properties.

    Returns:
        Validated TrackerProfile instance. Missing fields use config defaults.

    Raises:
        ProfileLoadError: If a field has an invalid type or value.
    """
    if not isinstance(data, dict):
        raise ProfileLoadError("Profile must be a JSON object")

    mode = data.get("mode", DEFAULT_TRACKING_MODE)
    if mode not in TRACKING_MODES:
        raise ProfileLoadError(f"Invalid tracking mode: {mode!r} (expected one of {', '.join(TRACKING_MODES)})")

    defaults = FilterSettings()
    filter_data = _section(data, "filter")
    filter_settings = FilterSettings(
        min_cutoff=_number(filter_data, "minCutoff", defaults.min_cutoff, 0.0),
        beta=_number(filter_data, "beta", defaults.beta, 0.0, inclusive=True),
        d_cutoff=_number(filter_data, "dCutoff", defaults.d_cutoff, 0.0)
    )

    tracking_defaults = TrackingSettings()
    tracking_data = _section(data, "tracking")
    tracking_settings = TrackingSettings(
        match_threshold_fraction=_number(
            tracking_data, "matchThresholdFraction", tracking_defaults.match_threshold_fraction, 0.0
        ),
        frame_interval_ms=_number(
            tracking_data, "frameIntervalMs", tracking_defaults.frame_interval_ms, 0.0
        ),
        stale_frames=_integer(tracking_data, "staleFrames", tracking_defaults.stale_frames, 1)
    )

    camera_defaults = CameraSettings()
    camera_data = _section(data, "camera")
    camera_index = camera_data.get("index", camera_defaults.index)
    if isinstance(camera_index, bool) or not isinstance(camera_index, int):
        logger.warning(f"Invalid camera index {camera_index!r}, using auto-select")
        camera_index = -1
    camera_settings = CameraSettings(
        index=camera_index,
        width=_integer(camera_data, "width", camera_defaults.width, 1),
        height=_integer(camera_data, "height", camera_defaults.height, 1),
        fps=_integer(camera_data, "fps", camera_defaults.fps, 1),
        mirror=_boolean(camera_data, "mirror", camera_defaults.mirror)
    )

    profile = TrackerProfile(
        name=str(data.get("name", "Default")),
        mode=mode,
        max_num_hands=_integer(data, "maxNumHands", MEDIAPIPE_MAX_NUM_HANDS, 1),
        refine_landmarks=_boolean(data, "refineLandmarks", MEDIAPIPE_REFINE_LANDMARKS),
        filter=filter_settings,
        tracking=tracking_settings,
        camera=camera_settings
    )

    logger.info(f"Loaded profile: {profile.name} (mode={profile.mode})")
    logger.debug(f"  Filter: {profile.filter}")
    logger.debug(f"  Tracking: {profile.tracking}")
    logger.debug(f"  Camera: {profile.camera}")

    return profile


def create_default_profile() -> TrackerProfile:
    """
    Create a default profile with standard settings.

    Returns:
        TrackerProfile with default values.
    """
    return TrackerProfile()
