"""
LandmarkTracker - smoothed, identity-tracked face and hand landmarks.

The core (One Euro filtering, filter banks and track assignment) has no
camera or model dependencies; app.py wires it to OpenCV and MediaPipe.
"""

__version__ = "1.0.0"

from .config import FilterSettings, TrackingSettings, CameraSettings
from .landmarks import Keypoint, Detection, DetectionError, TrackedDetection, LandmarkIndex
from .one_euro_filter import OneEuroFilter, OneEuroParams, OneEuroState, one_euro_step
from .filter_bank import FilterBank
from .track_assigner import FramePlan, Track, TrackAssigner, TrackState
from .pipeline import LandmarkPipeline, FrameResult, FpsCounter
from .profile_loader import TrackerProfile, ProfileLoadError, load_profile

__all__ = [
    "FilterSettings",
    "TrackingSettings",
    "CameraSettings",
    "Keypoint",
    "Detection",
    "DetectionError",
    "TrackedDetection",
    "LandmarkIndex",
    "OneEuroFilter",
    "OneEuroParams",
    "OneEuroState",
    "one_euro_step",
    "FilterBank",
    "FramePlan",
    "Track",
    "TrackAssigner",
    "TrackState",
    "LandmarkPipeline",
    "FrameResult",
    "FpsCounter",
    "TrackerProfile",
    "ProfileLoadError",
    "load_profile",
]
