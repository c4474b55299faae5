"""
Camera manager for LandmarkTracker.

Provides an OpenCV VideoCapture wrapper that delivers mirrored or plain
RGB frames together with their capture timestamps.
"""

import sys
import time
from typing import Optional

import cv2
import numpy as np

from .logger import get_logger
from .config import CameraSettings

logger = get_logger("CameraManager")


class CameraError(Exception):
    """Raised when camera operations fail."""
    pass


def _open_capture(index: int) -> cv2.VideoCapture:
    # DirectShow opens much faster than MSMF on Windows
    if sys.platform == "win32":
        capture = cv2.VideoCapture(index, cv2.CAP_DSHOW)
        if capture.isOpened():
            return capture
        logger.debug("DirectShow failed, trying default backend")
    return cv2.VideoCapture(index)


class CameraManager:
    """
    Manages webcam capture using OpenCV VideoCapture.

    Attributes:
        settings: Requested capture settings.
    """

    def __init__(self, settings: Optional[CameraSettings] = None, camera_index: Optional[int] = None):
        """
        Initialize camera manager.

        Args:
            settings: Capture settings. Uses defaults if None.
            camera_index: Overrides settings.index when given.
        """
        self.settings = settings or CameraSettings()
        self.camera_index = camera_index if camera_index is not None else max(0, self.settings.index)

        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_count = 0
        self._last_frame_ms = 0.0

    @property
    def is_open(self) -> bool:
        """Check if camera is currently open."""
        return self._capture is not None

    @property
    def frame_size(self) -> tuple[int, int]:
        """Actual (width, height) of captured frames, (0, 0) when closed."""
        if self._capture is None:
            return (0, 0)
        return (
            int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )

    @property
    def last_frame_ms(self) -> float:
        """Capture timestamp of the latest frame (perf_counter milliseconds)."""
        return self._last_frame_ms

    def open(self) -> None:
        """
        Open the camera for capture.

        Raises:
            CameraError: If camera cannot be opened.
        """
        if self._capture is not None:
            logger.warning("Camera already open, closing first")
            self.close()

        logger.info(f"Opening camera {self.camera_index}...")

        capture = _open_capture(self.camera_index)
        if not capture.isOpened():
            raise CameraError(f"Failed to open camera {self.camera_index}")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.settings.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.settings.height)
        capture.set(cv2.CAP_PROP_FPS, self.settings.fps)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)  # Minimize latency

        self._capture = capture
        self._frame_count = 0

        width, height = self.frame_size
        logger.info(f"Camera opened: {width}x{height} @ {capture.get(cv2.CAP_PROP_FPS):.1f} FPS")

        if (width, height) != (self.settings.width, self.settings.height):
            logger.warning(
                f"Requested {self.settings.width}x{self.settings.height}, got {width}x{height}"
            )

    def close(self) -> None:
        """Close the camera and release resources."""
        if self._capture is not None:
            logger.info("Closing camera")
            self._capture.release()
            self._capture = None

    def read_frame_rgb(self) -> Optional[np.ndarray]:
        """
        Read a single frame and convert to RGB.

        Returns:
            RGB image (H, W, 3), mirrored when settings.mirror is set,
            or None if the read failed.

        Raises:
            CameraError: If camera is not open.
        """
        if self._capture is None:
            raise CameraError("Camera is not open")

        ret, frame = self._capture.read()

        if not ret or frame is None:
            logger.warning("Failed to read frame from camera")
            return None

        self._frame_count += 1
        self._last_frame_ms = time.perf_counter() * 1000.0

        if self.settings.mirror:
            frame = cv2.flip(frame, 1)

        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def get_frame_count(self) -> int:
        """Get total frames captured since opening."""
        return self._frame_count

    def __enter__(self) -> "CameraManager":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def list_available_cameras(max_index: int = 10) -> list[int]:
    """
    Enumerate available camera indices.

    Args:
        max_index: Maximum index to probe.

    Returns:
        List of available camera indices.
    """
    available = []

    for i in range(max_index):
        cap = _open_capture(i)
        if cap.isOpened():
            available.append(i)
        cap.release()

    logger.debug(f"Available cameras: {available}")
    return available


def select_camera(preferred_index: int = -1) -> int:
    """
    Select the best available camera.

    Args:
        preferred_index: Preferred camera index (-1 for auto).

    Returns:
        Selected camera index.

    Raises:
        CameraError: If no camera is available.
    """
    available = list_available_cameras()

    if not available:
        raise CameraError("No cameras available")

    if preferred_index >= 0:
        if preferred_index in available:
            logger.info(f"Using preferred camera index: {preferred_index}")
            return preferred_index
        logger.warning(
            f"Preferred camera {preferred_index} not available, using {available[0]}"
        )

    selected = available[0]
    logger.info(f"Auto-selected camera index: {selected}")
    return selected
