#!/usr/bin/env python3
"""
Face & Hand Tracker

Main entry point for LandmarkTracker. Captures webcam frames, runs the
MediaPipe face and hand models, assigns stable track IDs, smooths the
landmarks and draws them in a preview window.

Usage:
    landmark-tracker [--profile <path>] [--camera <index>] [--mode face|hands|both] [--debug]

Keys:
    1 / 2 / 3   Switch to face / hands / both tracking
    v           Toggle camera image behind the landmarks
    q / Esc     Quit

Exit Codes:
    0 - Success
    1 - Profile error
    2 - Camera error
    3 - Runtime error
"""

import argparse
import signal
import sys
from typing import Optional

import cv2

from .config import (
    EXIT_SUCCESS,
    EXIT_PROFILE_ERROR,
    EXIT_CAMERA_ERROR,
    EXIT_RUNTIME_ERROR,
    TRACKING_MODES,
    WINDOW_TITLE,
)
from .logger import setup_logging, get_logger, suppressed_warning_count
from .profile_loader import load_profile, create_default_profile, ProfileLoadError, TrackerProfile
from .camera_manager import CameraManager, CameraError, select_camera
from .landmarks import DetectionError
from .landmark_source import HandLandmarkSource, FaceLandmarkSource
from .pipeline import LandmarkPipeline, FpsCounter, FrameResult
from .renderer import Renderer

MODE_KEYS = {ord("1"): "face", ord("2"): "hands", ord("3"): "both"}


class LandmarkTrackerApp:
    """
    Main application for webcam face and hand tracking.

    Integrates camera capture, landmark detection, track assignment,
    smoothing and rendering into a real-time loop. All tracker state is
    owned by this loop.
    """

    def __init__(
        self,
        profile: TrackerProfile,
        camera_index: int,
        show_video: bool = False
    ):
        """
        Initialize tracker application.

        Args:
            profile: Loaded profile configuration.
            camera_index: Camera device index.
            show_video: Draw landmarks over the camera image.
        """
        self.profile = profile
        self.camera_index = camera_index

        self._logger = get_logger("App")
        self._running = False

        self._camera: Optional[CameraManager] = None
        self._hand_source: Optional[HandLandmarkSource] = None
        self._face_source: Optional[FaceLandmarkSource] = None
        self._pipeline: Optional[LandmarkPipeline] = None
        self._renderer = Renderer(show_video=show_video)
        self._fps_counter: Optional[FpsCounter] = None

        self._frame_size = (0, 0)
        self._frame_count = 0
        self._rejected_frames = 0
        self._last_status = ""

    def initialize(self) -> None:
        """Initialize all components."""
        self._logger.info("Initializing landmark tracker...")

        self._camera = CameraManager(self.profile.camera, camera_index=self.camera_index)
        self._camera.open()
        self._frame_size = self._camera.frame_size

        self._pipeline = LandmarkPipeline(
            mode=self.profile.mode,
            filter_settings=self.profile.filter,
            tracking_settings=self.profile.tracking,
            frame_size=self._frame_size
        )
        self._ensure_sources()

        self._logger.info(
            f"Landmark tracker initialized (match threshold "
            f"{self._pipeline.hand_tracker.threshold:.1f}px, "
            f"stale bound {self.profile.tracking.stale_bound_ms:.0f}ms)"
        )

    def _ensure_sources(self) -> None:
        """Create the landmark sources needed by the current mode."""
        if self._pipeline.tracks_hands and self._hand_source is None:
            self._hand_source = HandLandmarkSource(max_num_hands=self.profile.max_num_hands)
            self._hand_source.initialize()

        if self._pipeline.tracks_face and self._face_source is None:
            self._face_source = FaceLandmarkSource(refine_landmarks=self.profile.refine_landmarks)
            self._face_source.initialize()

    def set_mode(self, mode: str) -> None:
        """Switch tracking mode at runtime."""
        if self._pipeline is None or mode == self._pipeline.mode:
            return
        self._pipeline.set_mode(mode)
        self._ensure_sources()

    def run(self) -> None:
        """Run the main tracking loop."""
        self._running = True
        self._logger.info("Starting tracking loop...")

        try:
            while self._running:
                self._process_frame()

                key = cv2.waitKey(1) & 0xFF
                if key == ord("q") or key == 27:  # q or ESC
                    self._logger.info("Quit key pressed")
                    break
                if key in MODE_KEYS:
                    self.set_mode(MODE_KEYS[key])
                elif key == ord("v"):
                    self._renderer.show_video = not self._renderer.show_video
        except KeyboardInterrupt:
            self._logger.info("Interrupted by user")
        finally:
            self.stop()

    def _process_frame(self) -> None:
        """Process a single frame."""
        if self._camera is None or self._pipeline is None:
            return

        frame = self._camera.read_frame_rgb()
        if frame is None:
            return

        self._frame_count += 1
        timestamp_ms = self._camera.last_frame_ms

        if self._fps_counter is None:
            self._fps_counter = FpsCounter(timestamp_ms)

        height, width = frame.shape[:2]
        if (width, height) != self._frame_size:
            self._logger.info(f"Frame size changed to {width}x{height}")
            self._frame_size = (width, height)
            self._pipeline.set_frame_size(width, height)

        hands = []
        faces = []
        if self._pipeline.tracks_hands and self._hand_source:
            hands = self._hand_source.detect(frame, timestamp_ms)
        if self._pipeline.tracks_face and self._face_source:
            faces = self._face_source.detect(frame, timestamp_ms)

        result: Optional[FrameResult]
        try:
            result = self._pipeline.process(hands, faces, timestamp_ms)
        except DetectionError as e:
            # Skip drawing; the next frame supersedes this one
            self._rejected_frames += 1
            self._logger.warning(f"Rejected frame {self._frame_count}: {e}")
            result = None

        if result is not None and result.status != self._last_status:
            self._logger.debug(result.status)
            self._last_status = result.status

        fps = self._fps_counter.tick(timestamp_ms)
        cv2.imshow(WINDOW_TITLE, self._renderer.render(frame, result, fps))

    def request_stop(self) -> None:
        """Ask the loop to exit after the current frame. Cleanup happens in run()."""
        self._running = False

    def stop(self) -> None:
        """Stop the tracking loop and cleanup."""
        if not self._running and self._camera is None:
            return

        self._running = False
        self._logger.info("Stopping landmark tracker...")

        if self._hand_source:
            self._hand_source.close()
            self._hand_source = None

        if self._face_source:
            self._face_source.close()
            self._face_source = None

        if self._camera:
            self._camera.close()
            self._camera = None

        cv2.destroyAllWindows()

        self._logger.info(
            f"Tracking stopped. Processed {self._frame_count} frames "
            f"({self._rejected_frames} rejected, "
            f"{suppressed_warning_count(get_logger())} console warnings suppressed)"
        )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Face & Hand Tracker - smoothed, identity-tracked webcam landmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0  Success
  1  Profile error (file not found, invalid JSON or values)
  2  Camera error (camera not available)
  3  Runtime error (unexpected error)

Examples:
  landmark-tracker
  landmark-tracker --mode both --show-video
  landmark-tracker --profile studio.json --camera 1 --debug
"""
    )

    parser.add_argument(
        "--profile", "-p",
        default=None,
        help="Path to JSON profile file (default: built-in settings)"
    )

    parser.add_argument(
        "--camera", "-c",
        type=int,
        default=-1,
        help="Camera index (default: from profile, else auto-detect)"
    )

    parser.add_argument(
        "--mode", "-m",
        choices=TRACKING_MODES,
        default=None,
        help="Tracking mode (default: from profile)"
    )

    parser.add_argument(
        "--show-video",
        action="store_true",
        help="Draw landmarks over the camera image instead of a dark background"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to console only"
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(debug=args.debug, log_to_file=not args.no_log_file)
    logger.info("Face & Hand Tracker starting...")

    try:
        profile = load_profile(args.profile) if args.profile else create_default_profile()
    except ProfileLoadError as e:
        logger.error(f"Failed to load profile: {e}")
        return EXIT_PROFILE_ERROR

    if args.mode:
        profile.mode = args.mode

    try:
        if args.camera >= 0:
            camera_index = args.camera
        elif profile.camera.index >= 0:
            camera_index = profile.camera.index
        else:
            camera_index = select_camera()
    except CameraError as e:
        logger.error(f"Camera selection failed: {e}")
        return EXIT_CAMERA_ERROR

    app: Optional[LandmarkTrackerApp] = None

    try:
        app = LandmarkTrackerApp(
            profile=profile,
            camera_index=camera_index,
            show_video=args.show_video
        )

        def signal_handler(sig, frame):
            logger.info("Received shutdown signal")
            if app:
                app.request_stop()

        signal.signal(signal.SIGINT, signal_handler)
        # SIGTERM is not available on Windows
        if sys.platform != "win32":
            signal.signal(signal.SIGTERM, signal_handler)

        app.initialize()
        app.run()

        return EXIT_SUCCESS

    except CameraError as e:
        logger.error(f"Camera error: {e}")
        return EXIT_CAMERA_ERROR
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR
    finally:
        if app:
            app.stop()


if __name__ == "__main__":
    sys.exit(main())
