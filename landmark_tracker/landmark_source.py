"""
Hand and face landmark sources using MediaPipe.

Wraps MediaPipe Hands and Face Mesh and converts their normalized output
to pixel-space Detections for the track assigners.
Supports both the Solutions API (mp.solutions) and the Tasks API for
MediaPipe builds that no longer ship Solutions.
"""

import numpy as np

from .logger import get_logger

logger = get_logger("LandmarkSource")

# Detect which MediaPipe API is available
try:
    import mediapipe as mp

    if hasattr(mp, "solutions") and hasattr(mp.solutions, "hands"):
        USING_TASKS_API = False
    elif hasattr(mp, "tasks"):
        USING_TASKS_API = True
    else:
        raise ImportError(
            "MediaPipe installation incomplete. "
            "Neither Solutions API nor Tasks API found."
        )
except ImportError as e:
    raise ImportError(
        "MediaPipe is required. Install with: pip install mediapipe"
    ) from e

from .config import (
    MEDIAPIPE_MODEL_COMPLEXITY,
    MEDIAPIPE_MAX_NUM_HANDS,
    MEDIAPIPE_MAX_NUM_FACES,
    MEDIAPIPE_REFINE_LANDMARKS,
    MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
    MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
)
from .landmarks import (
    FACE_SIDE,
    NUM_FACE_LANDMARKS,
    Detection,
    detection_from_normalized,
)
from .model_manager import ensure_face_landmarker_model, ensure_hand_landmarker_model


class _MediaPipeSource:
    """Shared lifecycle for MediaPipe-backed landmark sources."""

    name = "landmarks"

    def __init__(self, use_tasks_api: bool = USING_TASKS_API):
        self._model = None
        self._using_tasks_api = use_tasks_api
        self._last_timestamp_ms = -1
        self._frame_count = 0

    @property
    def is_initialized(self) -> bool:
        return self._model is not None

    def initialize(self) -> None:
        """Load the MediaPipe model."""
        if self._model is not None:
            return

        api_type = "Tasks API" if self._using_tasks_api else "Solutions API"
        logger.info(f"Initializing MediaPipe {self.name} ({api_type})...")

        if self._using_tasks_api:
            self._model = self._create_tasks_model()
        else:
            self._model = self._create_solutions_model()

        logger.info(f"MediaPipe {self.name} initialized ({api_type})")

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._model is not None:
            self._model.close()
            self._model = None
            logger.debug(f"MediaPipe {self.name} closed")

    def detect(self, rgb_image: np.ndarray, timestamp_ms: float) -> list[Detection]:
        """
        Detect landmarks in an RGB image.

        Args:
            rgb_image: RGB image as numpy array (H, W, 3).
            timestamp_ms: Capture time of the image in milliseconds.

        Returns:
            Pixel-space detections, possibly empty.
        """
        if self._model is None:
            self.initialize()

        self._frame_count += 1
        height, width = rgb_image.shape[:2]

        if self._using_tasks_api:
            if not rgb_image.flags["C_CONTIGUOUS"]:
                rgb_image = np.ascontiguousarray(rgb_image)
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
            return self._detect_tasks(mp_image, self._video_timestamp(timestamp_ms), width, height)

        return self._detect_solutions(rgb_image, width, height)

    def _video_timestamp(self, timestamp_ms: float) -> int:
        # VIDEO running mode requires strictly increasing integer timestamps
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts
        return ts

    def _create_solutions_model(self):
        raise NotImplementedError

    def _create_tasks_model(self):
        raise NotImplementedError

    def _detect_solutions(self, rgb_image: np.ndarray, width: int, height: int) -> list[Detection]:
        raise NotImplementedError

    def _detect_tasks(self, mp_image, timestamp_ms: int, width: int, height: int) -> list[Detection]:
        raise NotImplementedError

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class HandLandmarkSource(_MediaPipeSource):
    """
    Multi-hand landmark source using MediaPipe Hands.

    Each detection carries the handedness label reported by the model.
    """

    name = "Hands"

    def __init__(
        self,
        max_num_hands: int = MEDIAPIPE_MAX_NUM_HANDS,
        model_complexity: int = MEDIAPIPE_MODEL_COMPLEXITY,
        min_detection_confidence: float = MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
        use_tasks_api: bool = USING_TASKS_API
    ):
        """
        Initialize hand landmark source.

        Args:
            max_num_hands: Maximum number of hands to detect.
            model_complexity: Model complexity (0=Lite, 1=Full), Solutions API only.
            min_detection_confidence: Minimum detection confidence.
            min_tracking_confidence: Minimum tracking confidence.
            use_tasks_api: Force the Tasks API.
        """
        super().__init__(use_tasks_api)
        self.max_num_hands = max_num_hands
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

    def _create_solutions_model(self):
        return mp.solutions.hands.Hands(
            static_image_mode=False,
            model_complexity=self.model_complexity,
            max_num_hands=self.max_num_hands,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )

    def _create_tasks_model(self):
        from mediapipe.tasks import python as mp_python
        from mediapipe.tasks.python import vision as mp_vision

        options = mp_vision.HandLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=ensure_hand_landmarker_model()),
            running_mode=mp_vision.RunningMode.VIDEO,
            num_hands=self.max_num_hands,
            min_hand_detection_confidence=self.min_detection_confidence,
            min_hand_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        return mp_vision.HandLandmarker.create_from_options(options)

    def _detect_solutions(self, rgb_image: np.ndarray, width: int, height: int) -> list[Detection]:
        results = self._model.process(rgb_image)

        if not results.multi_hand_landmarks:
            return []

        detections = []
        for i, hand_landmarks in enumerate(results.multi_hand_landmarks):
            side, score = "Right", 1.0
            if results.multi_handedness and i < len(results.multi_handedness):
                classification = results.multi_handedness[i].classification[0]
                side, score = classification.label, classification.score

            detections.append(detection_from_normalized(
                hand_landmarks.landmark, side, width, height, score
            ))

        return detections

    def _detect_tasks(self, mp_image, timestamp_ms: int, width: int, height: int) -> list[Detection]:
        result = self._model.detect_for_video(mp_image, timestamp_ms)

        if not result.hand_landmarks:
            return []

        detections = []
        for i, hand_landmarks in enumerate(result.hand_landmarks):
            side, score = "Right", 1.0
            if result.handedness and i < len(result.handedness):
                category = result.handedness[i][0]
                side, score = category.category_name, category.score

            detections.append(detection_from_normalized(
                hand_landmarks, side, width, height, score
            ))

        return detections


class FaceLandmarkSource(_MediaPipeSource):
    """
    Face mesh landmark source using MediaPipe Face Mesh.

    Reports 468 landmarks per face, or 478 with iris refinement.
    """

    name = "FaceMesh"

    def __init__(
        self,
        max_num_faces: int = MEDIAPIPE_MAX_NUM_FACES,
        refine_landmarks: bool = MEDIAPIPE_REFINE_LANDMARKS,
        min_detection_confidence: float = MEDIAPIPE_MIN_DETECTION_CONFIDENCE,
        min_tracking_confidence: float = MEDIAPIPE_MIN_TRACKING_CONFIDENCE,
        use_tasks_api: bool = USING_TASKS_API
    ):
        """
        Initialize face landmark source.

        Args:
            max_num_faces: Maximum number of faces to detect.
            refine_landmarks: Add iris landmarks around the eyes.
            min_detection_confidence: Minimum detection confidence.
            min_tracking_confidence: Minimum tracking confidence.
            use_tasks_api: Force the Tasks API.
        """
        super().__init__(use_tasks_api)
        self.max_num_faces = max_num_faces
        self.refine_landmarks = refine_landmarks
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

    def _create_solutions_model(self):
        return mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=self.max_num_faces,
            refine_landmarks=self.refine_landmarks,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )

    def _create_tasks_model(self):
        from mediapipe.tasks import python as mp_python
        from mediapipe.tasks.python import vision as mp_vision

        options = mp_vision.FaceLandmarkerOptions(
            base_options=mp_python.BaseOptions(model_asset_path=ensure_face_landmarker_model()),
            running_mode=mp_vision.RunningMode.VIDEO,
            num_faces=self.max_num_faces,
            min_face_detection_confidence=self.min_detection_confidence,
            min_face_presence_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        return mp_vision.FaceLandmarker.create_from_options(options)

    def _detect_solutions(self, rgb_image: np.ndarray, width: int, height: int) -> list[Detection]:
        results = self._model.process(rgb_image)

        if not results.multi_face_landmarks:
            return []

        return [
            detection_from_normalized(face.landmark, FACE_SIDE, width, height)
            for face in results.multi_face_landmarks
        ]

    def _detect_tasks(self, mp_image, timestamp_ms: int, width: int, height: int) -> list[Detection]:
        result = self._model.detect_for_video(mp_image, timestamp_ms)

        if not result.face_landmarks:
            return []

        # The Tasks model always includes the iris points
        limit = None if self.refine_landmarks else NUM_FACE_LANDMARKS
        return [
            detection_from_normalized(face[:limit], FACE_SIDE, width, height)
            for face in result.face_landmarks
        ]
