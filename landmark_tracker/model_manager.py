"""
MediaPipe model file manager for the Tasks API.

Downloads and caches the .task model files needed when MediaPipe only
ships the Tasks API (no legacy mp.solutions).
"""

import http.client
import time
import urllib.request
from dataclasses import dataclass
from pathlib import Path

from .logger import get_app_directory, get_logger

logger = get_logger("ModelManager")


@dataclass(frozen=True)
class ModelSpec:
    """Downloadable MediaPipe model."""
    url: str
    filename: str
    size_mb: float  # Approximate, for log output


HAND_LANDMARKER = ModelSpec(
    url="https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/latest/hand_landmarker.task",
    filename="hand_landmarker.task",
    size_mb=7.5
)
FACE_LANDMARKER = ModelSpec(
    url="https://storage.googleapis.com/mediapipe-models/face_landmarker/face_landmarker/float16/latest/face_landmarker.task",
    filename="face_landmarker.task",
    size_mb=3.6
)

# Download settings
DOWNLOAD_TIMEOUT = 120  # seconds
DOWNLOAD_CHUNK_SIZE = 8192  # bytes
MAX_RETRIES = 3
RETRY_DELAY = 2  # seconds


def get_model_cache_dir() -> Path:
    """
    Get the model cache directory.

    Returns:
        Path to model cache directory (creates if needed).
    """
    return get_app_directory("mediapipe_models", cache=True)


def ensure_model(spec: ModelSpec) -> str:
    """
    Ensure a model is available, downloading it if not cached.

    Args:
        spec: Model to fetch.

    Returns:
        Path to the model file.

    Raises:
        RuntimeError: If download fails after retries.
    """
    model_path = get_model_cache_dir() / spec.filename

    if model_path.exists():
        logger.debug(f"Using cached model: {model_path}")
        return str(model_path)

    logger.info(f"Downloading {spec.filename} (~{spec.size_mb} MB) from {spec.url}")

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            _download_model(spec.url, model_path)
            logger.info(f"Model downloaded: {model_path}")
            return str(model_path)
        except (OSError, http.client.HTTPException) as e:
            logger.warning(f"Download attempt {attempt}/{MAX_RETRIES} failed: {e}")
            if attempt < MAX_RETRIES:
                time.sleep(RETRY_DELAY * attempt)
            else:
                raise RuntimeError(
                    f"Failed to download {spec.filename} after {MAX_RETRIES} attempts. "
                    f"Please check your internet connection and try again."
                ) from e

    raise RuntimeError("Model download failed")


def ensure_hand_landmarker_model() -> str:
    """Ensure the hand landmarker model is available."""
    return ensure_model(HAND_LANDMARKER)


def ensure_face_landmarker_model() -> str:
    """Ensure the face landmarker model is available."""
    return ensure_model(FACE_LANDMARKER)


def _download_model(url: str, dest_path: Path) -> None:
    """
    Download a model file to a temp file, then move it into place.

    Args:
        url: URL to download from.
        dest_path: Destination file path.
    """
    temp_path = dest_path.with_suffix(".tmp")

    try:
        request = urllib.request.Request(
            url,
            headers={"User-Agent": "LandmarkTracker/1.0"}
        )

        with urllib.request.urlopen(request, timeout=DOWNLOAD_TIMEOUT) as response:
            total_size = int(response.headers.get("Content-Length", 0))
            downloaded = 0
            next_report = 25.0

            with open(temp_path, "wb") as f:
                while True:
                    chunk = response.read(DOWNLOAD_CHUNK_SIZE)
                    if not chunk:
                        break

                    f.write(chunk)
                    downloaded += len(chunk)

                    if total_size > 0 and downloaded / total_size * 100 >= next_report:
                        logger.debug(f"Progress: {next_report:.0f}% ({downloaded / 1024 / 1024:.1f} MB)")
                        next_report += 25.0

            if total_size > 0 and downloaded < total_size:
                raise http.client.IncompleteRead(b"", total_size - downloaded)

        temp_path.replace(dest_path)

    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise
