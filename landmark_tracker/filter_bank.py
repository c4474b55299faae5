"""
Per-track landmark smoother.

Applies an independent One Euro Filter channel to the x and y coordinate
of every keypoint of one tracked hand or face. Depth and confidence are
passed through unchanged.
"""

from typing import Optional

from .landmarks import Detection, DetectionError, Keypoint
from .one_euro_filter import OneEuroParams, OneEuroState, one_euro_step

AXES = ("x", "y")

ChannelKey = tuple[int, str]


class FilterBank:
    """
    Smooths the keypoints of a single track.

    Holds one filter state per (keypoint_index, axis) channel. The bank is
    sized by the first detection it smooths and rejects detections of any
    other size afterwards.

    Attributes:
        params: Filter tuning shared by every channel.
    """

    def __init__(self, params: Optional[OneEuroParams] = None):
        self.params = params or OneEuroParams()
        self._states: dict[ChannelKey, OneEuroState] = {}
        self._num_keypoints: Optional[int] = None
        self._smoothed_count = 0

    @property
    def num_keypoints(self) -> Optional[int]:
        """Keypoint count this bank is sized for, None before the first sample."""
        return self._num_keypoints

    @property
    def smoothed_count(self) -> int:
        """Total number of detections smoothed."""
        return self._smoothed_count

    def channel_state(self, index: int, axis: str) -> Optional[OneEuroState]:
        """Get the filter state of one channel (None if it has seen no samples)."""
        return self._states.get((index, axis))

    def accepts(self, detection: Detection) -> bool:
        """Check whether the detection has the keypoint count of this bank."""
        return self._num_keypoints is None or len(detection) == self._num_keypoints

    def smooth(self, detection: Detection, timestamp_ms: float) -> Detection:
        """
        Apply temporal smoothing to a detection.

        Args:
            detection: Raw detection for this track.
            timestamp_ms: Frame time in milliseconds.

        Returns:
            Detection with smoothed x/y coordinates.

        Raises:
            DetectionError: If the keypoint count differs from earlier frames.
        """
        if not self.accepts(detection):
            raise DetectionError(
                f"Filter bank sized for {self._num_keypoints} keypoints, "
                f"got {len(detection)}"
            )
        self._num_keypoints = len(detection)

        smoothed = []
        for i, kp in enumerate(detection.keypoints):
            x = self._step((i, "x"), kp.x, timestamp_ms)
            y = self._step((i, "y"), kp.y, timestamp_ms)
            smoothed.append(Keypoint(x=x, y=y, z=kp.z, score=kp.score))

        self._smoothed_count += 1

        return Detection(
            keypoints=tuple(smoothed),
            side=detection.side,
            score=detection.score
        )

    def _step(self, key: ChannelKey, value: float, timestamp_ms: float) -> float:
        state, filtered = one_euro_step(self.params, self._states.get(key), value, timestamp_ms)
        self._states[key] = state
        return filtered
