"""
Multi-hand (and face) identity tracking.

Maps each frame's unordered, identity-less detections onto persistent
track IDs so that filter state and any higher-level logic stay bound to
the same physical hand across frames.

Matching is greedy nearest-neighbour per side label: the globally closest
(track, detection) pair within the match threshold is committed first,
then the next closest among the remaining ones, and so on. Unmatched
detections spawn new tracks; tracks left unmatched for the staleness bound
are evicted. An evicted track is never revived, so a hand that reappears
after eviction gets a new ID.

An update runs in two steps. plan() validates and matches a frame without
touching any state, commit() applies the result. Callers driving several
assigners from one frame plan all of them before committing any.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Sequence

import numpy as np

from .config import CAMERA_WIDTH, CAMERA_HEIGHT, TrackingSettings
from .filter_bank import FilterBank
from .landmarks import Detection, DetectionError, TrackedDetection
from .logger import get_logger
from .one_euro_filter import OneEuroParams

logger = get_logger("TrackAssigner")


class TrackState(Enum):
    """Lifecycle state of a track."""
    ACTIVE = auto()   # Matched or spawned in the latest frame
    STALE = auto()    # Not matched in the latest frame, not yet evicted
    EVICTED = auto()  # Removed from the live set (terminal)


@dataclass
class Track:
    """
    Persistent identity of one physical hand or face.

    Attributes:
        track_id: Unique, never reused track ID.
        side: 'Left', 'Right' or 'Face'.
        reference_point: Last matched reference position (pixels).
        last_seen_ms: Timestamp of the last match.
        created_ms: Timestamp of the spawning detection.
        filter_bank: Smoothing filters owned by this track.
        state: Lifecycle state.
        hits: Number of frames this track was matched or spawned in.
    """
    track_id: int
    side: str
    reference_point: tuple[float, float]
    last_seen_ms: float
    created_ms: float
    filter_bank: FilterBank = field(repr=False)
    state: TrackState = TrackState.ACTIVE
    hits: int = 1

    def age_ms(self, now_ms: float) -> float:
        """Time since this track was last matched."""
        return now_ms - self.last_seen_ms


@dataclass(frozen=True)
class FramePlan:
    """
    A validated and matched frame, ready to be committed.

    Attributes:
        detections: Detections of the frame, in input order.
        reference_points: Reference point of each detection.
        matches: Detection index -> matched track ID.
        expired_ids: Tracks due for eviction at this frame's timestamp.
        timestamp_ms: Frame time in milliseconds.
        generation: Assigner generation the plan was built against.
    """
    detections: tuple[Detection, ...]
    reference_points: tuple[tuple[float, float], ...]
    matches: dict[int, int]
    expired_ids: tuple[int, ...]
    timestamp_ms: float
    generation: int


class TrackAssigner:
    """
    Assigns stable track IDs to per-frame detections and smooths them.

    Tracks live in an arena keyed by track ID; eviction is an explicit
    removal from that arena. All state is owned by the caller's frame loop.

    Attributes:
        settings: Match threshold and staleness configuration.
        filter_params: One Euro tuning for new filter banks.
    """

    def __init__(
        self,
        settings: Optional[TrackingSettings] = None,
        frame_size: tuple[int, int] = (CAMERA_WIDTH, CAMERA_HEIGHT),
        filter_params: Optional[OneEuroParams] = None
    ):
        """
        Initialize track assigner.

        Args:
            settings: Tracking settings. Uses defaults if None.
            frame_size: (width, height) of the analysed frames in pixels.
            filter_params: Filter tuning for track filter banks.
        """
        self.settings = settings or TrackingSettings()
        self.filter_params = filter_params or OneEuroParams()

        self._tracks: dict[int, Track] = {}
        self._next_id = 1
        self._evicted_ids: list[int] = []
        self._threshold = 0.0
        self._generation = 0  # Bumped by every commit and reset

        self.set_frame_size(*frame_size)

    @property
    def threshold(self) -> float:
        """Match distance threshold in pixels."""
        return self._threshold

    @property
    def tracks(self) -> list[Track]:
        """Live (unevicted) tracks in creation order."""
        return list(self._tracks.values())

    @property
    def evicted_ids(self) -> list[int]:
        """IDs of the tracks evicted during the latest update."""
        return list(self._evicted_ids)

    def get_track(self, track_id: int) -> Optional[Track]:
        """Get a live track by ID."""
        return self._tracks.get(track_id)

    def set_frame_size(self, width: int, height: int) -> None:
        """
        Rescale the match threshold for a new frame resolution.

        Args:
            width: Frame width in pixels.
            height: Frame height in pixels.
        """
        self._threshold = self.settings.match_threshold_fraction * min(width, height)
        logger.debug(f"Match threshold {self._threshold:.1f}px for {width}x{height}")

    def update(
        self,
        detections: Iterable[Detection],
        timestamp_ms: float
    ) -> list[TrackedDetection]:
        """
        Process one frame of detections.

        Args:
            detections: Detections reported for this frame.
            timestamp_ms: Frame time in milliseconds.

        Returns:
            Smoothed, ID-tagged detections for every track matched or
            spawned this frame, in input order. Stale tracks produce no output.

        Raises:
            DetectionError: If the frame is malformed. No state is changed.
        """
        return self.commit(self.plan(detections, timestamp_ms))

    def plan(self, detections: Iterable[Detection], timestamp_ms: float) -> FramePlan:
        """
        Validate and match one frame without changing any state.

        Args:
            detections: Detections reported for this frame.
            timestamp_ms: Frame time in milliseconds.

        Returns:
            FramePlan to pass to commit().

        Raises:
            DetectionError: If a detection is malformed, or a matched
                detection's keypoint count differs from its track's.
        """
        detections = tuple(detections)
        for detection in detections:
            detection.validate()

        reference_points = tuple(d.reference_point() for d in detections)
        matches = self._match(detections, reference_points, timestamp_ms)

        for det_index, track_id in matches.items():
            if not self._tracks[track_id].filter_bank.accepts(detections[det_index]):
                raise DetectionError(
                    f"Track {track_id} expects {self._tracks[track_id].filter_bank.num_keypoints} "
                    f"keypoints, got {len(detections[det_index])}"
                )

        return FramePlan(
            detections=detections,
            reference_points=reference_points,
            matches=matches,
            expired_ids=tuple(
                t.track_id for t in self._tracks.values() if self._is_expired(t, timestamp_ms)
            ),
            timestamp_ms=timestamp_ms,
            generation=self._generation
        )

    def commit(self, plan: FramePlan) -> list[TrackedDetection]:
        """
        Apply a frame plan: evict, refresh matched tracks, spawn the rest.

        Args:
            plan: Plan built by plan() on this assigner.

        Returns:
            Smoothed, ID-tagged detections, as returned by update().

        Raises:
            RuntimeError: If the assigner changed since the plan was built.
        """
        if plan.generation != self._generation:
            raise RuntimeError(
                f"Frame plan is outdated (built at generation {plan.generation}, "
                f"assigner is at {self._generation})"
            )
        self._generation += 1

        timestamp_ms = plan.timestamp_ms
        self._evict(plan.expired_ids, timestamp_ms)

        results = []
        refreshed = set()
        for i, detection in enumerate(plan.detections):
            track_id = plan.matches.get(i)
            if track_id is None:
                track = self._spawn(detection, plan.reference_points[i], timestamp_ms)
            else:
                track = self._tracks[track_id]
                track.reference_point = plan.reference_points[i]
                track.last_seen_ms = timestamp_ms
                track.state = TrackState.ACTIVE
                track.hits += 1

            refreshed.add(track.track_id)
            results.append(TrackedDetection(
                track_id=track.track_id,
                detection=track.filter_bank.smooth(detection, timestamp_ms)
            ))

        for track in self._tracks.values():
            if track.track_id not in refreshed:
                track.state = TrackState.STALE

        return results

    def reset(self) -> None:
        """Drop all tracks. IDs keep increasing and are never reused."""
        for track in self._tracks.values():
            track.state = TrackState.EVICTED
        self._tracks.clear()
        self._evicted_ids = []
        self._generation += 1
        logger.debug("TrackAssigner reset")

    def _is_expired(self, track: Track, timestamp_ms: float) -> bool:
        return track.age_ms(timestamp_ms) >= self.settings.stale_bound_ms

    def _evict(self, track_ids: tuple[int, ...], timestamp_ms: float) -> None:
        self._evicted_ids = list(track_ids)
        for track_id in self._evicted_ids:
            track = self._tracks.pop(track_id)
            track.state = TrackState.EVICTED
            logger.debug(
                f"Evicted {track.side} track #{track_id} "
                f"(unseen for {track.age_ms(timestamp_ms):.0f}ms, {track.hits} hits)"
            )

    def _match(
        self,
        detections: Sequence[Detection],
        reference_points: Sequence[tuple[float, float]],
        timestamp_ms: float
    ) -> dict[int, int]:
        """
        Greedy nearest-neighbour matching, separately per side.

        Tracks that are due for eviction take no part in matching.

        Returns:
            Mapping of detection index to matched track ID.
        """
        matches: dict[int, int] = {}

        for side in dict.fromkeys(d.side for d in detections):
            det_indices = [i for i, d in enumerate(detections) if d.side == side]
            track_ids = [
                t.track_id for t in self._tracks.values()
                if t.side == side and not self._is_expired(t, timestamp_ms)
            ]
            if not track_ids:
                continue

            track_points = np.array([self._tracks[t].reference_point for t in track_ids])
            det_points = np.array([reference_points[i] for i in det_indices])

            # Rows are tracks, columns detections
            dist = np.linalg.norm(track_points[:, None, :] - det_points[None, :, :], axis=2)

            while True:
                # argmin picks the first minimum in row-major order: lowest
                # track (creation order), then lowest detection index
                row, col = np.unravel_index(int(np.argmin(dist)), dist.shape)
                if not dist[row, col] <= self._threshold:
                    break
                matches[det_indices[col]] = track_ids[row]
                dist[row, :] = np.inf
                dist[:, col] = np.inf

        return matches

    def _spawn(
        self,
        detection: Detection,
        reference_point: tuple[float, float],
        timestamp_ms: float
    ) -> Track:
        track = Track(
            track_id=self._next_id,
            side=detection.side,
            reference_point=reference_point,
            last_seen_ms=timestamp_ms,
            created_ms=timestamp_ms,
            filter_bank=FilterBank(self.filter_params)
        )
        self._next_id += 1
        self._tracks[track.track_id] = track

        logger.debug(
            f"Spawned {track.side} track #{track.track_id} at "
            f"({reference_point[0]:.0f}, {reference_point[1]:.0f})"
        )
        return track
