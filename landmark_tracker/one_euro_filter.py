"""
One Euro Filter implementation for signal smoothing.

The filter is split into immutable parameters, an immutable per-channel
state and a pure step function, so a caller can keep one state per scalar
channel in a plain mapping. OneEuroFilter wraps the step for callers that
only need a single channel.

Reference: Casiez et al. "1€ Filter: A Simple Speed-based Low-pass
Filter for Noisy Input in Interactive Systems" (CHI 2012)
"""

import math
from dataclasses import dataclass
from typing import Optional

from .config import (
    LANDMARK_MIN_CUTOFF,
    LANDMARK_BETA,
    LANDMARK_D_CUTOFF,
    MIN_FILTER_DT_MS,
)


@dataclass(frozen=True)
class OneEuroParams:
    """
    One Euro Filter tuning.

    Attributes:
        min_cutoff: Minimum cutoff frequency (Hz). Lower = smoother at rest, more lag.
        beta: Speed coefficient. Higher = more responsive to fast movements.
        d_cutoff: Cutoff frequency (Hz) used to smooth the derivative estimate.
    """
    min_cutoff: float = LANDMARK_MIN_CUTOFF
    beta: float = LANDMARK_BETA
    d_cutoff: float = LANDMARK_D_CUTOFF


@dataclass(frozen=True)
class OneEuroState:
    """State of one scalar channel after at least one sample."""
    x_prev: float
    dx_prev: float
    t_prev_ms: float


def smoothing_factor(cutoff: float, dt: float) -> float:
    """
    Calculate exponential smoothing factor alpha from a cutoff frequency.

    Args:
        cutoff: Cutoff frequency in Hz.
        dt: Sample interval in seconds.

    Returns:
        Alpha in (0, 1].
    """
    tau = 1.0 / (2.0 * math.pi * cutoff)
    return 1.0 / (1.0 + tau / dt)


def one_euro_step(
    params: OneEuroParams,
    state: Optional[OneEuroState],
    value: float,
    timestamp_ms: float
) -> tuple[OneEuroState, float]:
    """
    Advance one channel by one sample.

    Args:
        params: Filter tuning.
        state: Channel state, or None for a channel that has seen no samples.
        value: Raw sample.
        timestamp_ms: Sample time in milliseconds.

    Returns:
        (new_state, filtered_value). The first sample passes through unchanged.
    """
    if state is None:
        return OneEuroState(x_prev=value, dx_prev=0.0, t_prev_ms=timestamp_ms), value

    dt = max(MIN_FILTER_DT_MS, timestamp_ms - state.t_prev_ms) / 1000.0

    # Estimate and smooth the derivative
    dx = (value - state.x_prev) / dt
    a_d = smoothing_factor(params.d_cutoff, dt)
    dx_hat = a_d * dx + (1.0 - a_d) * state.dx_prev

    # Adaptive cutoff based on speed
    cutoff = params.min_cutoff + params.beta * abs(dx_hat)

    a = smoothing_factor(cutoff, dt)
    x_hat = a * value + (1.0 - a) * state.x_prev

    return OneEuroState(x_prev=x_hat, dx_prev=dx_hat, t_prev_ms=timestamp_ms), x_hat


class OneEuroFilter:
    """
    One Euro Filter - adaptive low-pass filter for a single noisy channel.

    Adapts smoothing based on signal speed:
    - Slow movement = heavy smoothing (reduces jitter)
    - Fast movement = light smoothing (reduces latency)
    """

    def __init__(
        self,
        min_cutoff: float = LANDMARK_MIN_CUTOFF,
        beta: float = LANDMARK_BETA,
        d_cutoff: float = LANDMARK_D_CUTOFF
    ):
        """
        Initialize One Euro Filter.

        Args:
            min_cutoff: Minimum cutoff frequency (Hz).
            beta: Speed coefficient.
            d_cutoff: Derivative cutoff frequency (Hz).
        """
        self.params = OneEuroParams(min_cutoff=min_cutoff, beta=beta, d_cutoff=d_cutoff)
        self._state: Optional[OneEuroState] = None

    @property
    def state(self) -> Optional[OneEuroState]:
        return self._state

    def filter(self, value: float, timestamp_ms: float) -> float:
        """
        Apply One Euro Filter to a single value.

        Args:
            value: Input value.
            timestamp_ms: Timestamp in milliseconds.

        Returns:
            Filtered value.
        """
        self._state, filtered = one_euro_step(self.params, self._state, value, timestamp_ms)
        return filtered

    def reset(self) -> None:
        """Reset filter state."""
        self._state = None
