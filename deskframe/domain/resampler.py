"""Temporal resampling of animations into a bounded frame budget.

Uniform-stride sampling: for ``T`` source positions and cap ``C`` the
selected indices are ``floor(i * T / C)`` for ``i`` in ``0..C-1``. Duplicate
indices are kept. The same routine samples GIF frames and marquee scroll
positions.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from deskframe.core.exceptions import ResampleBoundsError

logger = logging.getLogger(__name__)

MIN_CAP = 2
MAX_CAP = 20
MIN_FRAME_DURATION_MS = 50


def validate_cap(cap: int) -> int:
    """Return ``cap`` unchanged or raise ResampleBoundsError outside [MIN_CAP, MAX_CAP]."""
    if cap < MIN_CAP or cap > MAX_CAP:
        raise ResampleBoundsError(f"frame cap {cap} outside [{MIN_CAP}, {MAX_CAP}]")
    return cap


def clamp_cap(cap: int) -> int:
    """Clamp a requested frame cap into [MIN_CAP, MAX_CAP]."""
    try:
        return validate_cap(cap)
    except ResampleBoundsError:
        clamped = min(max(cap, MIN_CAP), MAX_CAP)
        logger.debug("Frame cap %d clamped to %d", cap, clamped)
        return clamped


def floor_duration(duration_ms: int) -> int:
    return max(MIN_FRAME_DURATION_MS, duration_ms)


def sample_indices(total: int, cap: int) -> tuple[int, ...]:
    """Select up to ``cap`` of ``total`` positions with uniform stride.

    Args:
        total: Number of source positions
        cap: Maximum number of positions to keep (>= 1)

    Returns:
        Ascending indices, ``min(total, cap)`` of them
    """
    if cap < 1:
        raise ValueError(f"cap must be positive, got {cap}")
    if total <= 0:
        return ()
    if total <= cap:
        return tuple(range(total))
    return tuple(min(i * total // cap, total - 1) for i in range(cap))


@dataclass(frozen=True)
class ResampleResult:
    """Selected source indices and the hold time of each selected frame."""

    indices: tuple[int, ...]
    durations_ms: tuple[int, ...]

    @property
    def frame_count(self) -> int:
        return len(self.indices)

    @property
    def total_duration_ms(self) -> int:
        return sum(self.durations_ms)


def resample(
    source_durations_ms: Sequence[int],
    cap: int,
    total_duration_ms: int | None = None,
) -> ResampleResult:
    """Fit ``T`` source frames into at most ``cap`` frames.

    ``T <= cap`` keeps every frame with its own duration. ``T > cap`` selects
    ``cap`` frames by uniform stride and gives each ``total // cap``. All
    durations are floored at MIN_FRAME_DURATION_MS.

    Args:
        source_durations_ms: Per-frame duration of every source frame
        cap: Requested frame cap; clamped into [MIN_CAP, MAX_CAP]
        total_duration_ms: Original total duration (defaults to the sum of the source durations)

    Returns:
        ResampleResult with ``min(T, cap)`` entries
    """
    cap = clamp_cap(cap)
    count = len(source_durations_ms)
    if total_duration_ms is None:
        total_duration_ms = sum(max(0, d) for d in source_durations_ms)

    indices = sample_indices(count, cap)
    if count <= cap:
        durations = tuple(floor_duration(d) for d in source_durations_ms)
    else:
        per_frame = floor_duration(total_duration_ms // cap)
        durations = (per_frame,) * cap
        logger.debug(
            "Resampled %d frames (%d ms) to %d frames of %d ms",
            count,
            total_duration_ms,
            cap,
            per_frame,
        )

    return ResampleResult(indices=indices, durations_ms=durations)
