"""Exponential backoff schedule for repeated fetch failures."""

from __future__ import annotations


def backoff_delay(
    attempt: int,
    base: float = 1.0,
    factor: float = 2.0,
    ceiling: float = 30.0,
) -> float:
    """Delay in seconds before retry number ``attempt``.

    Grows as ``base * factor ** (attempt - 1)`` and never exceeds ``ceiling``.
    Pure and monotonically non-decreasing in ``attempt``.

    Args:
        attempt: 1-based retry number
        base: Delay of the first retry
        factor: Growth factor per attempt (values <= 1 keep the delay flat)
        ceiling: Upper bound on the delay

    Raises:
        ValueError: If attempt < 1
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    if base <= 0:
        return 0.0
    if base >= ceiling:
        return ceiling
    if factor <= 1:
        return base

    delay = base
    for _ in range(attempt - 1):
        delay *= factor
        if delay >= ceiling:
            return ceiling
    return delay
