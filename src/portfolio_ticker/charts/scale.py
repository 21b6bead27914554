from __future__ import annotations

import math
from typing import Any, Iterable

# (exclusive upper bound, step) pairs for flooring the axis minimum
_STEPS: tuple[tuple[float, int], ...] = (
    (10, 1),
    (50, 2),
    (100, 5),
    (1_000, 20),
    (10_000, 1_000),
    (100_000, 10_000),
)
_FALLBACK_STEP = 100_000


def scale_cutoff(value: float) -> float:
    """Pick a rounded-down y-axis floor for a series whose minimum is ``value``.

    Without a raised floor an area chart filled from zero hides most of the
    day-to-day movement. Below 0.1 the axis starts at 0 and below 1 at the
    minimum itself; above that the minimum is floored to a step that grows
    with its magnitude.
    """
    if value < 0.1:
        return 0
    if value < 1:
        return value
    for upper, step in _STEPS:
        if value < upper:
            return int(value // step) * step
    return int(value // _FALLBACK_STEP) * _FALLBACK_STEP


def min_value(values: Iterable[Any]) -> float | None:
    """Smallest positive number in ``values``; blanks, zeros and text are ignored."""
    smallest = None
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            continue
        if v <= 0 or not math.isfinite(v):
            continue
        if smallest is None or v < smallest:
            smallest = float(v)
    return smallest
