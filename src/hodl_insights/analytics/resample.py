"""Stride-based downsampling for bounded chart render cost."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def stride_for(length: int, max_points: int, *, strict: bool = False) -> int:
    """Sampling stride for a series of ``length`` under a ``max_points`` budget.

    The default floors the ratio, which may leave up to ``2 * max_points - 1``
    points but never drops data from series that already fit. ``strict``
    rounds up instead, so the result never exceeds ``max_points``.
    """
    if max_points <= 0 or length <= 0:
        return 1
    if strict:
        return max(1, math.ceil(length / max_points))
    return max(1, length // max_points)


def resample(series: Sequence[T], max_points: int, *, strict: bool = False) -> list[T]:
    """Keep every ``stride``-th element starting at index 0.

    The first element is always kept; the last one only when it falls on
    the stride. Resampling an already resampled series with the same or a
    larger budget returns it unchanged.
    """
    stride = stride_for(len(series), max_points, strict=strict)
    return list(series[::stride])
