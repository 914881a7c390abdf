"""Moving averages and Bollinger bands over gappy series.

Every indicator returns a list aligned index-for-index with its input.
``None`` marks "not enough data" and must be rendered as a gap; it is never
replaced by zero or by a partial-window average.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from hodl_insights.ingestor.sanitizer import coerce_number

Values = Sequence[float | None]

BOLLINGER_STD_MULTIPLIER = 2.0


def field_values(series: Sequence[Any], field: str) -> list[float | None]:
    """Pull ``field`` out of mappings or objects, coercing unusable values to None."""
    values: list[float | None] = []
    for record in series:
        if isinstance(record, Mapping):
            raw = record.get(field)
        else:
            raw = getattr(record, field, None)
        values.append(coerce_number(raw))
    return values


def moving_average_period(range_days: int) -> int:
    """Look-back for SMA/EMA given the displayed range length in days."""
    if range_days <= 3:
        return 3
    if range_days <= 7:
        return 7
    return 30


def bollinger_period(range_days: int) -> int:
    """Look-back for Bollinger bands given the displayed range length in days."""
    if range_days >= 30:
        return 20
    if range_days >= 7:
        return 10
    return max(5, range_days)


def _full_window(values: Values, index: int, period: int) -> list[float] | None:
    if period < 1 or index < period - 1:
        return None
    window = [v for v in values[index - period + 1 : index + 1] if v is not None]
    if len(window) < period:
        return None
    return window


def sma(values: Values, period: int) -> list[float | None]:
    """Simple moving average over ``[i - period + 1, i]``."""
    result: list[float | None] = []
    for i in range(len(values)):
        window = _full_window(values, i, period)
        result.append(float(np.mean(window)) if window is not None else None)
    return result


def ema(values: Values, period: int) -> list[float | None]:
    """Exponential moving average seeded by the first defined SMA.

    After the seed, an absent value carries the previous EMA forward.
    """
    if period < 1:
        return [None] * len(values)
    k = 2.0 / (period + 1)
    seeds = sma(values, period)
    result: list[float | None] = []
    previous: float | None = None
    for value, seed in zip(values, seeds):
        if previous is None:
            previous = seed
        elif value is not None:
            previous = value * k + previous * (1 - k)
        result.append(previous)
    return result


@dataclass(frozen=True)
class BollingerBands:
    middle: list[float | None]
    upper: list[float | None]
    lower: list[float | None]


def bollinger(values: Values, period: int, *, multiplier: float = BOLLINGER_STD_MULTIPLIER) -> BollingerBands:
    """Rolling mean plus/minus ``multiplier`` population standard deviations."""
    middle: list[float | None] = []
    upper: list[float | None] = []
    lower: list[float | None] = []
    for i in range(len(values)):
        window = _full_window(values, i, period)
        if window is None:
            middle.append(None)
            upper.append(None)
            lower.append(None)
            continue
        arr = np.asarray(window, dtype=float)
        mean = float(arr.mean())
        sigma = float(arr.std())
        middle.append(mean)
        upper.append(mean + multiplier * sigma)
        lower.append(mean - multiplier * sigma)
    return BollingerBands(middle=middle, upper=upper, lower=lower)


@dataclass(frozen=True)
class IndicatorSet:
    """Indicators for one field, aligned with the input series."""

    sma: list[float | None]
    ema: list[float | None]
    boll_middle: list[float | None]
    boll_upper: list[float | None]
    boll_lower: list[float | None]

    def __len__(self) -> int:
        return len(self.sma)


def compute_indicators(
    series: Sequence[Any],
    field: str,
    period: int,
    *,
    boll_period: int | None = None,
) -> IndicatorSet:
    """Compute SMA, EMA and Bollinger bands for ``field`` of an oldest-first series.

    Args:
        series: Records (objects or mappings), oldest first.
        field: Numeric field to read.
        period: Look-back for SMA and EMA.
        boll_period: Look-back for Bollinger bands; defaults to ``period``.
    """
    values = field_values(series, field)
    bands = bollinger(values, boll_period if boll_period is not None else period)
    return IndicatorSet(
        sma=sma(values, period),
        ema=ema(values, period),
        boll_middle=bands.middle,
        boll_upper=bands.upper,
        boll_lower=bands.lower,
    )
