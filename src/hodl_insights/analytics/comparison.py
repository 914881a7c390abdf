"""First-half versus second-half comparison of a displayed window."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from hodl_insights.analytics.indicators import field_values


@dataclass(frozen=True)
class PeriodComparison:
    first_half_avg: float | None
    second_half_avg: float | None
    percent: float | None


def _mean(values: Sequence[float | None]) -> float | None:
    defined = [v for v in values if v is not None]
    if not defined:
        return None
    return sum(defined) / len(defined)


def compare_periods(series: Sequence[Any], field: str) -> PeriodComparison:
    """Split an oldest-first series at its midpoint and compare the half means.

    ``percent`` is None when the first half averages zero or either half has
    no valid point.
    """
    values = field_values(series, field)
    mid = len(values) // 2
    first = _mean(values[:mid])
    second = _mean(values[mid:])
    percent: float | None = None
    if first is not None and second is not None and first != 0:
        percent = (second - first) / first * 100
    return PeriodComparison(first_half_avg=first, second_half_avg=second, percent=percent)
