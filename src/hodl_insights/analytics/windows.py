"""Display-window filtering, relative change and axis scaling."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from hodl_insights.ingestor.date_range import RangeOption, display_days
from hodl_insights.ingestor.models import HolderEvent, Snapshot

E = TypeVar("E", bound=HolderEvent)


def snapshot_cutoff(option: RangeOption, now: datetime | None = None) -> datetime | None:
    """Oldest ``created_at`` shown for ``option``; None means no cutoff."""
    if option is RangeOption.ALL:
        return None
    now = now or datetime.now(UTC)
    return now - timedelta(days=display_days(option) - 1)


def event_cutoff(option: RangeOption, now: datetime | None = None) -> datetime | None:
    """Oldest holder event shown for ``option``, aligned to UTC midnight."""
    if option is RangeOption.ALL:
        return None
    now = (now or datetime.now(UTC)).astimezone(UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=display_days(option) - 1)


def filter_snapshots(
    snapshots: Sequence[Snapshot],
    option: RangeOption,
    *,
    now: datetime | None = None,
) -> list[Snapshot]:
    cutoff = snapshot_cutoff(option, now)
    if cutoff is None:
        return list(snapshots)
    return [s for s in snapshots if s.created_at >= cutoff]


def filter_events(events: Sequence[E], option: RangeOption, *, now: datetime | None = None) -> list[E]:
    cutoff = event_cutoff(option, now)
    if cutoff is None:
        return list(events)
    return [e for e in events if e.timestamp >= cutoff]


def relative_change(value: float | None, base: float | None) -> float | None:
    """Percent change of ``value`` from ``base``; None if either is unusable."""
    if value is None or base is None or base == 0:
        return None
    return (value / base - 1) * 100


def first_defined(values: Sequence[float | None]) -> float | None:
    return next((v for v in values if v is not None), None)


def relative_series(values: Sequence[float | None], base: float | None = None) -> list[float | None]:
    """Express ``values`` as percent change from ``base`` (default: first defined value)."""
    if base is None:
        base = first_defined(values)
    return [relative_change(v, base) for v in values]


def axis_domain(
    values: Sequence[float | None],
    *,
    pad_ratio: float = 0.1,
    flat_ratio: float = 0.1,
    min_pad: float = 1.0,
) -> tuple[float, float] | None:
    """Padded ``(low, high)`` bounds for a chart axis, floored at zero.

    Returns None (auto-scale) when there are no values.
    """
    defined = [v for v in values if v is not None]
    if not defined:
        return None
    low, high = min(defined), max(defined)
    if low == high:
        pad = max(low * flat_ratio, min_pad)
        return max(0.0, low - pad), low + pad
    pad = max((high - low) * pad_ratio, min_pad)
    return max(0.0, low - pad), high + pad
