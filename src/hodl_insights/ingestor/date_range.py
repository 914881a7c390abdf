"""Range resolution: turn a DataRange into the day keys to fetch.

Day keys are ``YYYY-MM-DD`` strings ordered newest first, which is the
order the merge walk relies on for its missing-day cutoff.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum

from hodl_insights.ingestor.models import CustomRange, DataRange, PresetRange

DEFAULT_KEY_PREFIX = "v2ex_data_cache"

# Wide enough to cover the whole published history; the walk stops on its own
# once it runs past the first published day.
ALL_HISTORY_DAYS = 3650


class RangeOption(str, Enum):
    """Display windows offered to the dashboard user."""

    THREE_DAYS = "3d"
    SEVEN_DAYS = "7d"
    THIRTY_DAYS = "30d"
    NINETY_DAYS = "90d"
    ALL = "all"


_DISPLAY_DAYS = {
    RangeOption.THREE_DAYS: 3,
    RangeOption.SEVEN_DAYS: 7,
    RangeOption.THIRTY_DAYS: 30,
    RangeOption.NINETY_DAYS: 90,
    RangeOption.ALL: ALL_HISTORY_DAYS,
}

_HEAVY_OPTIONS = frozenset({RangeOption.THIRTY_DAYS, RangeOption.NINETY_DAYS, RangeOption.ALL})


def format_day(day: date) -> str:
    return day.isoformat()


def display_days(option: RangeOption) -> int:
    """Number of days shown for a display option."""
    return _DISPLAY_DAYS[option]


def fetch_days(option: RangeOption) -> int:
    """Number of days to fetch for a display option (one extra for a baseline)."""
    return display_days(option) + 1


def needs_fetch(option: RangeOption, current_fetch_days: int) -> bool:
    """True when switching to ``option`` requires a wider fetch than the current one.

    Narrowing the window reuses the already fetched dataset.
    """
    return fetch_days(option) > current_fetch_days


def is_heavy(option: RangeOption) -> bool:
    """Whether the option may trigger a long fetch worth confirming first."""
    return option in _HEAVY_OPTIONS


def preset_for(option: RangeOption) -> PresetRange:
    return PresetRange(days=fetch_days(option))


def range_key(data_range: DataRange, *, prefix: str = DEFAULT_KEY_PREFIX, today: date | None = None) -> str:
    """Build the cache key for a range.

    Preset ranges are keyed by their day count, custom ranges by their
    resolved bounds.
    """
    if isinstance(data_range, PresetRange):
        return f"{prefix}_preset_{data_range.days}"
    end = data_range.end or today or date.today()
    return f"{prefix}_custom_{format_day(data_range.start)}_{format_day(end)}"


def resolve(data_range: DataRange, *, today: date | None = None) -> list[str]:
    """Return the day keys covered by ``data_range``, newest first.

    An inverted custom range (start after end) yields an empty list.
    """
    today = today or date.today()
    if isinstance(data_range, PresetRange):
        return [format_day(today - timedelta(days=i)) for i in range(data_range.days)]

    if not isinstance(data_range, CustomRange):
        raise TypeError(f"Unsupported range type: {type(data_range).__name__}")

    end = data_range.end or today
    days: list[str] = []
    current = end
    while current >= data_range.start:
        days.append(format_day(current))
        current -= timedelta(days=1)
    return days
