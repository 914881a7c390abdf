"""Tests for display windows, relative change and axis domains."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from hodl_insights.analytics.windows import (
    axis_domain,
    event_cutoff,
    filter_events,
    filter_snapshots,
    relative_change,
    relative_series,
    snapshot_cutoff,
)
from hodl_insights.ingestor.date_range import RangeOption
from hodl_insights.ingestor.models import AddressRemovalEvent

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=UTC)


def removal_at(when: datetime) -> AddressRemovalEvent:
    return AddressRemovalEvent(
        id=1,
        owner_address="a",
        hold_rank=None,
        hold_amount=1.0,
        rank_delta=None,
        removed_at=when,
    )


class TestCutoffs:
    """Tests for window cutoffs."""

    def test_snapshot_cutoff_is_rolling(self) -> None:
        """Test that snapshots use now minus (days - 1)."""
        assert snapshot_cutoff(RangeOption.THREE_DAYS, NOW) == NOW - timedelta(days=2)

    def test_event_cutoff_is_midnight_aligned(self) -> None:
        """Test that events use UTC midnight minus (days - 1)."""
        assert event_cutoff(RangeOption.SEVEN_DAYS, NOW) == datetime(2026, 3, 4, tzinfo=UTC)

    def test_all_has_no_cutoff(self) -> None:
        """Test that the all-history option keeps everything."""
        assert snapshot_cutoff(RangeOption.ALL, NOW) is None
        assert event_cutoff(RangeOption.ALL, NOW) is None


class TestFilters:
    """Tests for window filters."""

    def test_filter_snapshots(self, make_snapshot: Any) -> None:
        """Test that only snapshots inside the rolling window remain."""
        inside = make_snapshot(0)
        outside = make_snapshot(-24 * 10)
        now = inside.created_at + timedelta(hours=1)

        assert filter_snapshots([inside, outside], RangeOption.THREE_DAYS, now=now) == [inside]
        assert filter_snapshots([inside, outside], RangeOption.ALL, now=now) == [inside, outside]

    def test_filter_events_keeps_start_of_day(self) -> None:
        """Test that an event early on the first shown day is kept."""
        early = removal_at(datetime(2026, 3, 8, 0, 5, tzinfo=UTC))
        before = removal_at(datetime(2026, 3, 7, 23, 55, tzinfo=UTC))

        assert filter_events([early, before], RangeOption.THREE_DAYS, now=NOW) == [early]


class TestRelative:
    """Tests for relative change."""

    def test_relative_change(self) -> None:
        """Test percent change from a base."""
        assert relative_change(110.0, 100.0) == pytest.approx(10.0)
        assert relative_change(None, 100.0) is None
        assert relative_change(1.0, 0.0) is None
        assert relative_change(1.0, None) is None

    def test_relative_series_uses_first_defined(self) -> None:
        """Test that the base is the first defined value."""
        assert relative_series([None, 50.0, 75.0]) == [None, pytest.approx(0.0), pytest.approx(50.0)]


class TestAxisDomain:
    """Tests for axis_domain()."""

    def test_padding(self) -> None:
        """Test padded bounds around the value span."""
        low, high = axis_domain([100.0, 200.0]) or (0.0, 0.0)
        assert low == pytest.approx(90.0)
        assert high == pytest.approx(210.0)

    def test_floored_at_zero(self) -> None:
        """Test that the lower bound never goes negative."""
        assert axis_domain([0.5, 2.0]) == (0.0, 3.0)

    def test_flat_series(self) -> None:
        """Test padding for a flat series."""
        assert axis_domain([50.0, 50.0, None]) == (45.0, 55.0)

    def test_no_values(self) -> None:
        """Test that no data gives automatic scaling."""
        assert axis_domain([None, None]) is None
