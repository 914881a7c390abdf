"""Tests for holder and metric deltas."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from hodl_insights.analytics.deltas import (
    COMMUNITY_METRIC_KEYS,
    community_metric_changes,
    compute_delta,
    metric_change,
    reconcile_holder_deltas,
    split_by_kind,
)
from hodl_insights.ingestor.models import AddressChangeEvent, AddressRemovalEvent

T0 = datetime(2026, 3, 1, tzinfo=UTC)


def change(owner: str, hours: int, hold_amount: float | None, amount_delta: float | None) -> AddressChangeEvent:
    return AddressChangeEvent(
        id=hours,
        owner_address=owner,
        hold_rank=10,
        hold_amount=hold_amount,
        rank_delta=0,
        amount_delta=amount_delta,
        changed_at=T0 + timedelta(hours=hours),
    )


def removal(owner: str, hours: int, hold_amount: float | None) -> AddressRemovalEvent:
    return AddressRemovalEvent(
        id=100 + hours,
        owner_address=owner,
        hold_rank=200,
        hold_amount=hold_amount,
        rank_delta=None,
        removed_at=T0 + timedelta(hours=hours),
    )


class TestHolderDeltas:
    """Tests for compute_delta() and friends."""

    def test_single_removal(self) -> None:
        """Test that a lone removal reads as losing the shown balance."""
        [delta] = compute_delta([removal("a", 1, 750.0)])
        assert delta.computed_delta == -750.0
        assert delta.is_removal

    def test_change_then_removal(self) -> None:
        """Test that the removal delta follows the previous balance."""
        deltas = reconcile_holder_deltas([change("a", 1, 1000.0, 50.0)], [removal("a", 2, 600.0)])

        by_kind = {d.kind: d.computed_delta for d in deltas}
        assert by_kind["change"] == 50.0
        assert by_kind["removed"] == -400.0

    def test_change_chain_overrides_native_delta(self) -> None:
        """Test that continuity replaces later native deltas."""
        deltas = compute_delta([change("a", 2, 1300.0, 999.0), change("a", 1, 1000.0, 100.0)])
        assert [d.computed_delta for d in deltas] == [300.0, 100.0]

    def test_unknown_amount_keeps_previous_balance(self) -> None:
        """Test that an event without a balance does not reset the chain."""
        deltas = compute_delta(
            [change("a", 1, 1000.0, 10.0), change("a", 2, None, 5.0), change("a", 3, 1200.0, 1.0)]
        )
        newest_first = [d.computed_delta for d in deltas]
        assert newest_first == [200.0, 5.0, 10.0]

    def test_removal_without_amount(self) -> None:
        """Test that a lone removal without a balance has no delta."""
        [delta] = compute_delta([removal("a", 1, None)])
        assert delta.computed_delta is None

    def test_addresses_are_independent(self) -> None:
        """Test grouping by owner address."""
        deltas = compute_delta([change("a", 1, 1000.0, 10.0), removal("b", 2, 500.0), change("a", 3, 900.0, 0.0)])

        assert [(d.owner_address, d.computed_delta) for d in deltas] == [
            ("a", -100.0),
            ("b", -500.0),
            ("a", 10.0),
        ]

    def test_newest_first(self) -> None:
        """Test global ordering of the result."""
        deltas = compute_delta([change("a", 1, 1.0, 1.0), change("b", 5, 1.0, 1.0), removal("c", 3, 1.0)])
        times = [d.timestamp for d in deltas]
        assert times == sorted(times, reverse=True)

    def test_split_by_kind(self) -> None:
        """Test splitting reconciled deltas into two views."""
        deltas = reconcile_holder_deltas(
            [change("a", 1, 10.0, 1.0), change("b", 3, 10.0, 1.0)],
            [removal("c", 2, 10.0)],
        )

        changes, removals = split_by_kind(deltas)

        assert [d.owner_address for d in changes] == ["b", "a"]
        assert [d.owner_address for d in removals] == ["c"]

    def test_empty(self) -> None:
        """Test that no events give no deltas."""
        assert compute_delta([]) == []


class TestMetricChange:
    """Tests for metric_change()."""

    def test_non_zero_baseline(self) -> None:
        """Test that a zero prefix is skipped when picking the baseline."""
        series = [{"holders": v} for v in (0, 0, 5, 10, 20)]

        result = metric_change(series, "holders")

        assert result is not None
        assert result.earliest == 5
        assert result.latest == 20
        assert result.delta == 15
        assert result.percent == pytest.approx(300.0)

    def test_all_zero(self) -> None:
        """Test the fallback to the first defined value."""
        result = metric_change([{"holders": 0}, {"holders": 0}], "holders")
        assert result is not None
        assert result.earliest == 0
        assert result.percent is None

    def test_absent_values_are_skipped(self) -> None:
        """Test that latest is the newest defined value."""
        result = metric_change([{"holders": 4}, {"holders": 8}, {"holders": None}], "holders")
        assert result is not None
        assert result.latest == 8
        assert result.percent == pytest.approx(100.0)

    def test_no_data(self) -> None:
        """Test that a metric without values has no change."""
        assert metric_change([{"holders": None}], "holders") is None
        assert metric_change([], "holders") is None

    def test_community_metric_changes(self, make_snapshot: Any) -> None:
        """Test that only metrics with data are reported."""
        series = [make_snapshot(0, holders=100.0), make_snapshot(1, holders=110.0, member_tips_sent=3.0)]

        changes = community_metric_changes(series)

        assert set(changes) == {"holders", "member_tips_sent"}
        assert changes["holders"].delta == 10.0
        assert changes["member_tips_sent"].delta == 0.0
        assert len(COMMUNITY_METRIC_KEYS) == 12
