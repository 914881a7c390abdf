"""Tests for first-half versus second-half comparison."""

import pytest

from hodl_insights.analytics.comparison import compare_periods


def rows(*values: float | None) -> list[dict[str, float | None]]:
    return [{"price": v} for v in values]


class TestComparePeriods:
    """Tests for compare_periods()."""

    def test_even_split(self) -> None:
        """Test means of the two halves and their change."""
        result = compare_periods(rows(1.0, 3.0, 4.0, 6.0), "price")

        assert result.first_half_avg == 2.0
        assert result.second_half_avg == 5.0
        assert result.percent == pytest.approx(150.0)

    def test_odd_length_puts_midpoint_in_second_half(self) -> None:
        """Test the midpoint index split."""
        result = compare_periods(rows(2.0, 4.0, 6.0), "price")

        assert result.first_half_avg == 2.0
        assert result.second_half_avg == 5.0

    def test_absent_values_are_ignored(self) -> None:
        """Test that gaps do not drag the means down."""
        result = compare_periods(rows(None, 4.0, 8.0, None), "price")

        assert result.first_half_avg == 4.0
        assert result.second_half_avg == 8.0
        assert result.percent == pytest.approx(100.0)

    def test_empty_half(self) -> None:
        """Test that a half without values leaves the percent undefined."""
        result = compare_periods(rows(None, None, 1.0, 2.0), "price")

        assert result.first_half_avg is None
        assert result.percent is None

    def test_zero_first_half(self) -> None:
        """Test that a zero first mean leaves the percent undefined."""
        assert compare_periods(rows(0.0, 0.0, 1.0, 2.0), "price").percent is None

    def test_short_series(self) -> None:
        """Test one-point and empty series."""
        single = compare_periods(rows(5.0), "price")
        assert single.first_half_avg is None
        assert single.second_half_avg == 5.0
        assert single.percent is None

        empty = compare_periods([], "price")
        assert empty.first_half_avg is None
        assert empty.second_half_avg is None
