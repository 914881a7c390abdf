"""Tests for the command-line entry point."""

import json
from datetime import date
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hodl_insights.cli import build_parser, build_range, main, summarize
from hodl_insights.config import Settings
from hodl_insights.ingestor.merger import TotalFetchFailure
from hodl_insights.ingestor.models import CustomRange, Dataset, PresetRange


@pytest.fixture
def dataset(make_snapshot: Any) -> Dataset:
    """Create a two-snapshot dataset."""
    return Dataset(
        range_key="v2ex_data_cache_preset_2",
        fetched_at_ms=0,
        snapshots=(make_snapshot(24, price=0.02, holders=120.0), make_snapshot(0, price=0.01, holders=100.0)),
        days_fetched=2,
    )


def patched_service(result: Any) -> MagicMock:
    service = MagicMock()
    service.range_key = MagicMock(return_value="v2ex_data_cache_preset_2")
    if isinstance(result, Exception):
        service.fetch_and_merge = AsyncMock(side_effect=result)
    else:
        service.fetch_and_merge = AsyncMock(return_value=result)
    service_cls = MagicMock()
    service_cls.return_value.__aenter__.return_value = service
    return service_cls


class TestArguments:
    """Tests for argument parsing."""

    def test_preset_range(self) -> None:
        """Test --days."""
        args = build_parser().parse_args(["fetch", "--days", "8"])
        assert build_range(args) == PresetRange(days=8)

    def test_custom_range(self) -> None:
        """Test --from/--to."""
        args = build_parser().parse_args(["fetch", "--from", "2026-03-01", "--to", "2026-03-05"])
        assert build_range(args) == CustomRange(start=date(2026, 3, 1), end=date(2026, 3, 5))

    def test_invalid_date(self) -> None:
        """Test that malformed dates are rejected."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fetch", "--from", "March"])

    def test_to_requires_from(self) -> None:
        """Test that --to alone is an error."""
        with pytest.raises(SystemExit):
            main(["fetch", "--to", "2026-03-05"])

    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a bare invocation prints help."""
        assert main([]) == 2
        assert "usage" in capsys.readouterr().out


class TestCommands:
    """Tests for the fetch and config commands."""

    def test_summarize(self, dataset: Dataset) -> None:
        """Test the merge summary."""
        summary = summarize(dataset, Settings())

        assert summary["snapshots"] == 2
        assert summary["latest"]["price"] == 0.02
        assert summary["market_cap"] == pytest.approx(2_000_000)
        assert summary["metric_changes"]["holders"]["delta"] == 20.0

    def test_config(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that config prints the redacted settings."""
        assert main(["config"]) == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed["cache"]["backend"] == "memory"

    def test_fetch_json(self, dataset: Dataset, capsys: pytest.CaptureFixture[str]) -> None:
        """Test fetch with JSON output."""
        service_cls = patched_service(dataset)
        with patch("hodl_insights.cli.DashboardDataService", service_cls):
            assert main(["fetch", "--days", "2", "--json"]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed["range_key"] == "v2ex_data_cache_preset_2"
        service = service_cls.return_value.__aenter__.return_value
        service.fetch_and_merge.assert_awaited_once_with(PresetRange(days=2), force_refresh=False)

    def test_fetch_text(self, dataset: Dataset, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the human-readable summary."""
        with patch("hodl_insights.cli.DashboardDataService", patched_service(dataset)):
            assert main(["fetch", "--refresh"]) == 0
        assert "Mkt cap:   $2.00M" in capsys.readouterr().out

    def test_fetch_failure(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test the exit code when nothing was found."""
        failure = TotalFetchFailure("v2ex_data_cache_preset_4", 3)
        with patch("hodl_insights.cli.DashboardDataService", patched_service(failure)):
            assert main(["fetch"]) == 1
        assert "No data found" in capsys.readouterr().err
