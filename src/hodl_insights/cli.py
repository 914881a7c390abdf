"""Command-line entry point: ``hodl-insights fetch`` and ``hodl-insights config``."""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import logging
import sys
from datetime import date
from typing import Any

from hodl_insights.analytics.deltas import community_metric_changes
from hodl_insights.config import Settings, get_settings
from hodl_insights.formatting import format_amount, format_number, format_percent, format_price
from hodl_insights.ingestor.merger import FetchError
from hodl_insights.ingestor.models import CustomRange, DataRange, Dataset, PresetRange
from hodl_insights.service import DashboardDataService

logger = logging.getLogger(__name__)


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be >= 1")
    return number


def build_range(args: argparse.Namespace) -> DataRange:
    if args.start is not None:
        return CustomRange(start=args.start, end=args.end)
    return PresetRange(days=args.days)


def summarize(dataset: Dataset, settings: Settings) -> dict[str, Any]:
    """JSON-friendly summary of a merged dataset."""
    latest = dataset.latest_snapshot
    changes = community_metric_changes(sorted(dataset.snapshots, key=lambda s: s.created_at))
    return {
        "range_key": dataset.range_key,
        "days_fetched": dataset.days_fetched,
        "snapshots": len(dataset.snapshots),
        "changes": len(dataset.changes),
        "removals": len(dataset.removals),
        "ranking": len(dataset.ranking),
        "latest": latest.to_dict() if latest is not None else None,
        "market_cap": dataset.market_cap(settings.chart.total_supply),
        "metric_changes": {
            key: {"latest": c.latest, "earliest": c.earliest, "delta": c.delta, "percent": c.percent}
            for key, c in changes.items()
        },
    }


def _print_summary(summary: dict[str, Any]) -> None:
    print(f"Range:     {summary['range_key']} ({summary['days_fetched']} day(s) visited)")
    print(
        f"Records:   {summary['snapshots']} snapshots, {summary['changes']} changes, "
        f"{summary['removals']} removals, {summary['ranking']} ranking rows"
    )
    latest = summary["latest"]
    if latest is not None:
        print(f"Latest:    {latest['created_at']}  price {format_price(latest['price'])}")
        print(f"Holders:   {format_amount(latest['holders'])}")
    print(f"Mkt cap:   {format_number(summary['market_cap'])}")
    for key, change in summary["metric_changes"].items():
        print(f"  {key:<32} {format_amount(change['delta']):>14}  {format_percent(change['percent'])}")


async def run_fetch(args: argparse.Namespace, settings: Settings) -> int:
    data_range = build_range(args)
    async with DashboardDataService(settings) as service:
        logger.info("Fetching %s", service.range_key(data_range))
        try:
            dataset = await service.fetch_and_merge(data_range, force_refresh=args.refresh)
        except FetchError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    summary = summarize(dataset, settings)
    if args.json:
        print(json.dumps(summary, indent=2, default=str))
    else:
        _print_summary(summary)
    return 0


def run_config(args: argparse.Namespace, settings: Settings) -> int:
    print(json.dumps(settings.redacted_summary(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="hodl-insights", description="V2EX community metrics aggregation")
    sub = ap.add_subparsers(dest="cmd")

    f = sub.add_parser("fetch", help="fetch and merge daily snapshots for a range")
    window = f.add_mutually_exclusive_group()
    window.add_argument("--days", type=_positive_int, default=4, help="trailing days ending today")
    window.add_argument("--from", dest="start", type=_parse_day, help="first day (YYYY-MM-DD)")
    f.add_argument("--to", dest="end", type=_parse_day, help="last day, defaults to today")
    f.add_argument("--refresh", action="store_true", help="ignore cached data")
    f.add_argument("--json", action="store_true", help="print the summary as JSON")
    f.set_defaults(func=run_fetch)

    c = sub.add_parser("config", help="print the effective configuration")
    c.set_defaults(func=run_config)
    return ap


def main(argv: list[str] | None = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if not getattr(args, "func", None):
        ap.print_help()
        return 2
    if args.cmd == "fetch" and args.end is not None and args.start is None:
        ap.error("--to requires --from")

    settings = get_settings()
    logging.basicConfig(
        level=settings.get_logging_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if inspect.iscoroutinefunction(args.func):
        result: int = asyncio.run(args.func(args, settings))
        return result
    result = args.func(args, settings)
    return result


if __name__ == "__main__":
    sys.exit(main())
