"""Chart-bound series built from merged snapshots.

All builders accept snapshots in any order, sort them oldest first,
sanitize the fields they plot, drop rows with nothing to plot and resample
to the configured point budget. Rows are plain dicts keyed by field name so
the rendering layer can bind them directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from hodl_insights.analytics.indicators import (
    bollinger_period,
    compute_indicators,
    field_values,
    moving_average_period,
    sma,
)
from hodl_insights.analytics.resample import resample
from hodl_insights.analytics.windows import first_defined, relative_change
from hodl_insights.ingestor.models import Snapshot
from hodl_insights.ingestor.sanitizer import (
    PRICE_FIELDS,
    has_any,
    price_snapshots,
    sanitize_nonzero,
    sanitize_positive,
    sanitize_snapshot,
)

ChartRow = dict[str, Any]

DEFAULT_MAX_POINTS = 150
DEFAULT_ONLINE_USERS_MAX_POINTS = 200
DEFAULT_METRICS_MAX_POINTS = 160
DEFAULT_METRICS_DAYS = 30

SHORT_MA_PERIOD = 7
LONG_MA_PERIOD = 30

COMMUNITY_CHART_METRICS: tuple[str, ...] = (
    "holders",
    "hodl_10k_addresses_count",
    "total_solana_addresses_linked",
    "new_accounts_via_solana",
)
ONLINE_USER_FIELDS: tuple[str, ...] = ("current_online_users", "peak_online_users")


def chronological(snapshots: Sequence[Snapshot]) -> list[Snapshot]:
    return sorted(snapshots, key=lambda s: s.created_at)


@dataclass(frozen=True)
class PriceChart:
    absolute: list[ChartRow]
    relative: list[ChartRow]


def _with_moving_averages(rows: list[ChartRow]) -> list[ChartRow]:
    values = field_values(rows, "price")
    short = sma(values, SHORT_MA_PERIOD)
    long = sma(values, LONG_MA_PERIOD)
    return [
        {**row, "ma7_price": s, "ma30_price": lng}
        for row, s, lng in zip(rows, short, long)
    ]


def build_price_chart(snapshots: Sequence[Snapshot], *, max_points: int = DEFAULT_MAX_POINTS) -> PriceChart:
    """Four-asset price chart in absolute and relative (percent) form.

    Relative values are measured from each asset's first valid price in the
    window, taken before resampling.
    """
    rows = price_snapshots([sanitize_snapshot(s) for s in chronological(snapshots)])
    if not rows:
        return PriceChart(absolute=[], relative=[])

    bases = {name: first_defined([getattr(s, name) for s in rows]) for name in PRICE_FIELDS}
    sampled = resample(rows, max_points)

    absolute = [
        {"timestamp": s.created_at, **{name: getattr(s, name) for name in PRICE_FIELDS}}
        for s in sampled
    ]
    relative = [
        {
            "timestamp": row["timestamp"],
            **{name: relative_change(row[name], bases[name]) for name in PRICE_FIELDS},
        }
        for row in absolute
    ]
    return PriceChart(absolute=_with_moving_averages(absolute), relative=_with_moving_averages(relative))


def build_amm_chart(snapshots: Sequence[Snapshot], *, max_points: int = DEFAULT_MAX_POINTS) -> list[ChartRow]:
    """AMM pool amounts; non-positive readings are dropped."""
    rows: list[ChartRow] = []
    for s in chronological(snapshots):
        v2ex_amount = sanitize_positive(s.main_amm_v2ex_amount)
        sol_amount = sanitize_positive(s.main_amm_sol_amount)
        if v2ex_amount is None and sol_amount is None:
            continue
        rows.append({"timestamp": s.created_at, "v2ex_amount": v2ex_amount, "sol_amount": sol_amount})
    return resample(rows, max_points)


def build_community_metrics_chart(
    snapshots: Sequence[Snapshot],
    *,
    days: int = DEFAULT_METRICS_DAYS,
    now: datetime | None = None,
    max_points: int = DEFAULT_METRICS_MAX_POINTS,
    relative: bool = True,
) -> list[ChartRow]:
    """Holder and account counters over the last ``days`` days.

    Zero readings are treated as absent. In relative mode every metric is
    expressed as percent change from the first sampled row.
    """
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=days - 1)

    rows: list[ChartRow] = []
    for s in chronological(snapshots):
        if s.created_at < cutoff:
            continue
        row: ChartRow = {"timestamp": s.created_at}
        for name in COMMUNITY_CHART_METRICS:
            row[name] = sanitize_nonzero(getattr(s, name))
        if any(row[name] is not None for name in COMMUNITY_CHART_METRICS):
            rows.append(row)

    sampled = resample(rows, max_points, strict=True)
    if not relative or not sampled:
        return sampled

    base = sampled[0]
    return [
        {
            "timestamp": row["timestamp"],
            **{name: relative_change(row[name], base[name]) for name in COMMUNITY_CHART_METRICS},
        }
        for row in sampled
    ]


def build_online_users_chart(
    snapshots: Sequence[Snapshot],
    *,
    max_points: int = DEFAULT_ONLINE_USERS_MAX_POINTS,
) -> list[ChartRow]:
    rows = [
        {
            "timestamp": s.created_at,
            "current_online_users": s.current_online_users,
            "peak_online_users": s.peak_online_users,
        }
        for s in chronological(snapshots)
        if has_any(s, ONLINE_USER_FIELDS)
    ]
    return resample(rows, max_points)


def build_indicator_chart(
    snapshots: Sequence[Snapshot],
    field: str = "price",
    *,
    range_days: int,
    max_points: int = DEFAULT_MAX_POINTS,
) -> list[ChartRow]:
    """Resampled ``field`` with SMA, EMA and Bollinger bands.

    Look-back periods follow the displayed range length: see
    :func:`moving_average_period` and :func:`bollinger_period`.
    """
    rows = price_snapshots([sanitize_snapshot(s) for s in chronological(snapshots)])
    sampled = resample(rows, max_points)
    indicators = compute_indicators(
        sampled,
        field,
        moving_average_period(range_days),
        boll_period=bollinger_period(range_days),
    )
    return [
        {
            "timestamp": s.created_at,
            "value": s.get(field),
            "sma": indicators.sma[i],
            "ema": indicators.ema[i],
            "boll_middle": indicators.boll_middle[i],
            "boll_upper": indicators.boll_upper[i],
            "boll_lower": indicators.boll_lower[i],
        }
        for i, s in enumerate(sampled)
    ]

