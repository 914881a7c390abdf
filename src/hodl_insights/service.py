"""Dashboard data service: cache-first fetch cycles and display views.

This module provides the DashboardDataService class that wires together
range resolution, the per-day fetcher, the merge walk and the expiring
cache, and the :func:`build_view` helper that turns a merged dataset into
everything the rendering layer draws for one range option.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from hodl_insights.analytics.charts import (
    ChartRow,
    PriceChart,
    build_amm_chart,
    build_community_metrics_chart,
    build_indicator_chart,
    build_online_users_chart,
    build_price_chart,
)
from hodl_insights.analytics.comparison import PeriodComparison, compare_periods
from hodl_insights.analytics.deltas import (
    HolderDelta,
    MetricChange,
    community_metric_changes,
    reconcile_holder_deltas,
    split_by_kind,
)
from hodl_insights.analytics.windows import filter_events, filter_snapshots
from hodl_insights.config import Settings, get_settings
from hodl_insights.ingestor.date_range import RangeOption, display_days, range_key, resolve
from hodl_insights.ingestor.fetcher import DailySnapshotFetcher
from hodl_insights.ingestor.merger import FetchError, MergeOrchestrator, TotalFetchFailure
from hodl_insights.ingestor.models import DataRange, Dataset, Snapshot, now_ms
from hodl_insights.ingestor.sanitizer import PRICE_FIELDS, sanitize_dataset
from hodl_insights.storage.cache import ExpiringCache, create_store

logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    """What the rendering layer should show."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class ServiceStats:
    """Statistics for the data service."""

    cycles_started: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    fetches_completed: int = 0
    fetch_failures: int = 0
    shared_fetches: int = 0
    stale_results_discarded: int = 0
    cache_write_failures: int = 0
    last_fetch_time: datetime | None = None
    last_error: str | None = None


class DashboardDataService:
    """Cache-first access to merged datasets for a data range.

    Each call to :meth:`fetch_and_merge` is tagged with a generation number.
    Only the newest generation may replace :attr:`current`, so a slow fetch
    for a range the user already switched away from cannot overwrite the
    newer result. Concurrent calls for the same range key share one fetch.

    Example:
        ```python
        async with DashboardDataService() as service:
            dataset = await service.fetch_and_merge(PresetRange(days=4))
            view = build_view(dataset, RangeOption.THREE_DAYS)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        fetcher: DailySnapshotFetcher | None = None,
        cache: ExpiringCache | None = None,
        clock: Callable[[], int] = now_ms,
        today: Callable[[], date] = date.today,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Application settings. If not provided, uses get_settings().
            fetcher: Day fetcher. Created from settings when omitted.
            cache: Dataset cache. Created from settings when omitted.
            clock: Epoch-milliseconds clock shared by merge and cache.
            today: Source of the current calendar day for range resolution.
        """
        self._settings = settings or get_settings()
        self._today = today

        self._fetcher = fetcher or DailySnapshotFetcher(
            self._settings.data_source.base_url,
            timeout_seconds=self._settings.data_source.request_timeout_seconds,
        )
        self._cache = cache or ExpiringCache(
            create_store(self._settings.cache),
            ttl_ms=self._settings.cache.ttl_ms,
            clock=clock,
        )
        self._orchestrator = MergeOrchestrator(
            self._fetcher.fetch_day,
            max_consecutive_missing=self._settings.data_source.max_consecutive_missing_days,
            clock=clock,
        )

        self._state = ServiceState.IDLE
        self._stats = ServiceStats()
        self._generation = 0
        self._current: Dataset | None = None
        self._latest_key: str | None = None
        self._latest_task: asyncio.Task[Dataset] | None = None
        self._progress: dict[str, str] = {}
        self._error: str | None = None
        self._in_flight: dict[str, asyncio.Task[Dataset]] = {}

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def stats(self) -> ServiceStats:
        return self._stats

    @property
    def current(self) -> Dataset | None:
        """Dataset of the most recently issued fetch cycle, once it resolved."""
        return self._current

    @property
    def current_day(self) -> str | None:
        """Day key being fetched for the most recently requested range, if any."""
        if self._latest_key is None:
            return None
        return self._progress.get(self._latest_key)

    @property
    def progress(self) -> dict[str, str]:
        """Day key being fetched, per in-flight range key."""
        return dict(self._progress)

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    def range_key(self, data_range: DataRange) -> str:
        return range_key(data_range, prefix=self._settings.cache.key_prefix, today=self._today())

    def resolve(self, data_range: DataRange) -> list[str]:
        return resolve(data_range, today=self._today())

    async def fetch_and_merge(self, data_range: DataRange, *, force_refresh: bool = False) -> Dataset:
        """Return the merged dataset for ``data_range``.

        A fresh cache entry is used unless ``force_refresh`` is set. Otherwise
        the day walk runs and its result is cached.

        Raises:
            TotalFetchFailure: If nothing was published anywhere in the range.
        """
        self._generation += 1
        generation = self._generation
        self._stats.cycles_started += 1
        self._state = ServiceState.LOADING
        self._error = None
        key = self.range_key(data_range)
        self._latest_key = key
        self._latest_task = None

        if not force_refresh:
            cached = await self._cache.get(key)
            if cached is not None:
                self._stats.cache_hits += 1
                logger.info("Cache hit for %s", key)
                self._publish(generation, cached)
                return cached
            self._stats.cache_misses += 1

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._run_cycle(key, data_range))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            self._stats.shared_fetches += 1
            logger.debug("Joining in-flight fetch for %s", key)
        if generation == self._generation:
            self._latest_task = task

        try:
            dataset = await asyncio.shield(task)
        except asyncio.CancelledError:
            # The shared walk keeps running; its outcome is recorded by _release.
            if generation == self._generation:
                self._state = ServiceState.IDLE
            raise
        except Exception as e:
            if generation == self._generation:
                self._state = ServiceState.ERROR
                self._error = str(e)
            raise

        self._publish(generation, dataset)
        return dataset

    async def refresh(self, data_range: DataRange) -> Dataset:
        """Refetch ``data_range`` ignoring the cache."""
        return await self.fetch_and_merge(data_range, force_refresh=True)

    async def _run_cycle(self, key: str, data_range: DataRange) -> Dataset:
        day_keys = self.resolve(data_range)
        try:
            result = await self._orchestrator.merge(
                day_keys,
                range_key=key,
                on_day=functools.partial(self._on_day, key),
            )
        finally:
            self._progress.pop(key, None)

        dataset = result.dataset
        self._stats.fetches_completed += 1
        self._stats.last_fetch_time = datetime.now(UTC)
        stored = await self._cache.put(key, dataset, fetch_timestamp_ms=dataset.fetched_at_ms)
        if not stored:
            self._stats.cache_write_failures += 1
        return dataset

    def _on_day(self, key: str, day: str) -> None:
        self._progress[key] = day

    def _release(self, key: str, task: asyncio.Task[Dataset]) -> None:
        """Drop a finished walk and record its failure, if any.

        Runs once per walk, even when every caller awaiting it was cancelled.
        """
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        self._stats.fetch_failures += 1
        self._stats.last_error = str(error)
        if isinstance(error, FetchError):
            logger.error("Unable to retrieve data for %s: %s", key, error)
        else:
            logger.error("Fetch cycle for %s failed: %s", key, error, exc_info=error)
        if task is self._latest_task:
            self._state = ServiceState.ERROR
            self._error = str(error)

    def _publish(self, generation: int, dataset: Dataset) -> None:
        if generation != self._generation:
            self._stats.stale_results_discarded += 1
            logger.warning(
                "Discarding result of stale fetch cycle %d (latest is %d) for %s",
                generation,
                self._generation,
                dataset.range_key,
            )
            return
        self._current = dataset
        self._state = ServiceState.READY

    async def close(self) -> None:
        """Cancel in-flight fetches and release network and cache resources."""
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        self._progress.clear()
        await self._fetcher.close()
        await self._cache.close()

    async def __aenter__(self) -> DashboardDataService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


@dataclass(frozen=True)
class DashboardView:
    """Everything the dashboard renders for one range option."""

    option: RangeOption
    snapshots: list[Snapshot]
    latest_snapshot: Snapshot | None
    market_cap: float | None
    metric_changes: dict[str, MetricChange]
    price_comparisons: dict[str, PeriodComparison]
    holder_changes: list[HolderDelta]
    holder_removals: list[HolderDelta]
    price_chart: PriceChart
    amm_chart: list[ChartRow]
    community_chart: list[ChartRow]
    online_users_chart: list[ChartRow]
    indicator_chart: list[ChartRow] = field(default_factory=list)


def build_view(
    dataset: Dataset,
    option: RangeOption,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> DashboardView:
    """Sanitize ``dataset``, window it to ``option`` and derive every view."""
    settings = settings or get_settings()
    chart = settings.chart
    now = now or datetime.now(UTC)
    clean = sanitize_dataset(dataset)

    snapshots = filter_snapshots(clean.snapshots, option, now=now)
    oldest_first = sorted(snapshots, key=lambda s: s.created_at)
    changes = filter_events(clean.changes, option, now=now)
    removals = filter_events(clean.removals, option, now=now)
    holder_changes, holder_removals = split_by_kind(reconcile_holder_deltas(changes, removals))
    days = display_days(option)

    return DashboardView(
        option=option,
        snapshots=snapshots,
        latest_snapshot=clean.latest_snapshot,
        market_cap=clean.market_cap(chart.total_supply),
        metric_changes=community_metric_changes(oldest_first),
        price_comparisons={name: compare_periods(oldest_first, name) for name in PRICE_FIELDS},
        holder_changes=holder_changes,
        holder_removals=holder_removals,
        price_chart=build_price_chart(snapshots, max_points=chart.max_points),
        amm_chart=build_amm_chart(snapshots, max_points=chart.max_points),
        community_chart=build_community_metrics_chart(
            clean.snapshots,
            days=min(days, 90),
            now=now,
            max_points=chart.metrics_max_points,
        ),
        online_users_chart=build_online_users_chart(snapshots, max_points=chart.online_users_max_points),
        indicator_chart=build_indicator_chart(snapshots, range_days=days, max_points=chart.max_points),
    )


__all__ = [
    "DashboardDataService",
    "DashboardView",
    "ServiceState",
    "ServiceStats",
    "TotalFetchFailure",
    "build_view",
]
