"""Day-by-day merge of fetched bundles into one dataset.

The walk goes from the newest day backwards, one day at a time. Published
history is assumed contiguous, so a run of empty days means the walk has
gone past the first published day and it stops there instead of fanning out
requests into years of unpublished dates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from hodl_insights.ingestor.fetcher import FetchDay
from hodl_insights.ingestor.models import (
    AddressChangeEvent,
    AddressRanking,
    AddressRemovalEvent,
    Dataset,
    Snapshot,
    now_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONSECUTIVE_MISSING = 3

DayCallback = Callable[[str], None]


class FetchError(Exception):
    """Base exception for dataset fetch errors."""


class TotalFetchFailure(FetchError):
    """Raised when a whole range produced no usable record."""

    def __init__(self, range_key: str, days_visited: int) -> None:
        super().__init__(f"No data found for {range_key or 'range'} after {days_visited} day(s)")
        self.range_key = range_key
        self.days_visited = days_visited


@dataclass
class MergeStats:
    """Statistics for one merge walk."""

    days_visited: int = 0
    days_present: int = 0
    days_missing: int = 0
    max_consecutive_missing: int = 0
    aborted: bool = False
    stopped_at: str | None = None


@dataclass(frozen=True)
class MergeResult:
    dataset: Dataset
    stats: MergeStats


class MergeOrchestrator:
    """Walks day keys newest-first and accumulates their records.

    The accumulation buffers belong to a single ``merge`` call; the result
    is a fresh immutable :class:`Dataset` every time.
    """

    def __init__(
        self,
        fetch_day: FetchDay,
        *,
        max_consecutive_missing: int = DEFAULT_MAX_CONSECUTIVE_MISSING,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            fetch_day: Coroutine function returning a day's bundle or None.
            max_consecutive_missing: Empty days in a row that end the walk.
            clock: Epoch-milliseconds clock used to stamp the dataset.
        """
        if max_consecutive_missing < 1:
            raise ValueError("max_consecutive_missing must be >= 1")
        self._fetch_day = fetch_day
        self._max_missing = max_consecutive_missing
        self._clock = clock

    @property
    def max_consecutive_missing(self) -> int:
        return self._max_missing

    async def merge(
        self,
        day_keys: Sequence[str],
        *,
        range_key: str = "",
        on_day: DayCallback | None = None,
    ) -> MergeResult:
        """Fetch and merge ``day_keys`` (newest first).

        Days are fetched strictly one after another; the next day is not
        requested until the previous one has resolved.

        Raises:
            TotalFetchFailure: If no records were found in any category.
        """
        stats = MergeStats()
        snapshots: list[Snapshot] = []
        changes: list[AddressChangeEvent] = []
        removals: list[AddressRemovalEvent] = []
        ranking: list[AddressRanking] | None = None
        consecutive_missing = 0

        for day in day_keys:
            if on_day is not None:
                on_day(day)
            bundle = await self._fetch_day(day)
            stats.days_visited += 1

            if bundle is None:
                stats.days_missing += 1
                consecutive_missing += 1
                stats.max_consecutive_missing = max(stats.max_consecutive_missing, consecutive_missing)
                if consecutive_missing >= self._max_missing:
                    stats.aborted = True
                    stats.stopped_at = day
                    logger.info(
                        "No data for %d consecutive days (last %s), stopping walk",
                        consecutive_missing,
                        day,
                    )
                    break
                continue

            consecutive_missing = 0
            stats.days_present += 1
            if bundle.is_empty:
                logger.debug("Day %s is published but has no usable records", day)
            snapshots.extend(bundle.snapshots)
            changes.extend(bundle.changes)
            removals.extend(bundle.removals)
            # Newest-first walk: the first ranking seen is the most recent one.
            if ranking is None and bundle.rankings:
                ranking = list(bundle.rankings)

        if not (snapshots or changes or removals or ranking):
            raise TotalFetchFailure(range_key, stats.days_visited)

        snapshots.sort(key=lambda s: s.created_at, reverse=True)
        changes.sort(key=lambda c: c.changed_at, reverse=True)
        removals.sort(key=lambda r: r.removed_at, reverse=True)
        ordered_ranking = sorted(
            ranking or [],
            key=lambda r: (r.hold_rank is None, r.hold_rank or 0),
        )

        dataset = Dataset(
            range_key=range_key,
            fetched_at_ms=self._clock(),
            snapshots=tuple(snapshots),
            changes=tuple(changes),
            removals=tuple(removals),
            ranking=tuple(ordered_ranking),
            days_fetched=stats.days_visited,
        )
        logger.info(
            "Merged %s: %d snapshots, %d changes, %d removals, %d ranking rows over %d day(s)",
            range_key or "range",
            len(dataset.snapshots),
            len(dataset.changes),
            len(dataset.removals),
            len(dataset.ranking),
            stats.days_visited,
        )
        return MergeResult(dataset=dataset, stats=stats)
