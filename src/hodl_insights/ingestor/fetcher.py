"""Per-day snapshot fetcher for the static JSON host.

Each published day lives under ``{base_url}/{YYYY-MM-DD}/`` and holds up to
four category files. A missing or broken file only empties its own category;
a day counts as missing only when all four come back empty.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx

from hodl_insights.config import DEFAULT_BASE_URL
from hodl_insights.ingestor.models import (
    CHANGES_FILE,
    RANKINGS_FILE,
    REMOVALS_FILE,
    SNAPSHOTS_FILE,
    AddressChangeEvent,
    AddressRanking,
    AddressRemovalEvent,
    DayBundle,
    Snapshot,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 15.0
USER_AGENT = "hodl-insights/0.1"

FetchDay = Callable[[str], Awaitable[DayBundle | None]]


class DailySnapshotFetcher:
    """Fetches and parses the four category files of a published day.

    The four requests of a day are issued concurrently and joined once all
    of them have settled; no single failure short-circuits the others.

    Example:
        ```python
        async with DailySnapshotFetcher() as fetcher:
            bundle = await fetcher.fetch_day("2026-01-15")
            if bundle is None:
                print("nothing published that day")
        ```
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the fetcher.

        Args:
            base_url: Root URL of the daily folders.
            client: Optional shared httpx client. When omitted the fetcher
                creates and owns one.
            timeout_seconds: Per-request timeout for an owned client.
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, day: str, filename: str) -> str:
        return f"{self._base_url}/{day}/{filename}"

    async def fetch_day(self, day: str) -> DayBundle | None:
        """Fetch all categories for ``day``.

        Returns None when every category file is absent or an empty array.
        A day whose files only hold malformed rows is still present; its
        bundle is empty but it does not count as a missing day.
        """
        raw_snapshots, raw_rankings, raw_changes, raw_removals = await asyncio.gather(
            self._fetch_category(day, SNAPSHOTS_FILE),
            self._fetch_category(day, RANKINGS_FILE),
            self._fetch_category(day, CHANGES_FILE),
            self._fetch_category(day, REMOVALS_FILE),
        )
        if not (raw_snapshots or raw_rankings or raw_changes or raw_removals):
            return None

        return DayBundle(
            day=day,
            snapshots=_parse_records(Snapshot.from_dict, raw_snapshots, day, SNAPSHOTS_FILE),
            rankings=_parse_records(AddressRanking.from_dict, raw_rankings, day, RANKINGS_FILE),
            changes=_parse_records(AddressChangeEvent.from_dict, raw_changes, day, CHANGES_FILE),
            removals=_parse_records(AddressRemovalEvent.from_dict, raw_removals, day, REMOVALS_FILE),
        )

    async def _fetch_category(self, day: str, filename: str) -> list[Any]:
        url = self.url_for(day, filename)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.debug("Failed to fetch %s: %s", url, e)
            return []

        if not response.is_success:
            logger.debug("No data at %s (HTTP %d)", url, response.status_code)
            return []

        try:
            payload = response.json()
        except ValueError as e:
            logger.debug("Invalid JSON at %s: %s", url, e)
            return []

        if not isinstance(payload, list):
            logger.debug("Unexpected payload at %s: %s", url, type(payload).__name__)
            return []
        return payload

    async def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> DailySnapshotFetcher:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _parse_records(
    parse: Callable[[dict[str, Any]], T | None],
    items: list[Any],
    day: str,
    filename: str,
) -> tuple[T, ...]:
    records: list[T] = []
    skipped = 0
    for item in items:
        record = parse(item) if isinstance(item, dict) else None
        if record is None:
            skipped += 1
            continue
        records.append(record)
    if skipped:
        logger.debug("Skipped %d malformed records in %s/%s", skipped, day, filename)
    return tuple(records)
