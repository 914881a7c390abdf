"""Expiring dataset cache over a pluggable key-value store.

Entries are stored as a JSON envelope ``{"fetchTimestamp": ms, "data": {...}}``
and are valid while ``now - fetchTimestamp < ttl``. Stores may also expire
entries on their own (Redis does), but freshness is always decided from the
envelope timestamp so every backend behaves the same.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from hodl_insights.config import CacheSettings
from hodl_insights.ingestor.models import Dataset, now_ms

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 15 * 60 * 1000


class CacheError(Exception):
    """Base exception for cache store errors."""


class CacheWriteError(CacheError):
    """Raised when a store rejects a value (quota, connection loss, ...)."""


class CacheStore(Protocol):
    """Minimal async key-value contract used by :class:`ExpiringCache`."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, *, ttl_ms: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def close(self) -> None: ...


class InMemoryCacheStore:
    """Process-local store with an optional per-entry size quota."""

    def __init__(self, *, max_entry_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._max_entry_bytes = max_entry_bytes

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str, *, ttl_ms: int) -> None:
        size = len(value.encode("utf-8"))
        if self._max_entry_bytes is not None and size > self._max_entry_bytes:
            raise CacheWriteError(f"Entry {key} is {size} bytes, quota is {self._max_entry_bytes}")
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        """Nothing to release; entries stay readable."""

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class RedisCacheStore:
    """Redis-backed store; entries also carry a Redis-side expiry."""

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> str | None:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            raise CacheError(f"Failed to read {key}: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode()
        return str(raw)

    async def set(self, key: str, value: str, *, ttl_ms: int) -> None:
        try:
            await self._redis.psetex(key, ttl_ms, value)
        except RedisError as e:
            raise CacheWriteError(f"Failed to write {key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(key)
        except RedisError as e:
            raise CacheError(f"Failed to delete {key}: {e}") from e

    async def close(self) -> None:
        await self._redis.aclose()


@dataclass(frozen=True)
class CacheEntry:
    fetch_timestamp_ms: int
    dataset: Dataset


class ExpiringCache:
    """Range-key to dataset cache with a fixed time-to-live.

    Read failures and corrupt entries count as misses. Write failures are
    absorbed: the key is removed and ``put`` reports False, leaving the
    caller's in-memory dataset untouched.

    Example:
        ```python
        cache = ExpiringCache(InMemoryCacheStore())
        await cache.put("v2ex_data_cache_preset_3", dataset)
        fresh = await cache.get("v2ex_data_cache_preset_3")
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        ttl_ms: int = DEFAULT_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._store = store
        self._ttl_ms = ttl_ms
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def is_fresh(self, fetch_timestamp_ms: int, *, now: int | None = None) -> bool:
        """Whether an entry stamped at ``fetch_timestamp_ms`` is still valid."""
        current = self._clock() if now is None else now
        return current - fetch_timestamp_ms < self._ttl_ms

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Return the fresh entry for ``key``, or None."""
        try:
            raw = await self._store.get(key)
        except CacheError as e:
            logger.warning("Cache read error for %s: %s", key, e)
            return None
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
            if not isinstance(envelope, dict) or not isinstance(envelope.get("data"), dict):
                raise ValueError("envelope is not an object with a data object")
            timestamp = int(envelope["fetchTimestamp"])
            dataset = Dataset.from_dict(envelope["data"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry %s: %s", key, e)
            return None

        if not self.is_fresh(timestamp):
            logger.debug("Cache entry %s expired", key)
            return None
        return CacheEntry(fetch_timestamp_ms=timestamp, dataset=dataset)

    async def get(self, key: str) -> Dataset | None:
        entry = await self.get_entry(key)
        return entry.dataset if entry is not None else None

    async def put(self, key: str, dataset: Dataset, *, fetch_timestamp_ms: int | None = None) -> bool:
        """Store ``dataset`` under ``key``.

        Returns:
            True if stored, False if the store rejected the write.
        """
        timestamp = fetch_timestamp_ms if fetch_timestamp_ms is not None else self._clock()
        payload = json.dumps({"fetchTimestamp": timestamp, "data": dataset.to_dict()})
        try:
            await self._store.set(key, payload, ttl_ms=self._ttl_ms)
        except CacheWriteError as e:
            logger.warning("Cache skipped for %s: %s", key, e)
            await self.invalidate(key)
            return False
        return True

    async def close(self) -> None:
        await self._store.close()

    async def invalidate(self, key: str) -> None:
        """Remove ``key``; failures are logged and ignored."""
        try:
            await self._store.delete(key)
        except CacheError as e:
            logger.warning("Failed to remove cache entry %s: %s", key, e)


def create_store(settings: CacheSettings) -> CacheStore:
    """Build the store selected by ``CACHE_BACKEND``."""
    if settings.backend == "redis":
        return RedisCacheStore(Redis.from_url(settings.redis_url))
    return InMemoryCacheStore()
