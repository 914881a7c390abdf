"""Storage layer - expiring dataset cache."""

from hodl_insights.storage.cache import (
    CacheEntry,
    CacheError,
    CacheStore,
    CacheWriteError,
    ExpiringCache,
    InMemoryCacheStore,
    RedisCacheStore,
    create_store,
)

__all__ = [
    "CacheEntry",
    "CacheError",
    "CacheStore",
    "CacheWriteError",
    "ExpiringCache",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "create_store",
]
