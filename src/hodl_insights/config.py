"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
hodl-insights pipeline, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = ".env"
_ENV_FILE_ENCODING = "utf-8"

DEFAULT_BASE_URL = "https://raw.githubusercontent.com/GrabCoffee/v2ex-info-newsletter-data/master/daily"


class DataSourceSettings(BaseSettings):
    """Remote daily snapshot host settings."""

    model_config = SettingsConfigDict(env_prefix="DATA_SOURCE_", extra="ignore")

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        alias="DATA_SOURCE_BASE_URL",
        description="Base URL under which per-day JSON folders are published",
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        alias="DATA_SOURCE_REQUEST_TIMEOUT_SECONDS",
        gt=0,
        le=300,
        description="Timeout for a single category file request",
    )
    max_consecutive_missing_days: int = Field(
        default=3,
        alias="DATA_SOURCE_MAX_CONSECUTIVE_MISSING_DAYS",
        ge=1,
        le=365,
        description="Stop walking back in time after this many empty days in a row",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("DATA_SOURCE_BASE_URL must be an HTTP(S) endpoint")
        return v.rstrip("/")


class CacheSettings(BaseSettings):
    """Merged dataset cache settings."""

    model_config = SettingsConfigDict(env_prefix="CACHE_", extra="ignore")

    backend: Literal["memory", "redis"] = Field(
        default="memory",
        alias="CACHE_BACKEND",
        description="Cache store backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        alias="REDIS_URL",
        description="Redis connection string (used when CACHE_BACKEND=redis)",
    )
    ttl_ms: int = Field(
        default=15 * 60 * 1000,
        alias="CACHE_TTL_MS",
        ge=1,
        description="Validity window of a cached dataset in milliseconds",
    )
    key_prefix: str = Field(
        default="v2ex_data_cache",
        alias="CACHE_KEY_PREFIX",
        min_length=1,
        description="Prefix for range cache keys",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith("redis://"):
            raise ValueError("REDIS_URL must start with redis://")
        return v


class ChartSettings(BaseSettings):
    """Chart-bound series settings."""

    model_config = SettingsConfigDict(env_prefix="CHART_", extra="ignore")

    max_points: int = Field(
        default=150,
        alias="CHART_MAX_POINTS",
        ge=2,
        le=10_000,
        description="Point budget for price and liquidity charts",
    )
    online_users_max_points: int = Field(
        default=200,
        alias="CHART_ONLINE_USERS_MAX_POINTS",
        ge=2,
        le=10_000,
    )
    metrics_max_points: int = Field(
        default=160,
        alias="CHART_METRICS_MAX_POINTS",
        ge=2,
        le=10_000,
    )
    total_supply: float = Field(
        default=100_000_000,
        alias="CHART_TOTAL_SUPPLY",
        gt=0,
        description="Token supply used to derive market capitalisation",
    )


class Settings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding=_ENV_FILE_ENCODING,
        extra="ignore",
    )

    data_source: DataSourceSettings = Field(
        default_factory=lambda: DataSourceSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    cache: CacheSettings = Field(
        default_factory=lambda: CacheSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )
    chart: ChartSettings = Field(
        default_factory=lambda: ChartSettings(
            _env_file=_ENV_FILE,
            _env_file_encoding=_ENV_FILE_ENCODING,
        )
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted."""
        return {
            "data_source": {
                "base_url": self.data_source.base_url,
                "request_timeout_seconds": str(self.data_source.request_timeout_seconds),
                "max_consecutive_missing_days": str(self.data_source.max_consecutive_missing_days),
            },
            "cache": {
                "backend": self.cache.backend,
                "redis_url": self._redact_url(self.cache.redis_url),
                "ttl_ms": str(self.cache.ttl_ms),
                "key_prefix": self.cache.key_prefix,
            },
            "chart": {
                "max_points": str(self.chart.max_points),
                "online_users_max_points": str(self.chart.online_users_max_points),
                "metrics_max_points": str(self.chart.metrics_max_points),
                "total_supply": str(self.chart.total_supply),
            },
            "log_level": self.log_level,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
