"""Pytest configuration and fixtures."""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from hodl_insights.config import clear_settings_cache
from hodl_insights.ingestor.models import Snapshot

BASE_TIME = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Drop the cached settings singleton around every test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def sample_address() -> str:
    """Sample Solana owner address for testing."""
    return "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Factory for snapshots stamped ``hours`` after a fixed base time."""

    def _make(hours: float = 0, snapshot_id: int = 1, **metrics: Any) -> Snapshot:
        return Snapshot(id=snapshot_id, created_at=BASE_TIME + timedelta(hours=hours), **metrics)

    return _make


@pytest.fixture
def raw_snapshot() -> dict[str, Any]:
    """A snapshot record as published by the data host."""
    return {
        "id": 101,
        "created_at": "2026-03-10T12:00:00Z",
        "holders": 5321,
        "hodl_10k_addresses_count": 812,
        "new_accounts_via_solana": 44,
        "total_solana_addresses_linked": 2950,
        "current_online_users": 3120,
        "peak_online_users": 5100,
        "price": 0.0123,
        "price_change_24h": -2.5,
        "btc_price": 97000.5,
        "sol_price": 182.3,
        "pump_price": 0.0061,
        "main_amm_v2ex_amount": 12_500_000,
        "main_amm_sol_amount": 1530.2,
    }
