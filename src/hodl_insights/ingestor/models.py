"""Data models for the ingestor module."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from datetime import UTC, date, datetime
from typing import Any, ClassVar, Literal

from hodl_insights.ingestor.sanitizer import coerce_int, coerce_number

SNAPSHOTS_FILE = "hodl_snapshots.json"
RANKINGS_FILE = "solana_addresses.json"
CHANGES_FILE = "solana_address_details.json"
REMOVALS_FILE = "solana_addresses_removed.json"


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _optional_str(value: Any) -> str | None:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class Snapshot:
    """One observation of community-wide counters and asset prices."""

    id: int
    created_at: datetime
    holders: float | None = None
    hodl_10k_addresses_count: float | None = None
    new_accounts_via_solana: float | None = None
    total_solana_addresses_linked: float | None = None
    sol_tip_operations_count: float | None = None
    member_tips_sent: float | None = None
    member_tips_received: float | None = None
    total_sol_tip_amount: float | None = None
    v2ex_token_tip_count: float | None = None
    total_v2ex_token_tip_amount: float | None = None
    current_online_users: float | None = None
    peak_online_users: float | None = None
    price: float | None = None
    price_change_24h: float | None = None
    btc_price: float | None = None
    sol_price: float | None = None
    pump_price: float | None = None
    main_amm_v2ex_amount: float | None = None
    main_amm_sol_amount: float | None = None

    @classmethod
    def metric_fields(cls) -> tuple[str, ...]:
        """Names of every numeric counter/price field."""
        return tuple(f.name for f in fields(cls) if f.name not in ("id", "created_at"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Snapshot | None:
        """Create a Snapshot from a JSON object; None if it has no timestamp."""
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is None:
            return None
        return cls(
            id=coerce_int(data.get("id")) or 0,
            created_at=created_at,
            **{name: coerce_number(data.get(name)) for name in cls.metric_fields()},
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "created_at": self.created_at.isoformat()}
        for name in self.metric_fields():
            data[name] = getattr(self, name)
        return data

    def get(self, name: str) -> float | None:
        """Return a metric by name."""
        value: float | None = getattr(self, name)
        return value


@dataclass(frozen=True)
class AddressRanking:
    """A leaderboard row of the current holder standings."""

    id: int
    owner_address: str
    hold_rank: int | None
    hold_amount: float | None
    hold_percentage: float | None
    rank_delta: int | None
    amount_delta: float | None
    observed_at: datetime
    v2ex_username: str | None = None
    avatar_url: str | None = None
    token_address: str | None = None
    token_account_address: str | None = None
    decimals: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressRanking | None:
        observed_at = parse_timestamp(data.get("checked_at"))
        owner = data.get("owner_address")
        if observed_at is None or not owner:
            return None
        return cls(
            id=coerce_int(data.get("id")) or 0,
            owner_address=str(owner),
            hold_rank=coerce_int(data.get("hold_rank")),
            hold_amount=coerce_number(data.get("hold_amount")),
            hold_percentage=coerce_number(data.get("hold_percentage")),
            rank_delta=coerce_int(data.get("rank_delta")),
            amount_delta=coerce_number(data.get("amount_delta")),
            observed_at=observed_at,
            v2ex_username=_optional_str(data.get("v2ex_username")),
            avatar_url=_optional_str(data.get("avatar_url")),
            token_address=_optional_str(data.get("token_address")),
            token_account_address=_optional_str(data.get("token_account_address")),
            decimals=coerce_int(data.get("decimals")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_address": self.owner_address,
            "hold_rank": self.hold_rank,
            "hold_amount": self.hold_amount,
            "hold_percentage": self.hold_percentage,
            "rank_delta": self.rank_delta,
            "amount_delta": self.amount_delta,
            "checked_at": self.observed_at.isoformat(),
            "v2ex_username": self.v2ex_username,
            "avatar_url": self.avatar_url,
            "token_address": self.token_address,
            "token_account_address": self.token_account_address,
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class AddressChangeEvent:
    """A holder's rank/amount changed; carries a native amount delta."""

    kind: ClassVar[Literal["change"]] = "change"

    id: int
    owner_address: str
    hold_rank: int | None
    hold_amount: float | None
    rank_delta: int | None
    amount_delta: float | None
    changed_at: datetime
    hold_percentage: float | None = None
    v2ex_username: str | None = None

    @property
    def timestamp(self) -> datetime:
        return self.changed_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressChangeEvent | None:
        changed_at = parse_timestamp(data.get("changed_at"))
        owner = data.get("owner_address")
        if changed_at is None or not owner:
            return None
        return cls(
            id=coerce_int(data.get("id")) or 0,
            owner_address=str(owner),
            hold_rank=coerce_int(data.get("hold_rank")),
            hold_amount=coerce_number(data.get("hold_amount")),
            rank_delta=coerce_int(data.get("rank_delta")),
            amount_delta=coerce_number(data.get("amount_delta")),
            changed_at=changed_at,
            hold_percentage=coerce_number(data.get("hold_percentage")),
            v2ex_username=_optional_str(data.get("v2ex_username")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_address": self.owner_address,
            "hold_rank": self.hold_rank,
            "hold_amount": self.hold_amount,
            "rank_delta": self.rank_delta,
            "amount_delta": self.amount_delta,
            "changed_at": self.changed_at.isoformat(),
            "hold_percentage": self.hold_percentage,
            "v2ex_username": self.v2ex_username,
        }


@dataclass(frozen=True)
class AddressRemovalEvent:
    """A holder dropped out of the tracked top-N; has no native amount delta."""

    kind: ClassVar[Literal["removed"]] = "removed"

    id: int
    owner_address: str
    hold_rank: int | None
    hold_amount: float | None
    rank_delta: int | None
    removed_at: datetime
    hold_percentage: float | None = None
    v2ex_username: str | None = None

    @property
    def timestamp(self) -> datetime:
        return self.removed_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressRemovalEvent | None:
        removed_at = parse_timestamp(data.get("removed_at"))
        owner = data.get("owner_address")
        if removed_at is None or not owner:
            return None
        return cls(
            id=coerce_int(data.get("id")) or 0,
            owner_address=str(owner),
            hold_rank=coerce_int(data.get("hold_rank")),
            hold_amount=coerce_number(data.get("hold_amount")),
            rank_delta=coerce_int(data.get("rank_delta")),
            removed_at=removed_at,
            hold_percentage=coerce_number(data.get("hold_percentage")),
            v2ex_username=_optional_str(data.get("v2ex_username")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_address": self.owner_address,
            "hold_rank": self.hold_rank,
            "hold_amount": self.hold_amount,
            "rank_delta": self.rank_delta,
            "removed_at": self.removed_at.isoformat(),
            "hold_percentage": self.hold_percentage,
            "v2ex_username": self.v2ex_username,
        }


HolderEvent = AddressChangeEvent | AddressRemovalEvent


@dataclass(frozen=True)
class DayBundle:
    """Parsed category files for a single published day."""

    day: str
    snapshots: tuple[Snapshot, ...] = ()
    rankings: tuple[AddressRanking, ...] = ()
    changes: tuple[AddressChangeEvent, ...] = ()
    removals: tuple[AddressRemovalEvent, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.snapshots or self.rankings or self.changes or self.removals)


@dataclass(frozen=True)
class PresetRange:
    """Trailing window of ``days`` calendar days ending today."""

    days: int

    def __post_init__(self) -> None:
        if self.days < 1:
            raise ValueError("days must be >= 1")


@dataclass(frozen=True)
class CustomRange:
    """Explicit window; ``end`` defaults to today."""

    start: date
    end: date | None = None


DataRange = PresetRange | CustomRange


@dataclass(frozen=True)
class Dataset:
    """Merged result of one fetch cycle.

    Instances are never mutated after the merge; every fetch cycle builds a
    new one. Snapshots and events are newest-first, the ranking is ordered
    by ``hold_rank``.
    """

    range_key: str
    fetched_at_ms: int
    snapshots: tuple[Snapshot, ...] = ()
    changes: tuple[AddressChangeEvent, ...] = ()
    removals: tuple[AddressRemovalEvent, ...] = ()
    ranking: tuple[AddressRanking, ...] = ()
    days_fetched: int = 0
    sanitized: bool = False
    last_updated: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_empty(self) -> bool:
        return not (self.snapshots or self.changes or self.removals or self.ranking)

    @property
    def record_count(self) -> int:
        return len(self.snapshots) + len(self.changes) + len(self.removals) + len(self.ranking)

    @property
    def latest_snapshot(self) -> Snapshot | None:
        return self.snapshots[0] if self.snapshots else None

    def market_cap(self, total_supply: float) -> float | None:
        """Latest price times supply, or None without a valid price."""
        latest = self.latest_snapshot
        if latest is None or not latest.price:
            return None
        return latest.price * total_supply

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "range_key": self.range_key,
            "fetched_at_ms": self.fetched_at_ms,
            "snapshots": [s.to_dict() for s in self.snapshots],
            "changes": [c.to_dict() for c in self.changes],
            "removals": [r.to_dict() for r in self.removals],
            "ranking": [r.to_dict() for r in self.ranking],
            "days_fetched": self.days_fetched,
            "sanitized": self.sanitized,
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Dataset:
        """Create from a dictionary produced by :meth:`to_dict`."""
        last_updated = parse_timestamp(data.get("last_updated")) or datetime.now(UTC)
        return cls(
            range_key=str(data["range_key"]),
            fetched_at_ms=int(data["fetched_at_ms"]),
            snapshots=_parse_all(Snapshot, data.get("snapshots")),
            changes=_parse_all(AddressChangeEvent, data.get("changes")),
            removals=_parse_all(AddressRemovalEvent, data.get("removals")),
            ranking=_parse_all(AddressRanking, data.get("ranking")),
            days_fetched=int(data.get("days_fetched", 0)),
            sanitized=bool(data.get("sanitized", False)),
            last_updated=last_updated,
        )


def _parse_all(model: Any, items: Any) -> tuple[Any, ...]:
    if not isinstance(items, list):
        return ()
    parsed = (model.from_dict(item) for item in items if isinstance(item, dict))
    return tuple(p for p in parsed if p is not None)
