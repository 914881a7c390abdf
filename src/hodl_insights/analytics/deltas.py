"""Signed deltas for holder events and community metrics.

Holder feeds come in two shapes: change events carry a native
``amount_delta``, removal events do not. :func:`reconcile_holder_deltas`
merges both into one chronology per address and derives a delta for every
event from the previous observed balance.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from hodl_insights.analytics.indicators import field_values
from hodl_insights.ingestor.models import AddressChangeEvent, AddressRemovalEvent, HolderEvent

COMMUNITY_METRIC_KEYS: tuple[str, ...] = (
    "holders",
    "hodl_10k_addresses_count",
    "new_accounts_via_solana",
    "total_solana_addresses_linked",
    "main_amm_v2ex_amount",
    "main_amm_sol_amount",
    "sol_tip_operations_count",
    "member_tips_sent",
    "member_tips_received",
    "total_sol_tip_amount",
    "v2ex_token_tip_count",
    "total_v2ex_token_tip_amount",
)


@dataclass(frozen=True)
class HolderDelta:
    """A holder event paired with its reconciled signed amount delta."""

    event: HolderEvent
    computed_delta: float | None

    @property
    def kind(self) -> str:
        return self.event.kind

    @property
    def owner_address(self) -> str:
        return self.event.owner_address

    @property
    def timestamp(self) -> datetime:
        return self.event.timestamp

    @property
    def hold_amount(self) -> float | None:
        return self.event.hold_amount

    @property
    def hold_rank(self) -> int | None:
        return self.event.hold_rank

    @property
    def is_removal(self) -> bool:
        return isinstance(self.event, AddressRemovalEvent)


def _seed_delta(event: HolderEvent) -> float | None:
    if isinstance(event, AddressChangeEvent):
        return event.amount_delta
    if event.hold_amount is not None:
        # No earlier balance in view: read a removal as the balance going to zero.
        return -event.hold_amount
    return None


def compute_delta(events: Iterable[HolderEvent]) -> list[HolderDelta]:
    """Attach a reconciled delta to every event; result is newest first.

    For each address, events are walked oldest first. Once a balance has
    been seen, the delta is the difference to it; before that, change events
    use their native delta and removal events use ``-hold_amount``.
    """
    union = list(events)
    by_address: dict[str, list[int]] = defaultdict(list)
    for idx, event in enumerate(union):
        by_address[event.owner_address].append(idx)

    deltas: list[float | None] = [None] * len(union)
    for indices in by_address.values():
        chronological = sorted(indices, key=lambda i: union[i].timestamp)
        previous: float | None = None
        for idx in chronological:
            event = union[idx]
            amount = event.hold_amount
            if previous is not None and amount is not None:
                deltas[idx] = amount - previous
            else:
                deltas[idx] = _seed_delta(event)
            if amount is not None:
                previous = amount

    order = sorted(range(len(union)), key=lambda i: union[i].timestamp, reverse=True)
    return [HolderDelta(event=union[i], computed_delta=deltas[i]) for i in order]


def reconcile_holder_deltas(
    changes: Sequence[AddressChangeEvent],
    removals: Sequence[AddressRemovalEvent],
) -> list[HolderDelta]:
    """Union the change and removal feeds and reconcile their deltas."""
    return compute_delta([*changes, *removals])


def split_by_kind(deltas: Sequence[HolderDelta]) -> tuple[list[HolderDelta], list[HolderDelta]]:
    """Split reconciled deltas into (changes, removals), preserving order."""
    changes = [d for d in deltas if not d.is_removal]
    removals = [d for d in deltas if d.is_removal]
    return changes, removals


@dataclass(frozen=True)
class MetricChange:
    """Change of a scalar metric across a displayed window."""

    latest: float
    earliest: float
    delta: float
    percent: float | None


def metric_change(series: Sequence[Any], field: str) -> MetricChange | None:
    """Latest minus earliest value of ``field`` over an oldest-first series.

    The baseline is the earliest non-zero value, so a zero prefix written
    before a metric existed is not taken as a real starting point. Falls
    back to the earliest defined value when every value is zero.
    """
    values = field_values(series, field)
    defined = [v for v in values if v is not None]
    if not defined:
        return None
    latest = defined[-1]
    earliest = next((v for v in defined if v != 0), defined[0])
    delta = latest - earliest
    percent = delta / earliest * 100 if earliest != 0 else None
    return MetricChange(latest=latest, earliest=earliest, delta=delta, percent=percent)


def community_metric_changes(
    series: Sequence[Any],
    keys: Sequence[str] = COMMUNITY_METRIC_KEYS,
) -> dict[str, MetricChange]:
    """:func:`metric_change` for each community metric that has data."""
    changes: dict[str, MetricChange] = {}
    for key in keys:
        change = metric_change(series, key)
        if change is not None:
            changes[key] = change
    return changes
