"""Numeric field normalization for fetched records.

Raw JSON from the snapshot host is loosely typed: counters can be missing,
``null``, strings, or zero placeholders written before a metric existed.
Everything downstream (indicators, deltas, comparisons) treats ``None`` as
"no observation", so the helpers here turn anything unusable into ``None``
instead of ``0``.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from hodl_insights.ingestor.models import Dataset, Snapshot

PRICE_FIELDS: tuple[str, ...] = ("price", "pump_price", "sol_price", "btc_price")


def coerce_number(value: Any) -> float | None:
    """Coerce a raw JSON value to a finite float, or None when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(result):
        return None
    return result


def coerce_int(value: Any) -> int | None:
    """Coerce a raw JSON value to an int, or None when unusable."""
    number = coerce_number(value)
    if number is None:
        return None
    return int(number)


def sanitize_price(value: Any) -> float | None:
    """Keep a price only when it is a finite number strictly above zero."""
    number = coerce_number(value)
    if number is None or number <= 0:
        return None
    return number


# AMM pool amounts follow the same rule as prices.
sanitize_positive = sanitize_price


def sanitize_nonzero(value: Any) -> float | None:
    """Treat zero as absent (metrics that read 0 before they were tracked)."""
    number = coerce_number(value)
    if number is None or number == 0:
        return None
    return number


def has_any(record: Any, fields: Iterable[str]) -> bool:
    """Return True if at least one of ``fields`` is present on ``record``."""
    return any(getattr(record, name) is not None for name in fields)


def sanitize_snapshot(snapshot: Snapshot) -> Snapshot:
    """Return a copy of ``snapshot`` with invalid price readings removed."""
    return dataclasses.replace(
        snapshot,
        **{name: sanitize_price(getattr(snapshot, name)) for name in PRICE_FIELDS},
    )


def sanitize_dataset(dataset: Dataset) -> Dataset:
    """Sanitize every snapshot of a merged dataset.

    All snapshots are retained, including those left without any price, so
    consumers of non-price counters still see them. Use
    :func:`price_snapshots` to get the chart-bound subset.
    """
    if dataset.sanitized:
        return dataset
    return dataclasses.replace(
        dataset,
        snapshots=tuple(sanitize_snapshot(s) for s in dataset.snapshots),
        sanitized=True,
    )


def price_snapshots(snapshots: Sequence[Snapshot]) -> list[Snapshot]:
    """Drop snapshots whose tracked price fields are all absent."""
    return [s for s in snapshots if has_any(s, PRICE_FIELDS)]
