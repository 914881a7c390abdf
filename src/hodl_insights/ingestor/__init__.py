"""Data ingestion layer - daily snapshot fetching and merging."""

from hodl_insights.ingestor.date_range import RangeOption, range_key, resolve
from hodl_insights.ingestor.fetcher import DailySnapshotFetcher
from hodl_insights.ingestor.merger import (
    FetchError,
    MergeOrchestrator,
    MergeResult,
    MergeStats,
    TotalFetchFailure,
)
from hodl_insights.ingestor.models import (
    AddressChangeEvent,
    AddressRanking,
    AddressRemovalEvent,
    CustomRange,
    DataRange,
    Dataset,
    DayBundle,
    HolderEvent,
    PresetRange,
    Snapshot,
)
from hodl_insights.ingestor.sanitizer import sanitize_dataset, sanitize_snapshot

__all__ = [
    "AddressChangeEvent",
    "AddressRanking",
    "AddressRemovalEvent",
    "CustomRange",
    "DailySnapshotFetcher",
    "DataRange",
    "Dataset",
    "DayBundle",
    "FetchError",
    "HolderEvent",
    "MergeOrchestrator",
    "MergeResult",
    "MergeStats",
    "PresetRange",
    "RangeOption",
    "Snapshot",
    "TotalFetchFailure",
    "range_key",
    "resolve",
    "sanitize_dataset",
    "sanitize_snapshot",
]
