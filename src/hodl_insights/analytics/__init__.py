"""Analytics layer - resampling, indicators, deltas and period comparison."""

from hodl_insights.analytics.comparison import PeriodComparison, compare_periods
from hodl_insights.analytics.deltas import (
    HolderDelta,
    MetricChange,
    community_metric_changes,
    compute_delta,
    metric_change,
    reconcile_holder_deltas,
    split_by_kind,
)
from hodl_insights.analytics.indicators import (
    BollingerBands,
    IndicatorSet,
    bollinger,
    compute_indicators,
    ema,
    sma,
)
from hodl_insights.analytics.resample import resample

__all__ = [
    "BollingerBands",
    "HolderDelta",
    "IndicatorSet",
    "MetricChange",
    "PeriodComparison",
    "bollinger",
    "community_metric_changes",
    "compare_periods",
    "compute_delta",
    "compute_indicators",
    "ema",
    "metric_change",
    "reconcile_holder_deltas",
    "resample",
    "sma",
    "split_by_kind",
]
