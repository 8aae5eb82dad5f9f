"""Rollup of classified events into capture-rate rows."""
from data_completeness.aggregation.capture_aggregator import (
    OUTPUT_COLUMNS,
    AggregateRow,
    CaptureAggregator,
    CaptureTally,
    capture_pct,
    merge_partitions,
    sort_rows,
)

__all__ = [
    "OUTPUT_COLUMNS",
    "AggregateRow",
    "CaptureAggregator",
    "CaptureTally",
    "capture_pct",
    "merge_partitions",
    "sort_rows",
]
