"""
Pure data analysis over 2D cell blocks: column roles, aggregation, dedup.
"""

from gridaction.analysis.classifier import (
    ColumnRole,
    ColumnRoleClassifier,
    ColumnRoles,
    classify_columns,
)
from gridaction.analysis.aggregate import (
    AggregationBucket,
    aggregate,
    aggregation_block,
    find_column,
)
from gridaction.analysis.dedup import DedupResult, dedup_key, dedupe

__all__ = [
    "ColumnRole",
    "ColumnRoleClassifier",
    "ColumnRoles",
    "classify_columns",
    "AggregationBucket",
    "aggregate",
    "aggregation_block",
    "find_column",
    "DedupResult",
    "dedup_key",
    "dedupe",
]
