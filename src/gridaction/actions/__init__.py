"""
Action records and their payloads.

An action is one atomic intent (write values, chart a range, sort, ...).
This package defines the record type and the per-kind payload parsers.
"""

from gridaction.actions.base import Parsed
from gridaction.actions.records import ActionRecord
from gridaction.actions.specs import (
    FilterSpec,
    SortSpec,
    coerce_column,
    parse_filter_spec,
    parse_sort_spec,
)
from gridaction.actions.payloads import (
    ChartOptions,
    FindReplaceOptions,
    PivotChartOptions,
    TextToColumnsOptions,
    normalize_matrix,
    parse_payload,
)

__all__ = [
    "Parsed",
    "ActionRecord",
    "FilterSpec",
    "SortSpec",
    "coerce_column",
    "parse_filter_spec",
    "parse_sort_spec",
    "ChartOptions",
    "FindReplaceOptions",
    "PivotChartOptions",
    "TextToColumnsOptions",
    "normalize_matrix",
    "parse_payload",
]
