"""
Engine configuration.

EngineConfig gathers the tunable constants of the dispatcher: the column
classifier's sample sizes and thresholds, and chart / aggregation placement.
Grid store tuning (retries, backoff) is passed to the store constructors.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Tuple

from gridaction.analysis.classifier import (
    CATEGORY_SAMPLE_SIZE,
    IDENTIFIER_MARKERS,
    MEASURE_SAMPLE_SIZE,
    MIN_COLS_FOR_AGGREGATION,
    MIN_ROWS_FOR_AGGREGATION,
    MIN_SEQUENCE_LENGTH,
    ColumnRoleClassifier,
)


@dataclass(frozen=True)
class EngineConfig:
    """Tunable settings for ActionDispatcher.

    Attributes:
        category_sample_size: Data rows sampled when looking for a category column
        measure_sample_size: Data rows sampled when looking for a measure column
        min_rows_for_aggregation: Blocks with this many rows or fewer are charted raw
        min_cols_for_aggregation: Minimum column count for aggregation
        identifier_markers: Header fragments that mark identifier columns
        min_sequence_length: Shortest sample checked for sequential identifiers
        aggregation_gap_rows: Blank rows between source data and the aggregated block
        default_chart_position: Anchor cell used when an action gives none
        chart_width_cols: Columns a chart spans from its anchor
        chart_height_rows: Rows a chart spans from its anchor
    """
    category_sample_size: int = CATEGORY_SAMPLE_SIZE
    measure_sample_size: int = MEASURE_SAMPLE_SIZE
    min_rows_for_aggregation: int = MIN_ROWS_FOR_AGGREGATION
    min_cols_for_aggregation: int = MIN_COLS_FOR_AGGREGATION
    identifier_markers: Tuple[str, ...] = IDENTIFIER_MARKERS
    min_sequence_length: int = MIN_SEQUENCE_LENGTH
    aggregation_gap_rows: int = 2
    default_chart_position: str = "H2"
    chart_width_cols: int = 8
    chart_height_rows: int = 15

    def __post_init__(self) -> None:
        if self.category_sample_size < 1 or self.measure_sample_size < 1:
            raise ValueError("Sample sizes must be positive")
        if self.aggregation_gap_rows < 0:
            raise ValueError("aggregation_gap_rows must be non-negative")
        if self.chart_width_cols < 1 or self.chart_height_rows < 1:
            raise ValueError("Chart dimensions must be positive")
        object.__setattr__(self, "identifier_markers", tuple(self.identifier_markers))

    def build_classifier(self) -> ColumnRoleClassifier:
        return ColumnRoleClassifier(
            category_sample_size=self.category_sample_size,
            measure_sample_size=self.measure_sample_size,
            min_rows=self.min_rows_for_aggregation,
            min_cols=self.min_cols_for_aggregation,
            identifier_markers=self.identifier_markers,
            min_sequence_length=self.min_sequence_length,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["identifier_markers"] = list(self.identifier_markers)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Create from a dictionary, rejecting unknown keys.

        Raises:
            ValueError: If data contains keys EngineConfig does not define
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown engine config keys: {sorted(unknown)}")
        return cls(**dict(data))
