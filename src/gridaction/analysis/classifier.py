"""
Column role classification for chart data.

Before charting a tabular block, the dispatcher decides whether the raw rows
should be charted as-is or first aggregated per category. The decision is a
heuristic over small samples of each column:

* a CATEGORY column is textual and repeats within the first few data rows;
* a MEASURE column is numeric throughout a slightly larger sample;
* numeric columns that look like identifiers (header mentions id/no/number,
  or values that are strictly increasing and unique) are IDENTIFIER columns
  and are never aggregated.

The sample sizes and thresholds are constructor arguments so callers can
tune them; the defaults reproduce the behaviour the rest of the engine and
its tests assume.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from gridaction.spreadsheet.model import cell_to_text, parse_number


CATEGORY_SAMPLE_SIZE = 5
MEASURE_SAMPLE_SIZE = 9
MIN_ROWS_FOR_AGGREGATION = 10
MIN_COLS_FOR_AGGREGATION = 2
IDENTIFIER_MARKERS = ("id", "no", "number")
MIN_SEQUENCE_LENGTH = 4


class ColumnRole(Enum):
    """Role a column plays in a header + data block."""
    CATEGORY = "category"
    MEASURE = "measure"
    IDENTIFIER = "identifier"
    UNCLASSIFIED = "unclassified"


@dataclass
class ColumnRoles:
    """Outcome of classifying a block.

    Attributes:
        category_column: Index of the category column, or None
        measure_column: Index of the measure column, or None (count rows)
        roles: Role per column index
    """
    category_column: Optional[int] = None
    measure_column: Optional[int] = None
    roles: Dict[int, ColumnRole] = field(default_factory=dict)

    @property
    def should_aggregate(self) -> bool:
        return self.category_column is not None

    @classmethod
    def empty(cls, col_count: int = 0) -> "ColumnRoles":
        return cls(roles={c: ColumnRole.UNCLASSIFIED for c in range(col_count)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category_column": self.category_column,
            "measure_column": self.measure_column,
            "roles": {c: role.value for c, role in self.roles.items()},
        }


def _column(values: Sequence[Sequence[Any]], col: int, start: int, stop: int) -> List[Any]:
    return [row[col] if col < len(row) else None for row in values[start:stop]]


def _distinct_count(sample: Sequence[Any]) -> int:
    # Key on type as well as value: 1, 1.0 and True must stay distinct.
    return len({(type(v).__name__, v) for v in sample})


class ColumnRoleClassifier:
    """Heuristic classifier for category / measure columns.

    Usage::

        roles = ColumnRoleClassifier().classify(values)
        if roles.should_aggregate:
            items = aggregate(values, roles.category_column, roles.measure_column)
    """

    def __init__(
        self,
        category_sample_size: int = CATEGORY_SAMPLE_SIZE,
        measure_sample_size: int = MEASURE_SAMPLE_SIZE,
        min_rows: int = MIN_ROWS_FOR_AGGREGATION,
        min_cols: int = MIN_COLS_FOR_AGGREGATION,
        identifier_markers: Sequence[str] = IDENTIFIER_MARKERS,
        min_sequence_length: int = MIN_SEQUENCE_LENGTH,
    ) -> None:
        if category_sample_size < 1 or measure_sample_size < 1:
            raise ValueError("Sample sizes must be positive")
        self.category_sample_size = category_sample_size
        self.measure_sample_size = measure_sample_size
        self.min_rows = min_rows
        self.min_cols = min_cols
        self.identifier_markers = tuple(m.lower() for m in identifier_markers)
        self.min_sequence_length = min_sequence_length

    def classify(self, values: Sequence[Sequence[Any]]) -> ColumnRoles:
        """Classify the columns of a header + data block.

        Args:
            values: 2D block; row 0 is the header row

        Returns:
            ColumnRoles. ``should_aggregate`` is False when the block is too
            small or no category column qualifies.
        """
        col_count = max((len(row) for row in values), default=0)
        if len(values) <= self.min_rows or col_count < self.min_cols:
            return ColumnRoles.empty(col_count)

        roles = {c: ColumnRole.UNCLASSIFIED for c in range(col_count)}
        category = self.find_category_column(values, col_count)
        if category is None:
            return ColumnRoles(roles=roles)
        roles[category] = ColumnRole.CATEGORY

        headers = values[0]
        measure = None
        for c in range(col_count):
            if c == category:
                continue
            sample = _column(values, c, 1, 1 + self.measure_sample_size)
            if not self.is_numeric_sample(sample):
                continue
            header = headers[c] if c < len(headers) else None
            if self.is_identifier(header, sample):
                roles[c] = ColumnRole.IDENTIFIER
                continue
            measure = c
            roles[c] = ColumnRole.MEASURE
            break

        return ColumnRoles(category_column=category, measure_column=measure, roles=roles)

    def find_category_column(self, values: Sequence[Sequence[Any]], col_count: int) -> Optional[int]:
        """Return the first textual, repeating column in the category sample."""
        for c in range(col_count):
            sample = _column(values, c, 1, 1 + self.category_sample_size)
            has_text = any(isinstance(v, str) and len(v) > 0 for v in sample)
            has_repeats = _distinct_count(sample) < len(sample)
            if has_text and has_repeats:
                return c
        return None

    @staticmethod
    def is_numeric_sample(sample: Sequence[Any]) -> bool:
        return bool(sample) and all(parse_number(v) is not None for v in sample)

    def is_identifier(self, header: Any, sample: Sequence[Any]) -> bool:
        """True when a numeric column looks like a row identifier."""
        header_text = cell_to_text(header).lower()
        if any(marker in header_text for marker in self.identifier_markers):
            return True

        numbers = [parse_number(v) for v in sample]
        if len(numbers) < self.min_sequence_length:
            return False
        increasing = all(b > a for a, b in zip(numbers, numbers[1:]))
        unique = len(set(numbers)) == len(numbers)
        return increasing and unique


def classify_columns(values: Sequence[Sequence[Any]], **kwargs: Any) -> ColumnRoles:
    """Classify *values* with a ColumnRoleClassifier built from *kwargs*."""
    return ColumnRoleClassifier(**kwargs).classify(values)
