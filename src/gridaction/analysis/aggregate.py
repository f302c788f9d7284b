"""
Category aggregation for chart data.

Rows are bucketed by the text of their category cell and a measure column is
reduced per bucket. The result is sorted by value, largest first, and is
small enough to be written back into the grid as a two-column block that a
chart is then created over.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from gridaction.spreadsheet.model import cell_to_text, parse_number


Number = Union[int, float]

AGGREGATE_FUNCTIONS = ("sum", "count", "average", "avg", "min", "max")


@dataclass
class AggregationBucket:
    """Running totals for one category key."""
    count: int = 0
    sum: float = 0.0
    values: List[float] = field(default_factory=list)

    def add(self, measure: Optional[float]) -> None:
        self.count += 1
        if measure is not None:
            self.sum += measure
            self.values.append(measure)

    def result(self, func: str, has_measure: bool, count_fallback: bool = False) -> Number:
        """Reduce the bucket.

        Without a measure column every function counts rows. With one, a
        bucket that never saw a numeric value reduces to 0, or to its row
        count when *count_fallback* is set.
        """
        if func == "count" or not has_measure:
            return self.count
        if not self.values:
            return self.count if count_fallback else 0
        if func == "sum":
            return self.sum
        if func in ("average", "avg"):
            return self.sum / len(self.values)
        if func == "min":
            return min(self.values)
        if func == "max":
            return max(self.values)
        raise ValueError(f"Unknown aggregate function: {func}")


def aggregate(
    rows: Sequence[Sequence[Any]],
    category_col: int,
    measure_col: Optional[int] = None,
    func: str = "sum",
    count_fallback: bool = False,
) -> List[Tuple[str, Number]]:
    """Aggregate data rows by category.

    Args:
        rows: 2D block whose first row is a header (skipped)
        category_col: Column holding the category key
        measure_col: Column to reduce; None counts rows per category
        func: One of sum, count, average/avg, min, max
        count_fallback: Categories with no numeric measure report their row
            count instead of 0

    Returns:
        (key, value) pairs sorted by value descending; ties keep the order
        in which keys first appeared

    Raises:
        ValueError: If func is unknown
    """
    func = func.lower()
    if func not in AGGREGATE_FUNCTIONS:
        raise ValueError(f"Unknown aggregate function: {func}")

    buckets: Dict[str, AggregationBucket] = {}
    for row in rows[1:]:
        raw_key = row[category_col] if category_col < len(row) else None
        key = cell_to_text(raw_key).strip()
        if not key:
            continue

        measure = None
        if measure_col is not None and measure_col < len(row):
            measure = parse_number(row[measure_col])

        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = AggregationBucket()
        bucket.add(measure)

    has_measure = measure_col is not None
    items = [(key, bucket.result(func, has_measure, count_fallback)) for key, bucket in buckets.items()]
    # sorted() is stable, also with reverse=True.
    return sorted(items, key=lambda item: item[1], reverse=True)


def aggregation_block(
    headers: Sequence[Any],
    category_col: int,
    measure_col: Optional[int],
    items: Sequence[Tuple[str, Number]],
    category_label: Optional[str] = None,
    value_label: Optional[str] = None,
) -> List[List[Any]]:
    """Build the header + rows block written back to the grid for charting."""
    if category_label is None:
        category_label = cell_to_text(headers[category_col] if category_col < len(headers) else None) or "Category"
    if value_label is None:
        if measure_col is not None and measure_col < len(headers):
            value_label = cell_to_text(headers[measure_col]) or "Value"
        else:
            value_label = "Count"
    return [[category_label, value_label]] + [[key, value] for key, value in items]


def find_column(headers: Sequence[Any], name: Any) -> Optional[int]:
    """Find a header by loose name match.

    A header matches when, case-insensitively and ignoring surrounding
    whitespace, it equals *name*, contains it, or is contained in it. The
    first match from the left wins; an empty *name* matches nothing.
    """
    term = cell_to_text(name).strip().lower()
    if not term:
        return None
    for index, header in enumerate(headers):
        text = cell_to_text(header).strip().lower()
        if not text:
            continue
        if text == term or term in text or text in term:
            return index
    return None
