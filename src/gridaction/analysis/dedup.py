"""
Row deduplication.

Rows are keyed on a subset of their columns; the first row seen for each key
is kept and later rows with the same key are dropped, preserving the
original order of the survivors.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from gridaction.spreadsheet.model import cell_to_text


KEY_SEPARATOR = "|"


@dataclass
class DedupResult:
    """Outcome of a deduplication pass.

    Attributes:
        unique_rows: Surviving rows, in original order
        removed_count: Number of rows dropped
    """
    unique_rows: List[List[Any]]
    removed_count: int


def dedup_key(row: Sequence[Any], key_columns: Sequence[int]) -> str:
    """Build the composite key for *row* over *key_columns*.

    Cells are coerced with ``cell_to_text``, so blanks become ``""`` and
    ``1``, ``1.0`` and ``"1"`` produce the same key. Columns beyond the end
    of the row read as blank.
    """
    return KEY_SEPARATOR.join(
        cell_to_text(row[c]) if 0 <= c < len(row) else "" for c in key_columns
    )


def dedupe(rows: Sequence[Sequence[Any]], key_columns: Optional[Sequence[int]] = None) -> DedupResult:
    """Drop rows whose key repeats an earlier row's key.

    Args:
        rows: 2D block (every row takes part, including a header row)
        key_columns: Column indices forming the key; empty or None means
            all columns

    Returns:
        DedupResult with ``len(unique_rows) + removed_count == len(rows)``
    """
    if not key_columns:
        width = max((len(row) for row in rows), default=0)
        key_columns = range(width)

    seen = set()
    unique_rows: List[List[Any]] = []
    for row in rows:
        key = dedup_key(row, key_columns)
        if key in seen:
            continue
        seen.add(key)
        unique_rows.append(list(row))

    return DedupResult(unique_rows=unique_rows, removed_count=len(rows) - len(unique_rows))
