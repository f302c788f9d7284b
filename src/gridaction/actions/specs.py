"""
Sort and filter spec normalization.

Sort options arrive loosely typed: a dict, a JSON object string, or a
``key:value`` string such as ``"column:2, ascending:false"``. They are
normalized into a SortSpec; anything unparsable falls back to defaults
rather than failing the action.

Filter options are strict: a filter without a column and at least one
allowed value is rejected with InvalidFilterSpecError.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from gridaction.actions.base import Parsed
from gridaction.exceptions import InvalidAddressError, InvalidFilterSpecError
from gridaction.spreadsheet.model import cell_to_text, letter_to_index


@dataclass(frozen=True)
class SortSpec:
    """Normalized sort options.

    Attributes:
        column_index: 0-indexed column within the sorted range
        ascending: Sort direction
        has_headers: True when the range's first row is a header row
    """
    column_index: int = 0
    ascending: bool = True
    has_headers: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column_index,
            "ascending": self.ascending,
            "hasHeaders": self.has_headers,
        }


@dataclass(frozen=True)
class FilterSpec:
    """Normalized filter options.

    Attributes:
        column_index: 0-indexed column within the filtered range
        allowed_values: Cell texts that stay visible
    """
    column_index: int
    allowed_values: FrozenSet[str]

    def matches(self, value: Any) -> bool:
        return cell_to_text(value) in self.allowed_values

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.column_index, "values": sorted(self.allowed_values)}


def coerce_column(value: Any) -> Optional[int]:
    """Interpret a column given as an index (2, 2.0, "2") or letters ("C").

    Returns None when the value is not a usable non-negative column.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            return letter_to_index(text)
        except InvalidAddressError:
            return None
    return None


def _column_key(options: Mapping[str, Any]) -> Any:
    return options.get("column", options.get("columnIndex"))


def _sort_from_mapping(options: Mapping[str, Any]) -> Parsed[SortSpec]:
    raw_column = _column_key(options)
    column = coerce_column(raw_column) if raw_column is not None else 0
    reason = None
    if column is None:
        reason = f"unusable sort column {raw_column!r}, using 0"
        column = 0
    ascending = options.get("ascending") not in (False, "false")
    has_headers = options.get("hasHeaders") not in (False, "false")
    spec = SortSpec(column_index=column, ascending=ascending, has_headers=has_headers)
    return Parsed(spec, fallback=reason is not None, reason=reason)


def _sort_from_string(text: str) -> Parsed[SortSpec]:
    column = 0
    ascending = True
    has_headers = True
    for part in text.split(","):
        key, _, value = part.partition(":")
        key = key.strip()
        value = value.strip()
        if key in ("column", "columnIndex"):
            column = coerce_column(value) or 0
        elif key == "ascending":
            ascending = value.lower() != "false"
        elif key == "hasHeaders":
            has_headers = value.lower() == "true"
    spec = SortSpec(column_index=column, ascending=ascending, has_headers=has_headers)
    return Parsed(spec, fallback=True, reason="sort options are not JSON, parsed as key:value pairs")


def parse_sort_spec(data: Any) -> Parsed[SortSpec]:
    """Normalize sort options from a dict, JSON object string or key:value string."""
    if data is None or data == "":
        return Parsed(SortSpec())
    if isinstance(data, Mapping):
        return _sort_from_mapping(data)
    if not isinstance(data, str):
        return Parsed(SortSpec(), fallback=True, reason=f"unsupported sort options {data!r}")

    try:
        loaded = json.loads(data)
    except ValueError:
        return _sort_from_string(data)
    if isinstance(loaded, Mapping):
        return _sort_from_mapping(loaded)
    return _sort_from_string(data)


def parse_filter_spec(data: Any) -> FilterSpec:
    """Build a FilterSpec from a dict or JSON object string.

    Raises:
        InvalidFilterSpecError: If the options are not an object or lack a
            usable column or a non-empty list of values
    """
    options = data
    if isinstance(data, str):
        try:
            options = json.loads(data)
        except ValueError as e:
            raise InvalidFilterSpecError(f"Invalid filter data format: {data!r}") from e
    if not isinstance(options, Mapping):
        raise InvalidFilterSpecError(f"Filter options must be an object, got {data!r}")

    column = coerce_column(_column_key(options))
    if column is None:
        raise InvalidFilterSpecError(f"Filter requires a column: {dict(options)!r}")

    values = options.get("values")
    if isinstance(values, str) and not values.strip():
        values = None
    if isinstance(values, (str, int, float)) and not isinstance(values, bool):
        values = [values]
    if not values or not isinstance(values, (list, tuple)):
        raise InvalidFilterSpecError(f"Filter requires a non-empty list of values: {dict(options)!r}")

    return FilterSpec(column_index=column, allowed_values=frozenset(cell_to_text(v) for v in values))


def sort_key(value: Any) -> Tuple[int, Any]:
    """Key that orders mixed cell values like a spreadsheet: numbers, text, booleans, blanks."""
    if value is None or value == "" or (isinstance(value, float) and value != value):
        return (3, "")
    if isinstance(value, bool):
        return (2, value)
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, cell_to_text(value).lower())
