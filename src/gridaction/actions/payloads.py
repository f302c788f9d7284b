"""
Typed payload parsing per action kind.

The wire ``data`` field is frequently JSON, but callers (and language
models) do not always produce valid JSON. Each action kind has a parser
that turns the raw payload into a typed value and, when the input is
malformed, returns a documented fallback flagged as such:

    values            JSON 2D array; scalar -> [[v]], 1D -> [row];
                      unparsable -> [[data]]
    sheet             optional JSON 2D array of initial data; unparsable -> None
    removeDuplicates  {"columns": [...]}; unparsable -> [] (all columns)
    sort              SortSpec (see gridaction.actions.specs)
    chart             ChartOptions from the record options
    pivotChart        PivotChartOptions merged from data and record options
    findReplace       FindReplaceOptions
    textToColumns     TextToColumnsOptions

Filter options are the exception: they are strict and parsed with
``parse_filter_spec``, which raises InvalidFilterSpecError.
"""

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from gridaction.actions.base import Parsed
from gridaction.actions.specs import coerce_column, parse_sort_spec
from gridaction.analysis.aggregate import AGGREGATE_FUNCTIONS
from gridaction.charts import ChartType, normalize_chart_type


Matrix = List[List[Any]]

DEFAULT_CHART_POSITION = "H2"


@dataclass(frozen=True)
class ChartOptions:
    chart_type: ChartType = ChartType.COLUMN_CLUSTERED
    title: str = "Chart"
    position: str = DEFAULT_CHART_POSITION


@dataclass(frozen=True)
class PivotChartOptions:
    """Options for a chart over explicitly grouped data.

    Attributes:
        group_by: Header (loosely matched) of the column to group by
        aggregate: Header of the column to reduce; None counts rows
        aggregate_func: sum, count, average/avg, min or max
    """
    group_by: Optional[str] = None
    aggregate: Optional[str] = None
    aggregate_func: str = "sum"
    chart_type: ChartType = ChartType.COLUMN_CLUSTERED
    title: str = "Pivot Chart"
    position: str = DEFAULT_CHART_POSITION


@dataclass(frozen=True)
class FindReplaceOptions:
    find: str = ""
    replace: str = ""
    match_case: bool = False
    match_entire_cell: bool = False


@dataclass(frozen=True)
class TextToColumnsOptions:
    delimiter: str = ","
    destination: Optional[str] = None
    force_overwrite: bool = False


def load_json(data: Any) -> Parsed[Any]:
    """Decode *data* when it is a string; structured values pass through."""
    if not isinstance(data, str):
        return Parsed(data)
    try:
        return Parsed(json.loads(data))
    except ValueError as e:
        return Parsed(data, fallback=True, reason=f"not valid JSON ({e})")


def normalize_matrix(value: Any) -> Matrix:
    """Shape a decoded value into a rectangular 2D matrix.

    Scalars become 1x1, flat lists become a single row, and ragged rows are
    padded with ``""`` to the widest row. A matrix whose rows are all empty
    has no cells and becomes ``[]``.
    """
    if not isinstance(value, list):
        return [[value]]
    if not value:
        return []
    if not any(isinstance(row, list) for row in value):
        return [list(value)]
    rows = [list(row) if isinstance(row, list) else [row] for row in value]
    width = max(len(row) for row in rows)
    if width == 0:
        return []
    return [row + [""] * (width - len(row)) for row in rows]


def parse_values(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[Matrix]:
    if data is None:
        return Parsed([[None]], fallback=True, reason="no data, clearing the first cell")
    loaded = load_json(data)
    if loaded.fallback:
        return Parsed([[data]], fallback=True, reason=loaded.reason)
    if isinstance(loaded.value, dict):
        return Parsed([[data if isinstance(data, str) else json.dumps(data)]], fallback=True,
                      reason="object payload written as text")
    return Parsed(normalize_matrix(loaded.value))


def parse_sheet_data(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[Optional[Matrix]]:
    if data is None or data == "":
        return Parsed(None)
    loaded = load_json(data)
    if loaded.fallback:
        return Parsed(None, fallback=True, reason=loaded.reason)
    if not isinstance(loaded.value, list) or not loaded.value:
        return Parsed(None, fallback=True, reason="initial sheet data must be a non-empty array")
    return Parsed(normalize_matrix(loaded.value))


def parse_dedup_columns(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[List[int]]:
    """Key columns for removeDuplicates; an empty list means all columns."""
    if data is None or data == "":
        return Parsed([])
    loaded = load_json(data)
    if loaded.fallback:
        return Parsed([], fallback=True, reason=loaded.reason)

    value = loaded.value
    if isinstance(value, Mapping):
        value = value.get("columns")
    if value is None:
        return Parsed([])
    if not isinstance(value, list):
        return Parsed([], fallback=True, reason=f"columns must be a list, got {value!r}")

    columns = [coerce_column(c) for c in value]
    if any(c is None for c in columns):
        return Parsed([c for c in columns if c is not None], fallback=True,
                      reason=f"ignored unusable columns in {value!r}")
    return Parsed(columns)


def _options_object(data: Any) -> Parsed[Dict[str, Any]]:
    if data is None or data == "":
        return Parsed({})
    loaded = load_json(data)
    if loaded.fallback:
        return Parsed({}, fallback=True, reason=loaded.reason)
    if not isinstance(loaded.value, Mapping):
        return Parsed({}, fallback=True, reason=f"options must be an object, got {loaded.value!r}")
    return Parsed(dict(loaded.value))


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _text(value: Any, default: Optional[str]) -> Optional[str]:
    return default if value is None or value == "" else str(value)


def parse_chart_options(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[ChartOptions]:
    options = options or {}
    return Parsed(ChartOptions(
        chart_type=normalize_chart_type(options.get("chartType")),
        title=_text(options.get("title"), "Chart"),
        position=_text(options.get("position"), DEFAULT_CHART_POSITION),
    ))


def parse_pivot_chart_options(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[PivotChartOptions]:
    parsed = _options_object(data)
    merged = dict(parsed.value)
    for key in ("chartType", "title", "position"):
        if (options or {}).get(key):
            merged[key] = options[key]

    fallback, reason = parsed.fallback, parsed.reason
    func = _text(merged.get("aggregateFunc"), "sum").lower()
    if func not in AGGREGATE_FUNCTIONS:
        fallback, reason = True, f"unknown aggregate function '{func}', using sum"
        func = "sum"
    return Parsed(
        PivotChartOptions(
            group_by=_text(merged.get("groupBy"), None),
            aggregate=_text(merged.get("aggregate"), None),
            aggregate_func=func,
            chart_type=normalize_chart_type(merged.get("chartType")),
            title=_text(merged.get("title"), "Pivot Chart"),
            position=_text(merged.get("position"), DEFAULT_CHART_POSITION),
        ),
        fallback=fallback,
        reason=reason,
    )


def parse_find_replace(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[FindReplaceOptions]:
    parsed = _options_object(data)
    merged = parsed.value
    return Parsed(
        FindReplaceOptions(
            find=_text(merged.get("find"), ""),
            replace=_text(merged.get("replace"), ""),
            match_case=_flag(merged.get("matchCase", False)),
            match_entire_cell=_flag(merged.get("matchEntireCell", False)),
        ),
        fallback=parsed.fallback,
        reason=parsed.reason,
    )


def parse_text_to_columns(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[TextToColumnsOptions]:
    parsed = _options_object(data)
    merged = parsed.value
    return Parsed(
        TextToColumnsOptions(
            delimiter=_text(merged.get("delimiter"), ","),
            destination=_text(merged.get("destination"), None),
            force_overwrite=_flag(merged.get("forceOverwrite", False)),
        ),
        fallback=parsed.fallback,
        reason=parsed.reason,
    )


def _parse_sort(data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[Any]:
    return parse_sort_spec(data)


PAYLOAD_PARSERS: Dict[str, Callable[..., Parsed[Any]]] = {
    "values": parse_values,
    "sheet": parse_sheet_data,
    "removeDuplicates": parse_dedup_columns,
    "sort": _parse_sort,
    "chart": parse_chart_options,
    "pivotChart": parse_pivot_chart_options,
    "findReplace": parse_find_replace,
    "textToColumns": parse_text_to_columns,
}


def parse_payload(kind: str, data: Any, options: Optional[Mapping[str, Any]] = None) -> Parsed[Any]:
    """Parse *data* for an action of the given kind.

    Kinds without a dedicated parser get their payload back unchanged.
    """
    parser = PAYLOAD_PARSERS.get(kind)
    if parser is None:
        return Parsed(data)
    return parser(data, options or {})
