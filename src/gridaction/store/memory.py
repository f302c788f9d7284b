"""
In-memory grid store backed by pandas.

Each sheet is an object-dtype pandas DataFrame indexed by 0-based row and
column numbers; it grows on demand when a write lands outside its current
bounds. Formulas are recorded per cell but never evaluated: a formula
cell's value reads back as its formula text. Charts, filters and data
validation rules are recorded for inspection.

No network access or credentials are required, which makes this store the
default backend for tests and offline use.
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from gridaction.actions.specs import FilterSpec, SortSpec, sort_key
from gridaction.charts import ChartHandle, ChartType, SeriesBy, next_chart_id
from gridaction.exceptions import GridStoreError, RangeNotFoundError
from gridaction.spreadsheet.model import Range, is_blank
from gridaction.store.base import RangeData


SheetData = Union[pd.DataFrame, Sequence[Sequence[Any]]]


@dataclass(frozen=True)
class FilterState:
    """An active filter on a sheet.

    Attributes:
        address: Filtered range, header row included
        spec: The filter that was applied
        hidden_rows: 0-indexed sheet rows hidden by the filter
    """
    address: Range
    spec: FilterSpec
    hidden_rows: FrozenSet[int]


def _clean(value: Any) -> Any:
    return None if isinstance(value, float) and np.isnan(value) else value


def _rows_from(data: SheetData) -> List[List[Any]]:
    if isinstance(data, pd.DataFrame):
        return [list(data.columns)] + data.astype(object).values.tolist()
    return [list(row) for row in data]


def _trim(matrix: List[List[Any]]) -> List[List[Any]]:
    while matrix and all(is_blank(cell) for cell in matrix[-1]):
        matrix.pop()
    width = 0
    for row in matrix:
        for c in range(len(row) - 1, -1, -1):
            if not is_blank(row[c]):
                width = max(width, c + 1)
                break
    return [row[:width] for row in matrix]


class MemoryGridStore:
    """Grid store holding every sheet in memory.

    Usage::

        store = MemoryGridStore({"Sheet1": [["Region", "Sales"], ["East", 10]]})
        dispatcher = ActionDispatcher(store)
        dispatcher.execute(actions)
        store.sheet_values("Sheet1")
    """

    def __init__(
        self,
        sheets: Optional[Mapping[str, SheetData]] = None,
        active_sheet: Optional[str] = None,
    ) -> None:
        self._frames: Dict[str, pd.DataFrame] = {}
        self._formulas: Dict[str, Dict[Tuple[int, int], str]] = {}
        self.charts: List[ChartHandle] = []
        self.filters: Dict[str, FilterState] = {}
        self.validations: Dict[Range, List[str]] = {}

        sheets = dict(sheets or {})
        self._active = active_sheet or (next(iter(sheets)) if sheets else "Sheet1")
        if self._active not in sheets:
            self.create_sheet(self._active)
        for name, data in sheets.items():
            self.create_sheet(name)
            rows = _rows_from(data)
            if rows and rows[0]:
                width = max(len(row) for row in rows)
                padded = [row + [None] * (width - len(row)) for row in rows]
                self.write_values(Range.from_bounds(name, 0, 0, len(padded), width), padded)

    @property
    def active_sheet(self) -> str:
        return self._active

    @property
    def sheet_names(self) -> List[str]:
        return list(self._frames)

    def resolve(self, address: Range) -> Range:
        sheet = address.sheet or self._active
        if sheet not in self._frames:
            raise RangeNotFoundError(f"Sheet '{sheet}' not found for range {address.to_a1()}")
        return address.with_sheet(sheet)

    def _frame(self, address: Range) -> Tuple[str, pd.DataFrame]:
        sheet = self.resolve(address).sheet
        self._ensure_size(sheet, address.row_end + 1, address.col_end + 1)
        return sheet, self._frames[sheet]

    def _ensure_size(self, sheet: str, rows: int, cols: int) -> None:
        frame = self._frames[sheet]
        old_rows, old_cols = frame.shape
        if rows <= old_rows and cols <= old_cols:
            return
        grown = pd.DataFrame(np.full((max(rows, old_rows), max(cols, old_cols)), None, dtype=object))
        if old_rows and old_cols:
            grown.iloc[:old_rows, :old_cols] = frame.to_numpy(dtype=object)
        self._frames[sheet] = grown

    @staticmethod
    def _check_shape(address: Range, matrix: Sequence[Sequence[Any]]) -> None:
        shape = (len(matrix), len(matrix[0]) if matrix else 0)
        if shape != address.shape or any(len(row) != shape[1] for row in matrix):
            raise GridStoreError(
                f"Data of shape {shape[0]}x{shape[1]} does not fit range "
                f"{address.to_a1()} ({address.row_count}x{address.col_count})"
            )

    def read_range(self, address: Range) -> RangeData:
        sheet, frame = self._frame(address)
        block = frame.iloc[address.row:address.row_end + 1, address.col:address.col_end + 1]
        values = [[_clean(v) for v in row] for row in block.to_numpy(dtype=object).tolist()]
        formulas_by_cell = self._formulas[sheet]
        formulas = [
            [formulas_by_cell.get((address.row + r, address.col + c), value) for c, value in enumerate(row)]
            for r, row in enumerate(values)
        ]
        return RangeData(values=values, row_count=address.row_count, col_count=address.col_count, formulas=formulas)

    def write_values(self, address: Range, values: Sequence[Sequence[Any]]) -> None:
        self._check_shape(address, values)
        sheet, frame = self._frame(address)
        block = np.empty(address.shape, dtype=object)
        for r, row in enumerate(values):
            for c, value in enumerate(row):
                block[r, c] = value
        frame.iloc[address.row:address.row_end + 1, address.col:address.col_end + 1] = block
        formulas = self._formulas[sheet]
        for r in range(address.row, address.row_end + 1):
            for c in range(address.col, address.col_end + 1):
                formulas.pop((r, c), None)

    def write_formulas(self, address: Range, formulas: Sequence[Sequence[Any]]) -> None:
        self.write_values(address, formulas)
        sheet = self.resolve(address).sheet
        for r, row in enumerate(formulas):
            for c, text in enumerate(row):
                if isinstance(text, str) and text.startswith("="):
                    self._formulas[sheet][(address.row + r, address.col + c)] = text

    def clear_range(self, address: Range) -> None:
        self.write_values(address, [[None] * address.col_count for _ in range(address.row_count)])

    def create_range(self, sheet: str, start_row: int, start_col: int, row_count: int, col_count: int) -> Range:
        return self.resolve(Range.from_bounds(sheet, start_row, start_col, row_count, col_count))

    def create_sheet(self, name: str) -> None:
        if not name or not isinstance(name, str):
            raise GridStoreError("Sheet name must be a non-empty string")
        if name in self._frames:
            raise GridStoreError(f"Sheet '{name}' already exists")
        self._frames[name] = pd.DataFrame(dtype=object)
        self._formulas[name] = {}

    def create_chart(
        self,
        chart_type: ChartType,
        source: Range,
        series_by: SeriesBy = SeriesBy.AUTO,
        title: str = "Chart",
        anchor: str = "H2",
        end: str = "P17",
    ) -> ChartHandle:
        handle = ChartHandle(
            chart_id=next_chart_id(),
            chart_type=chart_type,
            source=self.resolve(source),
            series_by=series_by,
            title=title,
            anchor=anchor,
            end=end,
        )
        self.charts.append(handle)
        return handle

    def apply_sort(self, address: Range, spec: SortSpec) -> None:
        if spec.column_index >= address.col_count:
            raise GridStoreError(
                f"Sort column {spec.column_index} is outside range {address.to_a1()}"
            )
        data = self.read_range(address)
        start = 1 if spec.has_headers else 0
        keyed = list(zip(data.values[start:], data.formulas[start:]))
        filled = [pair for pair in keyed if not is_blank(pair[0][spec.column_index])]
        blanks = [pair for pair in keyed if is_blank(pair[0][spec.column_index])]
        filled.sort(key=lambda pair: sort_key(pair[0][spec.column_index]), reverse=not spec.ascending)
        # Blanks stay at the bottom in both directions.
        rows = data.formulas[:start] + [formulas for _, formulas in filled + blanks]
        self.write_formulas(address, rows)

    def apply_filter(self, sheet: str, address: Range, spec: FilterSpec) -> None:
        if spec.column_index >= address.col_count:
            raise GridStoreError(
                f"Filter column {spec.column_index} is outside range {address.to_a1()}"
            )
        address = self.resolve(address.with_sheet(address.sheet or sheet))
        values = self.read_range(address).values
        hidden = frozenset(
            address.row + r
            for r, row in enumerate(values)
            if r > 0 and not spec.matches(row[spec.column_index])
        )
        self.filters[address.sheet] = FilterState(address=address, spec=spec, hidden_rows=hidden)

    def clear_filter(self, sheet: str) -> None:
        if sheet not in self._frames:
            raise RangeNotFoundError(f"Sheet '{sheet}' not found")
        self.filters.pop(sheet, None)

    def apply_validation(self, address: Range, options: Sequence[str]) -> None:
        self.validations[self.resolve(address)] = list(options)

    def autofill(self, source: Range, target: Range) -> None:
        raise NotImplementedError("MemoryGridStore has no native autofill")

    def hidden_rows(self, sheet: Optional[str] = None) -> FrozenSet[int]:
        state = self.filters.get(sheet or self._active)
        return state.hidden_rows if state else frozenset()

    def sheet_values(self, sheet: Optional[str] = None) -> List[List[Any]]:
        """Return a sheet's values with trailing empty rows and columns trimmed."""
        sheet = sheet or self._active
        if sheet not in self._frames:
            raise RangeNotFoundError(f"Sheet '{sheet}' not found")
        frame = self._frames[sheet]
        matrix = [[_clean(v) for v in row] for row in frame.to_numpy(dtype=object).tolist()]
        return _trim(matrix)

    def formula_at(self, cell: str, sheet: Optional[str] = None) -> Optional[str]:
        address = self.resolve(Range.from_a1(cell, sheet=sheet))
        return self._formulas[address.sheet].get((address.row, address.col))

    def to_frame(self, sheet: Optional[str] = None, header: bool = True) -> pd.DataFrame:
        """Return a sheet as a DataFrame, using the first row as column labels."""
        rows = self.sheet_values(sheet)
        if not header or not rows:
            return pd.DataFrame(rows)
        return pd.DataFrame(rows[1:], columns=rows[0])
