"""
Abstract grid store interface.

The GridStore protocol is the engine's only view of a spreadsheet host:
reading and writing ranges, creating sheets and charts, sorting and
filtering. Every call is a blocking request-response round trip that
completes before the dispatcher runs the next dependent step.
Concrete implementations include MemoryGridStore (pandas, in-process) and
SheetsGridStore (Google Sheets API via gspread).
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence

from gridaction.charts import ChartHandle, ChartType, SeriesBy
from gridaction.spreadsheet.model import Range

# Import for type hints only - avoiding circular import
if False:
    from gridaction.actions.specs import FilterSpec, SortSpec


@dataclass
class RangeData:
    """Contents of a range as returned by ``read_range``.

    Attributes:
        values: 2D list of cell values (rows x columns)
        formulas: 2D list where formula cells hold their formula text and
            other cells hold their value, or None if the store did not load
            formulas
        row_count: Number of rows
        col_count: Number of columns
    """
    values: List[List[Any]]
    row_count: int
    col_count: int
    formulas: Optional[List[List[Any]]] = field(default=None)


class GridStore(Protocol):
    """Protocol for spreadsheet hosts the dispatcher can drive."""

    @property
    def active_sheet(self) -> str:
        """Sheet that unqualified addresses refer to."""
        ...

    def resolve(self, address: Range) -> Range:
        """Confirm *address* exists and return it sheet-qualified.

        Raises:
            RangeNotFoundError: If the sheet does not exist
        """
        ...

    def read_range(self, address: Range) -> RangeData:
        ...

    def write_values(self, address: Range, values: Sequence[Sequence[Any]]) -> None:
        """Write static values; *values* must match the shape of *address*."""
        ...

    def write_formulas(self, address: Range, formulas: Sequence[Sequence[Any]]) -> None:
        """Write formulas; entries not starting with '=' are written as values."""
        ...

    def clear_range(self, address: Range) -> None:
        ...

    def create_range(self, sheet: str, start_row: int, start_col: int, row_count: int, col_count: int) -> Range:
        ...

    def create_sheet(self, name: str) -> None:
        ...

    def create_chart(
        self,
        chart_type: ChartType,
        source: Range,
        series_by: SeriesBy = SeriesBy.AUTO,
        title: str = "Chart",
        anchor: str = "H2",
        end: str = "P17",
    ) -> ChartHandle:
        ...

    def apply_sort(self, address: Range, spec: "SortSpec") -> None:
        ...

    def apply_filter(self, sheet: str, address: Range, spec: "FilterSpec") -> None:
        ...

    def clear_filter(self, sheet: str) -> None:
        ...

    def apply_validation(self, address: Range, options: Sequence[str]) -> None:
        """Restrict *address* to a dropdown list of *options*."""
        ...

    def autofill(self, source: Range, target: Range) -> None:
        """Fill *target* from *source* natively.

        Raises:
            NotImplementedError: If the store has no native autofill
        """
        ...
