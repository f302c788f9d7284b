"""
Google Sheets grid store with retry logic.

SheetsGridStore drives a live spreadsheet through SheetsClient. Value and
formula traffic goes through the values API; charts, filters, data
validation and autofill are sent as spreadsheet batch_update requests.
Every API call is retried with exponential backoff on transient failures.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import gspread
from gspread.exceptions import APIError

from gridaction.actions.specs import FilterSpec, SortSpec
from gridaction.charts import ChartHandle, ChartType, SeriesBy, legend_position
from gridaction.exceptions import GridStoreError, SheetsAPIError
from gridaction.spreadsheet.model import Range, cell_to_text
from gridaction.store.base import RangeData
from gridaction.store.sheets_client import SheetsClient


log = logging.getLogger(__name__)

# Default Google Sheets cell size in pixels, used to size chart overlays
CELL_WIDTH_PX = 100
CELL_HEIGHT_PX = 21

_BASIC_CHART_TYPES = {
    ChartType.COLUMN_CLUSTERED: "COLUMN",
    ChartType.COLUMN_STACKED: "COLUMN",
    ChartType.BAR_CLUSTERED: "BAR",
    ChartType.BAR_STACKED: "BAR",
    ChartType.LINE: "LINE",
    ChartType.AREA: "AREA",
    ChartType.SCATTER: "SCATTER",
    # Sheets has no radar chart
    ChartType.RADAR: "LINE",
}


def _pad(rows: List[List[Any]], row_count: int, col_count: int) -> List[List[Any]]:
    """Blank-fill an API response to the requested shape."""
    padded = []
    for r in range(row_count):
        row = rows[r] if r < len(rows) else []
        row = [None if cell == "" else cell for cell in row[:col_count]]
        padded.append(row + [None] * (col_count - len(row)))
    return padded


class SheetsGridStore:
    """Grid store backed by a Google Sheets spreadsheet.

    Attributes:
        client: SheetsClient wrapper for API calls
        spreadsheet: The gspread spreadsheet being edited
        max_retries: Maximum number of retry attempts for transient failures
        base_delay: Base delay in seconds for exponential backoff
    """

    def __init__(
        self,
        client: SheetsClient,
        spreadsheet: gspread.Spreadsheet,
        active_sheet: Optional[str] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the store.

        Args:
            client: Authenticated SheetsClient
            spreadsheet: Spreadsheet to edit
            active_sheet: Sheet for unqualified addresses (default: first tab)
            max_retries: Maximum retry attempts (default: 3)
            base_delay: Base delay for exponential backoff in seconds (default: 1.0)
            logger: Logger for retry warnings (default: this module's logger)
        """
        self.client = client
        self.spreadsheet = spreadsheet
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.logger = logger or log
        self._active = active_sheet
        self._worksheets: Dict[str, gspread.Worksheet] = {}

    @property
    def active_sheet(self) -> str:
        if self._active is None:
            self._active = self._retry_operation(
                lambda: self.spreadsheet.sheet1.title,
                "look up the first worksheet"
            )
        return self._active

    def _worksheet(self, name: str) -> gspread.Worksheet:
        if name not in self._worksheets:
            self._worksheets[name] = self._retry_operation(
                lambda: self.client.get_worksheet(self.spreadsheet, name),
                f"look up worksheet '{name}'"
            )
        return self._worksheets[name]

    def resolve(self, address: Range) -> Range:
        sheet = address.sheet or self.active_sheet
        self._worksheet(sheet)
        return address.with_sheet(sheet)

    def _grid_range(self, address: Range) -> Dict[str, int]:
        """Build a Sheets API GridRange (0-indexed, end-exclusive)."""
        worksheet = self._worksheet(self.resolve(address).sheet)
        return {
            "sheetId": worksheet.id,
            "startRowIndex": address.row,
            "endRowIndex": address.row_end + 1,
            "startColumnIndex": address.col,
            "endColumnIndex": address.col_end + 1,
        }

    def read_range(self, address: Range) -> RangeData:
        address = self.resolve(address)
        worksheet = self._worksheet(address.sheet)
        a1 = address.to_a1()
        values = self._retry_operation(
            lambda: self.client.read_values(worksheet, a1, "UNFORMATTED_VALUE"),
            f"read range '{a1}'"
        )
        formulas = self._retry_operation(
            lambda: self.client.read_values(worksheet, a1, "FORMULA"),
            f"read formulas in '{a1}'"
        )
        return RangeData(
            values=_pad(values, address.row_count, address.col_count),
            row_count=address.row_count,
            col_count=address.col_count,
            formulas=_pad(formulas, address.row_count, address.col_count),
        )

    def _write(self, address: Range, rows: Sequence[Sequence[Any]], raw: bool) -> None:
        if len(rows) != address.row_count or any(len(row) != address.col_count for row in rows):
            raise GridStoreError(
                f"Data does not fit range {address.to_a1()} "
                f"({address.row_count}x{address.col_count})"
            )
        address = self.resolve(address)
        worksheet = self._worksheet(address.sheet)
        # The values API skips nulls, so blanks are sent as empty strings
        payload = [["" if cell is None else cell for cell in row] for row in rows]
        a1 = address.to_a1()
        self._retry_operation(
            lambda: self.client.write_values(worksheet, a1, payload, raw=raw),
            f"write range '{a1}'"
        )

    def write_values(self, address: Range, values: Sequence[Sequence[Any]]) -> None:
        self._write(address, values, raw=True)

    def write_formulas(self, address: Range, formulas: Sequence[Sequence[Any]]) -> None:
        self._write(address, formulas, raw=False)

    def clear_range(self, address: Range) -> None:
        address = self.resolve(address)
        worksheet = self._worksheet(address.sheet)
        a1 = address.to_a1()
        self._retry_operation(
            lambda: self.client.clear_range(worksheet, a1),
            f"clear range '{a1}'"
        )

    def create_range(self, sheet: str, start_row: int, start_col: int, row_count: int, col_count: int) -> Range:
        return self.resolve(Range.from_bounds(sheet, start_row, start_col, row_count, col_count))

    def create_sheet(self, name: str) -> None:
        if not name or not isinstance(name, str):
            raise GridStoreError("Sheet name must be a non-empty string")
        self._worksheets[name] = self._retry_operation(
            lambda: self.client.add_sheet(self.spreadsheet, name),
            f"create worksheet '{name}'"
        )

    def _chart_spec(self, chart_type: ChartType, source: Range, series_by: SeriesBy, title: str) -> Dict[str, Any]:
        if series_by == SeriesBy.ROWS:
            domain = Range(source.row, source.col, source.row, source.col_end, source.sheet)
            series = [
                Range(r, source.col, r, source.col_end, source.sheet)
                for r in range(source.row + 1, source.row_end + 1)
            ]
        else:
            domain = Range(source.row, source.col, source.row_end, source.col, source.sheet)
            series = [
                Range(source.row, c, source.row_end, c, source.sheet)
                for c in range(source.col + 1, source.col_end + 1)
            ]

        def data(address: Range) -> Dict[str, Any]:
            return {"sourceRange": {"sources": [self._grid_range(address)]}}

        legend = "RIGHT_LEGEND" if legend_position(chart_type) == "right" else "BOTTOM_LEGEND"
        if chart_type in (ChartType.PIE, ChartType.DOUGHNUT):
            pie: Dict[str, Any] = {
                "legendPosition": legend,
                "domain": data(domain),
                "series": data(series[0] if series else domain),
            }
            if chart_type == ChartType.DOUGHNUT:
                pie["pieHole"] = 0.5
            return {"title": title, "pieChart": pie}

        basic: Dict[str, Any] = {
            "chartType": _BASIC_CHART_TYPES[chart_type],
            "legendPosition": legend,
            "headerCount": 1,
            "domains": [{"domain": data(domain)}],
            "series": [{"series": data(s)} for s in series],
        }
        if chart_type in (ChartType.COLUMN_STACKED, ChartType.BAR_STACKED):
            basic["stackedType"] = "STACKED"
        return {"title": title, "basicChart": basic}

    def create_chart(
        self,
        chart_type: ChartType,
        source: Range,
        series_by: SeriesBy = SeriesBy.AUTO,
        title: str = "Chart",
        anchor: str = "H2",
        end: str = "P17",
    ) -> ChartHandle:
        source = self.resolve(source)
        if chart_type == ChartType.RADAR:
            self.logger.warning("Radar charts are not available in Google Sheets; drawing a line chart")
        anchor_cell = Range.from_a1(anchor, sheet=source.sheet)
        end_cell = Range.from_a1(end, sheet=source.sheet)
        request = {
            "addChart": {
                "chart": {
                    "spec": self._chart_spec(chart_type, source, series_by, title),
                    "position": {
                        "overlayPosition": {
                            "anchorCell": {
                                "sheetId": self._worksheet(source.sheet).id,
                                "rowIndex": anchor_cell.row,
                                "columnIndex": anchor_cell.col,
                            },
                            "widthPixels": (end_cell.col - anchor_cell.col) * CELL_WIDTH_PX,
                            "heightPixels": (end_cell.row - anchor_cell.row) * CELL_HEIGHT_PX,
                        }
                    },
                }
            }
        }
        response = self._retry_operation(
            lambda: self.client.batch_update(self.spreadsheet, [request]),
            f"add chart '{title}'"
        )
        try:
            chart_id = str(response["replies"][0]["addChart"]["chart"]["chartId"])
        except (KeyError, IndexError, TypeError):
            raise SheetsAPIError(f"Unexpected response while adding chart '{title}': {response}")
        return ChartHandle(
            chart_id=chart_id,
            chart_type=chart_type,
            source=source,
            series_by=series_by,
            title=title,
            anchor=anchor,
            end=end,
        )

    def apply_sort(self, address: Range, spec: SortSpec) -> None:
        if spec.column_index >= address.col_count:
            raise GridStoreError(
                f"Sort column {spec.column_index} is outside range {address.to_a1()}"
            )
        address = self.resolve(address)
        start = address.row + 1 if spec.has_headers else address.row
        if start > address.row_end:
            return
        body = Range(start, address.col, address.row_end, address.col_end, address.sheet)
        worksheet = self._worksheet(address.sheet)
        a1 = body.to_a1()
        self._retry_operation(
            lambda: self.client.sort_range(
                worksheet, a1, address.col + spec.column_index + 1, spec.ascending
            ),
            f"sort range '{a1}'"
        )

    def apply_filter(self, sheet: str, address: Range, spec: FilterSpec) -> None:
        if spec.column_index >= address.col_count:
            raise GridStoreError(
                f"Filter column {spec.column_index} is outside range {address.to_a1()}"
            )
        address = self.resolve(address.with_sheet(address.sheet or sheet))
        values = self.read_range(address).values
        hidden = sorted({
            cell_to_text(row[spec.column_index])
            for row in values[1:]
            if not spec.matches(row[spec.column_index])
        })
        request = {
            "setBasicFilter": {
                "filter": {
                    "range": self._grid_range(address),
                    "filterSpecs": [{
                        "columnIndex": address.col + spec.column_index,
                        "filterCriteria": {"hiddenValues": hidden},
                    }],
                }
            }
        }
        self._retry_operation(
            lambda: self.client.batch_update(self.spreadsheet, [request]),
            f"filter range '{address.to_a1()}'"
        )

    def clear_filter(self, sheet: str) -> None:
        worksheet = self._worksheet(sheet)
        self._retry_operation(
            lambda: self.client.clear_basic_filter(worksheet),
            f"clear filter on '{sheet}'"
        )

    def apply_validation(self, address: Range, options: Sequence[str]) -> None:
        address = self.resolve(address)
        request = {
            "setDataValidation": {
                "range": self._grid_range(address),
                "rule": {
                    "condition": {
                        "type": "ONE_OF_LIST",
                        "values": [{"userEnteredValue": str(option)} for option in options],
                    },
                    "showCustomUi": True,
                    "strict": True,
                },
            }
        }
        self._retry_operation(
            lambda: self.client.batch_update(self.spreadsheet, [request]),
            f"set validation on '{address.to_a1()}'"
        )

    def autofill(self, source: Range, target: Range) -> None:
        source = self.resolve(source)
        target = self.resolve(target.with_sheet(target.sheet or source.sheet))
        if source.sheet != target.sheet:
            raise NotImplementedError("Autofill across sheets is not supported")

        if target.intersect(source) == source and (source.row, source.col) == (target.row, target.col):
            request = {"autoFill": {"range": self._grid_range(target), "useAlternateSeries": False}}
        elif (source.col, source.col_end) == (target.col, target.col_end) and target.row == source.row_end + 1:
            request = {"autoFill": {"sourceAndDestination": {
                "source": self._grid_range(source),
                "dimension": "ROWS",
                "fillLength": target.row_count,
            }}}
        elif (source.row, source.row_end) == (target.row, target.row_end) and target.col == source.col_end + 1:
            request = {"autoFill": {"sourceAndDestination": {
                "source": self._grid_range(source),
                "dimension": "COLUMNS",
                "fillLength": target.col_count,
            }}}
        else:
            raise NotImplementedError(
                f"Cannot autofill {target.to_a1()} from {source.to_a1()}"
            )

        self._retry_operation(
            lambda: self.client.batch_update(self.spreadsheet, [request]),
            f"autofill '{target.to_a1()}'"
        )

    def _retry_operation(
        self,
        operation: Callable[[], Any],
        description: str
    ) -> Any:
        """Execute an operation with retry logic and exponential backoff.

        Args:
            operation: Callable that performs the operation
            description: Human-readable description for error messages

        Returns:
            Result of the operation

        Raises:
            SheetsAPIError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                return operation()
            except (APIError, SheetsAPIError) as e:
                last_error = e

                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    self.logger.warning(
                        "Attempt %d to %s failed (%s); retrying in %.1fs",
                        attempt + 1, description, e, delay,
                    )
                    time.sleep(delay)
                    continue
                else:
                    break

        raise SheetsAPIError(
            f"Failed to {description} after {self.max_retries + 1} attempts: {last_error}"
        )
