"""
Chart descriptors shared by the dispatcher and the grid stores.
"""

import itertools
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from gridaction.spreadsheet.model import Range, index_to_letter, letter_to_index


class ChartType(Enum):
    COLUMN_CLUSTERED = "columnClustered"
    COLUMN_STACKED = "columnStacked"
    BAR_CLUSTERED = "barClustered"
    BAR_STACKED = "barStacked"
    LINE = "line"
    PIE = "pie"
    DOUGHNUT = "doughnut"
    AREA = "area"
    SCATTER = "xyScatter"
    RADAR = "radar"


class SeriesBy(Enum):
    AUTO = "auto"
    COLUMNS = "columns"
    ROWS = "rows"


def normalize_chart_type(name: Optional[str]) -> ChartType:
    """Map a loose chart type name ("line", "donut", "stacked column", ...) to a ChartType.

    Names are matched by the first keyword they contain, in the order below;
    "stacked" only applies when no other keyword matched, so "stacked bar"
    is a clustered bar chart. Anything unrecognised becomes a clustered
    column chart.
    """
    text = str(name or "column").lower()
    if "line" in text:
        return ChartType.LINE
    if "pie" in text:
        return ChartType.PIE
    if "doughnut" in text or "donut" in text:
        return ChartType.DOUGHNUT
    if "bar" in text:
        return ChartType.BAR_CLUSTERED
    if "area" in text:
        return ChartType.AREA
    if "scatter" in text or "xy" in text:
        return ChartType.SCATTER
    if "radar" in text or "spider" in text:
        return ChartType.RADAR
    if "stacked" in text:
        return ChartType.COLUMN_STACKED
    return ChartType.COLUMN_CLUSTERED


def legend_position(chart_type: ChartType) -> str:
    return "right" if chart_type in (ChartType.PIE, ChartType.DOUGHNUT) else "bottom"


def chart_placement(
    position: Optional[str],
    width_cols: int = 8,
    height_rows: int = 15,
    default: str = "H2",
) -> Tuple[str, str]:
    """Compute the (anchor, end) cells a chart occupies.

    The column letters and row number are picked out of *position*
    independently, so "H2", "$H$2" and even "at H2" all anchor at H2;
    missing parts come from *default*.
    """
    default_col = re.search(r"[A-Z]+", default).group(0)
    default_row = int(re.search(r"\d+", default).group(0))
    text = position or default
    col_match = re.search(r"[A-Z]+", text)
    row_match = re.search(r"\d+", text)
    col = col_match.group(0) if col_match else default_col
    row = max(int(row_match.group(0)), 1) if row_match else default_row
    end_col = index_to_letter(letter_to_index(col) + width_cols)
    return f"{col}{row}", f"{end_col}{row + height_rows}"


_chart_ids = itertools.count(1)


def next_chart_id() -> str:
    return f"chart-{next(_chart_ids)}"


@dataclass(frozen=True)
class ChartHandle:
    """A chart created by a grid store.

    Attributes:
        chart_id: Store-assigned identifier
        chart_type: Normalized chart type
        source: Range the chart plots
        series_by: Series orientation
        title: Chart title
        anchor: Top-left cell of the chart's placement
        end: Bottom-right cell of the chart's placement
    """
    chart_id: str
    chart_type: ChartType
    source: Range
    series_by: SeriesBy = SeriesBy.AUTO
    title: str = "Chart"
    anchor: str = "H2"
    end: str = "P17"

    @property
    def legend_position(self) -> str:
        return legend_position(self.chart_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chart_id": self.chart_id,
            "chart_type": self.chart_type.value,
            "source": self.source.to_a1(include_sheet=True),
            "series_by": self.series_by.value,
            "title": self.title,
            "anchor": self.anchor,
            "end": self.end,
            "legend_position": self.legend_position,
        }
