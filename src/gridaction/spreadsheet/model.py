"""
Spreadsheet grid model.

This module provides the addressing primitives the rest of gridaction is
built on:
- index_to_letter / letter_to_index: bijective base-26 column naming
- Range: a sheet-qualified rectangular cell region (e.g. Sheet2!A2:C100)
- cell_to_text / parse_number: spreadsheet-style coercion of cell values
"""

import math
import numbers
import re
from typing import Any, Optional

from gridaction.exceptions import InvalidAddressError


_CELL_RE = re.compile(r"^\$?([A-Za-z]+)\$?(\d+)$")
_SHEET_PREFIX_RE = re.compile(r"^(?:'((?:[^']|'')+)'|([^'!]+))!(.+)$")


def index_to_letter(index: int) -> str:
    """Convert a 0-indexed column number to spreadsheet column letters.

    Uses bijective base-26 (no zero digit): 0 = A, 25 = Z, 26 = AA,
    701 = ZZ, 702 = AAA. Width is unbounded.

    Raises:
        InvalidAddressError: If index is negative
    """
    if index < 0:
        raise InvalidAddressError(f"Column index must be non-negative, got {index}")
    col_1indexed = index + 1
    result = ""
    while col_1indexed > 0:
        col_1indexed -= 1
        result = chr(65 + (col_1indexed % 26)) + result
        col_1indexed //= 26
    return result


def letter_to_index(letters: str) -> int:
    """Convert spreadsheet column letters to a 0-indexed column number.

    Case-insensitive: "a", "A" -> 0; "aa" -> 26.

    Raises:
        InvalidAddressError: If letters is empty or not purely alphabetic
    """
    if not isinstance(letters, str) or not letters or not re.fullmatch(r"[A-Za-z]+", letters):
        raise InvalidAddressError(f"Invalid column letters: {letters!r}")
    col_1indexed = 0
    for char in letters.upper():
        col_1indexed = col_1indexed * 26 + (ord(char) - 64)
    return col_1indexed - 1


def _parse_cell(cell: str, notation: str) -> "tuple[int, int]":
    match = _CELL_RE.match(cell.strip())
    if not match:
        raise InvalidAddressError(f"Invalid range notation: {notation}")
    col_letters, row_str = match.groups()
    row_1indexed = int(row_str)
    if row_1indexed < 1:
        raise InvalidAddressError(f"Row numbers start at 1: {notation}")
    return row_1indexed - 1, letter_to_index(col_letters)


class Range:
    """Represents a rectangular cell region, optionally bound to a sheet.

    IMPORTANT: Range uses 0-indexed coordinates internally (Python convention),
    but converts to 1-indexed A1 notation via to_a1().

    A Range can be:
    - A single cell: A1 corresponds to (row=0, col=0, row_end=0, col_end=0)
    - A cell range: A1:B10 corresponds to (row=0, col=0, row_end=9, col_end=1)

    Attributes:
        row: Starting row (0-indexed)
        col: Starting column (0-indexed)
        row_end: Ending row (0-indexed, inclusive)
        col_end: Ending column (0-indexed, inclusive)
        sheet: Sheet name, or None for an unqualified address
    """

    def __init__(
        self,
        row: int,
        col: int,
        row_end: Optional[int] = None,
        col_end: Optional[int] = None,
        sheet: Optional[str] = None,
    ) -> None:
        """Initialize a Range with 0-indexed coordinates.

        Raises:
            InvalidAddressError: If coordinates are negative or inverted
        """
        if row < 0 or col < 0:
            raise InvalidAddressError("Row and column must be non-negative (0-indexed)")

        self.row = row
        self.col = col
        self.row_end = row_end if row_end is not None else row
        self.col_end = col_end if col_end is not None else col
        self.sheet = sheet

        if self.row_end < self.row or self.col_end < self.col:
            raise InvalidAddressError("End coordinates must be >= start coordinates")

    @classmethod
    def from_a1(cls, notation: str, sheet: Optional[str] = None) -> "Range":
        """Parse A1 notation into a Range.

        Supports:
        - Single cell: A1, $ZZ$100
        - Cell range: A1:B10, $A1:B$10
        - Sheet-qualified: Data!A1:B2, 'My Sheet'!A1

        ``$`` absolute markers are accepted and ignored. A sheet named in the
        notation wins over the ``sheet`` argument, which is only a default.

        Raises:
            InvalidAddressError: If notation is invalid
        """
        if not isinstance(notation, str):
            raise InvalidAddressError(f"Range notation must be a string, got {type(notation).__name__}")
        notation = notation.strip()
        if not notation:
            raise InvalidAddressError("Empty range notation")

        cells = notation
        prefix = _SHEET_PREFIX_RE.match(notation)
        if prefix:
            quoted, bare, cells = prefix.groups()
            sheet = quoted.replace("''", "'") if quoted is not None else bare.strip()

        parts = cells.split(":")
        if len(parts) == 1:
            row, col = _parse_cell(parts[0], notation)
            return cls(row=row, col=col, sheet=sheet)
        if len(parts) != 2:
            raise InvalidAddressError(f"Invalid range notation: {notation}")

        row, col = _parse_cell(parts[0], notation)
        row_end, col_end = _parse_cell(parts[1], notation)
        # Normalise reversed corners such as B10:A1.
        return cls(
            row=min(row, row_end),
            col=min(col, col_end),
            row_end=max(row, row_end),
            col_end=max(col, col_end),
            sheet=sheet,
        )

    @classmethod
    def from_bounds(
        cls,
        sheet: Optional[str],
        start_row: int,
        start_col: int,
        row_count: int,
        col_count: int,
    ) -> "Range":
        """Create a Range from a 0-indexed origin and its dimensions."""
        if row_count < 1 or col_count < 1:
            raise InvalidAddressError("Range dimensions must be at least 1x1")
        return cls(
            row=start_row,
            col=start_col,
            row_end=start_row + row_count - 1,
            col_end=start_col + col_count - 1,
            sheet=sheet,
        )

    @property
    def row_count(self) -> int:
        return self.row_end - self.row + 1

    @property
    def col_count(self) -> int:
        return self.col_end - self.col + 1

    @property
    def shape(self) -> "tuple[int, int]":
        return self.row_count, self.col_count

    def to_a1(self, include_sheet: bool = False) -> str:
        """Convert Range to A1 notation (1-indexed).

        Args:
            include_sheet: Prefix the sheet name (quoted when needed)

        Returns:
            A1 notation string (e.g., "A1", "A1:B10" or "'My Sheet'!A1")
        """
        start_cell = f"{index_to_letter(self.col)}{self.row + 1}"
        if self.row == self.row_end and self.col == self.col_end:
            cells = start_cell
        else:
            cells = f"{start_cell}:{index_to_letter(self.col_end)}{self.row_end + 1}"

        if include_sheet and self.sheet:
            if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", self.sheet):
                return f"{self.sheet}!{cells}"
            escaped = self.sheet.replace("'", "''")
            return f"'{escaped}'!{cells}"
        return cells

    def with_sheet(self, sheet: Optional[str]) -> "Range":
        return Range(self.row, self.col, self.row_end, self.col_end, sheet=sheet)

    def top_left(self) -> "Range":
        """Return the single-cell Range at the top-left corner."""
        return Range(self.row, self.col, sheet=self.sheet)

    def resize(self, rows: int, cols: int) -> "Range":
        """Return a Range with the same origin and the given dimensions."""
        return Range.from_bounds(self.sheet, self.row, self.col, rows, cols)

    def intersect(self, other: "Range") -> Optional["Range"]:
        """Compute the intersection of two ranges, or None if they do not overlap."""
        row_start = max(self.row, other.row)
        col_start = max(self.col, other.col)
        row_end = min(self.row_end, other.row_end)
        col_end = min(self.col_end, other.col_end)

        if row_start > row_end or col_start > col_end:
            return None

        return Range(row=row_start, col=col_start, row_end=row_end, col_end=col_end, sheet=self.sheet)

    def union(self, other: "Range") -> "Range":
        """Compute the bounding box of two ranges."""
        return Range(
            row=min(self.row, other.row),
            col=min(self.col, other.col),
            row_end=max(self.row_end, other.row_end),
            col_end=max(self.col_end, other.col_end),
            sheet=self.sheet,
        )

    def offset(self, row_offset: int = 0, col_offset: int = 0) -> "Range":
        """Create a new Range offset by the given amounts.

        Raises:
            InvalidAddressError: If offset would result in coordinates < 0
        """
        new_row = self.row + row_offset
        new_col = self.col + col_offset
        if new_row < 0 or new_col < 0:
            raise InvalidAddressError("Offset results in invalid coordinates (< 0)")

        return Range(
            row=new_row,
            col=new_col,
            row_end=self.row_end + row_offset,
            col_end=self.col_end + col_offset,
            sheet=self.sheet,
        )

    def __repr__(self) -> str:
        return f"Range({self.to_a1(include_sheet=True)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return (
            self.row == other.row
            and self.col == other.col
            and self.row_end == other.row_end
            and self.col_end == other.col_end
            and self.sheet == other.sheet
        )

    def __hash__(self) -> int:
        return hash((self.row, self.col, self.row_end, self.col_end, self.sheet))


def is_blank(value: Any) -> bool:
    """True for None, NaN and the empty string."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return value == ""


def cell_to_text(value: Any) -> str:
    """Coerce a cell value to the text a spreadsheet would display.

    * ``None`` / NaN -> ``""``
    * bool -> ``TRUE`` / ``FALSE``
    * Integral floats lose their fractional part (``3.0`` -> ``"3"``)
    """
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """Return the finite number a cell holds, or None.

    Numbers and numeric strings (surrounding whitespace allowed) qualify;
    booleans, blanks and infinities do not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None
