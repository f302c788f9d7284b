"""
Replicating one formula across a target range.

``build_formula_matrix`` is the guaranteed path: it produces the per-cell
formula matrix a fill-down / fill-right would produce, using reference
translation only. ``fill_formula`` drives a grid store, trying the store's
native autofill first for single-column targets and falling back to the
matrix when the store cannot autofill. ``offset_fill_matrix`` repeats a
block of source cells over a larger target, as a fill handle drag does.
"""

import logging
from typing import Any, List, Optional, Sequence

from gridaction.exceptions import GridStoreError, InvalidAddressError
from gridaction.spreadsheet.model import Range
from gridaction.spreadsheet.references import translate


FormulaMatrix = List[List[str]]

logger = logging.getLogger(__name__)


def build_formula_matrix(anchor_formula: str, rows: int, cols: int) -> FormulaMatrix:
    """Build the formula matrix for a *rows* x *cols* target.

    Cell (0, 0) always holds *anchor_formula* unchanged; every other cell
    holds the anchor translated by its (row, column) offset.

    Raises:
        ValueError: If rows or cols is less than 1
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Target dimensions must be at least 1x1, got {rows}x{cols}")

    if rows == 1 and cols == 1:
        return [[anchor_formula]]

    return [
        [anchor_formula if r == 0 and c == 0 else translate(anchor_formula, r, c) for c in range(cols)]
        for r in range(rows)
    ]


def offset_fill_matrix(cells: Sequence[Sequence[Any]], source: Range, target: Range) -> List[List[Any]]:
    """Build the matrix for filling *target* by repeating the *cells* of *source*.

    Source cells are tiled over the target from the source's top-left
    cell. Formula cells are translated by the distance between the source
    cell and the target cell they land on; other cells are copied as-is.

    Raises:
        InvalidAddressError: If the target starts above or left of the source
    """
    base_row = target.row - source.row
    base_col = target.col - source.col
    if base_row < 0 or base_col < 0:
        raise InvalidAddressError(
            f"Fill target {target.to_a1()} must not start above or left of source {source.to_a1()}"
        )
    matrix = []
    for r in range(target.row_count):
        row = []
        for c in range(target.col_count):
            src_r = (base_row + r) % source.row_count
            src_c = (base_col + c) % source.col_count
            cell = cells[src_r][src_c]
            if isinstance(cell, str) and cell.startswith("="):
                cell = translate(cell, base_row + r - src_r, base_col + c - src_c)
            row.append(cell)
        matrix.append(row)
    return matrix


def fill_formula(
    store,
    target: Range,
    anchor_formula: str,
    log: Optional[logging.Logger] = None,
) -> str:
    """Write *anchor_formula* over *target* with fill semantics.

    Returns:
        "single", "autofill" or "matrix", naming the path that was used
    """
    log = log or logger
    rows, cols = target.shape

    if rows == 1 and cols == 1:
        store.write_formulas(target, [[anchor_formula]])
        log.debug("Applied formula to single cell %s: %s", target.to_a1(), anchor_formula)
        return "single"

    if cols == 1:
        anchor = target.top_left()
        store.write_formulas(anchor, [[anchor_formula]])
        try:
            store.autofill(anchor, target)
            log.debug("Autofilled formula to %d rows", rows)
            return "autofill"
        except (NotImplementedError, GridStoreError) as e:
            log.debug("Autofill unavailable (%s), building formula matrix", e)

    store.write_formulas(target, build_formula_matrix(anchor_formula, rows, cols))
    log.debug("Applied formula to %dx%d range %s", rows, cols, target.to_a1())
    return "matrix"
