"""
Spreadsheet grid primitives.

This module provides addressing, cell reference translation and formula
replication over rectangular ranges.
"""

from gridaction.spreadsheet.model import (
    Range,
    cell_to_text,
    index_to_letter,
    is_blank,
    letter_to_index,
    parse_number,
)
from gridaction.spreadsheet.references import (
    CellReferenceToken,
    string_literal_spans,
    tokenize,
    translate,
)
from gridaction.spreadsheet.formulas import (
    FormulaMatrix,
    build_formula_matrix,
    fill_formula,
    offset_fill_matrix,
)

__all__ = [
    "Range",
    "cell_to_text",
    "index_to_letter",
    "is_blank",
    "letter_to_index",
    "parse_number",
    "CellReferenceToken",
    "string_literal_spans",
    "tokenize",
    "translate",
    "FormulaMatrix",
    "build_formula_matrix",
    "fill_formula",
    "offset_fill_matrix",
]
