"""
Cell reference translation.

Formulas replicated across a range must have their relative references
shifted by the offset of each cell from the anchor cell, exactly like a
spreadsheet fill-down / fill-right. Only reference tokens are recognised;
the rest of the formula is treated as opaque text and preserved verbatim.

A reference token is any substring matching ``($?)([A-Z]+)($?)(\\d+)``. The
``$`` markers make the column and the row absolute independently:

    =A1    shifted by (1, 1) -> =B2
    =$A1   shifted by (1, 1) -> =$A2
    =A$1   shifted by (1, 1) -> =B$1
    =$A$1  shifted by (1, 1) -> =$A$1

Known limitation: the scanner does not understand the formula language, so
text inside string literals (``="A1"``) is translated like a real reference.
Pass ``skip_string_literals=True`` to leave double-quoted literals untouched.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from gridaction.spreadsheet.model import index_to_letter, letter_to_index


REFERENCE_PATTERN = re.compile(r"(\$?)([A-Z]+)(\$?)(\d+)")


@dataclass(frozen=True)
class CellReferenceToken:
    """A single cell reference found in formula text.

    Attributes:
        col_absolute: True when the column carries a ``$`` marker
        column: Column letters (e.g. "AB")
        row_absolute: True when the row carries a ``$`` marker
        row: 1-indexed row number as written
        start: Offset of the token's first character in the formula
        end: Offset one past the token's last character
    """
    col_absolute: bool
    column: str
    row_absolute: bool
    row: int
    start: int = 0
    end: int = 0

    def shifted(self, row_offset: int, col_offset: int) -> "CellReferenceToken":
        """Return the token moved by the given offsets, honouring ``$`` markers."""
        column = self.column
        row = self.row
        if not self.col_absolute and col_offset > 0:
            column = index_to_letter(letter_to_index(column) + col_offset)
        if not self.row_absolute and row_offset > 0:
            row = row + row_offset
        return CellReferenceToken(
            col_absolute=self.col_absolute,
            column=column,
            row_absolute=self.row_absolute,
            row=row,
            start=self.start,
            end=self.end,
        )

    def to_text(self) -> str:
        col_marker = "$" if self.col_absolute else ""
        row_marker = "$" if self.row_absolute else ""
        return f"{col_marker}{self.column}{row_marker}{self.row}"


def string_literal_spans(formula: str) -> List[Tuple[int, int]]:
    """Return the (start, end) spans of double-quoted string literals.

    A doubled quote inside a literal is an escaped quote character, not the
    end of the literal. An unterminated literal runs to the end of the formula.
    """
    spans: List[Tuple[int, int]] = []
    i = 0
    length = len(formula)
    while i < length:
        if formula[i] != '"':
            i += 1
            continue
        start = i
        i += 1
        while i < length:
            if formula[i] == '"':
                if i + 1 < length and formula[i + 1] == '"':
                    i += 2
                    continue
                break
            i += 1
        i += 1
        spans.append((start, min(i, length)))
    return spans


def tokenize(formula: str, skip_string_literals: bool = False) -> Iterator[CellReferenceToken]:
    """Yield every reference token in *formula*, left to right.

    Args:
        formula: Formula text
        skip_string_literals: Ignore tokens inside double-quoted literals
    """
    literals = string_literal_spans(formula) if skip_string_literals else []
    for match in REFERENCE_PATTERN.finditer(formula):
        if any(start <= match.start() < end for start, end in literals):
            continue
        col_abs, column, row_abs, row = match.groups()
        yield CellReferenceToken(
            col_absolute=col_abs == "$",
            column=column,
            row_absolute=row_abs == "$",
            row=int(row),
            start=match.start(),
            end=match.end(),
        )


def translate(
    formula: str,
    row_offset: int,
    col_offset: int,
    skip_string_literals: bool = False,
) -> str:
    """Shift the relative references in *formula* by the given offsets.

    Args:
        formula: Formula text (with or without leading '=')
        row_offset: Rows to move relative row references down (>= 0)
        col_offset: Columns to move relative column references right (>= 0)
        skip_string_literals: Leave references inside string literals alone

    Returns:
        The translated formula; text outside reference tokens is unchanged

    Raises:
        ValueError: If an offset is negative
    """
    if row_offset < 0 or col_offset < 0:
        raise ValueError(f"Offsets must be non-negative, got ({row_offset}, {col_offset})")
    if row_offset == 0 and col_offset == 0:
        return formula

    pieces: List[str] = []
    position = 0
    for token in tokenize(formula, skip_string_literals=skip_string_literals):
        pieces.append(formula[position:token.start])
        pieces.append(token.shifted(row_offset, col_offset).to_text())
        position = token.end
    pieces.append(formula[position:])
    return "".join(pieces)
