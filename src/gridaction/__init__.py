"""
gridaction - A declarative action engine for spreadsheet grids.

Callers submit action records (formula, values, chart, sort, filter,
removeDuplicates, ...) and the engine applies them, in order, to a grid
store: an in-memory pandas workbook or a live Google Sheets spreadsheet.

Usage:
    >>> from gridaction import ActionDispatcher, MemoryGridStore
    >>> store = MemoryGridStore()
    >>> batch = ActionDispatcher(store).execute([
    ...     {"type": "values", "target": "A1:B2", "data": "[[1,2],[3,4]]"},
    ...     {"type": "formula", "target": "C1:C2", "data": "=A1+B1"},
    ... ])
    >>> store.formula_at("C2")
    '=A2+B2'

Key components:
- ActionDispatcher: routes action records to handlers and reports per-action results
- spreadsheet: A1 addressing, reference translation and formula fill
- analysis: column role classification, aggregation and deduplication
- store: the GridStore protocol and its pandas and gspread implementations
"""

import logging

from .actions import ActionRecord, FilterSpec, SortSpec, parse_payload
from .charts import ChartHandle, ChartType, SeriesBy
from .config import EngineConfig
from .diagnostics import DiagnosticBuffer, setup_logging
from .dispatcher import ActionDispatcher, ActionResult, ActionState, BatchResult
from .exceptions import *
from .spreadsheet import Range, index_to_letter, letter_to_index, translate
from .store import GridStore, MemoryGridStore, SheetsClient, SheetsGridStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Version
__version__ = "0.1.0"

__all__ = [
    'ActionDispatcher',
    'ActionRecord',
    'ActionResult',
    'ActionState',
    'BatchResult',
    'ChartHandle',
    'ChartType',
    'DiagnosticBuffer',
    'EngineConfig',
    'FilterSpec',
    'GridStore',
    'MemoryGridStore',
    'Range',
    'SeriesBy',
    'SheetsClient',
    'SheetsGridStore',
    'SortSpec',
    'index_to_letter',
    'letter_to_index',
    'parse_payload',
    'setup_logging',
    'translate',
    # Exceptions
    'GridActionError',
    'MissingTargetError',
    'MissingSourceError',
    'InvalidAddressError',
    'InvalidPayloadError',
    'ActionValidationError',
    'InvalidFilterSpecError',
    'ColumnNotFoundError',
    'UnsupportedActionTypeError',
    'GridStoreError',
    'SheetsAPIError',
    'RangeNotFoundError',
    'SourceNotFoundError',
    'TargetNotFoundError',
]
