"""
Grid stores: the spreadsheet hosts the dispatcher can drive.

- MemoryGridStore: pandas DataFrames held in process
- SheetsGridStore: a Google Sheets spreadsheet through gspread
"""

from gridaction.store.base import GridStore, RangeData
from gridaction.store.memory import FilterState, MemoryGridStore
from gridaction.store.sheets_client import SheetsClient
from gridaction.store.sheets_store import SheetsGridStore

__all__ = [
    "GridStore",
    "RangeData",
    "FilterState",
    "MemoryGridStore",
    "SheetsClient",
    "SheetsGridStore",
]
