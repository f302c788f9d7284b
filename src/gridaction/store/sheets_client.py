"""
Google Sheets API client wrapper.

This module provides a thin interface to the Google Sheets API via gspread,
wrapping gspread errors in gridaction exceptions for the operations the
SheetsGridStore needs.
"""

from typing import Any, Dict, List, Sequence

import gspread
from gspread.exceptions import APIError, WorksheetNotFound

from gridaction.exceptions import RangeNotFoundError, SheetsAPIError


class SheetsClient:
    """
    A wrapper around gspread for Google Sheets API operations.

    Attributes:
        gc: The authenticated gspread client instance
    """

    def __init__(self, gc: gspread.Client) -> None:
        """
        Initialize the client with an authenticated gspread client.

        Args:
            gc: An authenticated gspread client, e.g. from ``gspread.service_account()``
                or ``gspread.oauth()``.
        """
        self.gc = gc

    def open_spreadsheet(self, key: str) -> gspread.Spreadsheet:
        """
        Open an existing spreadsheet by key.

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            return self.gc.open_by_key(key)
        except APIError as e:
            raise SheetsAPIError(f"Failed to open spreadsheet '{key}': {e}") from e

    def get_worksheet(self, spreadsheet: gspread.Spreadsheet, name: str) -> gspread.Worksheet:
        """
        Look up a worksheet (tab) by title.

        Raises:
            RangeNotFoundError: If no worksheet has that title
            SheetsAPIError: If the API call fails
        """
        try:
            return spreadsheet.worksheet(name)
        except WorksheetNotFound as e:
            raise RangeNotFoundError(f"Sheet '{name}' not found") from e
        except APIError as e:
            raise SheetsAPIError(f"Failed to look up worksheet '{name}': {e}") from e

    def add_sheet(
        self,
        spreadsheet: gspread.Spreadsheet,
        name: str,
        rows: int = 1000,
        cols: int = 26
    ) -> gspread.Worksheet:
        """
        Add a new worksheet (tab) to an existing spreadsheet.

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            return spreadsheet.add_worksheet(title=name, rows=rows, cols=cols)
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to add worksheet '{name}' to spreadsheet: {e}"
            ) from e

    def read_values(
        self,
        worksheet: gspread.Worksheet,
        range_name: str,
        render_option: str = "UNFORMATTED_VALUE"
    ) -> List[List[Any]]:
        """
        Read a range. Rows come back as the API returns them: trailing empty
        rows and cells are omitted.

        Args:
            worksheet: The worksheet to read from
            range_name: The A1 notation range (e.g., "A1:C10")
            render_option: "UNFORMATTED_VALUE" for values, "FORMULA" for formulas

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            return [list(row) for row in worksheet.get(range_name, value_render_option=render_option)]
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to read range '{range_name}': {e}"
            ) from e

    def write_values(
        self,
        worksheet: gspread.Worksheet,
        range_name: str,
        values: Sequence[Sequence[Any]],
        raw: bool = True
    ) -> None:
        """
        Write values to a range in a worksheet.

        Args:
            worksheet: The worksheet to write to
            range_name: The A1 notation range (e.g., "A1:C10")
            values: A 2D list of values to write
            raw: When False, strings are parsed as if typed by a user, so
                entries starting with '=' become formulas

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            worksheet.update([list(row) for row in values], range_name=range_name, raw=raw)
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to write values to range '{range_name}': {e}"
            ) from e

    def clear_range(self, worksheet: gspread.Worksheet, range_name: str) -> None:
        """
        Clear the values of a range, leaving formatting in place.

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            worksheet.batch_clear([range_name])
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to clear range '{range_name}': {e}"
            ) from e

    def sort_range(
        self,
        worksheet: gspread.Worksheet,
        range_name: str,
        column: int,
        ascending: bool = True
    ) -> None:
        """
        Sort the rows of a range by one column.

        Args:
            column: 1-indexed sheet column to sort by

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            worksheet.sort((column, "asc" if ascending else "des"), range=range_name)
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to sort range '{range_name}': {e}"
            ) from e

    def clear_basic_filter(self, worksheet: gspread.Worksheet) -> None:
        """
        Remove the worksheet's basic filter, if any.

        Raises:
            SheetsAPIError: If the API call fails
        """
        try:
            worksheet.clear_basic_filter()
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to clear filter on worksheet '{worksheet.title}': {e}"
            ) from e

    def batch_update(
        self,
        spreadsheet: gspread.Spreadsheet,
        requests: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Send structural requests (charts, filters, validation, autofill) in one call.

        Args:
            spreadsheet: The spreadsheet to update
            requests: List of Sheets API request objects, e.g. ``{"addChart": {...}}``

        Returns:
            The API response, or an empty dict when there was nothing to send

        Raises:
            SheetsAPIError: If the API call fails
        """
        if not requests:
            return {}

        try:
            return spreadsheet.batch_update({"requests": requests})
        except APIError as e:
            raise SheetsAPIError(
                f"Failed to apply {len(requests)} spreadsheet request(s): {e}"
            ) from e
