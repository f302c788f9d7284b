"""Shared pytest configuration and fixtures for gridaction tests."""

from unittest.mock import Mock

import pandas as pd
import pytest
from gspread.exceptions import APIError

from gridaction import ActionDispatcher, MemoryGridStore


REGIONS = ["East", "West", "East", "North", "West", "East", "South", "North", "East", "West", "South", "East"]
UNITS = [5, 3, 8, 2, 7, 4, 6, 1, 9, 2, 3, 5]


@pytest.fixture
def sales_rows():
    """Header plus 12 data rows: a repeating category, an id column and a measure."""
    rows = [["Region", "OrderID", "Units", "Rep"]]
    reps = ["Ann", "Bo", "Cy", "Di"]
    for i, (region, units) in enumerate(zip(REGIONS, UNITS)):
        rows.append([region, 1001 + i, units, reps[i % 4]])
    return rows


@pytest.fixture
def sales_frame(sales_rows) -> pd.DataFrame:
    return pd.DataFrame(sales_rows[1:], columns=sales_rows[0])


@pytest.fixture
def store():
    return MemoryGridStore()


@pytest.fixture
def sales_store(sales_rows):
    return MemoryGridStore({"Sheet1": sales_rows})


@pytest.fixture
def dispatcher(store):
    return ActionDispatcher(store)


@pytest.fixture
def api_error():
    """Factory for gspread APIErrors with a given status code."""
    def make(code=503, message="Service unavailable"):
        mock_response = Mock()
        mock_response.json.return_value = {
            "error": {"code": code, "message": message}
        }
        return APIError(mock_response)
    return make
