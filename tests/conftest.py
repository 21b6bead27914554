import pytest

from portfolio_ticker.database.connection import open_workbook
from portfolio_ticker.grid import store


@pytest.fixture
def grid_db():
    conn = open_workbook(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def fill_row():
    """Write values left to right from a start column."""
    from portfolio_ticker.grid.addressing import column_index, column_label

    def _fill(conn, sheet, row, values, start_column="A"):
        first = column_index(start_column)
        for i, v in enumerate(values):
            store.set_cell(conn, sheet, f"{column_label(first + i)}{row}", v)

    return _fill
