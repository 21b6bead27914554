from __future__ import annotations

import logging
import sqlite3
from typing import IO

import pandas as pd

from portfolio_ticker.config import FIRST_DATA_ROW
from portfolio_ticker.grid import store
from portfolio_ticker.grid.addressing import column_index, column_label

logger = logging.getLogger(__name__)


def _cell_value(val):
    if pd.isna(val):
        return None
    if hasattr(val, "item"):
        # numpy scalar -> plain Python number for sqlite
        return val.item()
    return val


def write_frame(
    conn: sqlite3.Connection,
    sheet: str,
    df: pd.DataFrame,
    start_column: str = "A",
    start_row: int = FIRST_DATA_ROW,
) -> int:
    """Write a DataFrame's rows into a sheet, header excluded. Returns rows written."""
    first_col = column_index(start_column)
    for r, values in enumerate(df.itertuples(index=False)):
        for c, val in enumerate(values):
            store.set_cell(
                conn, sheet, f"{column_label(first_col + c)}{start_row + r}", _cell_value(val),
            )
    return len(df)


def import_csv(
    conn: sqlite3.Connection,
    sheet: str,
    source: str | IO,
    start_column: str = "A",
    start_row: int = FIRST_DATA_ROW,
    replace: bool = True,
) -> int:
    """Load a CSV ledger (one header line) into a sheet.

    With ``replace`` the sheet's data block is cleared first so rows removed
    from the CSV do not linger below the new data.
    """
    df = pd.read_csv(source)
    df = df.dropna(how="all")
    if replace:
        first_col = column_index(start_column)
        last_col = column_label(first_col + max(len(df.columns), 1) - 1)
        existing = max(
            store.first_empty_row(conn, sheet, start_row, column_label(c))
            for c in range(first_col, column_index(last_col) + 1)
        )
        bottom = max(existing, start_row + len(df))
        store.clear_range(conn, sheet, f"{start_column}{start_row}:{last_col}{bottom}")
    count = write_frame(conn, sheet, df, start_column, start_row)
    logger.info("Imported %d rows into %s", count, sheet)
    return count
