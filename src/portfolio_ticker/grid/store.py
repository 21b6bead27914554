from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Any

from portfolio_ticker.config import SHEET_DEBUG
from portfolio_ticker.grid.addressing import column_index, parse_cell, parse_range

# value has no declared type so SQLite keeps numbers as numbers and text as text
GRID_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS cells (
    sheet TEXT    NOT NULL,
    col   INTEGER NOT NULL,
    row   INTEGER NOT NULL,
    value,
    PRIMARY KEY (sheet, col, row)
);
"""

DEBUG_MESSAGE_LIMIT = 255


def initialize(conn: sqlite3.Connection) -> None:
    conn.executescript(GRID_SCHEMA_SQL)


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_storable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


# --- Single cells ---

def get_cell(conn: sqlite3.Connection, sheet: str, cell: str) -> Any:
    coord = parse_cell(cell)
    row = conn.execute(
        "SELECT value FROM cells WHERE sheet = ? AND col = ? AND row = ?",
        (sheet, coord.column_index, coord.row),
    ).fetchone()
    return row["value"] if row is not None else None


def set_cell(conn: sqlite3.Connection, sheet: str, cell: str, value: Any) -> None:
    coord = parse_cell(cell)
    if is_blank(value):
        conn.execute(
            "DELETE FROM cells WHERE sheet = ? AND col = ? AND row = ?",
            (sheet, coord.column_index, coord.row),
        )
        return
    conn.execute(
        "INSERT OR REPLACE INTO cells (sheet, col, row, value) VALUES (?, ?, ?, ?)",
        (sheet, coord.column_index, coord.row, _to_storable(value)),
    )


# --- Ranges ---

def clear_range(conn: sqlite3.Connection, sheet: str, cell_range: str) -> int:
    """Blank every cell in the range. Returns the number of cells removed."""
    top_left, bottom_right = parse_range(cell_range)
    cur = conn.execute(
        "DELETE FROM cells WHERE sheet = ? "
        "AND col BETWEEN ? AND ? AND row BETWEEN ? AND ?",
        (
            sheet,
            top_left.column_index, bottom_right.column_index,
            top_left.row, bottom_right.row,
        ),
    )
    return cur.rowcount


def clear_sheet(conn: sqlite3.Connection, sheet: str) -> None:
    conn.execute("DELETE FROM cells WHERE sheet = ?", (sheet,))


def range_values(
    conn: sqlite3.Connection, sheet: str, cell_range: str
) -> list[list[Any]]:
    """Return the range as a list of rows, blanks as None."""
    top_left, bottom_right = parse_range(cell_range)
    first_col, last_col = top_left.column_index, bottom_right.column_index
    grid = [
        [None] * (last_col - first_col + 1)
        for _ in range(bottom_right.row - top_left.row + 1)
    ]
    rows = conn.execute(
        "SELECT col, row, value FROM cells WHERE sheet = ? "
        "AND col BETWEEN ? AND ? AND row BETWEEN ? AND ?",
        (sheet, first_col, last_col, top_left.row, bottom_right.row),
    ).fetchall()
    for r in rows:
        grid[r["row"] - top_left.row][r["col"] - first_col] = r["value"]
    return grid


# --- Bounded scans (stop at the first blank cell) ---

def row_values(
    conn: sqlite3.Connection, sheet: str, start_column: str, row: int
) -> list[Any]:
    """Values from start_column rightwards, up to the first blank cell."""
    expected = column_index(start_column)
    rows = conn.execute(
        "SELECT col, value FROM cells WHERE sheet = ? AND row = ? AND col >= ? "
        "ORDER BY col",
        (sheet, row, expected),
    ).fetchall()
    values = []
    for r in rows:
        if r["col"] != expected or is_blank(r["value"]):
            break
        values.append(r["value"])
        expected += 1
    return values


def column_values(
    conn: sqlite3.Connection, sheet: str, column: str, start_row: int
) -> list[Any]:
    """Values from start_row downwards, up to the first blank cell."""
    expected = start_row
    rows = conn.execute(
        "SELECT row, value FROM cells WHERE sheet = ? AND col = ? AND row >= ? "
        "ORDER BY row",
        (sheet, column_index(column), start_row),
    ).fetchall()
    values = []
    for r in rows:
        if r["row"] != expected or is_blank(r["value"]):
            break
        values.append(r["value"])
        expected += 1
    return values


def last_value_in_row(
    conn: sqlite3.Connection, sheet: str, start_column: str, row: int
) -> Any:
    values = row_values(conn, sheet, start_column, row)
    return values[-1] if values else None


def first_empty_row(
    conn: sqlite3.Connection, sheet: str, start_row: int, column: str
) -> int:
    return start_row + len(column_values(conn, sheet, column, start_row))


def unique_symbols(
    conn: sqlite3.Connection, sheet: str, column: str, start_row: int
) -> list[str]:
    """Symbols listed down a column, deduped in first-seen order."""
    symbols = [str(v).strip() for v in column_values(conn, sheet, column, start_row)]
    return list(dict.fromkeys(symbols))


# --- Debug sheet ---

def append_debug(conn: sqlite3.Connection, call: str, message: str) -> int:
    """Write a call/message pair to the next free Debug row. Returns the row."""
    row = first_empty_row(conn, SHEET_DEBUG, 2, "A")
    set_cell(conn, SHEET_DEBUG, f"A{row}", call)
    set_cell(conn, SHEET_DEBUG, f"B{row}", message[:DEBUG_MESSAGE_LIMIT] or "(empty)")
    return row
