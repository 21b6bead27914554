from __future__ import annotations

import sqlite3
from pathlib import Path


def get_connection(db_path: Path | str) -> sqlite3.Connection:
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    return conn


def open_workbook(db_path: Path | str) -> sqlite3.Connection:
    """Connection to the workbook database with the cell table in place."""
    from portfolio_ticker.grid.store import initialize

    conn = get_connection(db_path)
    initialize(conn)
    return conn
