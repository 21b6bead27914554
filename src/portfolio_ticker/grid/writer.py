from __future__ import annotations

import logging
import sqlite3
from typing import Mapping, Sequence

from portfolio_ticker.config import FIRST_DATA_ROW, HEADER_ROW
from portfolio_ticker.grid.addressing import GridCoordinate, next_column
from portfolio_ticker.grid.store import set_cell
from portfolio_ticker.market_data.models import PricePoint

logger = logging.getLogger(__name__)


def write_series(
    conn: sqlite3.Connection,
    sheet: str,
    anchor: GridCoordinate,
    symbol: str,
    points: Sequence[PricePoint],
    header_row: int | None = None,
) -> str:
    """Lay out one symbol's series left to right from ``anchor``.

    The anchor cell gets the symbol, each following column one close. When
    ``header_row`` is set the bar dates are written into that row as well.
    Returns the last column written.
    """
    set_cell(conn, sheet, anchor.a1, symbol)
    column = anchor.column
    for point in points:
        column = next_column(column)
        if header_row is not None:
            set_cell(conn, sheet, f"{column}{header_row}", point.as_datetime)
        set_cell(conn, sheet, f"{column}{anchor.row}", point.close)
    return column


def write_price_grid(
    conn: sqlite3.Connection,
    sheet: str,
    symbols: Sequence[str],
    series: Mapping[str, Sequence[PricePoint]],
    start_row: int = FIRST_DATA_ROW,
    anchor_column: str = "A",
) -> list[str]:
    """Write one row per symbol, oldest bar first.

    ``series`` is newest-first as delivered by the market data clients.
    Symbols without data are skipped. The date header row is shared by the
    whole batch so it is written with the first symbol only.
    Returns the symbols that were written, in row order.
    """
    written: list[str] = []
    row = start_row
    for sym in symbols:
        points = series.get(sym)
        if not points:
            logger.warning("No price data for %s, skipping %s row", sym, sheet)
            continue
        write_series(
            conn,
            sheet,
            GridCoordinate(anchor_column, row),
            sym,
            list(reversed(points)),
            header_row=HEADER_ROW if not written else None,
        )
        written.append(sym)
        row += 1
    return written
