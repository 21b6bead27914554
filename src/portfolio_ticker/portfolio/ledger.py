from __future__ import annotations

import logging
import math
import sqlite3
from typing import Any, Callable, Iterator, Protocol

from portfolio_ticker.config import FIRST_DATA_ROW
from portfolio_ticker.grid import store
from portfolio_ticker.portfolio.models import Distribution, PurchaseLot

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"


class LedgerSource(Protocol):
    def read_lots(self, key: str) -> list[PurchaseLot]: ...

    def read_distributions(self, key: str) -> list[Distribution]: ...


def read_until_blank(
    read_record: Callable[[int], dict[str, Any]],
    key_field: str,
    start: int = 0,
) -> Iterator[dict[str, Any]]:
    """Yield records by position until one has a blank ``key_field``.

    A blank key marks the end of the ledger; there is no separate count.
    """
    position = start
    while True:
        record = read_record(position)
        if store.is_blank(record.get(key_field)):
            return
        yield record
        position += 1


def _number(value: Any) -> float:
    """Numeric cell value, with text such as "n/a" and blanks reading as 0."""
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).replace(",", "").replace("$", ""))
        except (TypeError, ValueError):
            return 0.0
    return number if math.isfinite(number) else 0.0


def _optional_number(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


class GridLedgerSource:
    """Reads purchase and distribution ledgers from workbook sheets.

    Purchase sheets: A symbol, B shares, C unit price paid, D cost basis,
    E latest price, F current value. Distribution sheets: A date, B symbol,
    C amount. Data starts on row 3 in both.
    """

    def __init__(self, conn: sqlite3.Connection, start_row: int = FIRST_DATA_ROW) -> None:
        self._conn = conn
        self._start_row = start_row

    def _record(self, sheet: str, columns: dict[str, str]) -> Callable[[int], dict[str, Any]]:
        def read(position: int) -> dict[str, Any]:
            row = self._start_row + position
            return {
                name: store.get_cell(self._conn, sheet, f"{col}{row}")
                for name, col in columns.items()
            }
        return read

    def read_lots(self, key: str) -> list[PurchaseLot]:
        reader = self._record(key, {
            "symbol": "A", "shares": "B", "cost_basis": "D",
            "price": "E", "current_value": "F",
        })
        lots = []
        for rec in read_until_blank(reader, "symbol"):
            lots.append(PurchaseLot(
                symbol=str(rec["symbol"]).strip(),
                shares=_number(rec["shares"]),
                cost_basis=_number(rec["cost_basis"]),
                current_value=_number(rec["current_value"]),
                price=_optional_number(rec["price"]),
            ))
        logger.debug("Read %d lots from %s", len(lots), key)
        return lots

    def read_distributions(self, key: str) -> list[Distribution]:
        reader = self._record(key, {"symbol": "B", "amount": "C"})
        dists = [
            Distribution(str(rec["symbol"]).strip(), _number(rec["amount"]))
            for rec in read_until_blank(reader, "symbol")
        ]
        logger.debug("Read %d distributions from %s", len(dists), key)
        return dists


def latest_prices(
    conn: sqlite3.Connection,
    price_sheet: str,
    start_row: int = FIRST_DATA_ROW,
) -> dict[str, float]:
    """Newest close per symbol from a price sheet (rightmost filled column)."""
    prices: dict[str, float] = {}
    for offset, sym in enumerate(store.column_values(conn, price_sheet, "A", start_row)):
        newest = store.last_value_in_row(conn, price_sheet, "B", start_row + offset)
        if newest is not None:
            prices[str(sym).strip()] = float(newest)
    return prices


def update_purchased_prices(
    conn: sqlite3.Connection,
    price_sheet: str,
    purchased_sheet: str,
    start_row: int = FIRST_DATA_ROW,
) -> int:
    """Stamp each purchase row with the symbol's newest price and value.

    Rows whose symbol has no price get "n/a" and keep their previous value.
    Returns the number of rows updated with a price.
    """
    prices = latest_prices(conn, price_sheet, start_row)
    updated = 0
    row = start_row
    while True:
        sym = store.get_cell(conn, purchased_sheet, f"A{row}")
        if store.is_blank(sym):
            break
        price = prices.get(str(sym).strip())
        if price is None:
            store.set_cell(conn, purchased_sheet, f"E{row}", NOT_AVAILABLE)
        else:
            shares = _number(store.get_cell(conn, purchased_sheet, f"B{row}"))
            store.set_cell(conn, purchased_sheet, f"E{row}", price)
            store.set_cell(conn, purchased_sheet, f"F{row}", shares * price)
            updated += 1
        row += 1
    logger.info("Updated %d %s rows with latest prices", updated, purchased_sheet)
    return updated
