from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Sequence

from portfolio_ticker.config import FIRST_DATA_ROW, SHEET_DETAIL
from portfolio_ticker.grid import store
from portfolio_ticker.portfolio.ledger import NOT_AVAILABLE

logger = logging.getLogger(__name__)

DETAIL_START_ROW = 4
DETAIL_CLEAR_RANGE = "A4:O104"
PERIODS = ("week", "month", "three_month", "six_month", "year")

# Percent changes in B..G, dollar changes in J..O
_PERCENT_COLUMNS = ("B", "C", "D", "E", "F", "G")
_DOLLAR_COLUMNS = ("J", "K", "L", "M", "N", "O")


class PeriodChange(NamedTuple):
    percent: float
    dollars: float


@dataclass(frozen=True)
class DetailRow:
    symbol: str
    latest: float
    day: PeriodChange | None
    periods: dict[str, PeriodChange | None] = field(default_factory=dict)

    def changes(self) -> list[PeriodChange | None]:
        return [self.day] + [self.periods.get(p) for p in PERIODS]


def period_change(latest: float, compare: Any) -> PeriodChange | None:
    if isinstance(compare, bool) or not isinstance(compare, (int, float)) or compare == 0:
        return None
    return PeriodChange((latest - compare) / compare, latest - compare)


def _rows_by_symbol(conn: sqlite3.Connection, sheet: str) -> dict[str, int]:
    symbols = store.column_values(conn, sheet, "A", FIRST_DATA_ROW)
    rows: dict[str, int] = {}
    for offset, sym in enumerate(symbols):
        rows.setdefault(str(sym).strip(), FIRST_DATA_ROW + offset)
    return rows


def build_detail(
    conn: sqlite3.Connection,
    symbols: Sequence[str],
    current_sheet: str,
    history_sheet: str,
    offsets: dict[str, int],
) -> list[DetailRow]:
    """Day and period price changes for each symbol with intraday prices.

    Intraday rows run oldest to newest, so the day change compares the last
    bar against the first. Period changes compare the newest intraday price
    against the history bar ``offsets[period]`` bars before the newest one.
    """
    current_rows = _rows_by_symbol(conn, current_sheet)
    history_rows = _rows_by_symbol(conn, history_sheet)

    details = []
    for sym in symbols:
        row = current_rows.get(sym)
        if row is None:
            logger.debug("No intraday prices for %s, leaving it off the detail tab", sym)
            continue
        intraday = store.row_values(conn, current_sheet, "B", row)
        if not intraday:
            continue
        latest = float(intraday[-1])

        history: list[Any] = []
        if sym in history_rows:
            history = store.row_values(conn, history_sheet, "B", history_rows[sym])

        periods = {}
        for period in PERIODS:
            back = offsets[period]
            compare = history[-1 - back] if len(history) > back else None
            periods[period] = period_change(latest, compare)

        details.append(DetailRow(sym, latest, period_change(latest, intraday[0]), periods))
    return details


def write_detail(
    conn: sqlite3.Connection,
    rows: Sequence[DetailRow],
    start_row: int = DETAIL_START_ROW,
    sheet: str = SHEET_DETAIL,
) -> int:
    """Write detail rows from ``start_row``. Returns the next free row."""
    row = start_row
    for detail in rows:
        store.set_cell(conn, sheet, f"A{row}", detail.symbol)
        store.set_cell(conn, sheet, f"I{row}", detail.symbol)
        for pct_col, usd_col, change in zip(_PERCENT_COLUMNS, _DOLLAR_COLUMNS, detail.changes()):
            if change is None:
                store.set_cell(conn, sheet, f"{pct_col}{row}", NOT_AVAILABLE)
                store.set_cell(conn, sheet, f"{usd_col}{row}", NOT_AVAILABLE)
            else:
                store.set_cell(conn, sheet, f"{pct_col}{row}", change.percent)
                store.set_cell(conn, sheet, f"{usd_col}{row}", change.dollars)
        row += 1
    return row
