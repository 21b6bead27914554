from __future__ import annotations

import sqlite3

import pandas as pd

from portfolio_ticker.config import SHEET_DASHBOARD
from portfolio_ticker.grid import store
from portfolio_ticker.portfolio.ledger import NOT_AVAILABLE
from portfolio_ticker.portfolio.models import Aggregation, NetReturn

SUMMARY_HEADERS = (
    "Symbol", "Shares", "Price", "Cost Basis", "Value", "Dividends", "$ Net", "% Net",
)
_COLUMNS = ("A", "B", "C", "D", "E", "F", "G", "H")


def _percent_cell(ret: NetReturn) -> float | str:
    return ret.percent if ret.is_defined else NOT_AVAILABLE


def summary_rows(aggregation: Aggregation) -> list[list]:
    """Holding rows followed by a totals row, in display order."""
    rows = []
    for h in aggregation.holdings.values():
        ret = h.net_return
        rows.append([
            h.symbol,
            h.shares,
            h.latest_price if h.latest_price is not None else NOT_AVAILABLE,
            h.cost_basis,
            h.market_value,
            h.distributions,
            ret.gain,
            _percent_cell(ret),
        ])
    totals = aggregation.totals
    ret = totals.net_return
    rows.append([
        "Total", None, None,
        totals.cost_basis,
        totals.market_value,
        totals.distributions,
        ret.gain,
        _percent_cell(ret),
    ])
    return rows


def write_summary(
    conn: sqlite3.Connection,
    title: str,
    aggregation: Aggregation,
    start_row: int,
    sheet: str = SHEET_DASHBOARD,
) -> int:
    """Write a titled holdings table to the dashboard. Returns the totals row."""
    row = start_row
    store.set_cell(conn, sheet, f"A{row}", title)
    row += 1
    for col, header in zip(_COLUMNS, SUMMARY_HEADERS):
        store.set_cell(conn, sheet, f"{col}{row}", header)

    *holdings, totals = summary_rows(aggregation)
    for values in holdings:
        row += 1
        for col, value in zip(_COLUMNS, values):
            store.set_cell(conn, sheet, f"{col}{row}", value)

    # totals only fill D..H
    row += 1
    for col, value in list(zip(_COLUMNS, totals))[3:]:
        store.set_cell(conn, sheet, f"{col}{row}", value)
    return row


def summary_frame(aggregation: Aggregation) -> pd.DataFrame:
    return pd.DataFrame(summary_rows(aggregation), columns=list(SUMMARY_HEADERS))
