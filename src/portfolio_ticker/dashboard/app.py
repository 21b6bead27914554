from __future__ import annotations

import logging

import pandas as pd
import streamlit as st

from portfolio_ticker.charts.area import ChartOptions, sheet_charts
from portfolio_ticker.config import (
    COLORS,
    CRYPTO_CURRENT,
    CRYPTO_DETAIL_OFFSETS,
    CRYPTO_HISTORY,
    SHEET_CONFIG,
    SHEET_CRYPTO_PURCHASED,
    SHEET_STOCK_DIVIDEND,
    SHEET_STOCK_PURCHASED,
    STOCK_CURRENT,
    STOCK_DETAIL_OFFSETS,
    STOCK_HISTORY,
    Settings,
)
from portfolio_ticker.dashboard.summary import summary_frame
from portfolio_ticker.database.connection import open_workbook
from portfolio_ticker.grid.importer import import_csv
from portfolio_ticker.market_data.models import MarketDataError
from portfolio_ticker.portfolio.aggregator import aggregate
from portfolio_ticker.portfolio.detail import PERIODS, build_detail
from portfolio_ticker.portfolio.ledger import GridLedgerSource
from portfolio_ticker.refresh import Refresher

logger = logging.getLogger(__name__)

_settings = Settings()

_IMPORT_TARGETS = {
    "Stock purchases": (SHEET_STOCK_PURCHASED, "A", 3),
    "Stock dividends": (SHEET_STOCK_DIVIDEND, "A", 3),
    "Crypto purchases": (SHEET_CRYPTO_PURCHASED, "A", 3),
    "Tracked symbols (stock, crypto)": (SHEET_CONFIG, "D", 4),
}

_DETAIL_LABELS = {
    "week": "Week",
    "month": "Month",
    "three_month": "3 Months",
    "six_month": "6 Months",
    "year": "12 Months",
}


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def _up_down(val) -> str:
    if not isinstance(val, (int, float)) or pd.isna(val):
        return ""
    return f"color:{COLORS['down'] if val < 0 else COLORS['up']}"


def _fmt_pct(v) -> str:
    if not isinstance(v, (int, float)) or pd.isna(v):
        return "n/a"
    return f"{v:+.2%}"


def _fmt_money(v) -> str:
    if not isinstance(v, (int, float)) or pd.isna(v):
        return "" if v is None else str(v)
    return f"${v:,.2f}"


def _styled_summary(df: pd.DataFrame):
    return (
        df.style
        .map(_up_down, subset=["$ Net", "% Net"])
        .format(_fmt_money, subset=["Price", "Cost Basis", "Value", "Dividends", "$ Net"])
        .format(_fmt_pct, subset=["% Net"])
        .format(lambda v: "" if v is None or pd.isna(v) else f"{v:,.4f}", subset=["Shares"])
    )


def _detail_frame(rows) -> pd.DataFrame:
    records = []
    for row in rows:
        rec = {"Symbol": row.symbol, "Price": row.latest}
        rec["Day"] = row.day.percent if row.day else None
        for period in PERIODS:
            change = row.periods.get(period)
            rec[_DETAIL_LABELS[period]] = change.percent if change else None
        records.append(rec)
    return pd.DataFrame(records)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

def _sidebar(conn) -> None:
    st.sidebar.header("Refresh")
    refresher = Refresher(conn, _settings)
    try:
        if st.sidebar.button("Refresh all", use_container_width=True):
            with st.spinner("Refreshing current and historical prices"):
                refresher.refresh_all()
            st.sidebar.success("Refresh complete")
        if st.sidebar.button("Refresh current prices", use_container_width=True):
            with st.spinner("Refreshing current prices"):
                refresher.refresh_current()
            st.sidebar.success("Refresh complete")
    except (MarketDataError, RuntimeError) as e:
        logger.exception("Refresh failed")
        st.sidebar.error(f"Refresh failed: {e}")

    st.sidebar.header("Import ledger")
    target = st.sidebar.selectbox("Sheet", list(_IMPORT_TARGETS))
    uploaded = st.sidebar.file_uploader("CSV file", type=["csv"])
    if uploaded is not None and st.sidebar.button("Import", use_container_width=True):
        sheet, column, row = _IMPORT_TARGETS[target]
        count = import_csv(conn, sheet, uploaded, start_column=column, start_row=row)
        conn.commit()
        st.sidebar.success(f"Imported {count} rows into {sheet}")


def _summary_section(title: str, agg) -> None:
    st.subheader(title)
    if not agg.holdings:
        st.info("No holdings recorded.")
        return
    st.dataframe(_styled_summary(summary_frame(agg)), hide_index=True, use_container_width=True)


def _chart_section(conn, title: str, year_sheet: str, day_sheet: str, year_color: str, day_color: str) -> None:
    year_charts = sheet_charts(conn, year_sheet, ChartOptions(color=year_color))
    day_charts = sheet_charts(conn, day_sheet, ChartOptions(color=day_color))
    if not year_charts and not day_charts:
        return
    st.subheader(title)
    left, right = st.columns(2)
    left.markdown("**One Year**")
    right.markdown("**Today**")
    for chart in year_charts:
        left.altair_chart(chart, use_container_width=True)
    for chart in day_charts:
        right.altair_chart(chart, use_container_width=True)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    st.set_page_config(
        page_title="Ticker",
        page_icon=":material/monitoring:",
        layout="wide",
    )
    st.markdown(
        "<style>"
        "#MainMenu {visibility:hidden} footer {visibility:hidden} "
        ".block-container {padding-top:.5rem;padding-bottom:0} "
        f".stApp {{background:{COLORS['dashboard_background']}}}"
        "</style>",
        unsafe_allow_html=True,
    )

    conn = open_workbook(_settings.db_path)
    _sidebar(conn)

    ledger = GridLedgerSource(conn)
    stock = aggregate(
        ledger.read_lots(SHEET_STOCK_PURCHASED),
        ledger.read_distributions(SHEET_STOCK_DIVIDEND),
    )
    crypto = aggregate(ledger.read_lots(SHEET_CRYPTO_PURCHASED))

    _summary_section("Stock Summary", stock)
    _summary_section("Crypto Summary", crypto)

    refresher = Refresher(conn, _settings)
    details = build_detail(
        conn, refresher.stock_symbols(), STOCK_CURRENT.sheet, STOCK_HISTORY.sheet, STOCK_DETAIL_OFFSETS,
    ) + build_detail(
        conn, refresher.crypto_symbols(), CRYPTO_CURRENT.sheet, CRYPTO_HISTORY.sheet, CRYPTO_DETAIL_OFFSETS,
    )
    if details:
        st.subheader("Price Changes")
        detail_df = _detail_frame(details)
        pct_cols = ["Day", *_DETAIL_LABELS.values()]
        st.dataframe(
            detail_df.style.map(_up_down, subset=pct_cols)
            .format(_fmt_pct, subset=pct_cols)
            .format(_fmt_money, subset=["Price"]),
            hide_index=True,
            use_container_width=True,
        )

    _chart_section(
        conn, "Stocks", STOCK_HISTORY.sheet, STOCK_CURRENT.sheet,
        COLORS["stock_day_chart"], COLORS["stock_hour_chart"],
    )
    _chart_section(
        conn, "Crypto", CRYPTO_HISTORY.sheet, CRYPTO_CURRENT.sheet,
        COLORS["crypto_day_chart"], COLORS["crypto_hour_chart"],
    )


if __name__ == "__main__":
    main()
