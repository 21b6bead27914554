from __future__ import annotations

import sqlite3
from dataclasses import dataclass, replace

import altair as alt
import pandas as pd

from portfolio_ticker.config import COLORS, FIRST_DATA_ROW, HEADER_ROW
from portfolio_ticker.charts.scale import min_value, scale_cutoff
from portfolio_ticker.grid import store


@dataclass(frozen=True)
class ChartOptions:
    title: str = ""
    width: int = 280
    height: int = 180
    color: str = COLORS["stock_day_chart"]
    background: str = COLORS["dashboard_background"]
    title_color: str = COLORS["chart_title"]
    y_axis_label_color: str = COLORS["chart_y_axis_label"]
    grid_line_color: str = COLORS["chart_grid_line"]


def series_frame(conn: sqlite3.Connection, sheet: str, row: int) -> pd.DataFrame:
    """Read a price row and the shared date header back as date/close columns."""
    dates = store.row_values(conn, sheet, "B", HEADER_ROW)
    closes = store.row_values(conn, sheet, "B", row)
    n = min(len(dates), len(closes))
    return pd.DataFrame({
        "date": pd.to_datetime(dates[:n], utc=True),
        "close": pd.to_numeric(pd.Series(closes[:n], dtype=object), errors="coerce"),
    })


def axis_floor(closes) -> float:
    smallest = min_value(closes)
    return scale_cutoff(smallest) if smallest is not None else 0


def area_chart(df: pd.DataFrame, options: ChartOptions) -> alt.Chart:
    """Area chart of ``df`` (date, close) with a raised, rounded y-axis floor."""
    cutoff = axis_floor(df["close"].tolist())
    # all prices over $1000: drop the cents
    price_fmt = "$,.0f" if cutoff >= 1000 else "$,.2f"

    return (
        alt.Chart(df)
        .mark_area(color=options.color, clip=True, opacity=0.85)
        .encode(
            x=alt.X("date:T", title=None, axis=alt.Axis(
                labelColor=options.y_axis_label_color,
                gridColor=options.grid_line_color,
            )),
            y=alt.Y("close:Q", title=None,
                scale=alt.Scale(domainMin=cutoff, zero=False),
                axis=alt.Axis(
                    format=price_fmt,
                    labelColor=options.y_axis_label_color,
                    gridColor=options.grid_line_color,
                ),
            ),
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("close:Q", title="Close", format=price_fmt),
            ],
        )
        .properties(
            title=alt.TitleParams(options.title, color=options.title_color, fontSize=11),
            width=options.width,
            height=options.height,
            background=options.background,
        )
    )


def sheet_charts(
    conn: sqlite3.Connection,
    sheet: str,
    options: ChartOptions,
) -> list[alt.Chart]:
    """One area chart per symbol row in a price sheet, titled with the symbol."""
    charts = []
    symbols = store.column_values(conn, sheet, "A", FIRST_DATA_ROW)
    for offset, sym in enumerate(symbols):
        df = series_frame(conn, sheet, FIRST_DATA_ROW + offset)
        if df.empty:
            continue
        charts.append(area_chart(df, replace(options, title=str(sym))))
    return charts
