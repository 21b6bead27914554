from __future__ import annotations

import logging
from typing import Sequence

import pandas as pd
import yfinance as yf

from portfolio_ticker.market_data.models import PricePoint, Timeframe, newest_first

logger = logging.getLogger(__name__)

# (period, interval) per timeframe; periods are generous and trimmed to window
_DOWNLOAD_ARGS = {
    Timeframe.INTRADAY: ("5d", "5m"),
    Timeframe.DAILY: ("2y", "1d"),
}


def _close_columns(df: pd.DataFrame, symbols: Sequence[str]) -> dict[str, pd.Series]:
    if isinstance(df.columns, pd.MultiIndex):
        # Multi-symbol: MultiIndex columns (metric, symbol)
        closes = {}
        for sym in symbols:
            try:
                closes[sym] = df[("Close", sym)]
            except KeyError:
                logger.debug("No Close data for %s", sym)
        return closes
    if "Close" not in df.columns:
        return {}
    # Single symbol: columns are flat (Close, Volume, etc.)
    return {symbols[0]: df["Close"]}


class YahooClient:
    """Equity bars from Yahoo Finance via yfinance. Needs no API key."""

    def fetch_series(
        self,
        symbols: Sequence[str],
        window: int,
        timeframe: Timeframe,
    ) -> dict[str, list[PricePoint]]:
        if not symbols:
            return {}

        period, interval = _DOWNLOAD_ARGS[timeframe]
        df = yf.download(
            list(symbols),
            period=period,
            interval=interval,
            progress=False,
            auto_adjust=False,
        )
        if df is None or df.empty:
            logger.warning("yfinance returned no data for %s", ", ".join(symbols))
            return {}

        result: dict[str, list[PricePoint]] = {}
        for sym, series in _close_columns(df, symbols).items():
            series = series.dropna()
            points = [
                PricePoint(int(pd.Timestamp(ts).timestamp()), float(close))
                for ts, close in series.items()
            ]
            if not points:
                logger.warning("yfinance returned no bars for %s", sym)
                continue
            result[sym] = newest_first(points)[:window]
        return result
