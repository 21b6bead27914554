from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence
from urllib.parse import urlencode

from portfolio_ticker.config import require_api_key
from portfolio_ticker.market_data.models import (
    PricePoint,
    Timeframe,
    get_json,
    newest_first,
)

logger = logging.getLogger(__name__)

_API_BASE = "https://min-api.cryptocompare.com"

_HISTO_PATHS = {
    Timeframe.INTRADAY: "/data/histominute",
    Timeframe.DAILY: "/data/histoday",
}


class CryptoCompareClient:
    """Coin prices in USD from CryptoCompare.

    The histo endpoints take one coin at a time, so requests are spread over
    a small thread pool to stay inside the provider's rate limits.
    """

    def __init__(
        self,
        api_key: str | None = None,
        max_workers: int = 4,
        quote_currency: str = "USD",
        timeout: int = 30,
    ) -> None:
        self._api_key = api_key or require_api_key("CRYPTOCOMPARE_API_KEY")
        self._max_workers = max_workers
        self._quote_currency = quote_currency
        self._timeout = timeout

    def _fetch_one(self, symbol: str, window: int, timeframe: Timeframe) -> list[PricePoint]:
        path = _HISTO_PATHS[timeframe]
        qs = urlencode({"fsym": symbol, "tsym": self._quote_currency, "limit": window})
        data = get_json(
            f"{_API_BASE}{path}?{qs}",
            {"Authorization": f"Apikey {self._api_key}"},
            call=f"CryptoCompare {path}",
            timeout=self._timeout,
        )
        if not isinstance(data, dict) or data.get("Response") == "Error":
            message = data.get("Message") if isinstance(data, dict) else data
            logger.warning("CryptoCompare error for %s: %s", symbol, message)
            return []

        bars = data.get("Data") or []
        # histo v2 nests the bars one level deeper
        if isinstance(bars, dict):
            bars = bars.get("Data") or []
        points = [
            PricePoint(int(bar["time"]), float(bar["close"]))
            for bar in bars
            if bar.get("time") is not None and bar.get("close") is not None
        ]
        # limit=N answers with N + 1 bars
        return newest_first(points)[:window]

    def fetch_series(
        self,
        symbols: Sequence[str],
        window: int,
        timeframe: Timeframe,
    ) -> dict[str, list[PricePoint]]:
        if not symbols:
            return {}

        workers = min(self._max_workers, len(symbols))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # map preserves input order; the first provider failure propagates
            fetched = list(pool.map(lambda s: self._fetch_one(s, window, timeframe), symbols))

        result: dict[str, list[PricePoint]] = {}
        for sym, points in zip(symbols, fetched):
            if points:
                result[sym] = points
            else:
                logger.warning("CryptoCompare returned no bars for %s", sym)
        return result
