from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import urlencode

from portfolio_ticker.config import require_api_key
from portfolio_ticker.market_data.models import (
    MarketDataError,
    PricePoint,
    Timeframe,
    get_json,
    newest_first,
)

logger = logging.getLogger(__name__)

_DATA_BASE = "https://data.alpaca.markets"

_BAR_PATHS = {
    Timeframe.INTRADAY: "/v1/bars/5Min",
    Timeframe.DAILY: "/v1/bars/day",
}


class AlpacaClient:
    """Equity bars from the Alpaca market data API.

    All symbols go out in a single batched request per timeframe.
    """

    def __init__(
        self,
        key_id: str | None = None,
        secret_key: str | None = None,
        timeout: int = 30,
    ) -> None:
        self._key_id = key_id or require_api_key("APCA_API_KEY_ID")
        self._secret_key = secret_key or require_api_key("APCA_API_SECRET_KEY")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "APCA-API-KEY-ID": self._key_id,
            "APCA-API-SECRET-KEY": self._secret_key,
        }

    def fetch_series(
        self,
        symbols: Sequence[str],
        window: int,
        timeframe: Timeframe,
    ) -> dict[str, list[PricePoint]]:
        if not symbols:
            return {}

        path = _BAR_PATHS[timeframe]
        qs = urlencode({"symbols": ",".join(symbols), "limit": window})
        data = get_json(
            f"{_DATA_BASE}{path}?{qs}",
            self._headers(),
            call=f"Alpaca {path}",
            timeout=self._timeout,
        )
        if not isinstance(data, dict):
            raise MarketDataError(f"Alpaca {path}: expected an object, got {type(data).__name__}")

        result: dict[str, list[PricePoint]] = {}
        for sym in symbols:
            bars = data.get(sym)
            if not bars:
                logger.warning("Alpaca returned no bars for %s", sym)
                continue
            points = [
                PricePoint(int(bar["t"]), float(bar["c"]))
                for bar in bars
                if bar.get("t") is not None and bar.get("c") is not None
            ]
            if points:
                result[sym] = newest_first(points)[:window]
        return result
