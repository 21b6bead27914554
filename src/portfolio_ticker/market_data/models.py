from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)

DEBUG_PAYLOAD_CHARS = 255


class Timeframe(enum.Enum):
    INTRADAY = "INTRADAY"
    DAILY = "DAILY"


@dataclass(frozen=True)
class PricePoint:
    timestamp: int  # epoch seconds
    close: float

    @property
    def as_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class MarketDataError(Exception):
    """A provider could not be reached or refused the request."""


class RateLimitedError(MarketDataError):
    pass


class UnparseableResponseError(MarketDataError):
    """The provider answered with something that is not JSON."""

    def __init__(self, endpoint: str, raw: str) -> None:
        super().__init__(f"Unparseable response from {endpoint}: {raw[:DEBUG_PAYLOAD_CHARS]!r}")
        self.endpoint = endpoint
        self.raw = raw


class MarketDataClient(Protocol):
    def fetch_series(
        self,
        symbols: Sequence[str],
        window: int,
        timeframe: Timeframe,
    ) -> dict[str, list[PricePoint]]:
        """Return up to ``window`` bars per symbol, newest first.

        Symbols the provider has no data for are left out of the result.
        """
        ...


def newest_first(points: list[PricePoint]) -> list[PricePoint]:
    return sorted(points, key=lambda p: p.timestamp, reverse=True)


def get_json(url: str, headers: dict[str, str], call: str, timeout: int = 30):
    """GET ``url`` and decode the JSON body.

    The first few hundred characters of every body are logged at DEBUG under
    ``call`` so a refresh can mirror them into the Debug sheet.
    """
    req = Request(url, headers={"User-Agent": "portfolio-ticker/0.1", **headers})
    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as e:
        if e.code == 429:
            raise RateLimitedError(f"{call}: rate limit hit") from e
        raise MarketDataError(f"{call}: HTTP {e.code}") from e
    except URLError as e:
        raise MarketDataError(f"{call}: {e.reason}") from e

    payload = raw[:DEBUG_PAYLOAD_CHARS]
    logger.debug("%s %s", call, payload, extra={"call": call, "payload": payload})
    try:
        return json.loads(raw)
    except ValueError as e:
        raise UnparseableResponseError(call, raw) from e
