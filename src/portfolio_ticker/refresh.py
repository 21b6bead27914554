from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

from portfolio_ticker.config import (
    CRYPTO_CURRENT,
    CRYPTO_DETAIL_OFFSETS,
    CRYPTO_HISTORY,
    CRYPTO_SYMBOL_COLUMN,
    HEADER_ROW,
    SHEET_CONFIG,
    SHEET_CRYPTO_PURCHASED,
    SHEET_DASHBOARD,
    SHEET_DEBUG,
    SHEET_DETAIL,
    SHEET_STOCK_DIVIDEND,
    SHEET_STOCK_PURCHASED,
    STOCK_CURRENT,
    STOCK_DETAIL_OFFSETS,
    STOCK_HISTORY,
    STOCK_SYMBOL_COLUMN,
    SYMBOL_START_ROW,
    SeriesLayout,
    Settings,
)
from portfolio_ticker.dashboard.summary import write_summary
from portfolio_ticker.grid import store
from portfolio_ticker.grid.addressing import parse_range
from portfolio_ticker.grid.writer import write_price_grid
from portfolio_ticker.market_data.models import MarketDataClient, Timeframe
from portfolio_ticker.portfolio.aggregator import aggregate
from portfolio_ticker.portfolio.detail import (
    DETAIL_CLEAR_RANGE,
    DETAIL_START_ROW,
    build_detail,
    write_detail,
)
from portfolio_ticker.portfolio.ledger import GridLedgerSource, update_purchased_prices
from portfolio_ticker.portfolio.models import Aggregation

logger = logging.getLogger(__name__)

DASHBOARD_CLEAR_RANGE = "A2:Z1000"
DEBUG_CLEAR_RANGE = "A2:B1000"
STOCK_SUMMARY_ROW = 2
# title and header rows come first; the crypto section goes below the holdings
STOCK_HOLDINGS_ROW = STOCK_SUMMARY_ROW + 2

_MARKET_DATA_LOGGER = "portfolio_ticker.market_data"


class DebugSheetHandler(logging.Handler):
    """Collects provider responses and writes them to the Debug sheet on flush.

    Records can arrive from fetch worker threads, so writes are deferred to
    whoever calls flush().
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        super().__init__(level=logging.DEBUG)
        self._conn = conn
        self._pending: list[tuple[str, str]] = []

    def emit(self, record: logging.LogRecord) -> None:
        call = getattr(record, "call", None)
        if call is None:
            return
        self._pending.append((call, getattr(record, "payload", record.getMessage())))

    def flush(self) -> None:
        self.acquire()
        try:
            pending, self._pending = self._pending, []
        finally:
            self.release()
        for call, payload in pending:
            store.append_debug(self._conn, call, payload)


@contextmanager
def mirror_responses(conn: sqlite3.Connection) -> Iterator[DebugSheetHandler]:
    md_logger = logging.getLogger(_MARKET_DATA_LOGGER)
    handler = DebugSheetHandler(conn)
    previous_level = md_logger.level
    md_logger.addHandler(handler)
    md_logger.setLevel(logging.DEBUG)
    try:
        yield handler
    finally:
        md_logger.removeHandler(handler)
        md_logger.setLevel(previous_level)
        handler.flush()


def build_stock_client(settings: Settings) -> MarketDataClient:
    if settings.stock_provider == "yahoo":
        from portfolio_ticker.market_data.yahoo import YahooClient
        return YahooClient()
    from portfolio_ticker.market_data.alpaca import AlpacaClient
    return AlpacaClient(timeout=settings.request_timeout)


def build_crypto_client(settings: Settings) -> MarketDataClient:
    from portfolio_ticker.market_data.cryptocompare import CryptoCompareClient
    return CryptoCompareClient(
        max_workers=settings.crypto_max_workers,
        timeout=settings.request_timeout,
    )


@dataclass
class RefreshResult:
    stock: Aggregation | None = None
    crypto: Aggregation | None = None
    last_dashboard_row: int = 0
    written: dict[str, list[str]] = field(default_factory=dict)


class Refresher:
    """Runs one refresh of the workbook: fetch, write, aggregate, summarise.

    Each public refresh returns a fresh RefreshResult; nothing is carried
    over between runs except what is stored in the workbook itself.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        settings: Settings,
        stock_client: MarketDataClient | None = None,
        crypto_client: MarketDataClient | None = None,
    ) -> None:
        self._conn = conn
        self._settings = settings
        self._stock_client = stock_client
        self._crypto_client = crypto_client

    @property
    def stock_client(self) -> MarketDataClient:
        if self._stock_client is None:
            self._stock_client = build_stock_client(self._settings)
        return self._stock_client

    @property
    def crypto_client(self) -> MarketDataClient:
        if self._crypto_client is None:
            self._crypto_client = build_crypto_client(self._settings)
        return self._crypto_client

    # -- Entry points --------------------------------------------------------

    def refresh_all(self) -> RefreshResult:
        return self._run(include_history=True)

    def refresh_current(self) -> RefreshResult:
        return self._run(include_history=False)

    def _run(self, include_history: bool) -> RefreshResult:
        """Run every step, committing after each one.

        A failing step is rolled back so the workbook stays as of the last
        completed step.
        """
        try:
            return self._steps(include_history)
        except Exception:
            self._conn.rollback()
            logger.warning("Refresh failed, rolled back the unfinished step")
            raise

    def _steps(self, include_history: bool) -> RefreshResult:
        conn = self._conn
        store.initialize(conn)
        store.clear_range(conn, SHEET_DASHBOARD, DASHBOARD_CLEAR_RANGE)
        store.clear_range(conn, SHEET_DEBUG, DEBUG_CLEAR_RANGE)
        result = RefreshResult()

        stock_symbols = self.stock_symbols()
        crypto_symbols = self.crypto_symbols()

        with mirror_responses(conn) as debug:
            logger.info("Updating current stock prices")
            result.written[STOCK_CURRENT.sheet] = self.refresh_series(
                STOCK_CURRENT, self._client_for(stock_symbols, "stock"), stock_symbols, Timeframe.INTRADAY,
            )
            logger.info("Updating stock purchased")
            update_purchased_prices(conn, STOCK_CURRENT.sheet, SHEET_STOCK_PURCHASED)
            self._commit(debug)

            if include_history:
                logger.info("Updating historical stock prices")
                result.written[STOCK_HISTORY.sheet] = self.refresh_series(
                    STOCK_HISTORY, self._client_for(stock_symbols, "stock"), stock_symbols, Timeframe.DAILY,
                )
                self._commit(debug)

            logger.info("Updating dashboard stock returns")
            result.stock, result.last_dashboard_row = self.update_stock_dashboard()
            self._commit(debug)

            logger.info("Updating current crypto prices")
            result.written[CRYPTO_CURRENT.sheet] = self.refresh_series(
                CRYPTO_CURRENT, self._client_for(crypto_symbols, "crypto"), crypto_symbols, Timeframe.INTRADAY,
            )
            logger.info("Updating crypto purchased")
            update_purchased_prices(conn, CRYPTO_CURRENT.sheet, SHEET_CRYPTO_PURCHASED)
            self._commit(debug)

            if include_history:
                logger.info("Updating historical crypto prices")
                result.written[CRYPTO_HISTORY.sheet] = self.refresh_series(
                    CRYPTO_HISTORY, self._client_for(crypto_symbols, "crypto"), crypto_symbols, Timeframe.DAILY,
                )
                self._commit(debug)

            logger.info("Updating dashboard crypto returns")
            result.crypto, result.last_dashboard_row = self.update_crypto_dashboard()
            self._commit(debug)

        logger.info("Updating detail tab")
        self.refresh_detail(stock_symbols, crypto_symbols)
        conn.commit()

        logger.info("Refresh complete")
        return result

    def _client_for(self, symbols: list[str], kind: str) -> MarketDataClient | None:
        # nothing to fetch: leave the provider unbuilt
        if not symbols:
            return None
        return self.stock_client if kind == "stock" else self.crypto_client

    def _commit(self, debug: DebugSheetHandler) -> None:
        debug.flush()
        self._conn.commit()

    # -- Steps ---------------------------------------------------------------

    def stock_symbols(self) -> list[str]:
        return store.unique_symbols(self._conn, SHEET_CONFIG, STOCK_SYMBOL_COLUMN, SYMBOL_START_ROW)

    def crypto_symbols(self) -> list[str]:
        return store.unique_symbols(self._conn, SHEET_CONFIG, CRYPTO_SYMBOL_COLUMN, SYMBOL_START_ROW)

    def refresh_series(
        self,
        layout: SeriesLayout,
        client: MarketDataClient | None,
        symbols: list[str],
        timeframe: Timeframe,
    ) -> list[str]:
        """Fetch bars for ``symbols`` and rewrite the layout's price sheet."""
        store.clear_range(self._conn, layout.sheet, layout.clear_range)
        # the date header belongs to whichever symbol is written first
        _, bottom_right = parse_range(layout.clear_range)
        store.clear_range(self._conn, layout.sheet, f"B{HEADER_ROW}:{bottom_right.column}{HEADER_ROW}")
        if not symbols:
            logger.info("No symbols configured for %s", layout.sheet)
            return []
        series = client.fetch_series(symbols, layout.window, timeframe)
        written = write_price_grid(self._conn, layout.sheet, symbols, series)
        logger.info("Wrote %d/%d symbols to %s", len(written), len(symbols), layout.sheet)
        return written

    def update_stock_dashboard(self) -> tuple[Aggregation, int]:
        ledger = GridLedgerSource(self._conn)
        agg = aggregate(
            ledger.read_lots(SHEET_STOCK_PURCHASED),
            ledger.read_distributions(SHEET_STOCK_DIVIDEND),
        )
        last_row = write_summary(self._conn, "Stock Summary", agg, STOCK_SUMMARY_ROW)
        return agg, last_row

    def update_crypto_dashboard(self) -> tuple[Aggregation, int]:
        ledger = GridLedgerSource(self._conn)
        agg = aggregate(ledger.read_lots(SHEET_CRYPTO_PURCHASED))
        start = store.first_empty_row(self._conn, SHEET_DASHBOARD, STOCK_HOLDINGS_ROW, "D") + 1
        last_row = write_summary(self._conn, "Crypto Summary", agg, start)
        return agg, last_row

    def refresh_detail(self, stock_symbols: list[str], crypto_symbols: list[str]) -> None:
        store.clear_range(self._conn, SHEET_DETAIL, DETAIL_CLEAR_RANGE)
        stock_rows = build_detail(
            self._conn, stock_symbols, STOCK_CURRENT.sheet, STOCK_HISTORY.sheet, STOCK_DETAIL_OFFSETS,
        )
        next_row = write_detail(self._conn, stock_rows, DETAIL_START_ROW)
        crypto_rows = build_detail(
            self._conn, crypto_symbols, CRYPTO_CURRENT.sheet, CRYPTO_HISTORY.sheet, CRYPTO_DETAIL_OFFSETS,
        )
        write_detail(self._conn, crypto_rows, next_row)
