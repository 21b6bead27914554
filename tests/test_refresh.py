import logging
from pathlib import Path

import pytest

from portfolio_ticker.config import Settings
from portfolio_ticker.grid import store
from portfolio_ticker.market_data.models import MarketDataError, PricePoint, Timeframe
from portfolio_ticker.refresh import DebugSheetHandler, Refresher, mirror_responses

T0 = 1_704_067_200
DAY = 86_400


def _bars(closes, step):
    """Newest-first points for ``closes`` given oldest first."""
    return [PricePoint(T0 + i * step, c) for i, c in enumerate(closes)][::-1]


class FakeClient:
    def __init__(self, name, intraday, daily):
        self._name = name
        self._data = {Timeframe.INTRADAY: intraday, Timeframe.DAILY: daily}
        self._log = logging.getLogger("portfolio_ticker.market_data.fake")
        self.calls = []

    def fetch_series(self, symbols, window, timeframe):
        self.calls.append((list(symbols), window, timeframe))
        call = f"{self._name} {timeframe.value}"
        self._log.debug(call, extra={"call": call, "payload": "{}"})
        data = self._data[timeframe]
        return {s: data[s] for s in symbols if s in data}


@pytest.fixture
def settings():
    return Settings(db_path=Path(":memory:"), stock_provider="alpaca", crypto_max_workers=1)


@pytest.fixture
def workbook(grid_db, fill_row):
    for row, sym in enumerate(["AAPL", "MSFT", "AAPL"], start=4):
        store.set_cell(grid_db, "Config", f"D{row}", sym)
    store.set_cell(grid_db, "Config", "E4", "BTC")

    fill_row(grid_db, "StockPurchased", 3, ["AAPL", 10, 100, 1000])
    fill_row(grid_db, "StockPurchased", 4, ["MSFT", 2, 250, 500])
    fill_row(grid_db, "StockDividend", 3, ["2024-02-01", "AAPL", 20])
    fill_row(grid_db, "CryptoPurchased", 3, ["BTC", 0.5, 0, 0])
    return grid_db


@pytest.fixture
def stock_client():
    return FakeClient(
        "Stocks",
        intraday={"AAPL": _bars([148.0, 150.0], 300)},
        daily={"AAPL": _bars([100.0 + i for i in range(250)], DAY)},
    )


@pytest.fixture
def crypto_client():
    return FakeClient(
        "Crypto",
        intraday={"BTC": _bars([40_000.0, 42_000.0], 60)},
        daily={"BTC": _bars([30_000.0 + i for i in range(365)], DAY)},
    )


def test_refresh_all(workbook, settings, stock_client, crypto_client):
    conn = workbook
    result = Refresher(conn, settings, stock_client, crypto_client).refresh_all()

    # symbols deduped, windows per sheet
    assert stock_client.calls == [
        (["AAPL", "MSFT"], 80, Timeframe.INTRADAY),
        (["AAPL", "MSFT"], 250, Timeframe.DAILY),
    ]
    assert [c[1] for c in crypto_client.calls] == [480, 365]

    # price sheets, oldest to newest; MSFT had no data
    assert store.row_values(conn, "StockCurrent", "A", 3) == ["AAPL", 148.0, 150.0]
    assert store.get_cell(conn, "StockCurrent", "A4") is None
    assert result.written["StockCurrent"] == ["AAPL"]
    assert store.last_value_in_row(conn, "StockHistory", "B", 3) == 349.0

    # purchased sheets stamped with the newest price
    assert store.get_cell(conn, "StockPurchased", "E3") == 150.0
    assert store.get_cell(conn, "StockPurchased", "F3") == 1500.0
    assert store.get_cell(conn, "StockPurchased", "E4") == "n/a"
    assert store.get_cell(conn, "CryptoPurchased", "F3") == 21_000.0

    # stock summary rows 2..6, crypto one blank row below
    assert store.get_cell(conn, "Dashboard", "A2") == "Stock Summary"
    assert store.get_cell(conn, "Dashboard", "A4") == "AAPL"
    assert store.get_cell(conn, "Dashboard", "A5") == "MSFT"
    assert store.get_cell(conn, "Dashboard", "D6") == 1500
    assert store.get_cell(conn, "Dashboard", "G6") == 20
    assert store.get_cell(conn, "Dashboard", "A8") == "Crypto Summary"
    assert store.get_cell(conn, "Dashboard", "A10") == "BTC"
    assert store.get_cell(conn, "Dashboard", "H10") == "n/a"
    assert result.last_dashboard_row == 11

    assert result.stock.holdings["AAPL"].net_return.percent == pytest.approx(0.52)
    assert result.crypto.totals.market_value == 21_000.0

    # detail: stocks then crypto
    assert store.column_values(conn, "Detail", "A", 4) == ["AAPL", "BTC"]
    assert store.get_cell(conn, "Detail", "B4") == pytest.approx(2 / 148)
    assert store.get_cell(conn, "Detail", "C4") == pytest.approx((150 - 345) / 345)

    # one Debug row per provider call
    assert store.column_values(conn, "Debug", "A", 2) == [
        "Stocks INTRADAY", "Stocks DAILY", "Crypto INTRADAY", "Crypto DAILY",
    ]


def test_refresh_current_skips_history(workbook, settings, stock_client, crypto_client):
    conn = workbook
    refresher = Refresher(conn, settings, stock_client, crypto_client)
    refresher.refresh_all()
    refresher.refresh_current()

    assert [c[2] for c in stock_client.calls] == [
        Timeframe.INTRADAY, Timeframe.DAILY, Timeframe.INTRADAY,
    ]
    # history from the earlier run is kept
    assert store.get_cell(conn, "StockHistory", "A3") == "AAPL"
    # Debug sheet only holds the latest run
    assert store.column_values(conn, "Debug", "A", 2) == ["Stocks INTRADAY", "Crypto INTRADAY"]


def test_refresh_clears_symbols_removed_from_config(workbook, settings, stock_client, crypto_client):
    conn = workbook
    refresher = Refresher(conn, settings, stock_client, crypto_client)
    refresher.refresh_current()
    store.clear_range(conn, "Config", "E4:E10")
    refresher.refresh_current()

    assert store.get_cell(conn, "CryptoCurrent", "A3") is None
    assert len(crypto_client.calls) == 1


def test_refresh_without_crypto_symbols_needs_no_client(grid_db, settings, stock_client):
    store.set_cell(grid_db, "Config", "D4", "AAPL")
    result = Refresher(grid_db, settings, stock_client=stock_client).refresh_current()
    assert result.written["CryptoCurrent"] == []
    assert result.crypto.holdings == {}


def test_mirror_responses_restores_logger(grid_db):
    md_logger = logging.getLogger("portfolio_ticker.market_data")
    before = md_logger.level
    with mirror_responses(grid_db) as handler:
        assert isinstance(handler, DebugSheetHandler)
        logging.getLogger("portfolio_ticker.market_data.x").debug(
            "noise without a call"
        )
        logging.getLogger("portfolio_ticker.market_data.x").debug(
            "x", extra={"call": "X /y", "payload": ""},
        )
    assert md_logger.level == before
    assert handler not in md_logger.handlers
    assert store.get_cell(grid_db, "Debug", "A2") == "X /y"
    assert store.get_cell(grid_db, "Debug", "B2") == "(empty)"
    assert store.get_cell(grid_db, "Debug", "A3") is None


class FailingClient:
    def fetch_series(self, symbols, window, timeframe):
        raise MarketDataError("Crypto: HTTP 503")


def test_shorter_series_leaves_no_stale_header_dates(workbook, settings, crypto_client):
    conn = workbook
    long_client = FakeClient("Stocks", intraday={"AAPL": _bars([1.0, 2.0, 3.0, 4.0, 5.0], DAY)}, daily={})
    Refresher(conn, settings, long_client, crypto_client).refresh_current()
    assert len(store.row_values(conn, "StockCurrent", "B", 2)) == 5

    short = [PricePoint(T0 + 10 * DAY, 6.0), PricePoint(T0 + 11 * DAY, 7.0)][::-1]
    short_client = FakeClient("Stocks", intraday={"AAPL": short}, daily={})
    Refresher(conn, settings, short_client, crypto_client).refresh_current()

    header = store.row_values(conn, "StockCurrent", "B", 2)
    assert header == ["2024-01-11T00:00:00+00:00", "2024-01-12T00:00:00+00:00"]
    assert store.get_cell(conn, "StockCurrent", "D2") is None


def test_failed_refresh_rolls_back_unfinished_step(workbook, settings, stock_client, crypto_client):
    conn = workbook
    Refresher(conn, settings, stock_client, crypto_client).refresh_current()

    with pytest.raises(MarketDataError):
        Refresher(conn, settings, stock_client, FailingClient()).refresh_current()

    assert not conn.in_transaction
    # crypto prices from the earlier run survive the failed fetch
    assert store.row_values(conn, "CryptoCurrent", "A", 3) == ["BTC", 40_000.0, 42_000.0]
    # stock steps before the failure were committed
    assert store.get_cell(conn, "Dashboard", "A2") == "Stock Summary"
