from portfolio_ticker.grid import store
from portfolio_ticker.portfolio.ledger import (
    GridLedgerSource,
    latest_prices,
    read_until_blank,
    update_purchased_prices,
)


def test_read_until_blank_stops_at_first_blank_key():
    records = [{"symbol": "AAPL"}, {"symbol": "MSFT"}, {"symbol": " "}, {"symbol": "GOOG"}]

    def read(position):
        return records[position]

    assert [r["symbol"] for r in read_until_blank(read, "symbol")] == ["AAPL", "MSFT"]


def test_read_until_blank_empty():
    assert list(read_until_blank(lambda _: {"symbol": None}, "symbol")) == []


def test_read_lots(grid_db, fill_row):
    fill_row(grid_db, "Purchased", 3, ["AAPL", 10, 100, 1000, 150, 1500])
    fill_row(grid_db, "Purchased", 4, ["MSFT", "2", 250, "$500", "n/a", 600])
    fill_row(grid_db, "Purchased", 6, ["GOOG", 1, 1, 1, 1, 1])  # after the blank row

    lots = GridLedgerSource(grid_db).read_lots("Purchased")
    assert [lot.symbol for lot in lots] == ["AAPL", "MSFT"]
    assert lots[0].shares == 10
    assert lots[0].price == 150
    assert lots[1].shares == 2
    assert lots[1].cost_basis == 500
    assert lots[1].price is None
    assert lots[1].current_value == 600


def test_read_lots_text_counts_as_zero(grid_db, fill_row):
    fill_row(grid_db, "Purchased", 3, ["BTC", 0.5, None, "nan", None, "pending"])
    lot = GridLedgerSource(grid_db).read_lots("Purchased")[0]
    assert lot.cost_basis == 0
    assert lot.current_value == 0


def test_read_distributions(grid_db, fill_row):
    fill_row(grid_db, "Dividend", 3, ["2024-02-01", "AAPL", 5.5])
    fill_row(grid_db, "Dividend", 4, ["2024-03-01", "VTI", 2])
    dists = GridLedgerSource(grid_db).read_distributions("Dividend")
    assert [(d.symbol, d.amount) for d in dists] == [("AAPL", 5.5), ("VTI", 2.0)]


def test_latest_prices_uses_rightmost_value(grid_db, fill_row):
    fill_row(grid_db, "Current", 3, ["AAPL", 148.0, 149.0, 151.5])
    fill_row(grid_db, "Current", 4, ["MSFT"])
    assert latest_prices(grid_db, "Current") == {"AAPL": 151.5}


def test_update_purchased_prices(grid_db, fill_row):
    fill_row(grid_db, "Current", 3, ["AAPL", 148.0, 150.0])
    fill_row(grid_db, "Purchased", 3, ["AAPL", 10, 100, 1000, None, None])
    fill_row(grid_db, "Purchased", 4, ["DELISTED", 3, 10, 30, 9, 27])
    fill_row(grid_db, "Purchased", 5, ["AAPL", 2, 120, 240])

    updated = update_purchased_prices(grid_db, "Current", "Purchased")

    assert updated == 2
    assert store.get_cell(grid_db, "Purchased", "E3") == 150.0
    assert store.get_cell(grid_db, "Purchased", "F3") == 1500.0
    assert store.get_cell(grid_db, "Purchased", "F5") == 300.0
    assert store.get_cell(grid_db, "Purchased", "E4") == "n/a"
    assert store.get_cell(grid_db, "Purchased", "F4") == 27


def test_update_purchased_prices_then_read(grid_db, fill_row):
    fill_row(grid_db, "Current", 3, ["AAPL", 150.0])
    fill_row(grid_db, "Purchased", 3, ["AAPL", 4, 100, 400])
    update_purchased_prices(grid_db, "Current", "Purchased")
    lot = GridLedgerSource(grid_db).read_lots("Purchased")[0]
    assert lot.price == 150.0
    assert lot.current_value == 600.0
