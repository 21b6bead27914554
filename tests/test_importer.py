import io

from portfolio_ticker.grid import store
from portfolio_ticker.grid.importer import import_csv
from portfolio_ticker.portfolio.ledger import GridLedgerSource

PURCHASES_CSV = """Symbol,Shares,Paid,Cost Basis,Price,Value
AAPL,10,100,1000,,
MSFT,2,250,500,,
,,,,,
"""


def test_import_purchases(grid_db):
    count = import_csv(grid_db, "Purchased", io.StringIO(PURCHASES_CSV))
    assert count == 2
    assert store.get_cell(grid_db, "Purchased", "A3") == "AAPL"
    assert store.get_cell(grid_db, "Purchased", "B3") == 10
    assert store.get_cell(grid_db, "Purchased", "E3") is None

    lots = GridLedgerSource(grid_db).read_lots("Purchased")
    assert [(lot.symbol, lot.cost_basis) for lot in lots] == [("AAPL", 1000), ("MSFT", 500)]


def test_import_replaces_stale_rows(grid_db, fill_row):
    for row in range(3, 7):
        fill_row(grid_db, "Purchased", row, ["OLD", 1, 1, 1])
    import_csv(grid_db, "Purchased", io.StringIO(PURCHASES_CSV))
    assert store.column_values(grid_db, "Purchased", "A", 3) == ["AAPL", "MSFT"]


def test_import_at_offset(grid_db):
    csv = "Stock,Crypto\nAAPL,BTC\nMSFT,ETH\n"
    import_csv(grid_db, "Config", io.StringIO(csv), start_column="D", start_row=4)
    assert store.unique_symbols(grid_db, "Config", "D", 4) == ["AAPL", "MSFT"]
    assert store.unique_symbols(grid_db, "Config", "E", 4) == ["BTC", "ETH"]


def test_import_clears_deepest_column_of_block(grid_db):
    store.set_cell(grid_db, "Config", "D4", "AAPL")
    for row, sym in enumerate(["BTC", "ETH", "SOL", "ADA"], start=4):
        store.set_cell(grid_db, "Config", f"E{row}", sym)

    import_csv(grid_db, "Config", io.StringIO("Stock,Crypto\nMSFT,DOGE\n"), start_column="D", start_row=4)

    assert store.column_values(grid_db, "Config", "D", 4) == ["MSFT"]
    assert store.column_values(grid_db, "Config", "E", 4) == ["DOGE"]
    assert store.get_cell(grid_db, "Config", "E7") is None
