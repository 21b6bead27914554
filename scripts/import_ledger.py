"""Load a CSV ledger into a workbook sheet.

    python scripts/import_ledger.py StockPurchased purchases.csv
    python scripts/import_ledger.py Config symbols.csv --column D --row 4
"""
import argparse
import logging

from portfolio_ticker.config import FIRST_DATA_ROW, Settings
from portfolio_ticker.database.connection import open_workbook
from portfolio_ticker.grid.importer import import_csv

parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
parser.add_argument("sheet")
parser.add_argument("csv_path")
parser.add_argument("--column", default="A", help="first column to fill")
parser.add_argument("--row", type=int, default=FIRST_DATA_ROW, help="first row to fill")
args = parser.parse_args()

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

settings = Settings()
conn = open_workbook(settings.db_path)
try:
    count = import_csv(conn, args.sheet, args.csv_path, start_column=args.column, start_row=args.row)
    conn.commit()
finally:
    conn.close()
print(f"Imported {count} rows into {args.sheet}")
