"""Refresh the workbook from the command line.

    python scripts/refresh.py            # current and historical prices
    python scripts/refresh.py --current  # current prices only
"""
import argparse
import logging

from portfolio_ticker.config import Settings
from portfolio_ticker.database.connection import open_workbook
from portfolio_ticker.refresh import Refresher

parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
parser.add_argument("--current", action="store_true", help="skip the historical price sheets")
parser.add_argument("-v", "--verbose", action="store_true", help="log provider responses")
args = parser.parse_args()

level = logging.DEBUG if args.verbose else logging.INFO
logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
# the refresh lowers the market data logger to DEBUG to fill the Debug sheet
for handler in logging.getLogger().handlers:
    handler.setLevel(level)

settings = Settings()
conn = open_workbook(settings.db_path)
try:
    refresher = Refresher(conn, settings)
    result = refresher.refresh_current() if args.current else refresher.refresh_all()
finally:
    conn.close()

for label, agg in (("Stock", result.stock), ("Crypto", result.crypto)):
    if agg is None:
        continue
    ret = agg.totals.net_return
    pct = f"{ret.percent:+.2%}" if ret.is_defined else "n/a"
    print(f"{label}: cost={agg.totals.cost_basis:,.2f}  value={agg.totals.market_value:,.2f}  "
          f"net={ret.gain:,.2f} ({pct})")
