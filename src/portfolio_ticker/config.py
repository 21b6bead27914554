from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_DEFAULT_DB_PATH = _PROJECT_ROOT / "data" / "ticker.db"


# -- Workbook sheets -------------------------------------------------------------

SHEET_CONFIG = "Config"
SHEET_DASHBOARD = "Dashboard"
SHEET_DETAIL = "Detail"
SHEET_STOCK_PURCHASED = "StockPurchased"
SHEET_STOCK_DIVIDEND = "StockDividend"
SHEET_CRYPTO_PURCHASED = "CryptoPurchased"
SHEET_STOCK_CURRENT = "StockCurrent"
SHEET_STOCK_HISTORY = "StockHistory"
SHEET_CRYPTO_CURRENT = "CryptoCurrent"
SHEET_CRYPTO_HISTORY = "CryptoHistory"
SHEET_DEBUG = "Debug"

# Price sheets: row 2 holds the date header, symbols start on row 3
HEADER_ROW = 2
FIRST_DATA_ROW = 3

# Config sheet: stock symbols in D, crypto symbols in E, from row 4
STOCK_SYMBOL_COLUMN = "D"
CRYPTO_SYMBOL_COLUMN = "E"
SYMBOL_START_ROW = 4


# -- Colors ----------------------------------------------------------------------

COLORS: dict[str, str] = {
    "dashboard_text": "#ffffff",
    "dashboard_header_background": "#292929",
    "dashboard_subheader_background": "#333333",
    "dashboard_background": "#434343",
    "dashboard_outlines": "#888888",
    "up": "#00dd00",
    "down": "#e09595",
    "stock_day_chart": "#0075c9",
    "stock_hour_chart": "#f06eaa",
    "crypto_day_chart": "#00a6b6",
    "crypto_hour_chart": "#9157d8",
    "chart_y_axis_label": "#bbbbbb",
    "chart_grid_line": "#666666",
    "chart_title": "#ffffff",
}


# -- Price series layout -----------------------------------------------------------

class SeriesLayout(NamedTuple):
    sheet: str
    window: int          # number of bars requested from the provider
    clear_range: str     # block wiped before each refresh


STOCK_CURRENT = SeriesLayout(SHEET_STOCK_CURRENT, 80, "A3:CC103")
STOCK_HISTORY = SeriesLayout(SHEET_STOCK_HISTORY, 250, "A3:IQ103")
CRYPTO_CURRENT = SeriesLayout(SHEET_CRYPTO_CURRENT, 480, "A3:RN103")
CRYPTO_HISTORY = SeriesLayout(SHEET_CRYPTO_HISTORY, 365, "A3:NC103")

# Bars back from the newest history bar for each detail-tab comparison.
# Stocks count trading days, crypto counts calendar days.
STOCK_DETAIL_OFFSETS: dict[str, int] = {
    "week": 4,
    "month": 20,
    "three_month": 63,
    "six_month": 124,
    "year": 249,
}
CRYPTO_DETAIL_OFFSETS: dict[str, int] = {
    "week": 6,
    "month": 30,
    "three_month": 91,
    "six_month": 150,
    "year": 364,
}

STOCK_PROVIDERS = ("alpaca", "yahoo")


def _load_env_file() -> dict[str, str]:
    """Read key=value pairs from .env at project root."""
    env_path = _PROJECT_ROOT / ".env"
    if not env_path.exists():
        return {}
    result = {}
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        result[key.strip()] = value.strip()
    return result


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a setting from the environment, falling back to .env."""
    value = os.environ.get(name)
    if value:
        return value
    return _load_env_file().get(name, default)


def require_api_key(name: str) -> str:
    key = get_env(name)
    if not key:
        raise RuntimeError(f"{name} not set; check .env or environment")
    return key


@dataclass(frozen=True)
class Settings:
    db_path: Path = field(default_factory=lambda: Path(
        get_env("TICKER_DB_PATH", str(_DEFAULT_DB_PATH))
    ))
    stock_provider: str = field(default_factory=lambda: get_env(
        "TICKER_STOCK_PROVIDER", "alpaca"
    ))
    crypto_max_workers: int = field(default_factory=lambda: int(get_env(
        "TICKER_CRYPTO_WORKERS", "4"
    )))
    request_timeout: int = 30

    def __post_init__(self) -> None:
        if self.stock_provider not in STOCK_PROVIDERS:
            raise ValueError(
                f"Unknown stock provider {self.stock_provider!r}, "
                f"expected one of {', '.join(STOCK_PROVIDERS)}"
            )
        if self.crypto_max_workers < 1:
            raise ValueError("crypto_max_workers must be at least 1")
