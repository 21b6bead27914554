from pathlib import Path

import pytest

from portfolio_ticker import config
from portfolio_ticker.config import Settings, get_env, require_api_key


def test_window_fits_clear_range():
    from portfolio_ticker.grid.addressing import column_index, parse_range

    for layout in (config.STOCK_CURRENT, config.STOCK_HISTORY, config.CRYPTO_CURRENT, config.CRYPTO_HISTORY):
        top_left, bottom_right = parse_range(layout.clear_range)
        # symbol column plus one column per bar
        assert bottom_right.column_index - column_index("A") + 1 >= layout.window + 1


def test_detail_offsets_fit_history_window():
    assert max(config.STOCK_DETAIL_OFFSETS.values()) < config.STOCK_HISTORY.window
    assert max(config.CRYPTO_DETAIL_OFFSETS.values()) < config.CRYPTO_HISTORY.window


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("TICKER_DB_PATH", str(tmp_path / "t.db"))
    monkeypatch.setenv("TICKER_STOCK_PROVIDER", "yahoo")
    monkeypatch.setenv("TICKER_CRYPTO_WORKERS", "2")
    s = Settings()
    assert s.db_path == Path(tmp_path / "t.db")
    assert s.stock_provider == "yahoo"
    assert s.crypto_max_workers == 2


def test_settings_rejects_unknown_provider():
    with pytest.raises(ValueError):
        Settings(stock_provider="bloomberg")


def test_settings_rejects_zero_workers():
    with pytest.raises(ValueError):
        Settings(stock_provider="alpaca", crypto_max_workers=0)


def test_env_file_fallback(monkeypatch):
    monkeypatch.delenv("CRYPTOCOMPARE_API_KEY", raising=False)
    monkeypatch.setattr(config, "_load_env_file", lambda: {"CRYPTOCOMPARE_API_KEY": "from-file"})
    assert get_env("CRYPTOCOMPARE_API_KEY") == "from-file"
    assert require_api_key("CRYPTOCOMPARE_API_KEY") == "from-file"


def test_require_api_key_missing(monkeypatch):
    monkeypatch.delenv("CRYPTOCOMPARE_API_KEY", raising=False)
    monkeypatch.setattr(config, "_load_env_file", lambda: {})
    with pytest.raises(RuntimeError, match="CRYPTOCOMPARE_API_KEY"):
        require_api_key("CRYPTOCOMPARE_API_KEY")
