import pandas as pd

from portfolio_ticker.charts.area import ChartOptions, area_chart, axis_floor, series_frame, sheet_charts
from portfolio_ticker.grid.writer import write_price_grid
from portfolio_ticker.market_data.models import PricePoint

T0 = 1_704_067_200


def _frame(closes):
    return pd.DataFrame({
        "date": pd.date_range("2024-01-01", periods=len(closes), freq="D", tz="UTC"),
        "close": closes,
    })


def test_axis_floor():
    assert axis_floor([None, 345.2, 351.0]) == 340
    assert axis_floor([]) == 0


def test_area_chart_raises_floor_and_drops_cents():
    vega = area_chart(_frame([23_450.0, 24_100.0]), ChartOptions(title="BTC")).to_dict()
    y = vega["encoding"]["y"]
    assert y["scale"]["domainMin"] == 20_000
    assert y["scale"]["zero"] is False
    assert y["axis"]["format"] == "$,.0f"
    assert vega["title"]["text"] == "BTC"
    assert vega["background"] == ChartOptions().background


def test_area_chart_keeps_cents_for_small_prices():
    vega = area_chart(_frame([0.52, 0.61]), ChartOptions()).to_dict()
    assert vega["encoding"]["y"]["scale"]["domainMin"] == 0.52
    assert vega["encoding"]["y"]["axis"]["format"] == "$,.2f"


def test_series_frame_and_sheet_charts(grid_db):
    series = {
        "AAPL": [PricePoint(T0 + 86_400, 151.0), PricePoint(T0, 150.0)],
        "MSFT": [PricePoint(T0 + 86_400, 401.0), PricePoint(T0, 399.0)],
    }
    write_price_grid(grid_db, "History", ["AAPL", "MSFT"], series)

    df = series_frame(grid_db, "History", 3)
    assert df["close"].tolist() == [150.0, 151.0]
    assert df["date"].iloc[0] == pd.Timestamp("2024-01-01", tz="UTC")

    charts = sheet_charts(grid_db, "History", ChartOptions())
    assert [c.to_dict()["title"]["text"] for c in charts] == ["AAPL", "MSFT"]


def test_sheet_charts_empty_sheet(grid_db):
    assert sheet_charts(grid_db, "History", ChartOptions()) == []
