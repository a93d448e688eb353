"""Tests for the revenue forecaster."""

from decimal import Decimal

from models.crm_models import RevenuePoint
from pipeline_analytics.revenue_forecast import MONTHS, average_growth_rate, forecast_revenue

MONTHLY = [42000, 38000, 45000, 56000, 61000, 58000, 63000, 55000, 67000, 72000, 0, 0]


def _series(amounts, labels=MONTHS):
    return [RevenuePoint(period=label, amount=amount) for label, amount in zip(labels, amounts)]


class TestForecastRevenue:
    def test_three_month_forecast_after_october(self):
        result = forecast_revenue(_series(MONTHLY), horizon=3)
        forecast = [p for p in result if p.is_forecast]
        assert [p.period for p in forecast] == ["Nov", "Dec", "Jan"]
        # Zero-revenue Nov/Dec history is dropped
        history = [p for p in result if not p.is_forecast]
        assert [p.period for p in history] == MONTHS[:10]
        assert all(p.amount > 0 for p in history)
        assert len(result) == 13

    def test_forecast_compounds_mean_growth(self):
        result = forecast_revenue(_series(MONTHLY), horizon=3)
        rate = (Decimal(67000) / Decimal(55000) + Decimal(72000) / Decimal(67000)) / 2
        expected = Decimal(72000) * rate
        first = next(p for p in result if p.is_forecast)
        assert first.amount == expected.quantize(Decimal(1), rounding="ROUND_HALF_UP")
        assert first.amount == Decimal(82541)

    def test_horizon_twelve_wraps_calendar(self):
        forecast = [p for p in forecast_revenue(_series(MONTHLY), horizon=12) if p.is_forecast]
        assert len(forecast) == 12
        assert forecast[0].period == "Nov"
        assert forecast[-1].period == "Oct"

    def test_declining_growth_is_not_clamped(self):
        series = _series([1000, 500, 250])
        forecast = [p for p in forecast_revenue(series, horizon=3) if p.is_forecast]
        assert [p.amount for p in forecast] == [Decimal(125), Decimal(63), Decimal(31)]

    def test_fewer_than_two_real_points_returns_history_unchanged(self):
        series = _series([0, 5000, 0, 0])
        assert forecast_revenue(series, horizon=6) == series
        assert average_growth_rate(series) is None

    def test_empty_history(self):
        assert forecast_revenue([], horizon=3) == []

    def test_unlabelled_series_continues_by_position(self):
        series = _series([100, 200, 0], labels=["P1", "P2", "P3"])
        forecast = [p for p in forecast_revenue(series, horizon=2) if p.is_forecast]
        assert [p.period for p in forecast] == ["Mar", "Apr"]

    def test_same_input_same_output(self):
        series = _series(MONTHLY)
        assert forecast_revenue(series, 6) == forecast_revenue(series, 6)

    def test_growth_uses_last_three_real_points(self):
        series = _series([10, 1000, 100, 200, 400, 0])
        assert average_growth_rate(series) == Decimal(2)
