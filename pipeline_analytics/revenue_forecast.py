"""
Revenue Forecaster
===================
Naive linear-growth forecast of monthly revenue.

The average of the period-over-period growth ratios across the last three
periods with revenue is compounded forward from the last real amount.
Trailing zero-revenue periods mean "no data yet" and are dropped from the
output. The growth rate is not damped or clamped.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Sequence

from models.crm_models import RevenuePoint
from pipeline_analytics.lib.logger import setup_logger
from pipeline_analytics.lib.utils import round_half_up

logger = setup_logger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

FORECAST_HORIZONS = (3, 6, 12)
GROWTH_WINDOW = 3


def _real_points(history: Sequence[RevenuePoint]) -> List[RevenuePoint]:
    return [point for point in history if point.amount > 0]


def average_growth_rate(history: Sequence[RevenuePoint]) -> Optional[Decimal]:
    """Mean growth ratio over the trailing window, or None with < 2 real points."""
    window = _real_points(history)[-GROWTH_WINDOW:]
    if len(window) < 2:
        return None
    ratios = [
        window[i].amount / window[i - 1].amount
        for i in range(1, len(window))
    ]
    return sum(ratios, Decimal(0)) / len(ratios)


def _first_forecast_index(history: Sequence[RevenuePoint], last_real: RevenuePoint) -> int:
    if last_real.period in MONTHS:
        return (MONTHS.index(last_real.period) + 1) % len(MONTHS)
    # Unlabelled series: continue from the position after the last real point
    position = max(i for i, point in enumerate(history) if point is last_real)
    return (position + 1) % len(MONTHS)


def forecast_revenue(history: Sequence[RevenuePoint], horizon: int = 3) -> List[RevenuePoint]:
    """Real historical points followed by ``horizon`` forecast points.

    With fewer than two periods of revenue the history is returned unchanged.
    """
    avg_growth_rate = average_growth_rate(history)
    if avg_growth_rate is None:
        logger.debug("Not enough revenue history to forecast (%d points)", len(history))
        return list(history)

    real = _real_points(history)
    last_real = real[-1]
    start = _first_forecast_index(history, last_real)

    forecast = []
    next_value = last_real.amount
    for i in range(max(horizon, 0)):
        next_value = next_value * avg_growth_rate
        forecast.append(RevenuePoint(
            period=MONTHS[(start + i) % len(MONTHS)],
            amount=Decimal(round_half_up(next_value)),
            is_forecast=True,
        ))

    return real + forecast
