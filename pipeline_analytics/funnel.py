"""
Funnel Conversion Calculator
=============================
Stage-to-stage conversion between adjacent pipeline stages.

The rate is a stock ratio (deals currently in the later stage over deals
currently in the earlier one), not a cohort conversion that follows the
same deals over time.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Mapping, Sequence

from models.crm_models import STAGE_LABELS, STAGE_ORDER, Deal, Stage, StageConversion
from pipeline_analytics.lib.utils import round_half_up

STRONG_RATE = 70
MODERATE_RATE = 40


def conversion_band(rate: Decimal) -> str:
    if rate > STRONG_RATE:
        return "strong"
    if rate > MODERATE_RATE:
        return "moderate"
    return "weak"


def conversion_rates(
    deals_by_stage: Mapping[Stage, Sequence[Deal]],
    stage_order: Sequence[Stage] = STAGE_ORDER,
) -> List[StageConversion]:
    """One conversion entry per adjacent stage pair, always len(order) - 1 long.

    An empty earlier stage yields a rate of 0.
    """
    data = []
    for current, following in zip(stage_order, stage_order[1:]):
        current_count = len(deals_by_stage.get(current, ()))
        next_count = len(deals_by_stage.get(following, ()))

        if current_count > 0:
            raw_rate = Decimal(next_count * 100) / Decimal(current_count)
        else:
            raw_rate = Decimal(0)

        data.append(StageConversion(
            from_stage=current,
            to_stage=following,
            name=f"{STAGE_LABELS.get(current, current.value)} to "
                 f"{STAGE_LABELS.get(following, following.value)}",
            rate=round_half_up(raw_rate),
            band=conversion_band(raw_rate),
        ))
    return data
