"""
Deal Health ("Rot") Classifier
===============================
Flags deals that have sat in their current stage longer than the stage's
expected dwell time.

    age < 0.5 * threshold           -> healthy
    0.5 * threshold <= age < thr.   -> warning
    age >= threshold                -> rotting

Closed deals never rot. The reference instant is always passed in by the
caller; nothing here reads the wall clock.

Exports:
    DEFAULT_ROT_THRESHOLDS, deal_age_days, classify_health, classify_deals,
    sort_by_health, filter_by_stage, summarize_health
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from models.crm_models import (
    HEALTH_RANK,
    ClassifiedDeal,
    Deal,
    DealHealth,
    HealthSummary,
    Stage,
    parse_stage,
)
from pipeline_analytics.lib.logger import setup_logger
from pipeline_analytics.lib.utils import whole_days_between
from pipeline_analytics.pipeline_analyzer import deal_amount

logger = setup_logger(__name__)

# Days a deal may sit in a stage before it is rotting. None = never rots.
DEFAULT_ROT_THRESHOLDS: Dict[Stage, Optional[int]] = {
    Stage.LEAD: 7,
    Stage.CONTACT: 14,
    Stage.PROPOSAL: 21,
    Stage.NEGOTIATION: 30,
    Stage.CLOSED: None,
}

Thresholds = Mapping[Stage, Optional[int]]


def deal_age_days(created_at: datetime, now: datetime) -> int:
    """Whole days since creation; 23 hours is 0 days."""
    return whole_days_between(created_at, now)


def _threshold_for(stage: Stage, thresholds: Optional[Thresholds]) -> Optional[int]:
    if thresholds is not None and stage in thresholds:
        return thresholds[stage]
    return DEFAULT_ROT_THRESHOLDS.get(stage)


def classify_health(
    age: int,
    stage: Union[Stage, str],
    thresholds: Optional[Thresholds] = None,
) -> DealHealth:
    """Classify one deal age against its stage threshold."""
    known = parse_stage(stage)
    if known is Stage.CLOSED:
        return DealHealth.HEALTHY
    if known is None:
        logger.debug("Unknown stage %r; classified healthy", stage)
        return DealHealth.HEALTHY

    threshold = _threshold_for(known, thresholds)
    if threshold is None:
        return DealHealth.HEALTHY

    if age < threshold * 0.5:
        return DealHealth.HEALTHY
    if age < threshold:
        return DealHealth.WARNING
    return DealHealth.ROTTING


def classify_deals(
    deals: Iterable[Deal],
    now: datetime,
    thresholds: Optional[Thresholds] = None,
) -> List[ClassifiedDeal]:
    """Attach age and health status to every deal, keeping input order."""
    classified = []
    for deal in deals:
        age = deal_age_days(deal.created_at, now)
        classified.append(ClassifiedDeal(
            deal=deal,
            age=age,
            status=classify_health(age, deal.stage, thresholds),
        ))
    return classified


def sort_by_health(classified: Iterable[ClassifiedDeal]) -> List[ClassifiedDeal]:
    """Rotting first, then warning, then healthy. Stable within a status."""
    return sorted(classified, key=lambda item: HEALTH_RANK[item.status])


def filter_by_stage(
    classified: Iterable[ClassifiedDeal],
    stage: Union[Stage, str, None] = None,
) -> List[ClassifiedDeal]:
    """Keep deals in ``stage``; None or "all" keeps everything."""
    if stage is None or stage == "all":
        return list(classified)
    wanted = parse_stage(stage) or stage
    return [item for item in classified if item.deal.stage == wanted]


def summarize_health(classified: Iterable[ClassifiedDeal]) -> Dict[DealHealth, HealthSummary]:
    """Count and total value per health status, total over every status."""
    counts = {status: 0 for status in DealHealth}
    values = {status: Decimal(0) for status in DealHealth}
    for item in classified:
        counts[item.status] += 1
        values[item.status] += deal_amount(item.deal)
    return {
        status: HealthSummary(status=status, count=counts[status], value=values[status])
        for status in DealHealth
    }
