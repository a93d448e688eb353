"""
Pipeline Analyzer
==================
Groups deals by pipeline stage and reduces them to pipeline value figures.

Exports:
    index_contacts, group_deals_by_stage, deal_amount, total_value,
    open_value, weighted_value, value_by_stage, stage_summary
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from models.crm_models import STAGE_LABELS, STAGE_ORDER, Contact, Deal, Stage, StageSummary
from pipeline_analytics.lib.logger import setup_logger
from pipeline_analytics.lib.utils import safe_decimal

logger = setup_logger(__name__)

ZERO = Decimal(0)


def index_contacts(contacts: Iterable[Contact]) -> Dict[str, Contact]:
    """Build the id -> contact lookup used by the stage grouper."""
    return {contact.id: contact for contact in contacts}


def group_deals_by_stage(
    deals: Iterable[Deal],
    contacts: Optional[Mapping[str, Contact]] = None,
) -> Dict[Stage, List[Deal]]:
    """Partition deals into one list per stage, in input order.

    Every stage of STAGE_ORDER is present in the result. When ``contacts``
    holds a deal's contact id, the deal is copied with that contact
    resolved. Otherwise the deal keeps whatever ``contact`` it already
    carries (None when it was never joined).
    """
    grouped: Dict[Stage, List[Deal]] = {stage: [] for stage in STAGE_ORDER}

    for deal in deals:
        if contacts is not None and deal.contact_id in contacts:
            deal = deal.model_copy(update={"contact": contacts[deal.contact_id]})
        grouped[deal.stage].append(deal)

    return grouped


def deal_amount(deal: Deal) -> Decimal:
    """Value a deal contributes to sums. Negative or non-finite values count as zero."""
    amount = safe_decimal(deal.value)
    if amount < ZERO:
        logger.debug("Deal %s has negative value %s; counted as 0", deal.id, amount)
        return ZERO
    return amount


def total_value(deals: Iterable[Deal]) -> Decimal:
    return sum((deal_amount(d) for d in deals), ZERO)


def open_value(deals: Iterable[Deal]) -> Decimal:
    """Sum of values of deals not in the closed stage."""
    return sum((deal_amount(d) for d in deals if d.is_open), ZERO)


def weighted_value(deals: Iterable[Deal]) -> Decimal:
    """Probability-weighted value of the open pipeline.

    Probability is a 0-100 percentage; a missing one counts as 0 and
    out-of-range ones are clamped.
    """
    total = ZERO
    for deal in deals:
        if not deal.is_open:
            continue
        probability = min(max(deal.probability or 0, 0), 100)
        total += deal_amount(deal) * probability / 100
    return total


def value_by_stage(deals_by_stage: Mapping[Stage, Iterable[Deal]]) -> Dict[Stage, Decimal]:
    return {
        stage: total_value(deals_by_stage.get(stage, ()))
        for stage in STAGE_ORDER
    }


def stage_summary(deals_by_stage: Mapping[Stage, List[Deal]]) -> List[StageSummary]:
    """Chart rows of name, count and value per stage, in stage order."""
    rows = []
    for stage in STAGE_ORDER:
        stage_deals = deals_by_stage.get(stage, [])
        rows.append(StageSummary(
            stage=stage,
            name=STAGE_LABELS[stage],
            count=len(stage_deals),
            value=total_value(stage_deals),
        ))
    return rows
