"""
Lead Analyzer
==============
Campaign lead tallies for the lead-to-contact funnel: per-status counts,
the per-campaign header figures and the lead table filter.
"""
from __future__ import annotations

from typing import Collection, Dict, Iterable, List, Optional

from models.crm_models import CampaignLeadSummary, Lead, LeadStatus

# Statuses the lead table shows before the user touches the filter
DEFAULT_LEAD_FILTER = (LeadStatus.NEW, LeadStatus.CONTACTED, LeadStatus.QUALIFIED)


def count_leads_by_status(leads: Iterable[Lead]) -> Dict[LeadStatus, int]:
    """Lead count per status; statuses with no leads map to 0."""
    counts = {status: 0 for status in LeadStatus}
    for lead in leads:
        counts[lead.status] += 1
    return counts


def campaign_lead_summary(leads: Iterable[Lead], campaign_id: Optional[str]) -> CampaignLeadSummary:
    """Total, qualified, unqualified and in-pipeline counts for one campaign."""
    counts = count_leads_by_status(lead for lead in leads if lead.campaign_id == campaign_id)
    return CampaignLeadSummary(
        campaign_id=campaign_id,
        total=sum(counts.values()),
        qualified=counts[LeadStatus.QUALIFIED],
        unqualified=counts[LeadStatus.UNQUALIFIED],
        in_pipeline=counts[LeadStatus.IN_PIPELINE],
    )


def campaign_summaries(leads: Iterable[Lead]) -> List[CampaignLeadSummary]:
    """One summary per campaign, in first-seen order. Unassigned leads come under None."""
    leads = list(leads)
    campaign_ids = list(dict.fromkeys(lead.campaign_id for lead in leads))
    return [campaign_lead_summary(leads, campaign_id) for campaign_id in campaign_ids]


def filter_leads(
    leads: Iterable[Lead],
    query: Optional[str] = None,
    campaign_id: Optional[str] = None,
    statuses: Collection[LeadStatus] = DEFAULT_LEAD_FILTER,
) -> List[Lead]:
    """Lead table rows matching the search text, campaign and status filter.

    ``query`` is a case-insensitive substring of name, email or company;
    an empty query or campaign matches everything.
    """
    needle = (query or "").strip().lower()
    wanted = set(statuses)
    rows = []
    for lead in leads:
        if lead.status not in wanted:
            continue
        if campaign_id and lead.campaign_id != campaign_id:
            continue
        if needle and not (
            needle in lead.name.lower()
            or needle in lead.email.lower()
            or (lead.company and needle in lead.company.lower())
        ):
            continue
        rows.append(lead)
    return rows
