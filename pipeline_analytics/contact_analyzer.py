"""
Contact Analyzer
=================
Status tallies and distribution rows for contact charts, plus the contact
list search used by the contacts screen.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from models.crm_models import Contact, ContactStatus, StatusShare
from pipeline_analytics.lib.utils import round_half_up, whole_days_between


def count_contacts_by_status(contacts: Iterable[Contact]) -> Dict[ContactStatus, int]:
    """Contact count per status; statuses with no contacts map to 0."""
    counts = {status: 0 for status in ContactStatus}
    for contact in contacts:
        counts[contact.status] += 1
    return counts


def status_distribution(counts: Mapping[ContactStatus, int]) -> List[StatusShare]:
    """Chart rows with each status' share of all contacts, in percent."""
    total = sum(counts.get(status, 0) for status in ContactStatus)
    rows = []
    for status in ContactStatus:
        count = counts.get(status, 0)
        percent = round_half_up(count * 100 / total) if total else 0
        rows.append(StatusShare(
            status=status,
            name=status.value.capitalize(),
            count=count,
            percent=percent,
        ))
    return rows


def search_contacts(contacts: Iterable[Contact], query: Optional[str]) -> List[Contact]:
    """Case-insensitive substring match on name, email or company."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(contacts)
    return [
        c for c in contacts
        if needle in c.name.lower()
        or needle in c.email.lower()
        or (c.company and needle in c.company.lower())
    ]


def days_since_contact(contact: Contact, now: datetime) -> Optional[int]:
    """Whole days since the last touchpoint, or None if never contacted."""
    if contact.last_contact is None:
        return None
    return whole_days_between(contact.last_contact, now)
