"""Tests for contact status tallies and contact search."""

from datetime import datetime, timezone

from models.crm_models import Contact, ContactStatus
from pipeline_analytics.contact_analyzer import (
    count_contacts_by_status,
    days_since_contact,
    search_contacts,
    status_distribution,
)

NOW = datetime(2024, 3, 1, tzinfo=timezone.utc)


def _contact(contact_id, status="lead", **kwargs):
    fields = {"name": f"Contact {contact_id}", "email": f"{contact_id}@example.com"}
    fields.update(kwargs)
    return Contact(id=contact_id, status=status, created_at="2023-09-01T00:00:00Z", **fields)


class TestStatusCounts:
    def test_total_over_every_status(self):
        contacts = [_contact("1", "lead"), _contact("2", "lead"), _contact("3", "customer")]
        assert count_contacts_by_status(contacts) == {
            ContactStatus.LEAD: 2,
            ContactStatus.PROSPECT: 0,
            ContactStatus.CUSTOMER: 1,
            ContactStatus.CHURNED: 0,
        }

    def test_empty(self):
        counts = count_contacts_by_status([])
        assert set(counts) == set(ContactStatus)
        assert sum(counts.values()) == 0

    def test_distribution_percentages(self):
        counts = count_contacts_by_status(
            [_contact("1", "lead"), _contact("2", "lead"), _contact("3", "customer")]
        )
        rows = status_distribution(counts)
        assert [r.name for r in rows] == ["Lead", "Prospect", "Customer", "Churned"]
        assert [r.percent for r in rows] == [67, 0, 33, 0]

    def test_distribution_of_nothing_is_zero(self):
        rows = status_distribution(count_contacts_by_status([]))
        assert all(r.percent == 0 for r in rows)


class TestContactHelpers:
    def test_tags_are_deduplicated(self):
        contact = _contact("1", tags=["energy", "energy", "saas"])
        assert contact.tags == frozenset({"energy", "saas"})

    def test_search_matches_name_email_company(self):
        contacts = [
            _contact("1", name="Sarah Johnson", company="Acme"),
            _contact("2", name="Tom", email="tom@globex.io"),
            _contact("3", name="Li", company=None),
        ]
        assert [c.id for c in search_contacts(contacts, "acme")] == ["1"]
        assert [c.id for c in search_contacts(contacts, "GLOBEX")] == ["2"]
        assert len(search_contacts(contacts, "  ")) == 3

    def test_never_contacted_is_none_not_epoch(self):
        assert days_since_contact(_contact("1"), NOW) is None

    def test_days_since_contact(self):
        contact = _contact("1", last_contact="2024-02-20T00:00:00Z")
        assert days_since_contact(contact, NOW) == 10
