"""Tests for the snapshot loader."""

import json
from decimal import Decimal

import pytest

from models.crm_models import LeadStatus, Stage
from pipeline_analytics.lib.errors import DataFetchError
from pipeline_analytics.snapshot import load_snapshot, load_snapshot_file

SNAPSHOT = {
    "contacts": [
        {"id": "1", "name": "Sarah Johnson", "email": "sarah@acme.com", "status": "customer",
         "tags": ["saas", "saas"], "lastContact": "2023-10-15T14:30:00Z",
         "createdAt": "2023-08-10T09:00:00Z"},
        {"id": "2", "name": "Bad Status", "email": "x@y.z", "status": "vip",
         "created_at": "2023-08-10T09:00:00Z"},
    ],
    "deals": [
        {"id": "d1", "title": "Enterprise Marketing Solution", "value": 15000,
         "stage": "proposal", "contact_id": "1", "created_at": "2023-10-05T09:15:00Z",
         "probability": 60, "contacts": {"id": "1", "name": "Sarah", "company": "Acme"}},
        {"id": "d2", "title": "Legacy", "value": None, "stage": "Negotiation",
         "contactId": "1", "createdAt": "2023-10-05T09:15:00Z"},
        {"id": "d3", "title": "No created date", "value": 100, "stage": "lead"},
        {"id": "d4", "title": "Renewal", "value": "12.5", "stage": "won",
         "created_at": "2023-10-05T09:15:00Z"},
        "not a row",
    ],
    "activities": [
        {"id": "a1", "type": "call", "title": "Intro", "date": "2023-10-16T10:00:00Z"},
        {"id": "a2", "type": "fax", "title": "Old school", "date": "2023-10-16T10:00:00Z"},
    ],
    "leads": [
        {"id": "l1", "name": "Nina Park", "email": "nina@initech.com", "status": "qualified",
         "campaign_id": "cmp1", "created_at": "2023-10-01T08:00:00Z"},
        {"id": "l2", "name": "Omar Diaz", "email": "omar@hooli.com", "campaignId": "cmp1",
         "createdAt": "2023-10-02T08:00:00Z"},
        {"id": "l3", "name": "Bad", "email": "b@x.io", "status": "hot",
         "created_at": "2023-10-02T08:00:00Z"},
    ],
    "revenue": [
        {"month": "Sep", "revenue": 67000},
        {"period": "Oct", "amount": "72000"},
        {"month": "Nov", "revenue": 0},
    ],
}


class TestLoadSnapshot:
    def test_valid_rows_loaded_and_bad_rows_skipped(self):
        snapshot = load_snapshot(SNAPSHOT)
        assert snapshot.record_counts() == {
            "contacts": 1, "deals": 2, "activities": 1, "leads": 2, "revenue": 3,
        }
        assert snapshot.skipped == {
            "contacts": 1, "deals": 3, "activities": 1, "leads": 1, "revenue": 0,
        }

    def test_deal_fields(self):
        deal = load_snapshot(SNAPSHOT).deals[0]
        assert deal.stage is Stage.PROPOSAL
        assert deal.value == Decimal(15000)
        assert deal.contact_id == "1"
        # Partial join embed (no status/created_at) is dropped
        assert deal.contact is None

    def test_unknown_stage_rejected_and_missing_value_is_zero(self):
        deals = load_snapshot(SNAPSHOT).deals
        assert [d.id for d in deals] == ["d1", "d2"]
        assert deals[1].stage is Stage.NEGOTIATION
        assert deals[1].value == Decimal(0)

    def test_lead_fields(self):
        leads = load_snapshot(SNAPSHOT).leads
        assert [lead.status for lead in leads] == [LeadStatus.QUALIFIED, LeadStatus.NEW]
        assert leads[1].campaign_id == "cmp1"

    def test_contact_aliases_and_tags(self):
        contact = load_snapshot(SNAPSHOT).contacts[0]
        assert contact.tags == frozenset({"saas"})
        assert contact.last_contact is not None

    def test_revenue_aliases(self):
        revenue = load_snapshot(SNAPSHOT).revenue
        assert [p.period for p in revenue] == ["Sep", "Oct", "Nov"]
        assert revenue[1].amount == Decimal(72000)
        assert revenue[2].amount == 0

    def test_missing_collections_are_empty(self):
        snapshot = load_snapshot({})
        assert snapshot.deals == ()
        assert sum(snapshot.skipped.values()) == 0

    def test_non_object_snapshot(self):
        with pytest.raises(DataFetchError):
            load_snapshot([1, 2, 3])


class TestLoadSnapshotFile:
    def test_reads_file(self, tmp_path):
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
        assert len(load_snapshot_file(path).deals) == 2

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataFetchError) as exc:
            load_snapshot_file(tmp_path / "missing.json")
        assert exc.value.code == "DATA_FETCH_FAILED"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DataFetchError):
            load_snapshot_file(path)
