"""
CRM Pipeline Analytics: Record Models
========================================

Immutable pydantic models for the records the engine consumes (contacts,
deals, activities, campaign leads, revenue points) and the view models it produces.

Field names are snake_case; the camelCase spellings used by the front-end
sample data (``contactId``, ``createdAt`` ...) are accepted as aliases.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# ─── Enums ──────────────────────────────────────────────────

class Stage(str, Enum):
    """Pipeline stage of a deal."""
    LEAD = "lead"
    CONTACT = "contact"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED = "closed"


# Fixed total ordering used for funnel adjacency and rot thresholds.
# A new stage must be inserted here or funnel/rot results are undefined.
STAGE_ORDER: Tuple[Stage, ...] = (
    Stage.LEAD,
    Stage.CONTACT,
    Stage.PROPOSAL,
    Stage.NEGOTIATION,
    Stage.CLOSED,
)

STAGE_LABELS: Dict[Stage, str] = {
    Stage.LEAD: "Leads",
    Stage.CONTACT: "Contacted",
    Stage.PROPOSAL: "Proposal",
    Stage.NEGOTIATION: "Negotiation",
    Stage.CLOSED: "Closed Won",
}


class ContactStatus(str, Enum):
    """Lifecycle status of a contact."""
    LEAD = "lead"
    PROSPECT = "prospect"
    CUSTOMER = "customer"
    CHURNED = "churned"


class ActivityType(str, Enum):
    EMAIL = "email"
    CALL = "call"
    MEETING = "meeting"
    TASK = "task"
    NOTE = "note"


class LeadStatus(str, Enum):
    """Qualification status of a campaign lead."""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    UNQUALIFIED = "unqualified"
    IN_PIPELINE = "in_pipeline"


class DealHealth(str, Enum):
    """How stale a deal is relative to its stage's expected dwell time."""
    HEALTHY = "healthy"
    WARNING = "warning"
    ROTTING = "rotting"


# Sort rank used by deal tables: most urgent first.
HEALTH_RANK: Dict[DealHealth, int] = {
    DealHealth.ROTTING: 0,
    DealHealth.WARNING: 1,
    DealHealth.HEALTHY: 2,
}


def parse_stage(value: Any) -> Optional[Stage]:
    """Map a raw stage value to a Stage, or None when it is not one."""
    if isinstance(value, Stage):
        return value
    if isinstance(value, str):
        try:
            return Stage(value.strip().lower())
        except ValueError:
            return None
    return None


# ─── Records ────────────────────────────────────────────────

class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Contact(_Record):
    """A person in the CRM."""
    id: str
    name: str
    email: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    status: ContactStatus
    tags: FrozenSet[str] = Field(default_factory=frozenset)
    # None means never contacted
    last_contact: Optional[datetime] = None
    created_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_default(cls, value: Any) -> Any:
        return value if value is not None else frozenset()


class Deal(_Record):
    """A sales opportunity sitting in one pipeline stage."""
    id: str
    title: str
    value: Decimal = Decimal(0)
    stage: Stage
    contact_id: str = ""
    contact: Optional[Contact] = None
    created_at: datetime
    closed_at: Optional[datetime] = None
    probability: Optional[int] = None
    description: Optional[str] = None

    @field_validator("stage", mode="before")
    @classmethod
    def _normalize_stage(cls, value: Any) -> Any:
        # " Proposal " -> Stage.PROPOSAL; anything else fails enum validation
        return parse_stage(value) or value

    @property
    def is_open(self) -> bool:
        return self.stage is not Stage.CLOSED


class Activity(_Record):
    """A logged touchpoint or task."""
    id: str
    type: ActivityType
    title: str
    description: Optional[str] = None
    date: datetime
    contact_id: Optional[str] = None
    deal_id: Optional[str] = None
    completed: bool = False
    due_date: Optional[datetime] = None


class Lead(_Record):
    """A prospect captured by a marketing campaign, before it becomes a contact."""
    id: str
    name: str
    email: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    campaign_id: Optional[str] = None
    contacted_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime


class RevenuePoint(BaseModel):
    """One period of a revenue series. A zero amount means no data yet."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    period: str = Field(validation_alias=AliasChoices("period", "month"))
    amount: Decimal = Field(
        default=Decimal(0), validation_alias=AliasChoices("amount", "revenue"),
    )
    is_forecast: bool = Field(
        default=False, validation_alias=AliasChoices("is_forecast", "isForecast"),
    )


# ─── View Models ────────────────────────────────────────────

class _View(BaseModel):
    model_config = ConfigDict(frozen=True)


class ClassifiedDeal(_View):
    """A deal together with its age and health status."""
    deal: Deal
    age: int
    status: DealHealth


class HealthSummary(_View):
    status: DealHealth
    count: int = 0
    value: Decimal = Decimal(0)


class StageConversion(_View):
    """Stock conversion ratio between two adjacent stages."""
    from_stage: Stage
    to_stage: Stage
    name: str
    rate: int
    band: str


class StageSummary(_View):
    """Per-stage chart row."""
    stage: Stage
    name: str
    count: int
    value: Decimal


class StatusShare(_View):
    """Per-status chart row."""
    status: ContactStatus
    name: str
    count: int
    percent: int


class CampaignLeadSummary(_View):
    """Lead tally for one campaign's detail header."""
    campaign_id: Optional[str]
    total: int = 0
    qualified: int = 0
    unqualified: int = 0
    in_pipeline: int = 0
