"""
Activity Analyzer
==================
Activity feed helpers: most recent activities, per-type tallies and
overdue tasks.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.crm_models import Activity, ActivityType
from pipeline_analytics.lib.utils import as_utc


def recent_activities(activities: Iterable[Activity], limit: int = 5) -> List[Activity]:
    """Newest activities first, at most ``limit`` of them."""
    ordered = sorted(activities, key=lambda a: as_utc(a.date), reverse=True)
    return ordered[:max(limit, 0)]


def count_activities_by_type(activities: Iterable[Activity]) -> Dict[ActivityType, int]:
    counts = {activity_type: 0 for activity_type in ActivityType}
    for activity in activities:
        counts[activity.type] += 1
    return counts


def overdue_tasks(activities: Iterable[Activity], now: datetime) -> List[Activity]:
    """Incomplete tasks whose due date is before ``now``."""
    now = as_utc(now)
    return [
        a for a in activities
        if a.type is ActivityType.TASK
        and not a.completed
        and a.due_date is not None
        and as_utc(a.due_date) < now
    ]


def activities_for(
    activities: Iterable[Activity],
    contact_id: Optional[str] = None,
    deal_id: Optional[str] = None,
) -> List[Activity]:
    """Activities linked to the given contact and/or deal."""
    return [
        a for a in activities
        if (contact_id is None or a.contact_id == contact_id)
        and (deal_id is None or a.deal_id == deal_id)
    ]
