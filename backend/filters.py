"""
Filter stage: narrows the working activity set before grouping
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from grouping import get_local_day_key
from models import ActivityRecord, ActivityStatus

ALL_STATUSES = "ALL"

DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class FilterError(Exception):
    """Raised when a filter value is not acceptable."""


@dataclass(frozen=True)
class ActivityFilters:
    """Current filter values of the approvals page"""
    query: str = ""
    status: str = ALL_STATUSES
    day: Optional[str] = None  # YYYY-MM-DD, None or "" disables

    def validate(self) -> "ActivityFilters":
        valid_statuses = {ALL_STATUSES} | {s.value for s in ActivityStatus}
        if self.status not in valid_statuses:
            raise FilterError(f"Unknown status filter: {self.status}")
        if self.day and not DAY_PATTERN.match(self.day):
            raise FilterError(f"Day filter must be YYYY-MM-DD, got: {self.day}")
        return self


def matches_query(activity: ActivityRecord, query: str) -> bool:
    """Case-insensitive substring match on worker, plot or activity type"""
    needle = query.lower()
    return (
        needle in activity.worker_name.lower()
        or needle in activity.plot_name.lower()
        or needle in activity.activity_type.lower()
    )


def apply_filters(activities: List[ActivityRecord], filters: ActivityFilters, tz=None) -> List[ActivityRecord]:
    """
    Apply search, status and day filters (AND semantics).

    Always runs over the full activity list; callers never patch a previous
    result.
    """
    filtered = list(activities)

    query = filters.query.strip()
    if query:
        filtered = [a for a in filtered if matches_query(a, query)]

    if filters.status != ALL_STATUSES:
        filtered = [a for a in filtered if a.status.value == filters.status]

    if filters.day:
        # Activities without enter_time never match a specific day
        filtered = [
            a for a in filtered
            if a.enter_time and get_local_day_key(a.enter_time, tz) == filters.day
        ]

    return filtered
