"""
Activity grouping: day keys, day titles and the grouping engine.

Groups are recomputed from scratch on every call. Each grouping mode is a
strategy in GROUPING_STRATEGIES that decides the bucket key, the title, the
order of items inside a bucket and the order of the buckets themselves.
"""

import unicodedata
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from models import ActivityGroup, ActivityRecord, ActivityStatus, GroupCounts, GroupMode
from utils import now_local, parse_timestamp

NO_DATE_KEY = "no-date"
INVALID_DATE_KEY = "invalid-date"
ALL_KEY = "all"

# Always sorted after real days, in this order
TRAILING_DAY_KEYS = (INVALID_DATE_KEY, NO_DATE_KEY)


def get_local_day_key(value: Optional[str], tz=None) -> str:
    """
    Map a timestamp to its local calendar day as YYYY-MM-DD.

    Returns "no-date" for a missing timestamp and "invalid-date" for one that
    cannot be parsed. The day is the local one, so two instants a few minutes
    apart around midnight can land on different days depending on the zone.
    """
    if not value:
        return NO_DATE_KEY
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return INVALID_DATE_KEY
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"


def format_day_title(day_key: str, today: Optional[date] = None, tz=None) -> str:
    """
    Turn a day key into "Today", "Yesterday" or e.g. "Mon, 15 Jan 2024".
    """
    if day_key == NO_DATE_KEY:
        return "No Date"
    if day_key == INVALID_DATE_KEY:
        return "Invalid Date"
    try:
        target = datetime.strptime(day_key, "%Y-%m-%d").date()
    except ValueError:
        return day_key

    # Compare calendar dates only
    if today is None:
        today = now_local(tz).date()
    if target == today:
        return "Today"
    if target == today - timedelta(days=1):
        return "Yesterday"
    return f"{target:%a}, {target.day} {target:%b} {target.year}"


def text_sort_key(value: Optional[str]) -> str:
    """Case- and accent-insensitive key for alphabetical ordering"""
    decomposed = unicodedata.normalize("NFKD", value or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def enter_time_sort_value(activity: ActivityRecord) -> float:
    """Epoch seconds of enter_time; missing or unparseable counts as epoch zero"""
    parsed = parse_timestamp(activity.enter_time)
    if parsed is None:
        return 0.0
    return parsed.timestamp()


def count_activities(items: List[ActivityRecord]) -> GroupCounts:
    statuses = Counter(item.status for item in items)
    return GroupCounts(
        total=len(items),
        new=statuses[ActivityStatus.NEW],
        pending=statuses[ActivityStatus.PENDING],
        checked=statuses[ActivityStatus.CHECKED],
        approved=statuses[ActivityStatus.APPROVED],
        missing_exit=sum(1 for item in items if item.has_missing_exit),
    )


# ==================== ORDERING ====================

def _by_plot_name(items: List[ActivityRecord]) -> List[ActivityRecord]:
    return sorted(items, key=lambda a: text_sort_key(a.plot_name))


def _most_recent_first(items: List[ActivityRecord]) -> List[ActivityRecord]:
    return sorted(items, key=enter_time_sort_value, reverse=True)


def _newest_day_first(groups: List[ActivityGroup]) -> List[ActivityGroup]:
    dated = sorted(
        (g for g in groups if g.key not in TRAILING_DAY_KEYS),
        key=lambda g: g.key,
        reverse=True,
    )
    trailing = [g for key in TRAILING_DAY_KEYS for g in groups if g.key == key]
    return dated + trailing


def _by_title(groups: List[ActivityGroup]) -> List[ActivityGroup]:
    return sorted(groups, key=lambda g: (text_sort_key(g.title), g.title, g.key))


def _unchanged(groups: List[ActivityGroup]) -> List[ActivityGroup]:
    return groups


# ==================== STRATEGIES ====================

@dataclass(frozen=True)
class GroupingStrategy:
    """How one grouping mode buckets, titles and orders activities"""
    key_for: Callable[[ActivityRecord, object], str]
    title_for: Callable[[str, List[ActivityRecord], Optional[date], object], str]
    sort_items: Callable[[List[ActivityRecord]], List[ActivityRecord]]
    sort_groups: Callable[[List[ActivityGroup]], List[ActivityGroup]]
    metadata_for: Callable[[str], dict]


GROUPING_STRATEGIES: Dict[GroupMode, GroupingStrategy] = {
    GroupMode.DAY: GroupingStrategy(
        key_for=lambda activity, tz: get_local_day_key(activity.enter_time, tz),
        title_for=lambda key, items, today, tz: format_day_title(key, today, tz),
        sort_items=_by_plot_name,
        sort_groups=_newest_day_first,
        metadata_for=lambda key: {"date": None if key in TRAILING_DAY_KEYS else key},
    ),
    GroupMode.WORKER: GroupingStrategy(
        key_for=lambda activity, tz: activity.worker_id,
        # All items in a group share the worker_id, so any name will do
        title_for=lambda key, items, today, tz: items[0].worker_name or key,
        sort_items=_most_recent_first,
        sort_groups=_by_title,
        metadata_for=lambda key: {"worker_id": key},
    ),
    GroupMode.PLOT: GroupingStrategy(
        key_for=lambda activity, tz: activity.plot_id,
        title_for=lambda key, items, today, tz: items[0].plot_name or key,
        sort_items=_most_recent_first,
        sort_groups=_by_title,
        metadata_for=lambda key: {"plot_id": key},
    ),
    GroupMode.NONE: GroupingStrategy(
        key_for=lambda activity, tz: ALL_KEY,
        title_for=lambda key, items, today, tz: "All Activities",
        sort_items=_most_recent_first,
        sort_groups=_unchanged,
        metadata_for=lambda key: {},
    ),
}


def group_activities(
    activities: List[ActivityRecord],
    mode: Union[GroupMode, str] = GroupMode.DAY,
    today: Optional[date] = None,
    tz=None,
) -> List[ActivityGroup]:
    """
    Partition activities into ordered groups.

    Day grouping:
    - Groups by the local date of enter_time, newest day first
    - "invalid-date" and "no-date" groups always come last
    - Items ordered by plot name A→Z

    Worker and plot grouping:
    - Groups by worker_id / plot_id, ordered by name A→Z
    - Items ordered by enter_time, most recent first

    No grouping puts everything in a single "all" group, most recent first.

    Every activity ends up in exactly one group and counts are always
    recomputed from the group's items.
    """
    if not activities:
        return []

    strategy = GROUPING_STRATEGIES[GroupMode(mode)]

    buckets: Dict[str, List[ActivityRecord]] = {}
    for activity in activities:
        buckets.setdefault(strategy.key_for(activity, tz), []).append(activity)

    groups = [
        ActivityGroup(
            key=key,
            title=strategy.title_for(key, items, today, tz),
            counts=count_activities(items),
            items=strategy.sort_items(items),
            **strategy.metadata_for(key),
        )
        for key, items in buckets.items()
    ]
    return strategy.sort_groups(groups)
