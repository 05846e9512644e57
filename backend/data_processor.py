"""
Approvals view pipeline: filter, group, prune selection, expand groups
"""

from datetime import date
from typing import Iterable, List, Optional, Tuple

from filters import ActivityFilters, apply_filters
from grouping import group_activities
from models import ActivityGroup, ActivityRecord, ApprovalsView, GroupMode
from selection import ExpandedGroups, SelectionState


class ApprovalsProcessor:
    """
    Derives the approvals page from the activity working set.

    Holds no page state of its own: filters, selection and collapsed groups
    come in with every call and the whole view is recomputed from scratch.
    """

    def __init__(self, tz=None, today: Optional[date] = None):
        self.tz = tz
        self.today = today

    def filter_activities(self, activities: List[ActivityRecord], filters: ActivityFilters) -> List[ActivityRecord]:
        return apply_filters(activities, filters.validate(), tz=self.tz)

    def group(self, activities: List[ActivityRecord], mode: GroupMode) -> List[ActivityGroup]:
        return group_activities(activities, mode, today=self.today, tz=self.tz)

    def visible_selection(
        self,
        activities: List[ActivityRecord],
        filters: ActivityFilters,
        selection: SelectionState,
    ) -> Tuple[List[ActivityRecord], SelectionState]:
        """Filtered activities and the selection pruned to them"""
        filtered = self.filter_activities(activities, filters)
        return filtered, selection.prune(a.id for a in filtered)

    def build_view(
        self,
        activities: List[ActivityRecord],
        filters: ActivityFilters,
        mode: GroupMode = GroupMode.DAY,
        selection: Optional[SelectionState] = None,
        collapsed: Iterable[str] = (),
    ) -> ApprovalsView:
        """
        Build the grouped approvals view.

        Groups listed in ``collapsed`` stay collapsed, every other group is
        expanded, and selected ids filtered out of view are dropped.
        """
        filtered, selection = self.visible_selection(activities, filters, selection or SelectionState())
        groups = self.group(filtered, mode)
        expanded = ExpandedGroups().reconcile(collapsed, groups)

        return ApprovalsView(
            group_by=mode,
            total=len(filtered),
            groups=groups,
            selected=selection.as_list(),
            expanded=expanded.ordered(groups),
        )
