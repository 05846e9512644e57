"""
Selection, expanded-group state and approval transitions.

State objects are immutable; every transition returns a new state so the
grouping pipeline stays free of side effects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional

from config import MAX_NOTE_LENGTH
from models import ActivityGroup, ActivityRecord, ActivityStatus
from utils import now_local


class ApprovalError(Exception):
    """Raised when an approval request is invalid."""


@dataclass(frozen=True)
class SelectionState:
    """Ids of the selected activities, across all groups.

    Invariant: after every filter change the selection only holds ids that are
    still visible (see prune).
    """
    selected: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, ids: Iterable[str]) -> "SelectionState":
        return cls(frozenset(ids))

    def __contains__(self, activity_id: str) -> bool:
        return activity_id in self.selected

    def __len__(self) -> int:
        return len(self.selected)

    def toggle(self, activity_id: str) -> "SelectionState":
        if activity_id in self.selected:
            return SelectionState(self.selected - {activity_id})
        return SelectionState(self.selected | {activity_id})

    def set_group_selected(self, group: ActivityGroup, checked: bool) -> "SelectionState":
        """Select or deselect every activity of a group"""
        ids = {item.id for item in group.items}
        if checked:
            return SelectionState(self.selected | ids)
        return SelectionState(self.selected - ids)

    def is_group_selected(self, group: ActivityGroup) -> bool:
        return bool(group.items) and all(item.id in self.selected for item in group.items)

    def prune(self, visible_ids: Iterable[str]) -> "SelectionState":
        """Drop selections that are no longer visible"""
        return SelectionState(self.selected & frozenset(visible_ids))

    def clear(self) -> "SelectionState":
        return SelectionState()

    def as_list(self) -> List[str]:
        return sorted(self.selected)


@dataclass(frozen=True)
class ExpandedGroups:
    """Keys of the expanded groups. New groups start expanded."""
    expanded: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def all_of(cls, groups: List[ActivityGroup]) -> "ExpandedGroups":
        return cls(frozenset(g.key for g in groups))

    def reconcile(self, previous_keys: Iterable[str], groups: List[ActivityGroup]) -> "ExpandedGroups":
        """
        Carry the expanded set over to a new list of groups.

        Groups that already existed keep their collapse state, new ones are
        expanded and vanished keys are dropped.
        """
        known = frozenset(previous_keys)
        current = frozenset(g.key for g in groups)
        new_keys = current - known
        return ExpandedGroups((self.expanded & current) | new_keys)

    def toggle(self, key: str) -> "ExpandedGroups":
        if key in self.expanded:
            return ExpandedGroups(self.expanded - {key})
        return ExpandedGroups(self.expanded | {key})

    def expand_all(self, groups: List[ActivityGroup]) -> "ExpandedGroups":
        return ExpandedGroups.all_of(groups)

    def collapse_all(self) -> "ExpandedGroups":
        return ExpandedGroups()

    def all_expanded(self, groups: List[ActivityGroup]) -> bool:
        return bool(groups) and all(g.key in self.expanded for g in groups)

    def ordered(self, groups: List[ActivityGroup]) -> List[str]:
        """Expanded keys in display order"""
        return [g.key for g in groups if g.key in self.expanded]


@dataclass(frozen=True)
class BulkApproval:
    activities: List[ActivityRecord]
    selection: SelectionState
    approved_ids: List[str]


def _approved(activity: ActivityRecord, activity_type: str, timestamp: str, **extra) -> ActivityRecord:
    return activity.model_copy(
        update={
            "status": ActivityStatus.APPROVED,
            "activity_type": activity_type,
            "updated_at": timestamp,
            **extra,
        }
    )


def bulk_approve(
    activities: List[ActivityRecord],
    selection: SelectionState,
    activity_type: str,
    now: Optional[datetime] = None,
) -> BulkApproval:
    """
    Approve every selected activity with the chosen activity type.

    No-op when no activity type is chosen or nothing is selected. Otherwise
    returns the updated activity list and an empty selection.
    """
    activity_type = (activity_type or "").strip()
    if not activity_type or not len(selection):
        return BulkApproval(activities=list(activities), selection=selection, approved_ids=[])

    timestamp = (now or now_local()).isoformat()
    updated: List[ActivityRecord] = []
    approved_ids: List[str] = []
    for activity in activities:
        if activity.id in selection:
            updated.append(_approved(activity, activity_type, timestamp))
            approved_ids.append(activity.id)
        else:
            updated.append(activity)
    return BulkApproval(activities=updated, selection=selection.clear(), approved_ids=approved_ids)


def validate_approval(
    activity: ActivityRecord,
    activity_type: str,
    manager_note: str = "",
    approve_partial: bool = False,
) -> str:
    """Check a single approval request and return the cleaned activity type"""
    activity_type = (activity_type or "").strip()
    if not activity_type:
        raise ApprovalError("Select an activity type before approving.")
    if activity.exit_time is None and not approve_partial:
        raise ApprovalError("This activity has no exit time; confirm a partial approval to continue.")
    if len(manager_note or "") > MAX_NOTE_LENGTH:
        raise ApprovalError(f"Manager note must be at most {MAX_NOTE_LENGTH} characters.")
    return activity_type


def approve_activity(
    activity: ActivityRecord,
    activity_type: str,
    manager_note: str = "",
    approve_partial: bool = False,
    now: Optional[datetime] = None,
) -> ActivityRecord:
    """Approve a single activity from the details drawer"""
    activity_type = validate_approval(activity, activity_type, manager_note, approve_partial)
    extra = {"note": manager_note} if manager_note else {}
    return _approved(activity, activity_type, (now or now_local()).isoformat(), **extra)
