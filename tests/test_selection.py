"""Tests for selection state, expanded groups and approval transitions."""

from datetime import datetime

import pytest
import pytz

from conftest import make_activity
from grouping import group_activities
from models import ActivityStatus, GroupMode
from selection import (
    ApprovalError,
    ExpandedGroups,
    SelectionState,
    approve_activity,
    bulk_approve,
)

NOW = pytz.UTC.localize(datetime(2024, 1, 16, 9, 0))


@pytest.fixture
def activities():
    return [make_activity(f"activity-{i}", status=ActivityStatus.NEW) for i in range(1, 6)]


class TestSelectionState:
    def test_toggle(self):
        selection = SelectionState().toggle("a").toggle("b").toggle("a")
        assert selection.as_list() == ["b"]

    def test_transitions_do_not_mutate(self):
        original = SelectionState.of(["a"])
        original.toggle("b")
        assert original.as_list() == ["a"]

    def test_group_select_and_deselect(self):
        activities = [
            make_activity("1", worker_id="w1", worker_name="Ann"),
            make_activity("2", worker_id="w1", worker_name="Ann"),
            make_activity("3", worker_id="w2", worker_name="Ben"),
        ]
        ann, ben = group_activities(activities, GroupMode.WORKER)

        selection = SelectionState.of(["3"]).set_group_selected(ann, True)
        assert selection.as_list() == ["1", "2", "3"]
        assert selection.is_group_selected(ann)
        assert selection.is_group_selected(ben)

        selection = selection.set_group_selected(ann, False)
        assert selection.as_list() == ["3"]
        assert not selection.is_group_selected(ann)

    def test_prune_drops_hidden_ids(self):
        selection = SelectionState.of(["a", "b", "c"]).prune(["b", "c", "d"])
        assert selection.as_list() == ["b", "c"]

    def test_clear(self):
        assert len(SelectionState.of(["a"]).clear()) == 0


class TestExpandedGroups:
    def _groups(self, *names):
        activities = [make_activity(n, worker_id=n, worker_name=n) for n in names]
        return group_activities(activities, GroupMode.WORKER)

    def test_new_groups_start_expanded(self):
        groups = self._groups("a", "b")
        expanded = ExpandedGroups().reconcile([], groups)
        assert expanded.ordered(groups) == ["a", "b"]
        assert expanded.all_expanded(groups)

    def test_reconcile_keeps_collapse_state_and_drops_vanished(self):
        before = self._groups("a", "b", "c")
        expanded = ExpandedGroups.all_of(before).toggle("b")

        after = self._groups("b", "c", "d")
        expanded = expanded.reconcile([g.key for g in before], after)

        assert expanded.ordered(after) == ["c", "d"]
        assert "a" not in expanded.expanded

    def test_expand_and_collapse_all(self):
        groups = self._groups("a", "b")
        collapsed = ExpandedGroups.all_of(groups).collapse_all()
        assert collapsed.ordered(groups) == []
        assert collapsed.expand_all(groups).ordered(groups) == ["a", "b"]

    def test_no_groups_is_not_all_expanded(self):
        assert not ExpandedGroups().all_expanded([])


class TestBulkApprove:
    def test_approves_selected_and_clears_selection(self, activities):
        selection = SelectionState.of(["activity-1", "activity-3", "activity-5"])

        outcome = bulk_approve(activities, selection, "Harvest", now=NOW)

        assert outcome.approved_ids == ["activity-1", "activity-3", "activity-5"]
        assert len(outcome.selection) == 0
        by_id = {a.id: a for a in outcome.activities}
        for activity_id in outcome.approved_ids:
            assert by_id[activity_id].status == ActivityStatus.APPROVED
            assert by_id[activity_id].activity_type == "Harvest"
            assert by_id[activity_id].updated_at == NOW.isoformat()
        assert by_id["activity-2"].status == ActivityStatus.NEW

    def test_original_records_untouched(self, activities):
        bulk_approve(activities, SelectionState.of(["activity-1"]), "Weeding", now=NOW)
        assert activities[0].status == ActivityStatus.NEW

    def test_blank_activity_type_is_noop(self, activities):
        selection = SelectionState.of(["activity-1"])
        outcome = bulk_approve(activities, selection, "  ")
        assert outcome.approved_ids == []
        assert outcome.selection == selection
        assert all(a.status == ActivityStatus.NEW for a in outcome.activities)

    def test_empty_selection_is_noop(self, activities):
        outcome = bulk_approve(activities, SelectionState(), "Harvest")
        assert outcome.approved_ids == []

    def test_keeps_activity_order(self, activities):
        outcome = bulk_approve(activities, SelectionState.of(["activity-4"]), "Pruning", now=NOW)
        assert [a.id for a in outcome.activities] == [a.id for a in activities]


class TestApproveActivity:
    def test_approves_with_type_and_note(self):
        activity = make_activity("1", activity_type="Spraying", note=None)
        approved = approve_activity(activity, "Irrigation", manager_note="Checked on site", now=NOW)
        assert approved.status == ActivityStatus.APPROVED
        assert approved.activity_type == "Irrigation"
        assert approved.note == "Checked on site"

    def test_requires_activity_type(self):
        with pytest.raises(ApprovalError):
            approve_activity(make_activity("1"), "")

    def test_missing_exit_requires_partial_approval(self):
        activity = make_activity("1", exit_time=None)
        with pytest.raises(ApprovalError):
            approve_activity(activity, "Harvest")
        approved = approve_activity(activity, "Harvest", approve_partial=True, now=NOW)
        assert approved.status == ActivityStatus.APPROVED

    def test_note_length_limit(self):
        with pytest.raises(ApprovalError):
            approve_activity(make_activity("1"), "Harvest", manager_note="x" * 301)
        approve_activity(make_activity("1"), "Harvest", manager_note="x" * 300, now=NOW)

    def test_empty_note_keeps_existing_note(self):
        activity = make_activity("1", note="Worker note")
        approved = approve_activity(activity, "Harvest", now=NOW)
        assert approved.note == "Worker note"
