"""Tests for the filter stage."""

import pytest

from conftest import make_activity
from filters import ActivityFilters, FilterError, apply_filters
from models import ActivityStatus


@pytest.fixture
def ten_activities():
    """3 activities mention "greenhouse", only one of them approved"""
    activities = [
        make_activity("g1", plot_name="Greenhouse 1", status=ActivityStatus.APPROVED),
        make_activity("g2", plot_name="Greenhouse 2", status=ActivityStatus.PENDING),
        make_activity("g3", plot_name="GREENHOUSE 1", status=ActivityStatus.NEW),
    ]
    for i in range(7):
        status = ActivityStatus.APPROVED if i % 2 else ActivityStatus.PENDING
        activities.append(make_activity(f"o{i}", plot_name="North Field A", status=status))
    return activities


class TestSearch:
    def test_blank_query_keeps_everything(self, ten_activities):
        assert len(apply_filters(ten_activities, ActivityFilters(query="   "))) == 10

    def test_matches_any_field_case_insensitively(self):
        activities = [
            make_activity("1", worker_name="Maria Garcia"),
            make_activity("2", plot_name="Maria's Orchard"),
            make_activity("3", activity_type="Marinating"),
            make_activity("4"),
        ]
        result = apply_filters(activities, ActivityFilters(query="MARI"))
        assert [a.id for a in result] == ["1", "2", "3"]

    def test_query_is_trimmed(self):
        activities = [make_activity("1", worker_name="Li Wei")]
        assert apply_filters(activities, ActivityFilters(query="  wei ")) == activities


class TestStatusAndDay:
    def test_status_filter(self, ten_activities):
        result = apply_filters(ten_activities, ActivityFilters(status="APPROVED"))
        assert all(a.status == ActivityStatus.APPROVED for a in result)
        assert len(result) == 4

    def test_all_disables_status_filter(self, ten_activities):
        assert len(apply_filters(ten_activities, ActivityFilters(status="ALL"))) == 10

    def test_day_filter_uses_local_day(self):
        activities = [
            make_activity("late", enter_time="2024-01-14T23:30:00Z"),  # 00:30 on the 15th in Berlin
            make_activity("early", enter_time="2024-01-14T08:00:00Z"),
        ]
        result = apply_filters(activities, ActivityFilters(day="2024-01-15"))
        assert [a.id for a in result] == ["late"]

    def test_missing_enter_time_never_matches_a_day(self):
        activities = [make_activity("1", enter_time=None), make_activity("2", enter_time="broken")]
        assert apply_filters(activities, ActivityFilters(day="2024-01-15")) == []

    def test_empty_day_disables_day_filter(self):
        activities = [make_activity("1", enter_time=None)]
        assert apply_filters(activities, ActivityFilters(day="")) == activities


class TestComposition:
    def test_query_then_status(self, ten_activities):
        by_query = apply_filters(ten_activities, ActivityFilters(query="greenhouse"))
        assert len(by_query) == 3

        combined = apply_filters(ten_activities, ActivityFilters(query="greenhouse", status="APPROVED"))
        assert [a.id for a in combined] == ["g1"]

    def test_does_not_mutate_input(self, ten_activities):
        before = list(ten_activities)
        apply_filters(ten_activities, ActivityFilters(query="greenhouse", status="NEW"))
        assert ten_activities == before


class TestValidation:
    def test_unknown_status(self):
        with pytest.raises(FilterError):
            ActivityFilters(status="DONE").validate()

    def test_malformed_day(self):
        with pytest.raises(FilterError):
            ActivityFilters(day="15/01/2024").validate()

    def test_valid_filters_pass(self):
        filters = ActivityFilters(query="x", status="CHECKED", day="2024-01-15")
        assert filters.validate() is filters
