"""Shared fixtures for all tests.

Settings are read from the environment at import time, so the test
environment is fixed here before any backend module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCAL_TIMEZONE"] = "Europe/Berlin"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["MOCK_SEED"] = "7"

import pytest

from models import ActivityRecord, ActivityStatus


def make_activity(activity_id: str = "activity-1", **overrides) -> ActivityRecord:
    """Build an activity with sensible defaults"""
    fields = {
        "id": activity_id,
        "worker_id": "worker-1",
        "worker_name": "John Smith",
        "plot_id": "plot-1",
        "plot_name": "North Field A",
        "activity_type": "Harvest",
        "enter_time": "2024-01-15T08:00:00Z",
        "exit_time": "2024-01-15T15:00:00Z",
        "duration": 420,
        "status": ActivityStatus.PENDING,
        "has_missing_exit": False,
    }
    fields.update(overrides)
    if fields["exit_time"] is None:
        fields["has_missing_exit"] = True
        fields["duration"] = None
    return ActivityRecord(**fields)


@pytest.fixture
def activity_factory():
    return make_activity


@pytest.fixture
def day_scenario():
    """Two activities on 2024-01-15 and one with a missing exit on 2024-01-14"""
    return [
        make_activity("1", enter_time="2024-01-15T10:00:00Z", status=ActivityStatus.PENDING),
        make_activity("2", enter_time="2024-01-15T14:00:00Z", status=ActivityStatus.APPROVED),
        make_activity("3", enter_time="2024-01-14T09:00:00Z", exit_time=None, status=ActivityStatus.PENDING),
    ]
