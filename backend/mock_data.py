"""
Mock activity generation for the approvals dashboard
"""

import random
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from config import MOCK_ACTIVITY_COUNT
from models import ActivityRecord, ActivityStatus
from utils import calculate_duration, get_local_tz, now_local, to_local

LOGGED_ACTIVITY_TYPES = ["Harvest", "Spraying", "Irrigation", "Planting", "Weeding", "Fertilizing"]

WORKER_NAMES = [
    "John Smith",
    "Maria Garcia",
    "Ahmed Hassan",
    "Li Wei",
    "Emma Johnson",
    "Carlos Rodriguez",
    "Priya Patel",
    "David Kim",
]

PLOT_NAMES = [
    "North Field A",
    "South Field B",
    "East Plot C",
    "West Plot D",
    "Central Field E",
    "Greenhouse 1",
    "Greenhouse 2",
    "Orchard North",
]

# Mostly NEW, some PENDING, some APPROVED
STATUS_WEIGHTS = (
    [ActivityStatus.NEW] * 7
    + [ActivityStatus.PENDING] * 2
    + [ActivityStatus.APPROVED]
)

MISSING_EXIT_RATE = 0.3
NOTE_RATE = 0.4


class MockActivityGenerator:
    """
    Generates activities spread across the last 7 days (today included).
    Enter times fall in the morning (06:00-14:00), exit times in the
    afternoon (14:00-22:00) of the same day.
    """

    def __init__(self, now: Optional[datetime] = None, seed: Optional[int] = None):
        self.tz = get_local_tz()
        self.now = to_local(now, self.tz) if now else now_local(self.tz)
        self.rng = random.Random(seed)

    def random_day_in_last_week(self) -> date:
        """A random local calendar day, 0-6 days ago"""
        days_ago = self.rng.randrange(7)
        return self.now.date() - timedelta(days=days_ago)

    def random_time_on_day(self, day: date, morning: bool) -> str:
        start_hour = 6 if morning else 14
        wall_clock = time(start_hour + self.rng.randrange(8), self.rng.randrange(60))
        # Localize per day so the offset matches that day, not today
        return self.tz.localize(datetime.combine(day, wall_clock)).isoformat()

    def random_recent_timestamp(self) -> str:
        moment = self.now - timedelta(days=self.rng.randrange(7), hours=self.rng.randrange(24))
        return self.tz.normalize(moment).isoformat()

    def generate(self, count: int = MOCK_ACTIVITY_COUNT) -> List[ActivityRecord]:
        activities = []
        for i in range(count):
            day = self.random_day_in_last_week()
            enter_time = self.random_time_on_day(day, morning=True)
            has_exit = self.rng.random() > MISSING_EXIT_RATE
            exit_time = self.random_time_on_day(day, morning=False) if has_exit else None

            # Pick indexes so ids and names stay consistent
            worker_index = self.rng.randrange(len(WORKER_NAMES))
            plot_index = self.rng.randrange(len(PLOT_NAMES))

            activities.append(ActivityRecord(
                id=f"activity-{i + 1}",
                worker_id=f"worker-{worker_index + 1}",
                worker_name=WORKER_NAMES[worker_index],
                plot_id=f"plot-{plot_index + 1}",
                plot_name=PLOT_NAMES[plot_index],
                activity_type=self.rng.choice(LOGGED_ACTIVITY_TYPES),
                enter_time=enter_time,
                exit_time=exit_time,
                duration=calculate_duration(enter_time, exit_time),
                status=self.rng.choice(STATUS_WEIGHTS),
                note=f"Note for activity {i + 1}" if self.rng.random() < NOTE_RATE else None,
                has_missing_exit=not has_exit,
                created_at=self.random_recent_timestamp(),
                updated_at=self.random_recent_timestamp(),
            ))
        return activities


def generate_mock_activities(
    count: int = MOCK_ACTIVITY_COUNT,
    now: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> List[ActivityRecord]:
    """Generate mock activities for approval"""
    return MockActivityGenerator(now=now, seed=seed).generate(count)
