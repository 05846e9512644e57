import math
from datetime import datetime
from typing import Optional
import pytz

from config import LOCAL_TIMEZONE

PLACEHOLDER = "—"


def get_local_tz():
    """Timezone used for calendar-day bucketing and display."""
    return pytz.timezone(LOCAL_TIMEZONE)


def to_local(dt: datetime, tz=None) -> datetime:
    """Convert a naive or aware datetime to a local timezone-aware datetime.
    If naive, assume it's already local time.
    """
    tz = tz or get_local_tz()
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def now_local(tz=None) -> datetime:
    """Get current time in the local timezone."""
    tz = tz or get_local_tz()
    return datetime.now(pytz.UTC).astimezone(tz)


def parse_timestamp(value: Optional[str], tz=None) -> Optional[datetime]:
    """Parse an ISO-8601 string into a local aware datetime.

    Returns None for missing or unparseable values.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except (TypeError, ValueError):
        return None
    return to_local(parsed, tz)


def calculate_duration(enter_time: Optional[str], exit_time: Optional[str]) -> Optional[int]:
    """Minutes between enter and exit, None if either is missing.

    Exit before enter is clamped to 0.
    """
    enter = parse_timestamp(enter_time)
    exit_ = parse_timestamp(exit_time)
    if enter is None or exit_ is None:
        return None
    diff_seconds = (exit_ - enter).total_seconds()
    if diff_seconds <= 0:
        return 0
    return math.floor(diff_seconds / 60 + 0.5)


def format_time(value: Optional[str], tz=None) -> str:
    """Format a timestamp as HH:MM in local time"""
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return PLACEHOLDER
    return parsed.strftime("%H:%M")


def format_date(value: Optional[str], tz=None) -> str:
    """Format a timestamp as DD/MM/YYYY in local time"""
    parsed = parse_timestamp(value, tz)
    if parsed is None:
        return PLACEHOLDER
    return parsed.strftime("%d/%m/%Y")


def format_duration(minutes: Optional[int]) -> str:
    """Format minutes as e.g. "2h 30m" """
    if minutes is None:
        return PLACEHOLDER
    hours, mins = divmod(minutes, 60)
    if hours == 0:
        return f"{mins}m"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"
