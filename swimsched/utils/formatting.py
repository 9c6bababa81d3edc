"""Formatting helpers used by console output."""

from __future__ import annotations

from datetime import date, time
from typing import Optional

from swimsched.core.constants import ACTIVITY_LABELS, DAYS_SHORT
from swimsched.core.models import ActivityType
from swimsched.utils.date_ranges import day_of_week


def format_time_of_day(value: Optional[time]) -> str:
    """Format a time as 12-hour clock text, e.g. "4:30 PM"."""
    if value is None:
        return ""
    period = "PM" if value.hour >= 12 else "AM"
    hours = value.hour % 12 or 12
    return f"{hours}:{value.minute:02d} {period}"


def format_time_range(start: Optional[time], end: Optional[time]) -> str:
    if start is None and end is None:
        return ""
    return f"{format_time_of_day(start)} - {format_time_of_day(end)}"


def format_yardage(yards: Optional[int]) -> str:
    if yards is None:
        return "-"
    return f"{int(yards):,} yd"


def activity_label(activity: ActivityType) -> str:
    return ACTIVITY_LABELS.get(activity.value, activity.value.replace("_", " ").title())


def format_day(day: date) -> str:
    """Short day heading such as "Tue Sep 3"."""
    return f"{DAYS_SHORT[day_of_week(day)]} {day.strftime('%b')} {day.day}"
