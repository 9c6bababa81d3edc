"""Static constants and mappings for swimsched."""

from __future__ import annotations

DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
DAYS_SHORT = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

DAY_BY_NAME = {name.lower(): idx for idx, name in enumerate(DAYS)}
DAY_BY_NAME.update({name.lower(): idx for idx, name in enumerate(DAYS_SHORT)})

ACTIVITY_LABELS = {
    "swim": "Swim",
    "dryland": "Dryland",
    "doubles_am": "AM Swim",
    "doubles_pm": "PM Swim",
}

# PostgREST table names.
TEMPLATES_TABLE = "practice_schedules"
EXCEPTIONS_TABLE = "practice_schedule_exceptions"
WORKOUTS_TABLE = "practices"

PRESET_REASONS = [
    "Holiday Break",
    "Winter Break",
    "Spring Break",
    "Thanksgiving",
    "Christmas",
    "New Year",
    "Meet Weekend",
    "Pool Maintenance",
    "School Holiday",
    "Weather Closure",
]

# School-year season window (month, day).
SEASON_START_MONTH_DAY = (9, 1)
SEASON_END_MONTH_DAY = (5, 31)
SEASON_ROLLOVER_MONTH = 8
