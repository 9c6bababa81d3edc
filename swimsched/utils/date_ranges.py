"""Date range parsing and calendar helpers."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Generator, List, Optional, Tuple

import typer

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(value: Optional[str]) -> Optional[str]:
    """Typer callback that validates YYYY-MM-DD format for date options."""
    if value is None:
        return value
    if not _DATE_RE.match(value):
        raise typer.BadParameter(
            f"Invalid date '{value}'. Expected format: YYYY-MM-DD (e.g. 2024-09-03)"
        )
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise typer.BadParameter(
            f"Invalid date '{value}'. Expected format: YYYY-MM-DD (e.g. 2024-09-03)"
        )
    return value


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD date, ignoring any time suffix."""
    return datetime.strptime(value.split("T")[0], "%Y-%m-%d").date()


def day_of_week(day: date) -> int:
    """Weekday with Sunday=0 through Saturday=6."""
    return (day.weekday() + 1) % 7


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=day_of_week(day))


def week_dates(start: date) -> List[date]:
    """Seven consecutive dates beginning at the week's Sunday."""
    first = week_start(start)
    return [first + timedelta(days=offset) for offset in range(7)]


def iter_dates(start: date, end: date) -> Generator[date, None, None]:
    """Yield each date from start to end inclusive; nothing when end < start."""
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def resolve_date_range(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    days: Optional[int] = None,
    next_weeks: Optional[int] = None,
    this_week: bool = False,
    next_week: bool = False,
    this_month: bool = False,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """Resolve CLI date flags into concrete start/end dates.

    Weeks start on Sunday. With no flags the current week is used.
    """
    now = today or date.today()

    if start_date and end_date:
        return parse_date(start_date), parse_date(end_date)
    if start_date and not end_date:
        start = parse_date(start_date)
        return start, start + timedelta(days=6)
    if end_date and not start_date:
        end = parse_date(end_date)
        return min(now, end), end

    if days is not None:
        return now, now + timedelta(days=max(days - 1, 0))
    if next_weeks is not None:
        start = week_start(now)
        return start, start + timedelta(days=max(next_weeks * 7 - 1, 0))

    if this_week:
        start = week_start(now)
        return start, start + timedelta(days=6)

    if next_week:
        start = week_start(now) + timedelta(days=7)
        return start, start + timedelta(days=6)

    if this_month:
        start = date(now.year, now.month, 1)
        if now.month == 12:
            month_end = date(now.year + 1, 1, 1) - timedelta(days=1)
        else:
            month_end = date(now.year, now.month + 1, 1) - timedelta(days=1)
        return start, month_end

    # Default: the current Sunday-to-Saturday week.
    start = week_start(now)
    return start, start + timedelta(days=6)
