"""Coach-side operations that produce new template and exception rows."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from swimsched.core.constants import (
    DAYS,
    SEASON_END_MONTH_DAY,
    SEASON_ROLLOVER_MONTH,
    SEASON_START_MONTH_DAY,
)
from swimsched.core.models import ActivityType, ExceptionType, ScheduleException, ScheduleTemplate
from swimsched.utils.date_ranges import iter_dates


class TemplateValidationError(ValueError):
    """Raised when a template violates its invariants."""

    def __init__(self, template_id: str, problems: List[str]) -> None:
        self.template_id = template_id
        self.problems = problems
        super().__init__(f"Template {template_id}: " + "; ".join(problems))


@dataclass(frozen=True)
class Season:
    start: date
    end: date
    name: str


def template_problems(template: ScheduleTemplate) -> List[str]:
    problems: List[str] = []
    if not 0 <= template.day_of_week <= 6:
        problems.append(f"day_of_week {template.day_of_week} is outside 0-6")
    if template.start_time >= template.end_time:
        problems.append("start_time must be before end_time")
    if template.season_start > template.season_end:
        problems.append("season_start must not be after season_end")
    if not template.group_name.strip():
        problems.append("group_name is empty")
    return problems


def validate_template(template: ScheduleTemplate) -> ScheduleTemplate:
    """Return the template unchanged or raise listing every problem."""
    problems = template_problems(template)
    if problems:
        raise TemplateValidationError(template.id, problems)
    return template


def _time_text(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value is not None else None


def expand_exception_range(
    start: date,
    end: Optional[date],
    reason: str,
    exception_type: ExceptionType = ExceptionType.CANCELED,
    group_name: Optional[str] = None,
    activity_type: Optional[ActivityType] = None,
    new_start_time: Optional[time] = None,
    new_end_time: Optional[time] = None,
) -> List[Dict[str, Any]]:
    """Build one exception row per date from a start/end form submission."""
    if not reason or not reason.strip():
        raise ValueError("A reason is required")
    last = end or start
    if last < start:
        raise ValueError("End date must not be before start date")
    if exception_type is ExceptionType.ADDED and (new_start_time is None or new_end_time is None):
        raise ValueError("Added practices need both a start and an end time")
    if exception_type is ExceptionType.CANCELED:
        new_start_time = new_end_time = None

    return [
        {
            "exception_date": day.isoformat(),
            "group_name": group_name or None,
            "activity_type": activity_type.value if activity_type else None,
            "exception_type": exception_type.value,
            "new_start_time": _time_text(new_start_time),
            "new_end_time": _time_text(new_end_time),
            "reason": reason.strip(),
        }
        for day in iter_dates(start, last)
    ]


def template_to_row(template: ScheduleTemplate) -> Dict[str, Any]:
    """Row payload for inserting a template; the store assigns the id."""
    return {
        "group_name": template.group_name,
        "day_of_week": template.day_of_week,
        "activity_type": template.activity_type.value,
        "start_time": template.start_time.strftime("%H:%M"),
        "end_time": template.end_time.strftime("%H:%M"),
        "location_name": template.location_name,
        "notes": template.notes,
        "season_start_date": template.season_start.isoformat(),
        "season_end_date": template.season_end.isoformat(),
        "display_order": template.display_order,
    }


def copy_day(
    templates: Sequence[ScheduleTemplate],
    group_name: str,
    source_day: int,
    target_days: Sequence[int],
    season: Optional[Season] = None,
) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Plan copying one group's weekday onto other weekdays.

    Returns ``(ids_to_delete, rows_to_insert)``. Whatever the group already
    has on a target day is replaced.
    """
    source = [t for t in templates if t.group_name == group_name and t.day_of_week == source_day]
    if not source:
        raise ValueError(f"No time slots to copy for {group_name} on {DAYS[source_day % 7]}")

    to_delete: List[str] = []
    rows: List[Dict[str, Any]] = []
    for target in dict.fromkeys(target_days):
        if target == source_day:
            continue
        if not 0 <= target <= 6:
            raise ValueError(f"Target day {target} is outside 0-6")
        to_delete.extend(t.id for t in templates if t.group_name == group_name and t.day_of_week == target)
        for template in source:
            copied = replace(template, day_of_week=target)
            if season is not None:
                copied = replace(copied, season_start=season.start, season_end=season.end)
            rows.append(template_to_row(copied))
    return to_delete, rows


def default_season(today: Optional[date] = None) -> Season:
    """School-year season containing ``today``: September through May."""
    now = today or date.today()
    year = now.year if now.month >= SEASON_ROLLOVER_MONTH else now.year - 1
    start = date(year, *SEASON_START_MONTH_DAY)
    end = date(year + 1, *SEASON_END_MONTH_DAY)
    return Season(start=start, end=end, name=f"{year}-{year + 1} Season")


def season_from_templates(templates: Sequence[ScheduleTemplate]) -> Optional[Season]:
    if not templates:
        return None
    first = templates[0]
    return Season(
        start=first.season_start,
        end=first.season_end,
        name=f"{first.season_start.year}-{first.season_end.year} Season",
    )


def apply_season(rows: Sequence[Dict[str, Any]], season: Season) -> List[Dict[str, Any]]:
    """Copy stored template rows with the season window replaced.

    Works on raw rows so fields this package does not model, and rows it
    cannot parse, are written back untouched apart from the window.
    """
    return [
        {**row, "season_start_date": season.start.isoformat(), "season_end_date": season.end.isoformat()}
        for row in rows
    ]


def upcoming_exception_count(exceptions: Sequence[ScheduleException], today: Optional[date] = None) -> int:
    now = today or date.today()
    return sum(1 for exc in exceptions if exc.exception_date >= now)
