"""Group-name matching between swimmer groups and schedule groups."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from swimsched.core.models import ScheduleException, ScheduleTemplate


def group_matches(schedule_group: Optional[str], swimmer_group: Optional[str]) -> bool:
    """Return True when either group name is a case-insensitive prefix of the other.

    "CAT 2" matches "CAT 2 Early" and "CAT 2 Late" in both argument orders.
    Empty names never match anything.
    """
    if not schedule_group or not swimmer_group:
        return False
    sched = schedule_group.lower()
    swim = swimmer_group.lower()
    return sched == swim or sched.startswith(swim) or swim.startswith(sched)


def matches_any(schedule_group: Optional[str], swimmer_groups: Iterable[str]) -> bool:
    return any(group_matches(schedule_group, swimmer_group) for swimmer_group in swimmer_groups)


def filter_templates_for_groups(
    templates: Sequence[ScheduleTemplate],
    swimmer_groups: Sequence[str],
) -> List[ScheduleTemplate]:
    """Keep templates whose group matches at least one swimmer group."""
    return [template for template in templates if matches_any(template.group_name, swimmer_groups)]


def filter_exceptions_for_groups(
    exceptions: Sequence[ScheduleException],
    swimmer_groups: Sequence[str],
) -> List[ScheduleException]:
    """Keep all-group exceptions plus those matching a swimmer group."""
    return [
        exc
        for exc in exceptions
        if exc.group_name is None or matches_any(exc.group_name, swimmer_groups)
    ]
