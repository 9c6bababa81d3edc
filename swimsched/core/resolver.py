"""Expand weekly templates into concrete practice slots with exceptions applied."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from swimsched.core.exception_index import ExceptionIndex
from swimsched.core.models import (
    ActivityType,
    AddedException,
    CanceledException,
    ModifiedException,
    ResolvedSlot,
    ScheduleException,
    ScheduleTemplate,
)
from swimsched.utils.date_ranges import day_of_week, iter_dates

logger = logging.getLogger(__name__)


def _slot_sort_key(slot: ResolvedSlot) -> Tuple[date, object, int, str, str]:
    return (
        slot.date,
        slot.start_time,
        slot.display_order,
        slot.group_name.lower(),
        slot.activity_type.value,
    )


def _slot_from_template(
    template: ScheduleTemplate,
    day: date,
    exc: Optional[ScheduleException],
) -> Optional[ResolvedSlot]:
    if isinstance(exc, CanceledException):
        return None

    start_time = template.start_time
    end_time = template.end_time
    is_modified = False
    reason: Optional[str] = None

    if isinstance(exc, ModifiedException):
        start_time = exc.new_start_time or start_time
        end_time = exc.new_end_time or end_time
        is_modified = True
        reason = exc.reason or None

    return ResolvedSlot(
        date=day,
        group_name=template.group_name,
        activity_type=template.activity_type,
        start_time=start_time,
        end_time=end_time,
        location_name=template.location_name,
        is_modified=is_modified,
        modified_reason=reason,
        source_template_id=template.id,
        display_order=template.display_order,
        notes=template.notes,
    )


def _template_keys(templates: Iterable[ScheduleTemplate]) -> Set[Tuple[str, ActivityType, int]]:
    return {(t.group_name, t.activity_type, t.day_of_week) for t in templates}


def _added_slots(
    exceptions: Iterable[ScheduleException],
    index: ExceptionIndex,
    template_keys: Set[Tuple[str, ActivityType, int]],
    range_start: date,
    range_end: date,
) -> List[ResolvedSlot]:
    slots: List[ResolvedSlot] = []
    for exc in exceptions:
        if not isinstance(exc, AddedException):
            continue
        if not range_start <= exc.exception_date <= range_end:
            continue
        if exc.group_name is None or exc.activity_type is None:
            logger.warning("Added exception %s has no group or activity; skipping", exc.id)
            continue
        if (exc.group_name, exc.activity_type, day_of_week(exc.exception_date)) in template_keys:
            continue
        if index.full_day_cancellation(exc.exception_date) is not None:
            logger.debug("Added exception %s falls on a fully canceled day; skipping", exc.id)
            continue
        slots.append(
            ResolvedSlot(
                date=exc.exception_date,
                group_name=exc.group_name,
                activity_type=exc.activity_type,
                start_time=exc.new_start_time,
                end_time=exc.new_end_time,
                modified_reason=exc.reason or None,
                source_template_id=None,
            )
        )
    return slots


def resolve_slots(
    templates: Sequence[ScheduleTemplate],
    exceptions: Sequence[ScheduleException],
    range_start: date,
    range_end: date,
) -> List[ResolvedSlot]:
    """Resolve every practice slot between two dates, inclusive.

    Canceled slots are omitted. Modified slots keep the template's group,
    activity and location and take whichever new times the exception sets.
    Added exceptions only produce a slot when no template shares their group,
    activity and weekday, and the day is not canceled for everyone. The result
    is sorted by date, start time and display order.
    """
    index = ExceptionIndex(exceptions)

    by_weekday: List[List[ScheduleTemplate]] = [[] for _ in range(7)]
    for template in templates:
        if 0 <= template.day_of_week <= 6:
            by_weekday[template.day_of_week].append(template)
        else:
            logger.warning("Template %s has out-of-range weekday %s", template.id, template.day_of_week)

    slots: List[ResolvedSlot] = []
    for day in iter_dates(range_start, range_end):
        for template in by_weekday[day_of_week(day)]:
            if not template.in_season(day):
                continue
            exc = index.resolve(day, template.group_name, template.activity_type)
            slot = _slot_from_template(template, day, exc)
            if slot is not None:
                slots.append(slot)

    slots.extend(_added_slots(exceptions, index, _template_keys(templates), range_start, range_end))
    slots.sort(key=_slot_sort_key)
    return slots
