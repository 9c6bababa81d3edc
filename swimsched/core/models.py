"""Data models for templates, exceptions, resolved slots and workouts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union


class ActivityType(Enum):
    """Kinds of practice a template can describe."""

    SWIM = "swim"
    DRYLAND = "dryland"
    DOUBLES_AM = "doubles_am"
    DOUBLES_PM = "doubles_pm"


class ExceptionType(Enum):
    CANCELED = "canceled"
    MODIFIED = "modified"
    ADDED = "added"


@dataclass(frozen=True)
class ScheduleTemplate:
    """A recurring weekly practice bounded by a season window.

    ``day_of_week`` uses Sunday=0. Season bounds are inclusive.
    """

    id: str
    group_name: str
    day_of_week: int
    activity_type: ActivityType
    start_time: time
    end_time: time
    season_start: date
    season_end: date
    location_name: Optional[str] = None
    notes: Optional[str] = None
    display_order: int = 0

    def in_season(self, day: date) -> bool:
        return self.season_start <= day <= self.season_end


@dataclass(frozen=True)
class ExceptionBase:
    """Fields shared by every exception kind.

    ``group_name`` and ``activity_type`` of None act as wildcards.
    """

    id: str
    exception_date: date
    reason: str = ""
    group_name: Optional[str] = None
    activity_type: Optional[ActivityType] = None
    created_at: Optional[datetime] = None

    @property
    def kind(self) -> ExceptionType:
        raise NotImplementedError


@dataclass(frozen=True)
class CanceledException(ExceptionBase):
    @property
    def kind(self) -> ExceptionType:
        return ExceptionType.CANCELED


@dataclass(frozen=True)
class ModifiedException(ExceptionBase):
    """Time change for matching slots; a missing end keeps the template's value."""

    new_start_time: Optional[time] = None
    new_end_time: Optional[time] = None

    @property
    def kind(self) -> ExceptionType:
        return ExceptionType.MODIFIED


@dataclass(frozen=True)
class AddedException(ExceptionBase):
    """One-off practice. Both times are required."""

    new_start_time: Optional[time] = None
    new_end_time: Optional[time] = None

    def __post_init__(self) -> None:
        if self.new_start_time is None or self.new_end_time is None:
            raise ValueError("Added exception requires both new_start_time and new_end_time")

    @property
    def kind(self) -> ExceptionType:
        return ExceptionType.ADDED


ScheduleException = Union[CanceledException, ModifiedException, AddedException]


@dataclass(frozen=True)
class ResolvedSlot:
    """A concrete practice occurrence on one date. Never persisted."""

    date: date
    group_name: str
    activity_type: ActivityType
    start_time: time
    end_time: time
    location_name: Optional[str] = None
    is_modified: bool = False
    modified_reason: Optional[str] = None
    source_template_id: Optional[str] = None
    display_order: int = 0
    notes: Optional[str] = None

    @property
    def is_added(self) -> bool:
        return self.source_template_id is None


@dataclass(frozen=True)
class WorkoutRecord:
    """The slice of an authored practice needed for linkage."""

    id: str
    date: date
    group_label: str
    start_time: Optional[time] = None
    total_yardage: Optional[int] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class LinkedSlot:
    """A resolved slot annotated with its authored workout, if any."""

    slot: ResolvedSlot
    has_workout: bool = False
    linked_workout_id: Optional[str] = None
    yardage: Optional[int] = None
