"""Parsing helpers for converting stored rows into schedule models."""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import yaml

from swimsched.core.constants import DAY_BY_NAME
from swimsched.core.models import (
    ActivityType,
    AddedException,
    CanceledException,
    ExceptionType,
    ModifiedException,
    ScheduleException,
    ScheduleTemplate,
    WorkoutRecord,
)
from swimsched.utils.date_ranges import parse_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FRACTION_RE = re.compile(r"\.(\d{1,6})\d*(?=[+-]\d\d|$)")
_SHORT_OFFSET_RE = re.compile(r"(:\d\d(?:\.\d+)?)([+-]\d\d)$")

RECORD_KEYS = ("templates", "exceptions", "workouts")

_ACTIVITY_ALIASES = {"am_swim": "doubles_am", "pm_swim": "doubles_pm"}


class RecordError(ValueError):
    """Raised when a stored row cannot be converted into a model."""


def parse_time_of_day(value: Any) -> time:
    """Parse HH:MM or HH:MM:SS into a time."""
    if isinstance(value, time):
        return value
    if isinstance(value, int):
        # YAML 1.1 reads unquoted 16:00 as the base-60 integer 960.
        raise ValueError(f"Time {value!r} was read as a number; quote time values in YAML files")
    raw = str(value).strip()
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time '{raw}'. Expected HH:MM or HH:MM:SS")


def _optional_time(value: Any) -> Optional[time]:
    if value is None or value == "":
        return None
    return parse_time_of_day(value)


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(str(value))


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    # Pre-3.11 fromisoformat needs 6 fraction digits and a +HH:MM offset.
    raw = str(value).strip().replace("Z", "+00:00")
    raw = _FRACTION_RE.sub(lambda m: "." + m.group(1).ljust(6, "0"), raw)
    raw = _SHORT_OFFSET_RE.sub(r"\1\2:00", raw)
    return datetime.fromisoformat(raw)


def parse_weekday(value: Any) -> int:
    """Parse a Sunday=0 weekday number or a day name such as "Tue"."""
    if isinstance(value, int):
        return value
    raw = str(value).strip().lower()
    if raw.isdigit():
        return int(raw)
    if raw in DAY_BY_NAME:
        return DAY_BY_NAME[raw]
    raise ValueError(f"Invalid weekday '{value}'")


def parse_activity(value: Any) -> ActivityType:
    raw = str(value).strip().lower()
    return ActivityType(_ACTIVITY_ALIASES.get(raw, raw))


def _optional_activity(value: Any) -> Optional[ActivityType]:
    if value is None or value == "":
        return None
    return parse_activity(value)


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def template_from_row(row: Dict[str, Any]) -> ScheduleTemplate:
    """Convert a ``practice_schedules`` row."""
    try:
        return ScheduleTemplate(
            id=str(row["id"]),
            group_name=str(row["group_name"]),
            day_of_week=parse_weekday(row["day_of_week"]),
            activity_type=parse_activity(row.get("activity_type") or "swim"),
            start_time=parse_time_of_day(row["start_time"]),
            end_time=parse_time_of_day(row["end_time"]),
            season_start=_as_date(row["season_start_date"]),
            season_end=_as_date(row["season_end_date"]),
            location_name=_optional_text(row.get("location_name")),
            notes=_optional_text(row.get("notes")),
            display_order=int(row.get("display_order") or 0),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordError(f"Invalid template row {row.get('id')!r}: {exc}") from exc


def exception_from_row(row: Dict[str, Any]) -> Optional[ScheduleException]:
    """Convert a ``practice_schedule_exceptions`` row.

    Returns None for an "added" row missing either time.
    """
    try:
        kind = ExceptionType(str(row.get("exception_type") or "").strip().lower())
        common: Dict[str, Any] = {
            "id": str(row["id"]),
            "exception_date": _as_date(row["exception_date"]),
            "reason": str(row.get("reason") or ""),
            "group_name": _optional_text(row.get("group_name")),
            "activity_type": _optional_activity(row.get("activity_type")),
            "created_at": _as_datetime(row.get("created_at")),
        }
        new_start = _optional_time(row.get("new_start_time"))
        new_end = _optional_time(row.get("new_end_time"))
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordError(f"Invalid exception row {row.get('id')!r}: {exc}") from exc

    if kind is ExceptionType.CANCELED:
        return CanceledException(**common)
    if kind is ExceptionType.MODIFIED:
        return ModifiedException(new_start_time=new_start, new_end_time=new_end, **common)
    if new_start is None or new_end is None:
        logger.warning("Dropping added exception %s without both start and end times", common["id"])
        return None
    return AddedException(new_start_time=new_start, new_end_time=new_end, **common)


def workout_from_row(row: Dict[str, Any]) -> WorkoutRecord:
    """Convert a ``practices`` row."""
    try:
        label = row.get("training_group_id") or row.get("group_label") or row.get("title") or ""
        yardage = row.get("total_yardage")
        return WorkoutRecord(
            id=str(row["id"]),
            date=_as_date(row.get("scheduled_date") or row["date"]),
            group_label=str(label),
            start_time=_optional_time(row.get("scheduled_time") or row.get("start_time")),
            total_yardage=int(yardage) if yardage not in (None, "") else None,
            title=_optional_text(row.get("title")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RecordError(f"Invalid workout row {row.get('id')!r}: {exc}") from exc


def convert_rows(rows: List[Dict[str, Any]], converter: Callable[[Dict[str, Any]], Optional[T]]) -> List[T]:
    """Convert rows, skipping (and logging) any that fail."""
    converted: List[T] = []
    for row in rows:
        try:
            item = converter(row)
        except RecordError as exc:
            logger.warning("%s; skipping", exc)
            continue
        if item is not None:
            converted.append(item)
    return converted


def load_records(path: Path, key: str) -> List[Dict[str, Any]]:
    """Load row dicts from a JSON/YAML file.

    The root may be a list of rows, or an object holding ``key``
    (``templates``, ``exceptions`` or ``workouts``).
    """
    text = path.read_text()
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            raw_data: Any = yaml.safe_load(text)
        else:
            raw_data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise RecordError(f"Could not parse {path}: {exc}") from exc

    if isinstance(raw_data, dict):
        if key in raw_data:
            raw_data = raw_data[key]
        elif any(name in raw_data for name in RECORD_KEYS):
            return []
        else:
            return [raw_data]
    if isinstance(raw_data, list):
        return [item for item in raw_data if isinstance(item, dict)]
    return []
