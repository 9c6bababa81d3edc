"""Correlate resolved slots with already-authored workouts."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

from swimsched.core.models import LinkedSlot, ResolvedSlot, WorkoutRecord


def workout_matches(slot: ResolvedSlot, workout: WorkoutRecord) -> bool:
    """Same date, same (possibly modified) start time, and a group label naming the slot's group."""
    if workout.date != slot.date or workout.start_time != slot.start_time:
        return False
    label = workout.group_label or ""
    return label == slot.group_name or slot.group_name in label


def duplicate_links(slot: ResolvedSlot, workouts: Sequence[WorkoutRecord]) -> List[WorkoutRecord]:
    return [workout for workout in workouts if workout_matches(slot, workout)]


def link_slot(slot: ResolvedSlot, workouts: Sequence[WorkoutRecord]) -> LinkedSlot:
    """Annotate ``slot`` with the first matching workout."""
    for workout in workouts:
        if workout_matches(slot, workout):
            return LinkedSlot(
                slot=slot,
                has_workout=True,
                linked_workout_id=workout.id,
                yardage=workout.total_yardage,
            )
    return LinkedSlot(slot=slot)


def link_slots(slots: Sequence[ResolvedSlot], workouts: Sequence[WorkoutRecord]) -> List[LinkedSlot]:
    return [link_slot(slot, workouts) for slot in slots]


def coverage_stats(linked: Sequence[LinkedSlot]) -> Dict[str, int]:
    """Planner progress: how many slots already have a workout."""
    filled = sum(1 for item in linked if item.has_workout)
    return {"total": len(linked), "filled": filled, "open": len(linked) - filled}


def new_workout_prefill(slot: ResolvedSlot) -> Dict[str, Any]:
    """Fields used to start a new workout from an open slot."""
    return {
        "date": slot.date.isoformat(),
        "group_name": slot.group_name,
        "activity_type": slot.activity_type.value,
        "start_time": slot.start_time.strftime("%H:%M"),
        "end_time": slot.end_time.strftime("%H:%M"),
        "location_name": slot.location_name,
    }
