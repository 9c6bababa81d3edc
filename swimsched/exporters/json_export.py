"""JSON serialization of resolved slots."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from swimsched.core.models import LinkedSlot, ResolvedSlot


def slot_to_dict(slot: ResolvedSlot) -> Dict[str, Any]:
    return {
        "date": slot.date.isoformat(),
        "group_name": slot.group_name,
        "activity_type": slot.activity_type.value,
        "start_time": slot.start_time.strftime("%H:%M"),
        "end_time": slot.end_time.strftime("%H:%M"),
        "location_name": slot.location_name,
        "is_modified": slot.is_modified,
        "modified_reason": slot.modified_reason,
        "source_template_id": slot.source_template_id,
        "display_order": slot.display_order,
    }


def linked_slot_to_dict(linked: LinkedSlot) -> Dict[str, Any]:
    payload = slot_to_dict(linked.slot)
    payload.update(
        {
            "has_workout": linked.has_workout,
            "linked_workout_id": linked.linked_workout_id,
            "yardage": linked.yardage,
        }
    )
    return payload


def write_json(path: Path, payload: Any) -> Path:
    """Write payload as pretty JSON and return path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=str) + "\n")
    return path
