from __future__ import annotations

import json
from datetime import date, time
from pathlib import Path
from typing import Any, Dict, List

import pytest
import yaml
from typer.testing import CliRunner

from swimsched.core.models import ActivityType, ScheduleTemplate


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SWIMSCHED_CONFIG_FILE", str(tmp_path / "config" / "config.toml"))
    monkeypatch.setenv("SWIMSCHED_DATA_DIR", str(tmp_path / "data"))
    for name in ("SWIMSCHED_TEMPLATES_FILE", "SWIMSCHED_EXCEPTIONS_FILE", "SWIMSCHED_WORKOUTS_FILE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def make_template():
    def _make(**overrides: Any) -> ScheduleTemplate:
        fields: Dict[str, Any] = {
            "id": "t-storms-tue",
            "group_name": "Tropical Storms",
            "day_of_week": 2,
            "activity_type": ActivityType.SWIM,
            "start_time": time(16, 0),
            "end_time": time(18, 0),
            "season_start": date(2024, 9, 1),
            "season_end": date(2025, 5, 31),
            "location_name": "Main Pool",
        }
        fields.update(overrides)
        return ScheduleTemplate(**fields)

    return _make


@pytest.fixture()
def template_rows() -> List[Dict[str, Any]]:
    return [
        {
            "id": "t1",
            "group_name": "Tropical Storms",
            "day_of_week": 2,
            "activity_type": "swim",
            "start_time": "16:00:00",
            "end_time": "18:00:00",
            "location_name": "Main Pool",
            "season_start_date": "2024-09-01",
            "season_end_date": "2025-05-31",
            "display_order": 0,
        },
        {
            "id": "t2",
            "group_name": "CAT 2 Early",
            "day_of_week": 4,
            "activity_type": "dryland",
            "start_time": "15:00",
            "end_time": "16:00",
            "location_name": "Gym",
            "season_start_date": "2024-09-01",
            "season_end_date": "2025-05-31",
            "display_order": 1,
        },
    ]


@pytest.fixture()
def exception_rows() -> List[Dict[str, Any]]:
    return [
        {
            "id": "e1",
            "exception_date": "2024-09-03",
            "group_name": None,
            "activity_type": None,
            "exception_type": "canceled",
            "reason": "Holiday",
        }
    ]


@pytest.fixture()
def workout_rows() -> List[Dict[str, Any]]:
    return [
        {
            "id": "w1",
            "scheduled_date": "2024-09-10",
            "scheduled_time": "16:00:00",
            "training_group_id": None,
            "title": "Tropical Storms - Aerobic Base",
            "total_yardage": 4500,
        }
    ]


@pytest.fixture()
def write_temp_json(tmp_path: Path):
    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload, indent=2) + "\n")
        return path

    return _write


@pytest.fixture()
def write_temp_yaml(tmp_path: Path):
    def _write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(payload, sort_keys=False))
        return path

    return _write


@pytest.fixture()
def source_files(write_temp_json, template_rows, exception_rows, workout_rows) -> List[str]:
    """CLI args pointing at one file per collection."""
    return [
        "--templates",
        str(write_temp_json("templates.json", template_rows)),
        "--exceptions",
        str(write_temp_json("exceptions.json", exception_rows)),
        "--workouts",
        str(write_temp_json("workouts.json", workout_rows)),
    ]
