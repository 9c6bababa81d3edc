from __future__ import annotations

import json
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List

from swimsched.__main__ import app
from swimsched.core.constants import PRESET_REASONS
from swimsched.utils.parsing import convert_rows, load_records, template_from_row

SEPT = ["--start-date", "2024-09-01", "--end-date", "2024-09-14"]


class FakeAPI:
    def __init__(self) -> None:
        self.created: List[Dict[str, Any]] = []
        self.deleted: List[str] = []

    def create_exceptions(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.created.extend(rows)
        return rows

    def create_templates(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.created.extend(rows)
        return rows

    def delete_templates(self, ids: List[str]) -> List[Dict[str, Any]]:
        self.deleted.extend(ids)
        return []


def test_global_json_plain_conflict(runner) -> None:
    result = runner.invoke(app, ["--json", "--plain", "slots"])
    assert result.exit_code == 2
    assert "--json" in result.stdout
    assert "--plain" in result.stdout


def test_slots_json_output(runner, source_files) -> None:
    result = runner.invoke(app, ["--json", "slots", *SEPT, *source_files])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)

    assert [(s["date"], s["group_name"]) for s in payload["slots"]] == [
        ("2024-09-05", "CAT 2 Early"),
        ("2024-09-10", "Tropical Storms"),
        ("2024-09-12", "CAT 2 Early"),
    ]
    linked = payload["slots"][1]
    assert linked["has_workout"] is True
    assert linked["linked_workout_id"] == "w1"
    assert linked["yardage"] == 4500
    assert payload["summary"]["total"] == 3
    assert payload["summary"]["filled"] == 1
    assert payload["summary"]["date_range"] == {"start": "2024-09-01", "end": "2024-09-14"}
    assert payload["duplicate_workouts"] == []


def test_slots_plain_output(runner, source_files) -> None:
    result = runner.invoke(app, ["--plain", "slots", *SEPT, "--open-only", *source_files])
    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines[0].startswith("date\tstart\tend\tgroup")
    assert lines[1] == "2024-09-05\t15:00\t16:00\tCAT 2 Early\tdryland\tGym\tneeds workout\t"
    assert lines[-1] == "total\t2"


def test_slots_swimmer_group_filter(runner, source_files) -> None:
    result = runner.invoke(app, ["--json", "slots", *SEPT, "--swimmer-group", "CAT 2", *source_files])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert {s["group_name"] for s in payload["slots"]} == {"CAT 2 Early"}


def test_slots_pretty_output(runner, source_files) -> None:
    result = runner.invoke(app, ["slots", *SEPT, *source_files])
    assert result.exit_code == 0
    assert "Practices 2024-09-01 to 2024-09-14 (3 total)" in result.stdout


def test_slots_missing_templates_file_fails(runner, tmp_path: Path) -> None:
    result = runner.invoke(app, ["--plain", "slots", *SEPT, "--templates", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "status\terror" in result.stdout


def test_slots_rejects_inverted_range(runner, source_files) -> None:
    result = runner.invoke(app, ["slots", "--start-date", "2024-09-10", "--end-date", "2024-09-01", *source_files])
    assert result.exit_code == 2


def test_week_json_marks_canceled_day(runner, source_files) -> None:
    result = runner.invoke(app, ["--json", "week", "--week-of", "2024-09-03", *source_files])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)

    assert payload["week_start"] == "2024-09-01"
    days = {entry["date"]: entry for entry in payload["days"]}
    assert len(days) == 7
    assert days["2024-09-03"]["canceled_reason"] == "Holiday"
    assert days["2024-09-03"]["slots"] == []
    assert [s["group_name"] for s in days["2024-09-05"]["slots"]] == ["CAT 2 Early"]
    assert days["2024-09-04"]["canceled_reason"] is None


def test_week_plain_output(runner, source_files) -> None:
    result = runner.invoke(app, ["--plain", "week", "--week-of", "2024-09-03", *source_files])
    assert result.exit_code == 0
    assert "2024-09-03\tno practice\tHoliday" in result.stdout
    assert "2024-09-05\t15:00-16:00\tCAT 2 Early\tdryland\tneeds workout" in result.stdout


def test_plan_json_includes_prefill_for_open_slots(runner, source_files) -> None:
    result = runner.invoke(app, ["--json", "plan", "--week-of", "2024-09-10", *source_files])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)

    assert payload["stats"] == {"total": 2, "filled": 1, "open": 1}
    filled, open_slot = payload["slots"]
    assert "prefill" not in filled
    assert open_slot["prefill"]["date"] == "2024-09-12"
    assert open_slot["prefill"]["start_time"] == "15:00"


def test_plan_plain_output(runner, source_files) -> None:
    result = runner.invoke(app, ["--plain", "plan", "--week-of", "2024-09-10", *source_files])
    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines[:2] == ["filled\t1", "total\t2"]
    assert "2024-09-10\t16:00\tTropical Storms\tswim\tw1" in lines


def test_exception_add_dry_run(runner) -> None:
    result = runner.invoke(
        app,
        [
            "--json",
            "exception",
            "add",
            "--start-date",
            "2024-12-23",
            "--end-date",
            "2024-12-25",
            "--reason",
            "Winter Break",
            "--dry-run",
        ],
    )
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "dry-run"
    assert payload["count"] == 3
    assert payload["exceptions"][0]["exception_type"] == "canceled"


def test_exception_add_saves_through_api(monkeypatch, runner) -> None:
    api = FakeAPI()
    monkeypatch.setattr("swimsched.commands.exceptions.build_api", lambda state: api)

    result = runner.invoke(
        app,
        [
            "--plain",
            "exception",
            "add",
            "--start-date",
            "2024-09-03",
            "--reason",
            "Pool Maintenance",
            "--type",
            "modified",
            "--group",
            "Tropical Storms",
            "--new-start",
            "17:00",
        ],
    )
    assert result.exit_code == 0
    assert "status\tcreated" in result.stdout
    assert api.created[0]["new_start_time"] == "17:00"
    assert api.created[0]["group_name"] == "Tropical Storms"


def test_exception_add_rejects_added_without_times(runner) -> None:
    result = runner.invoke(
        app,
        ["exception", "add", "--start-date", "2024-09-04", "--reason", "Makeup", "--type", "added", "--dry-run"],
    )
    assert result.exit_code == 2


def test_exception_add_rejects_unknown_type(runner) -> None:
    result = runner.invoke(
        app,
        ["exception", "add", "--start-date", "2024-09-04", "--reason", "Makeup", "--type", "postponed"],
    )
    assert result.exit_code == 2


def test_exception_reasons(runner) -> None:
    result = runner.invoke(app, ["--plain", "exception", "reasons"])
    assert result.exit_code == 0
    assert result.stdout.strip().splitlines() == PRESET_REASONS


def test_exception_list_shows_upcoming(runner, write_temp_json) -> None:
    soon = date.today() + timedelta(days=3)
    path = write_temp_json(
        "exceptions.json",
        [
            {"id": "old", "exception_date": "2020-01-01", "exception_type": "canceled", "reason": "Past"},
            {"id": "new", "exception_date": soon.isoformat(), "exception_type": "canceled", "reason": "Meet Weekend"},
        ],
    )
    result = runner.invoke(app, ["--plain", "exception", "list", "--exceptions", str(path)])
    assert result.exit_code == 0
    assert "upcoming\t1" in result.stdout
    assert f"{soon.isoformat()}\tcanceled\tall\tMeet Weekend" in result.stdout
    assert "Past" not in result.stdout


def test_template_validate(runner, write_temp_json, template_rows) -> None:
    path = write_temp_json("templates.json", template_rows)
    result = runner.invoke(app, ["--json", "template", "validate", "--templates", str(path)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["checked"] == 2
    assert payload["invalid"] == 0


def test_template_validate_reports_bad_rows(runner, write_temp_json, template_rows) -> None:
    bad = dict(template_rows[0], id="bad", start_time="19:00", end_time="18:00")
    path = write_temp_json("templates.json", [*template_rows, bad])
    result = runner.invoke(app, ["--plain", "template", "validate", "--templates", str(path)])
    assert result.exit_code == 1
    assert "invalid\t1" in result.stdout
    assert "bad\tTropical Storms\tstart_time must be before end_time" in result.stdout


def test_template_copy_day_dry_run(runner, write_temp_json, template_rows) -> None:
    path = write_temp_json("templates.json", template_rows)
    result = runner.invoke(
        app,
        [
            "--json",
            "template",
            "copy-day",
            "--group",
            "Tropical Storms",
            "--from",
            "Tue",
            "--to",
            "Wed",
            "--to",
            "4",
            "--templates",
            str(path),
            "--dry-run",
        ],
    )
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["status"] == "dry-run"
    assert payload["deleted_ids"] == []
    assert [row["day_of_week"] for row in payload["created"]] == [3, 4]
    assert payload["created"][0]["season_start_date"] == "2024-09-01"


def test_template_copy_day_writes_output_file(runner, write_temp_json, template_rows, tmp_path: Path) -> None:
    path = write_temp_json("templates.json", template_rows)
    output = tmp_path / "out" / "templates.json"
    result = runner.invoke(
        app,
        [
            "--plain",
            "template",
            "copy-day",
            "--group",
            "CAT 2 Early",
            "--from",
            "Thu",
            "--to",
            "Tue",
            "--templates",
            str(path),
            "--output-file",
            str(output),
        ],
    )
    assert result.exit_code == 0
    assert "status\twritten" in result.stdout
    saved = json.loads(output.read_text())["templates"]
    assert len(saved) == 3
    assert sorted((row["group_name"], row["day_of_week"]) for row in saved) == [
        ("CAT 2 Early", 2),
        ("CAT 2 Early", 4),
        ("Tropical Storms", 2),
    ]

    reloaded = convert_rows(load_records(output, "templates"), template_from_row)
    assert len(reloaded) == 3
    assert len({template.id for template in reloaded}) == 3


def test_template_copy_day_output_keeps_rows_it_cannot_parse(runner, write_temp_json, template_rows, tmp_path: Path) -> None:
    broken = dict(template_rows[0], id="broken", end_time="bogus")
    path = write_temp_json("templates.json", [*template_rows, broken])
    output = tmp_path / "templates.out.json"
    result = runner.invoke(
        app,
        [
            "--plain",
            "template",
            "copy-day",
            "--group",
            "CAT 2 Early",
            "--from",
            "Thu",
            "--to",
            "Tue",
            "--templates",
            str(path),
            "--output-file",
            str(output),
        ],
    )
    assert result.exit_code == 0
    saved = json.loads(output.read_text())["templates"]
    assert len(saved) == 4
    assert {"id": "broken", "end_time": "bogus"}.items() <= next(row for row in saved if row["id"] == "broken").items()


def test_template_copy_day_applies_through_api(monkeypatch, runner, write_temp_json, template_rows) -> None:
    existing = dict(template_rows[1], id="t3", day_of_week=2)
    path = write_temp_json("templates.json", [*template_rows, existing])
    api = FakeAPI()
    monkeypatch.setattr("swimsched.commands.templates.build_api", lambda state: api)

    result = runner.invoke(
        app,
        ["--plain", "template", "copy-day", "--group", "CAT 2 Early", "--from", "4", "--to", "2", "--templates", str(path)],
    )
    assert result.exit_code == 0
    assert "status\tapplied" in result.stdout
    assert api.deleted == ["t3"]
    assert [row["day_of_week"] for row in api.created] == [2]


def test_template_copy_day_without_source_fails(runner, write_temp_json, template_rows) -> None:
    path = write_temp_json("templates.json", template_rows)
    result = runner.invoke(
        app,
        ["--plain", "template", "copy-day", "--group", "Tropical Storms", "--from", "Mon", "--to", "Wed", "--templates", str(path), "--dry-run"],
    )
    assert result.exit_code == 1
    assert "No time slots" in result.stdout


def test_template_season_show_and_set(runner, write_temp_json, template_rows) -> None:
    path = write_temp_json("templates.json", template_rows)

    result = runner.invoke(app, ["--json", "template", "season", "--templates", str(path)])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == {"name": "2024-2025 Season", "start": "2024-09-01", "end": "2025-05-31"}

    result = runner.invoke(
        app,
        ["--plain", "template", "season", "--start-date", "2025-09-01", "--end-date", "2026-05-31", "--templates", str(path)],
    )
    assert result.exit_code == 0
    assert "status\tupdated" in result.stdout
    saved = json.loads(path.read_text())["templates"]
    assert {row["season_start_date"] for row in saved} == {"2025-09-01"}
    assert [row["id"] for row in saved] == ["t1", "t2"]


def test_template_season_save_updates_config(runner, write_temp_json, template_rows, tmp_path: Path) -> None:
    path = write_temp_json("templates.json", template_rows)
    config_path = tmp_path / "swimsched.toml"

    result = runner.invoke(
        app,
        [
            "--config",
            str(config_path),
            "--plain",
            "template",
            "season",
            "--start-date",
            "2025-09-01",
            "--end-date",
            "2026-05-31",
            "--templates",
            str(path),
            "--save",
        ],
    )
    assert result.exit_code == 0
    assert 'start = "2025-09-01"' in config_path.read_text()


def _closed_day_files(write_temp_json, template_rows, workout_rows) -> List[str]:
    exceptions = [
        {"id": "closed", "exception_date": "2024-09-04", "exception_type": "canceled", "reason": "Pool closed"},
        {
            "id": "extra",
            "exception_date": "2024-09-04",
            "exception_type": "added",
            "group_name": "CAT 4",
            "activity_type": "dryland",
            "new_start_time": "15:00",
            "new_end_time": "16:00",
            "reason": "Makeup",
        },
    ]
    return [
        "--templates",
        str(write_temp_json("templates.json", template_rows)),
        "--exceptions",
        str(write_temp_json("exceptions.json", exceptions)),
        "--workouts",
        str(write_temp_json("workouts.json", workout_rows)),
    ]


def test_week_closed_day_matches_across_output_modes(runner, write_temp_json, template_rows, workout_rows) -> None:
    files = _closed_day_files(write_temp_json, template_rows, workout_rows)

    result = runner.invoke(app, ["--json", "week", "--week-of", "2024-09-04", *files])
    assert result.exit_code == 0
    days = {entry["date"]: entry for entry in json.loads(result.stdout)["days"]}
    assert days["2024-09-04"]["canceled_reason"] == "Pool closed"
    assert days["2024-09-04"]["slots"] == []

    result = runner.invoke(app, ["--plain", "week", "--week-of", "2024-09-04", *files])
    assert result.exit_code == 0
    assert "2024-09-04\tno practice\tPool closed" in result.stdout
    assert "CAT 4" not in result.stdout


def test_week_pretty_lists_closed_day_alongside_practices(runner, write_temp_json, template_rows, workout_rows) -> None:
    files = _closed_day_files(write_temp_json, template_rows, workout_rows)
    result = runner.invoke(app, ["week", "--week-of", "2024-09-04", *files])
    assert result.exit_code == 0
    assert "Wed Sep 4: No Practice (Pool closed)" in result.stdout


def test_template_season_set_keeps_rows_it_cannot_parse(runner, write_temp_json, template_rows) -> None:
    broken = dict(template_rows[1], id="broken", end_time="bogus")
    path = write_temp_json("templates.json", [*template_rows, broken])

    result = runner.invoke(
        app,
        ["--plain", "template", "season", "--start-date", "2025-09-01", "--end-date", "2026-05-31", "--templates", str(path)],
    )
    assert result.exit_code == 0
    assert "count\t3" in result.stdout
    saved = json.loads(path.read_text())["templates"]
    assert [row["id"] for row in saved] == ["t1", "t2", "broken"]
    assert saved[2]["end_time"] == "bogus"
    assert {row["season_end_date"] for row in saved} == {"2026-05-31"}


def test_slots_rejects_zero_days(runner, source_files) -> None:
    result = runner.invoke(app, ["slots", "--days", "0", *source_files])
    assert result.exit_code == 2
    result = runner.invoke(app, ["slots", "--next-weeks", "0", *source_files])
    assert result.exit_code == 2
