"""Shared command helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, List, NoReturn, Optional, Sequence

import typer

from swimsched.core.api import APIError, ScheduleAPI
from swimsched.core.config import ConfigError, resolve_api_settings, resolve_source_path
from swimsched.core.groups import filter_exceptions_for_groups, filter_templates_for_groups
from swimsched.core.models import ScheduleException, ScheduleTemplate, WorkoutRecord
from swimsched.core.state import CLIState
from swimsched.utils.parsing import (
    RecordError,
    convert_rows,
    exception_from_row,
    load_records,
    template_from_row,
    workout_from_row,
)

logger = logging.getLogger(__name__)


@dataclass
class ScheduleInputs:
    """Already-loaded collections handed to the resolver."""

    templates: List[ScheduleTemplate] = field(default_factory=list)
    exceptions: List[ScheduleException] = field(default_factory=list)
    workouts: List[WorkoutRecord] = field(default_factory=list)


def get_state(ctx: typer.Context) -> CLIState:
    """Extract validated CLI state from Typer context."""
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=2)
    return state


def print_json_payload(state: CLIState, payload: Any) -> None:
    """Print JSON payload with plain-mode fallback for piping."""
    if state.plain_output:
        typer.echo(json.dumps(payload, separators=(",", ":")))
        return
    state.console.print_json(data=payload)


def fail(state: CLIState, message: str, code: int = 1) -> NoReturn:
    """Report an error in the active output mode and exit."""
    if state.json_output:
        print_json_payload(state, {"status": "error", "message": message})
    elif state.plain_output:
        typer.echo("status\terror")
        typer.echo(f"message\t{message}")
    else:
        state.console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(code=code)


def build_api(state: CLIState) -> ScheduleAPI:
    settings = resolve_api_settings(state.config)
    return ScheduleAPI(**settings)


def _uses_api(state: CLIState, explicit_files: Sequence[Optional[Path]]) -> bool:
    if any(path is not None for path in explicit_files):
        return False
    return state.config.get("source", {}).get("kind") == "api"


def _file_rows(state: CLIState, key: str, explicit: Optional[Path]) -> List[dict]:
    path = resolve_source_path(state.config, key, explicit=explicit)
    if not path.exists():
        if explicit is not None:
            raise RecordError(f"{key.capitalize()} file not found: {path}")
        logger.warning("No %s file at %s; treating as empty", key, path)
        return []
    return load_records(path, key)


def load_schedule_inputs(
    state: CLIState,
    start: date,
    end: date,
    templates_file: Optional[Path] = None,
    exceptions_file: Optional[Path] = None,
    workouts_file: Optional[Path] = None,
    swimmer_groups: Sequence[str] = (),
    include_workouts: bool = True,
) -> ScheduleInputs:
    """Load templates, exceptions and workouts from files or the API."""
    if _uses_api(state, [templates_file, exceptions_file, workouts_file]):
        api = build_api(state)
        template_rows = api.get_templates(start, end)
        exception_rows = api.get_exceptions(start, end)
        coach_id = state.config.get("api", {}).get("coach_id") or None
        workout_rows = api.get_workouts(start, end, coach_id=coach_id) if include_workouts else []
    else:
        template_rows = _file_rows(state, "templates", templates_file)
        exception_rows = _file_rows(state, "exceptions", exceptions_file)
        workout_rows = _file_rows(state, "workouts", workouts_file) if include_workouts else []

    inputs = ScheduleInputs(
        templates=convert_rows(template_rows, template_from_row),
        exceptions=convert_rows(exception_rows, exception_from_row),
        workouts=convert_rows(workout_rows, workout_from_row),
    )
    logger.debug(
        "Loaded %d templates, %d exceptions, %d workouts",
        len(inputs.templates),
        len(inputs.exceptions),
        len(inputs.workouts),
    )

    if swimmer_groups:
        inputs.templates = filter_templates_for_groups(inputs.templates, swimmer_groups)
        inputs.exceptions = filter_exceptions_for_groups(inputs.exceptions, swimmer_groups)
    return inputs


def load_inputs_or_exit(state: CLIState, start: date, end: date, **kwargs: Any) -> ScheduleInputs:
    try:
        return load_schedule_inputs(state, start, end, **kwargs)
    except ConfigError as exc:
        fail(state, f"Config error: {exc}", code=2)
    except (APIError, RecordError) as exc:
        fail(state, str(exc))


def swimmer_groups_option(state: CLIState, explicit: Optional[List[str]]) -> List[str]:
    if explicit:
        return list(explicit)
    return list(state.config.get("defaults", {}).get("swimmer_groups") or [])
