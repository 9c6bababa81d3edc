"""Schedule exception commands."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from swimsched.commands.common import build_api, fail, get_state, load_inputs_or_exit, print_json_payload
from swimsched.core.api import APIError
from swimsched.core.authoring import expand_exception_range, upcoming_exception_count
from swimsched.core.config import ConfigError
from swimsched.core.constants import PRESET_REASONS
from swimsched.core.models import ExceptionType
from swimsched.utils.date_ranges import parse_date, validate_date
from swimsched.utils.parsing import parse_activity, parse_time_of_day

app = typer.Typer(help="Cancel, move or add practices on specific dates")


@app.command("add")
def add_command(
    ctx: typer.Context,
    start_date: str = typer.Option(..., help="First date (YYYY-MM-DD)", callback=validate_date),
    end_date: Optional[str] = typer.Option(None, help="Last date (default: start date)", callback=validate_date),
    reason: str = typer.Option(..., help="Reason shown to coaches and parents"),
    exception_type: str = typer.Option("canceled", "--type", help="canceled|modified|added"),
    group: Optional[str] = typer.Option(None, help="Schedule group (default: all groups)"),
    activity: Optional[str] = typer.Option(None, help="swim|dryland|doubles_am|doubles_pm (default: all)"),
    new_start: Optional[str] = typer.Option(None, help="New start time HH:MM"),
    new_end: Optional[str] = typer.Option(None, help="New end time HH:MM"),
    dry_run: bool = typer.Option(False, help="Print rows without saving them"),
) -> None:
    """Create one exception per date in a range."""
    state = get_state(ctx)

    try:
        kind = ExceptionType(exception_type.lower())
    except ValueError:
        raise typer.BadParameter("--type must be one of: canceled, modified, added")
    try:
        activity_type = parse_activity(activity) if activity else None
        start_time = parse_time_of_day(new_start) if new_start else None
        end_time = parse_time_of_day(new_end) if new_end else None
        rows = expand_exception_range(
            start=parse_date(start_date),
            end=parse_date(end_date) if end_date else None,
            reason=reason,
            exception_type=kind,
            group_name=group,
            activity_type=activity_type,
            new_start_time=start_time,
            new_end_time=end_time,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    status = "dry-run"
    if not dry_run:
        try:
            build_api(state).create_exceptions(rows)
        except ConfigError as exc:
            fail(state, f"Config error: {exc}", code=2)
        except APIError as exc:
            fail(state, str(exc))
        status = "created"

    if state.json_output:
        print_json_payload(state, {"status": status, "count": len(rows), "exceptions": rows})
        return

    if state.plain_output:
        typer.echo(f"status\t{status}")
        typer.echo(f"count\t{len(rows)}")
        for row in rows:
            typer.echo(f"{row['exception_date']}\t{row['exception_type']}\t{row['group_name'] or 'all'}")
        return

    table = Table(title=f"{len(rows)} exception(s) {'to create' if dry_run else 'created'}")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Group")
    table.add_column("Activity")
    table.add_column("Times")
    table.add_column("Reason")
    for row in rows:
        times = f"{row['new_start_time'] or ''}-{row['new_end_time'] or ''}" if kind is not ExceptionType.CANCELED else ""
        table.add_row(
            row["exception_date"],
            row["exception_type"],
            row["group_name"] or "All Groups",
            row["activity_type"] or "All",
            times,
            row["reason"],
        )
    state.console.print(table)


@app.command("reasons")
def reasons_command(ctx: typer.Context) -> None:
    """List the preset exception reasons."""
    state = get_state(ctx)
    if state.json_output:
        print_json_payload(state, {"reasons": PRESET_REASONS})
        return
    for item in PRESET_REASONS:
        typer.echo(item)


@app.command("list")
def list_command(
    ctx: typer.Context,
    days: int = typer.Option(90, help="How far ahead to look"),
    exceptions_file: Optional[Path] = typer.Option(None, "--exceptions", help="Exceptions JSON/YAML file"),
) -> None:
    """List upcoming exceptions starting today."""
    state = get_state(ctx)
    start = state.today
    end = start + timedelta(days=max(days - 1, 0))

    inputs = load_inputs_or_exit(state, start, end, exceptions_file=exceptions_file, include_workouts=False)
    upcoming = sorted(
        (exc for exc in inputs.exceptions if start <= exc.exception_date <= end),
        key=lambda exc: (exc.exception_date, exc.group_name or ""),
    )
    payload = [
        {
            "id": exc.id,
            "date": exc.exception_date.isoformat(),
            "type": exc.kind.value,
            "group_name": exc.group_name,
            "activity_type": exc.activity_type.value if exc.activity_type else None,
            "reason": exc.reason,
        }
        for exc in upcoming
    ]
    count = upcoming_exception_count(inputs.exceptions, today=start)

    if state.json_output:
        print_json_payload(state, {"upcoming": count, "exceptions": payload})
        return

    if state.plain_output:
        typer.echo(f"upcoming\t{count}")
        for item in payload:
            typer.echo(f"{item['date']}\t{item['type']}\t{item['group_name'] or 'all'}\t{item['reason']}")
        return

    table = Table(title=f"Upcoming exceptions ({count})")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Group")
    table.add_column("Reason")
    for item in payload:
        table.add_row(item["date"], item["type"], item["group_name"] or "All Groups", item["reason"])
    state.console.print(table)
