"""Resolved schedule views: slot list, weekly grid and workout planner."""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich.table import Table

from swimsched.commands.common import (
    get_state,
    load_inputs_or_exit,
    print_json_payload,
    swimmer_groups_option,
)
from swimsched.core.exception_index import ExceptionIndex
from swimsched.core.linker import coverage_stats, duplicate_links, link_slots, new_workout_prefill
from swimsched.core.models import ActivityType, LinkedSlot
from swimsched.core.resolver import resolve_slots
from swimsched.exporters.json_export import linked_slot_to_dict
from swimsched.utils.date_ranges import parse_date, resolve_date_range, validate_date, week_dates
from swimsched.utils.formatting import activity_label, format_day, format_time_range, format_yardage

TEMPLATES_HELP = "Templates JSON/YAML file (overrides config)"
EXCEPTIONS_HELP = "Exceptions JSON/YAML file (overrides config)"
WORKOUTS_HELP = "Workouts JSON/YAML file (overrides config)"


def _status_text(linked: LinkedSlot) -> str:
    if linked.has_workout:
        return "ready"
    return "needs workout"


def _note_text(linked: LinkedSlot) -> str:
    slot = linked.slot
    if slot.is_added:
        return f"added: {slot.modified_reason}" if slot.modified_reason else "added"
    if slot.is_modified:
        return f"modified: {slot.modified_reason}" if slot.modified_reason else "modified"
    return ""


def _summary(linked: List[LinkedSlot], start: date, end: date) -> Dict[str, Any]:
    stats = coverage_stats(linked)
    stats["date_range"] = {"start": start.isoformat(), "end": end.isoformat()}
    return stats


def slots_command(
    ctx: typer.Context,
    start_date: Optional[str] = typer.Option(None, help="Start date (YYYY-MM-DD)", callback=validate_date),
    end_date: Optional[str] = typer.Option(None, help="End date (YYYY-MM-DD)", callback=validate_date),
    days: Optional[int] = typer.Option(None, min=1, help="Next N days starting today"),
    next_weeks: Optional[int] = typer.Option(None, min=1, help="N weeks starting this Sunday"),
    this_week: bool = typer.Option(False, help="This Sunday-Saturday week"),
    next_week: bool = typer.Option(False, help="Next Sunday-Saturday week"),
    this_month: bool = typer.Option(False, help="This calendar month"),
    group: Optional[str] = typer.Option(None, help="Only this exact schedule group"),
    swimmer_group: Optional[List[str]] = typer.Option(
        None,
        "--swimmer-group",
        help="Swimmer group to follow; matches schedule sub-groups by prefix (repeatable)",
    ),
    open_only: bool = typer.Option(False, help="Only slots still needing a workout"),
    templates_file: Optional[Path] = typer.Option(None, "--templates", help=TEMPLATES_HELP),
    exceptions_file: Optional[Path] = typer.Option(None, "--exceptions", help=EXCEPTIONS_HELP),
    workouts_file: Optional[Path] = typer.Option(None, "--workouts", help=WORKOUTS_HELP),
) -> None:
    """List resolved practice slots for a date range."""
    state = get_state(ctx)

    start, end = resolve_date_range(
        start_date=start_date,
        end_date=end_date,
        days=days,
        next_weeks=next_weeks,
        this_week=this_week,
        next_week=next_week,
        this_month=this_month,
        today=state.today,
    )
    if end < start:
        raise typer.BadParameter("--end-date must not be before --start-date")

    inputs = load_inputs_or_exit(
        state,
        start,
        end,
        templates_file=templates_file,
        exceptions_file=exceptions_file,
        workouts_file=workouts_file,
        swimmer_groups=swimmer_groups_option(state, swimmer_group),
    )

    slots = resolve_slots(inputs.templates, inputs.exceptions, start, end)
    if group:
        slots = [slot for slot in slots if slot.group_name == group]
    linked = link_slots(slots, inputs.workouts)
    if open_only:
        linked = [item for item in linked if not item.has_workout]

    duplicates = []
    for item in linked:
        matches = duplicate_links(item.slot, inputs.workouts)
        if len(matches) > 1:
            duplicates.append(
                {
                    "date": item.slot.date.isoformat(),
                    "group_name": item.slot.group_name,
                    "workout_ids": [workout.id for workout in matches],
                }
            )

    payload = {
        "slots": [linked_slot_to_dict(item) for item in linked],
        "summary": _summary(linked, start, end),
        "duplicate_workouts": duplicates,
    }

    if state.json_output:
        print_json_payload(state, payload)
        return

    if state.plain_output:
        typer.echo("date\tstart\tend\tgroup\tactivity\tlocation\tstatus\tnote")
        for item in linked:
            slot = item.slot
            typer.echo(
                "\t".join(
                    [
                        slot.date.isoformat(),
                        slot.start_time.strftime("%H:%M"),
                        slot.end_time.strftime("%H:%M"),
                        slot.group_name,
                        slot.activity_type.value,
                        slot.location_name or "",
                        _status_text(item),
                        _note_text(item),
                    ]
                )
            )
        typer.echo(f"total\t{len(linked)}")
        return

    table = Table(title=f"Practices {start.isoformat()} to {end.isoformat()} ({len(linked)} total)")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Group")
    table.add_column("Activity")
    table.add_column("Location")
    table.add_column("Workout")
    table.add_column("Note")
    for item in linked:
        slot = item.slot
        table.add_row(
            format_day(slot.date),
            format_time_range(slot.start_time, slot.end_time),
            slot.group_name,
            activity_label(slot.activity_type),
            slot.location_name or "",
            format_yardage(item.yardage) if item.has_workout else "[dim]needs workout[/dim]",
            _note_text(item),
        )
    state.console.print(table)
    for dup in duplicates:
        state.console.print(
            f"[yellow]Duplicate workouts for {dup['group_name']} on {dup['date']}: "
            f"{', '.join(dup['workout_ids'])}[/yellow]"
        )


def _week_rows(linked: List[LinkedSlot]) -> "OrderedDict[Tuple[str, ActivityType], Dict[date, List[LinkedSlot]]]":
    rows: "OrderedDict[Tuple[str, ActivityType], Dict[date, List[LinkedSlot]]]" = OrderedDict()
    for item in sorted(linked, key=lambda i: (i.slot.group_name.lower(), i.slot.activity_type.value)):
        key = (item.slot.group_name, item.slot.activity_type)
        rows.setdefault(key, {}).setdefault(item.slot.date, []).append(item)
    return rows


def week_command(
    ctx: typer.Context,
    week_of: Optional[str] = typer.Option(None, help="Any date in the week (default: today)", callback=validate_date),
    swimmer_group: Optional[List[str]] = typer.Option(
        None,
        "--swimmer-group",
        help="Swimmer group to follow; matches schedule sub-groups by prefix (repeatable)",
    ),
    templates_file: Optional[Path] = typer.Option(None, "--templates", help=TEMPLATES_HELP),
    exceptions_file: Optional[Path] = typer.Option(None, "--exceptions", help=EXCEPTIONS_HELP),
    workouts_file: Optional[Path] = typer.Option(None, "--workouts", help=WORKOUTS_HELP),
) -> None:
    """Show a Sunday-Saturday grid of practices per group and activity."""
    state = get_state(ctx)
    days = week_dates(parse_date(week_of) if week_of else state.today)
    start, end = days[0], days[-1]

    inputs = load_inputs_or_exit(
        state,
        start,
        end,
        templates_file=templates_file,
        exceptions_file=exceptions_file,
        workouts_file=workouts_file,
        swimmer_groups=swimmer_groups_option(state, swimmer_group),
    )
    index = ExceptionIndex(inputs.exceptions)
    linked = link_slots(resolve_slots(inputs.templates, inputs.exceptions, start, end), inputs.workouts)

    day_payload = []
    for day in days:
        blanket = index.full_day_cancellation(day)
        day_payload.append(
            {
                "date": day.isoformat(),
                "canceled_reason": blanket.reason if blanket else None,
                "slots": [linked_slot_to_dict(item) for item in linked if item.slot.date == day],
            }
        )

    if state.json_output:
        print_json_payload(state, {"week_start": start.isoformat(), "days": day_payload})
        return

    if state.plain_output:
        for entry in day_payload:
            if entry["canceled_reason"] is not None:
                typer.echo(f"{entry['date']}\tno practice\t{entry['canceled_reason']}")
                continue
            if not entry["slots"]:
                typer.echo(f"{entry['date']}\tno practice")
                continue
            for slot in entry["slots"]:
                typer.echo(
                    f"{entry['date']}\t{slot['start_time']}-{slot['end_time']}\t"
                    f"{slot['group_name']}\t{slot['activity_type']}\t"
                    f"{'ready' if slot['has_workout'] else 'needs workout'}"
                )
        return

    table = Table(title=f"Week of {format_day(start)}")
    table.add_column("Group")
    for day in days:
        table.add_column(format_day(day))

    canceled = {day: index.full_day_cancellation(day) for day in days}
    for (group_name, activity), by_day in _week_rows(linked).items():
        cells = [f"{group_name}\n[dim]{activity_label(activity)}[/dim]"]
        for day in days:
            blanket = canceled[day]
            if blanket is not None:
                cells.append(f"[red]No Practice[/red]\n{blanket.reason}")
                continue
            parts = []
            for item in by_day.get(day, []):
                text = format_time_range(item.slot.start_time, item.slot.end_time)
                if item.slot.is_modified:
                    text = f"[yellow]{text}[/yellow]"
                parts.append(f"{text} {'✓' if item.has_workout else '+'}")
            cells.append("\n".join(parts) or "-")
        table.add_row(*cells)
    state.console.print(table)

    for day, blanket in canceled.items():
        if blanket is not None:
            state.console.print(f"{format_day(day)}: No Practice ({blanket.reason})")


def plan_command(
    ctx: typer.Context,
    week_of: Optional[str] = typer.Option(None, help="Any date in the week (default: today)", callback=validate_date),
    weeks: int = typer.Option(1, min=1, help="Number of weeks to plan"),
    templates_file: Optional[Path] = typer.Option(None, "--templates", help=TEMPLATES_HELP),
    exceptions_file: Optional[Path] = typer.Option(None, "--exceptions", help=EXCEPTIONS_HELP),
    workouts_file: Optional[Path] = typer.Option(None, "--workouts", help=WORKOUTS_HELP),
) -> None:
    """Show which slots still need a workout, with pre-fill data for new ones."""
    state = get_state(ctx)
    start = week_dates(parse_date(week_of) if week_of else state.today)[0]
    end = start + timedelta(days=weeks * 7 - 1)

    inputs = load_inputs_or_exit(
        state,
        start,
        end,
        templates_file=templates_file,
        exceptions_file=exceptions_file,
        workouts_file=workouts_file,
    )
    linked = link_slots(resolve_slots(inputs.templates, inputs.exceptions, start, end), inputs.workouts)
    stats = coverage_stats(linked)

    entries = []
    for item in linked:
        entry = linked_slot_to_dict(item)
        if not item.has_workout:
            entry["prefill"] = new_workout_prefill(item.slot)
        entries.append(entry)

    if state.json_output:
        print_json_payload(state, {"slots": entries, "stats": stats})
        return

    if state.plain_output:
        typer.echo(f"filled\t{stats['filled']}")
        typer.echo(f"total\t{stats['total']}")
        for item in linked:
            slot = item.slot
            typer.echo(
                f"{slot.date.isoformat()}\t{slot.start_time.strftime('%H:%M')}\t{slot.group_name}\t"
                f"{slot.activity_type.value}\t{item.linked_workout_id or '-'}"
            )
        return

    table = Table(title=f"Workout plan: {stats['filled']}/{stats['total']} slots ready")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Group")
    table.add_column("Activity")
    table.add_column("Workout")
    table.add_column("Yardage")
    for item in linked:
        slot = item.slot
        table.add_row(
            format_day(slot.date),
            format_time_range(slot.start_time, slot.end_time),
            slot.group_name,
            activity_label(slot.activity_type),
            item.linked_workout_id or "[dim]needs workout[/dim]",
            format_yardage(item.yardage),
        )
    state.console.print(table)
