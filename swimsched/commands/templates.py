"""Recurring template commands."""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.table import Table

from swimsched.commands.common import build_api, fail, get_state, print_json_payload
from swimsched.core.api import APIError
from swimsched.core.authoring import (
    Season,
    apply_season,
    copy_day,
    default_season,
    season_from_templates,
    template_problems,
)
from swimsched.core.config import ConfigError, resolve_source_path, save_config
from swimsched.core.constants import DAYS
from swimsched.core.models import ScheduleTemplate
from swimsched.core.state import CLIState
from swimsched.exporters.json_export import write_json
from swimsched.utils.date_ranges import parse_date, validate_date
from swimsched.utils.parsing import RecordError, convert_rows, load_records, parse_weekday, template_from_row

app = typer.Typer(help="Inspect and edit recurring weekly templates")


def _load_template_rows(state: CLIState, templates_file: Optional[Path]) -> List[Dict[str, Any]]:
    """Load every raw template row, regardless of season, from file or API."""
    try:
        if templates_file is None and state.config.get("source", {}).get("kind") == "api":
            api = build_api(state)
            rows = api.get_templates(parse_date("1900-01-01"), parse_date("2999-12-31"))
        else:
            path = resolve_source_path(state.config, "templates", explicit=templates_file)
            if not path.exists():
                raise RecordError(f"Templates file not found: {path}")
            rows = load_records(path, "templates")
    except ConfigError as exc:
        fail(state, f"Config error: {exc}", code=2)
    except (APIError, RecordError) as exc:
        fail(state, str(exc))
    return rows


def _load_templates(state: CLIState, templates_file: Optional[Path]) -> List[ScheduleTemplate]:
    return convert_rows(_load_template_rows(state, templates_file), template_from_row)


def _configured_season(state: CLIState, templates: List[ScheduleTemplate]) -> Season:
    season_cfg = state.config.get("season", {})
    if season_cfg.get("start") and season_cfg.get("end"):
        start = parse_date(str(season_cfg["start"]))
        end = parse_date(str(season_cfg["end"]))
        return Season(start=start, end=end, name=f"{start.year}-{end.year} Season")
    return season_from_templates(templates) or default_season(state.today)


@app.command("validate")
def validate_command(
    ctx: typer.Context,
    templates_file: Optional[Path] = typer.Option(None, "--templates", help="Templates JSON/YAML file"),
) -> None:
    """Check every template's weekday, times and season window."""
    state = get_state(ctx)
    templates = _load_templates(state, templates_file)

    results: List[Dict[str, Any]] = []
    for template in templates:
        problems = template_problems(template)
        results.append({"id": template.id, "group_name": template.group_name, "valid": not problems, "problems": problems})
    invalid = [item for item in results if not item["valid"]]

    if state.json_output:
        print_json_payload(state, {"checked": len(results), "invalid": len(invalid), "templates": results})
    elif state.plain_output:
        typer.echo(f"checked\t{len(results)}")
        typer.echo(f"invalid\t{len(invalid)}")
        for item in invalid:
            typer.echo(f"{item['id']}\t{item['group_name']}\t{'; '.join(item['problems'])}")
    else:
        if not invalid:
            state.console.print(f"All {len(results)} templates are valid")
        else:
            table = Table(title=f"{len(invalid)} invalid template(s)")
            table.add_column("ID")
            table.add_column("Group")
            table.add_column("Problems")
            for item in invalid:
                table.add_row(item["id"], item["group_name"], "\n".join(item["problems"]))
            state.console.print(table)

    if invalid:
        raise typer.Exit(code=1)


@app.command("copy-day")
def copy_day_command(
    ctx: typer.Context,
    group: str = typer.Option(..., help="Schedule group to copy"),
    source: str = typer.Option(..., "--from", help="Weekday to copy from (0-6 or Sun..Sat)"),
    targets: List[str] = typer.Option(..., "--to", help="Weekday(s) to overwrite (repeatable)"),
    templates_file: Optional[Path] = typer.Option(None, "--templates", help="Templates JSON/YAML file"),
    output_file: Optional[Path] = typer.Option(None, help="Write the resulting template list to this file"),
    dry_run: bool = typer.Option(False, help="Show the plan without applying it"),
) -> None:
    """Replace a group's slots on other weekdays with one day's slots."""
    state = get_state(ctx)
    try:
        source_day = parse_weekday(source)
        target_days = [parse_weekday(item) for item in targets]
    except ValueError as exc:
        raise typer.BadParameter(str(exc))

    rows = _load_template_rows(state, templates_file)
    templates = convert_rows(rows, template_from_row)
    season = _configured_season(state, templates)
    try:
        to_delete, new_rows = copy_day(templates, group, source_day, target_days, season=season)
    except ValueError as exc:
        fail(state, str(exc))

    status = "dry-run"
    if output_file is not None:
        replaced = set(to_delete)
        kept = [row for row in rows if str(row.get("id")) not in replaced]
        created = [{"id": uuid.uuid4().hex, **row} for row in new_rows]
        write_json(output_file, {"templates": kept + created})
        status = "written"
    elif not dry_run:
        try:
            api = build_api(state)
            api.delete_templates(to_delete)
            api.create_templates(new_rows)
        except ConfigError as exc:
            fail(state, f"Config error: {exc}", code=2)
        except APIError as exc:
            fail(state, str(exc))
        status = "applied"

    payload = {"status": status, "deleted_ids": to_delete, "created": new_rows}
    if state.json_output:
        print_json_payload(state, payload)
        return

    if state.plain_output:
        typer.echo(f"status\t{status}")
        typer.echo(f"deleted\t{len(to_delete)}")
        typer.echo(f"created\t{len(new_rows)}")
        return

    state.console.print(
        f"{group}: copy {DAYS[source_day]} to {', '.join(DAYS[d] for d in dict.fromkeys(target_days) if d != source_day)} "
        f"({len(to_delete)} replaced, {len(new_rows)} created, {status})"
    )


@app.command("season")
def season_command(
    ctx: typer.Context,
    start_date: Optional[str] = typer.Option(None, help="Season start (YYYY-MM-DD)", callback=validate_date),
    end_date: Optional[str] = typer.Option(None, help="Season end (YYYY-MM-DD)", callback=validate_date),
    templates_file: Optional[Path] = typer.Option(None, "--templates", help="Templates JSON/YAML file"),
    output_file: Optional[Path] = typer.Option(None, help="Write the updated template list to this file"),
    save: bool = typer.Option(False, "--save", help="Also store the season in the config file"),
) -> None:
    """Show the current season, or set a new window on every template."""
    state = get_state(ctx)
    rows = _load_template_rows(state, templates_file)
    templates = convert_rows(rows, template_from_row)

    if not (start_date and end_date):
        season = _configured_season(state, templates)
        payload = {"name": season.name, "start": season.start.isoformat(), "end": season.end.isoformat()}
        if state.json_output:
            print_json_payload(state, payload)
        elif state.plain_output:
            for key, value in payload.items():
                typer.echo(f"{key}\t{value}")
        else:
            state.console.print(f"{season.name}: {season.start.isoformat()} to {season.end.isoformat()}")
        return

    start, end = parse_date(start_date), parse_date(end_date)
    if end < start:
        raise typer.BadParameter("--end-date must not be before --start-date")
    season = Season(start=start, end=end, name=f"{start.year}-{end.year} Season")
    updated = apply_season(rows, season)

    if output_file is None:
        output_file = resolve_source_path(state.config, "templates", explicit=templates_file)
    write_json(output_file, {"templates": updated})
    if save:
        state.config["season"] = {"start": start.isoformat(), "end": end.isoformat()}
        save_config(state.config, state.config_path)

    payload = {"status": "updated", "count": len(updated), "path": str(output_file), "name": season.name}
    if state.json_output:
        print_json_payload(state, payload)
    elif state.plain_output:
        for key, value in payload.items():
            typer.echo(f"{key}\t{value}")
    else:
        state.console.print(f"Applied {season.name} to {len(updated)} templates in {output_file}")
