"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
import yaml
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.records import DayRuleRecord
from ..adapters.yaml_repository import YamlScheduleRepository
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SchedulingConflictError, SchedulingError
from ..domain.models import DayRule, ProviderSchedule
from ..domain.time_utils import combine_date_time, to_local_date
from ..domain.window_validator import validate_schedule
from ..services.scheduling_service import SchedulingService

app = typer.Typer(
    name="provider-availability",
    help="Resolve provider availability and bookable appointment slots",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
DataOption = Annotated[
    Optional[Path],
    typer.Option("--data", help="Path to the providers YAML file. Overrides the config."),
]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Load the config; without an explicit path a missing default file means defaults."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)
    return AppConfig()


def _build_service(config_file: Optional[Path], data_file: Optional[Path]):
    config = _load_config(config_file)
    _configure_logging(config.log_level)

    repository = YamlScheduleRepository(
        data_file=config.resolve_data_file(data_file),
        default_timezone=config.timezone,
        default_min_break=config.defaults.min_break_minutes,
    )
    return config, repository, SchedulingService(repository)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    if isinstance(error, SchedulingConflictError):
        for conflict in error.conflicts:
            console.print(f"  [red]•[/red] {conflict.start} - {conflict.end}")
    raise typer.Exit(1)


def _describe_rules(schedule: ProviderSchedule) -> Table:
    table = Table(
        title="Availability rules",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Day", style="bold yellow")
    table.add_column("Windows")
    table.add_column("Weeks", style="dim")
    table.add_column("Specific dates", style="dim")

    for rule in schedule.rules:
        windows = ", ".join(
            f"{w}{' (overnight)' if w.spans_overnight else ''}"
            f"{f' @ {w.location_id}' if w.location_id else ''}"
            for w in rule.time_slots
        )
        weeks = ", ".join(str(week) for week in rule.weeks) if rule.weeks else "every"
        specific = ", ".join(sd.date.isoformat() for sd in rule.specific_dates) or "-"
        table.add_row(rule.day_of_week.value, windows, weeks, specific)

    return table


@app.command()
def slots(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    date: Annotated[Optional[str], typer.Option("--date", help="Date (YYYY-MM-DD). Defaults to today.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Appointment duration in minutes")] = None,
    location: Annotated[Optional[str], typer.Option("--location", "-l", help="Only windows at this location")] = None,
    at: Annotated[Optional[str], typer.Option("--at", help="Only test this start time (HH:mm)")] = None,
    min_break: Annotated[Optional[int], typer.Option("--min-break", help="Override the provider's minimum break")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    List bookable slots for a provider on one day.

    Examples:

        provider-availability slots dr-smith --date 2024-03-18

        provider-availability slots dr-smith --date 2024-03-18 --duration 45 --location clinic-a

        provider-availability slots dr-smith --date 2024-03-18 --at 14:00
    """
    try:
        config, _, service = _build_service(config_file, data_file)
        schedule = asyncio.run(service.get_schedule(provider_id))
        tz = schedule.timezone

        day = to_local_date(date, tz) if date else pendulum.now(tz).date()
        only_at = combine_date_time(day, at, tz) if at else None
        duration_minutes = duration if duration is not None else config.defaults.duration_minutes

        found = asyncio.run(
            service.get_available_slots(
                provider_id,
                day,
                duration_minutes,
                location_id=location,
                only_at=only_at,
                min_break=min_break,
            )
        )
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    if not found:
        console.print(
            f"[yellow]⚠ No bookable slots for {provider_id} on {day.isoformat()}.[/yellow]"
        )
        return

    console.print(f"[bold green]✓ {len(found)} slot(s) available:[/bold green]\n")
    for slot in found:
        console.print(f"  {slot.format_display()}")
    console.print()


@app.command()
def check(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    start: Annotated[str, typer.Option("--start", help="Start (YYYY-MM-DD HH:mm, provider time)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Duration in minutes")] = None,
    location: Annotated[Optional[str], typer.Option("--location", "-l", help="Requested location")] = None,
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Check whether a provider can take an appointment at a given time.
    """
    try:
        config, _, service = _build_service(config_file, data_file)
        schedule = asyncio.run(service.get_schedule(provider_id))

        start_at = pendulum.parse(start, tz=schedule.timezone)
        end_at = start_at.add(
            minutes=duration if duration is not None else config.defaults.duration_minutes
        )
        available = asyncio.run(service.is_available(provider_id, start_at, end_at, location))
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    window = f"{start_at.format('YYYY-MM-DD HH:mm')} - {end_at.format('HH:mm')}"
    if available:
        console.print(f"[green]✓ {provider_id} is available {window}[/green]")
    else:
        console.print(f"[yellow]✗ {provider_id} is not available {window}[/yellow]")
        raise typer.Exit(1)


@app.command()
def rules(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Show a provider's availability rules and exceptions.
    """
    try:
        _, _, service = _build_service(config_file, data_file)
        schedule = asyncio.run(service.get_schedule(provider_id))
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print()
    console.print(_describe_rules(schedule))
    console.print(f"Timezone: {schedule.timezone}")
    if schedule.exceptions:
        console.print(
            "Exceptions: " + ", ".join(exc.isoformat() for exc in schedule.exceptions)
        )
    console.print()


@app.command()
def validate(
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Validate every provider schedule in the data file.
    """
    try:
        _, repository, service = _build_service(config_file, data_file)
        provider_ids = repository.provider_ids()
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    failures = 0
    for provider_id in provider_ids:
        try:
            validate_schedule(asyncio.run(service.get_schedule(provider_id)))
        except SchedulingError as e:
            failures += 1
            console.print(f"[red]✗ {provider_id}:[/red] {e}")
        else:
            console.print(f"[green]✓ {provider_id}[/green]")

    if failures:
        raise typer.Exit(1)


@app.command("update-rules")
def update_rules(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    rules_file: Annotated[Path, typer.Argument(help="YAML file holding the new list of rules")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Replace a provider's rules, refusing changes that orphan booked appointments.
    """
    try:
        _, _, service = _build_service(config_file, data_file)
        new_rules = _load_rules_file(rules_file)
        updated = asyncio.run(service.update_rules(provider_id, new_rules))
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(f"[green]✓ Stored {len(updated.rules)} rule(s) for {provider_id}[/green]")


@app.command("add-exception")
def add_exception(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    date: Annotated[str, typer.Argument(help="Date to black out (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Mark a date on which the provider is unavailable.
    """
    try:
        _, _, service = _build_service(config_file, data_file)
        asyncio.run(service.add_exception(provider_id, date))
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(f"[green]✓ {date} added to exceptions of {provider_id}[/green]")


@app.command("remove-exception")
def remove_exception(
    provider_id: Annotated[str, typer.Argument(help="Provider identifier")],
    date: Annotated[str, typer.Argument(help="Date to re-open (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
    data_file: DataOption = None,
):
    """
    Remove a date from the provider's exceptions.
    """
    try:
        _, _, service = _build_service(config_file, data_file)
        asyncio.run(service.remove_exception(provider_id, date))
    except (SchedulingError, FileNotFoundError, ValueError) as e:
        _fail(e)

    console.print(f"[green]✓ {date} removed from exceptions of {provider_id}[/green]")


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]provider-availability[/bold cyan] version [bold]{__version__}[/bold]\n")


def _load_rules_file(rules_file: Path) -> List[DayRule]:
    if not rules_file.exists():
        raise FileNotFoundError(f"Rules file not found: {rules_file}")

    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {rules_file}: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("rules", [])

    try:
        records = TypeAdapter(List[DayRuleRecord]).validate_python(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid rules in {rules_file}: {exc}") from exc

    return [record.to_domain() for record in records]


if __name__ == "__main__":
    app()
