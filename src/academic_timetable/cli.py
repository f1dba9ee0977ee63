"""CLI entry point for the timetable engine."""

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .exceptions import TimetableError
from .exporters import get_exporter
from .loader import load_schedule, load_snapshot
from .scheduler import (
    DemandExpander,
    ScheduleResult,
    SchedulerConfig,
    SolverStrategy,
    TimetableScheduler,
    Violation,
    load_config,
    validate as validate_schedule,
)
from .utils import format_time

app = typer.Typer(
    name="timetable",
    help="Build and validate weekly academic timetables",
    add_completion=False,
)
console = Console()


class OutputFormat(str, Enum):
    """Output format options."""

    json = "json"
    csv = "csv"
    excel = "excel"


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def schedule(
    input_file: Annotated[
        Path,
        typer.Argument(help="Entity JSON file (degrees, shifts, teachers, subjects, groups)"),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("-o", "--output", help="Output file or directory path"),
    ] = None,
    format: Annotated[
        OutputFormat,
        typer.Option("-f", "--format", help="Output format"),
    ] = OutputFormat.json,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Scheduler settings JSON file"),
    ] = None,
    strategy: Annotated[
        Optional[SolverStrategy],
        typer.Option("--strategy", help="Search strategy"),
    ] = None,
    node_limit: Annotated[
        Optional[int],
        typer.Option("--node-limit", help="Maximum search nodes"),
    ] = None,
    time_limit: Annotated[
        Optional[float],
        typer.Option("--time-limit", help="Maximum search time in seconds"),
    ] = None,
    run_metadata: Annotated[
        bool,
        typer.Option(
            "--run-metadata/--no-run-metadata",
            help="Include generation date and solver time in the export",
        ),
    ] = True,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Generate a weekly schedule from an entity file."""
    _setup_logging(verbose)

    if not input_file.exists():
        _fail(f"File not found: {input_file}")

    try:
        config = load_config(config_file)
        overrides = config.to_dict()
        if strategy is not None:
            overrides["strategy"] = strategy.value
        if node_limit is not None:
            overrides["node_limit"] = node_limit
        if time_limit is not None:
            overrides["time_limit"] = time_limit
        config = SchedulerConfig.from_dict(overrides)

        with console.status("[bold green]Loading entities..."):
            snapshot = load_snapshot(input_file)

        console.print(f"\n[bold]Schedule Generation for:[/bold] {input_file.name}")
        console.print(f"  Groups: {len(snapshot.groups)}")
        console.print(f"  Subjects: {len(snapshot.subjects)}")
        console.print(f"  Teachers: {len(snapshot.teachers)}")

        with console.status("[bold green]Searching for a schedule..."):
            result = TimetableScheduler(config).schedule(snapshot)
    except TimetableError as e:
        _fail(str(e))

    _show_result(result, verbose)

    if output:
        exporter = get_exporter(format.value, include_run_metadata=run_metadata)
        if format == OutputFormat.csv:
            output_path = output if output.is_dir() else output.parent / output.stem
        else:
            suffix = ".xlsx" if format == OutputFormat.excel else ".json"
            output_path = output if output.suffix else output.with_suffix(suffix)

        with console.status(f"[bold green]Exporting to {format.value}..."):
            exporter.export(result, output_path)
        console.print(f"\n[bold green]✓[/bold green] Exported to: {output_path}")

    if not result.is_solved:
        raise typer.Exit(1)


@app.command()
def validate(
    schedule_file: Annotated[
        Path,
        typer.Argument(help="Schedule JSON file (list of entries)"),
    ],
    input_file: Annotated[
        Path,
        typer.Argument(help="Entity JSON file the schedule was built for"),
    ],
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed output"),
    ] = False,
) -> None:
    """Validate a schedule from any source against the hard rules."""
    _setup_logging(verbose)

    for path in (schedule_file, input_file):
        if not path.exists():
            _fail(f"File not found: {path}")

    try:
        snapshot = load_snapshot(input_file)
        entries = load_schedule(schedule_file)
    except TimetableError as e:
        _fail(str(e))

    with console.status("[bold green]Validating schedule..."):
        violations = validate_schedule(entries, snapshot)

    console.print(f"\n[bold]Validation Results for:[/bold] {schedule_file.name}")
    console.print(f"  Entries: {len(entries)}")

    if not violations:
        console.print("[bold green]✓ Schedule is valid[/bold green]")
        return

    console.print(f"[bold red]✗ {len(violations)} violation(s)[/bold red]")
    _show_violations(violations)
    raise typer.Exit(1)


@app.command()
def check(
    input_file: Annotated[
        Path,
        typer.Argument(help="Entity JSON file"),
    ],
) -> None:
    """Check entities and show the demand that would be scheduled."""
    _setup_logging(False)

    if not input_file.exists():
        _fail(f"File not found: {input_file}")

    try:
        snapshot = load_snapshot(input_file)
        plan = DemandExpander(snapshot).expand()
    except TimetableError as e:
        _fail(str(e))

    console.print(f"\n[bold]Demand for:[/bold] {input_file.name}")

    table = Table(title="Group-Subject Demand")
    table.add_column("Group", style="cyan")
    table.add_column("Subject", style="cyan")
    table.add_column("Hours", style="green")
    table.add_column("Eligible Teachers", style="blue")
    table.add_column("Legal Hours", style="magenta")

    for pair in plan.all_pairs:
        table.add_row(
            pair.group_id,
            pair.subject_id,
            str(pair.hours),
            ", ".join(pair.eligible_teacher_ids) or "-",
            str(len(pair.cells)),
        )
    console.print(table)

    if plan.issues:
        console.print(f"\n[bold yellow]Issues ({len(plan.issues)}):[/bold yellow]")
        for issue in plan.issues:
            console.print(
                f"  [yellow]• {issue.group_id}/{issue.subject_id}: {issue.details}[/yellow]"
            )
        raise typer.Exit(1)

    console.print(f"\n[bold green]✓[/bold green] {len(plan.units)} units ready to schedule")


def _show_result(result: ScheduleResult, verbose: bool) -> None:
    """Show run summary and, when verbose, the schedule itself."""
    stats = result.statistics
    status_style = "green" if result.is_solved else "red"

    console.print(f"\n[bold]Result:[/bold] [{status_style}]{result.status.value}[/{status_style}]")
    console.print(f"  Units assigned: {stats.total_assigned} of {stats.total_units}")
    console.print(f"  Nodes explored: {stats.nodes_explored}")
    console.print(f"  Time: {stats.solver_time_seconds:.2f}s")

    if stats.by_day:
        console.print("\n[bold]Distribution by day:[/bold]")
        for day, count in stats.by_day.items():
            console.print(f"  {day.capitalize()}: {count}")

    if result.unsatisfied:
        table = Table(title="Unsatisfied Demand")
        table.add_column("Group", style="cyan")
        table.add_column("Subject", style="cyan")
        table.add_column("Missing", style="red")
        table.add_column("Reason", style="yellow")
        for item in result.unsatisfied:
            table.add_row(
                item.group_id, item.subject_id, str(item.units_still_needed), item.reason.value
            )
        console.print(table)

    if result.issues:
        console.print(f"\n[bold yellow]Issues ({len(result.issues)}):[/bold yellow]")
        for issue in result.issues:
            console.print(f"  [yellow]• {issue.details}[/yellow]")

    if verbose and result.entries:
        table = Table(title="Schedule")
        table.add_column("Group", style="cyan")
        table.add_column("Day", style="blue")
        table.add_column("Time", style="green")
        table.add_column("Subject", style="magenta")
        table.add_column("Teacher", style="yellow")
        for entry in result.entries:
            table.add_row(
                entry.group_id,
                entry.day.label.capitalize(),
                f"{format_time(entry.start)}-{format_time(entry.end)}",
                entry.subject_id,
                entry.teacher_id,
            )
        console.print(table)


def _show_violations(violations: list[Violation]) -> None:
    table = Table(title="Violations")
    table.add_column("Type", style="red")
    table.add_column("Details")

    for violation in violations[:50]:  # Limit to first 50
        table.add_row(violation.type.value, violation.message)

    if len(violations) > 50:
        table.add_row("...", f"{len(violations) - 50} more")

    console.print(table)


if __name__ == "__main__":
    app()
