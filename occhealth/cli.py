"""Command Line Interface for the Occupational Health Insight Engine.

This module provides a CLI using Typer for building Comprehensive Medical
Reports and Treatment Timelines, and for searching treatment plans, from the
configured clinical database.
"""

import asyncio
import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from occhealth.dashboard.api.logging_config import setup_logging
from occhealth.dashboard.models.treatment_plans import TreatmentPlanSearchResponse
from occhealth.dashboard.services.report_service import ComprehensiveReportService
from occhealth.dashboard.services.treatment_plan_service import TreatmentPlanService
from occhealth.domain.models import ComprehensiveReport, TreatmentTimeline
from occhealth.domain.ports import ClinicalStoragePort, StorageError
from occhealth.infrastructure.audit.classification_audit_logger import get_classification_audit_logger
from occhealth.infrastructure.settings import APP_VERSION, settings
from occhealth.main import create_storage_adapter

app = typer.Typer(
    name="occhealth",
    help="Occupational Health Insight Engine",
    add_completion=False
)
console = Console()

# Document keys that are not report sections
REPORT_META_KEYS = ("report_id", "employee_id", "assembled_at")


def create_storage_adapter_cli() -> ClinicalStoragePort:
    """Create storage adapter based on configuration (CLI wrapper)."""
    try:
        return create_storage_adapter()
    except (ValueError, StorageError) as e:
        console.print(f"[red]✗[/red] Failed to create storage adapter: {str(e)}")
        raise typer.Exit(code=1)


def _print_report(report: ComprehensiveReport) -> None:
    console.print(f"\n[bold blue]Comprehensive Medical Report {report.report_id}[/bold blue]")
    console.print(f"[dim]Employee:[/dim] {report.employee_id}")
    if report.assembled_at:
        console.print(f"[dim]Assembled at:[/dim] {report.assembled_at.isoformat()}")

    document = report.model_dump(mode="json")
    for section, fields in document.items():
        if section in REPORT_META_KEYS:
            continue
        table = Table(title=section.replace("_", " ").title(), show_header=False, title_justify="left")
        table.add_column("Field", style="dim")
        table.add_column("Value")
        for name, value in fields.items():
            table.add_row(name, "" if value is None else str(value))
        console.print(table)


def _print_timeline(timeline: TreatmentTimeline) -> None:
    console.print(f"\n[bold blue]Treatment Timeline: {timeline.employee_name}[/bold blue]")
    console.print(
        f"[dim]Gender:[/dim] {timeline.gender}  "
        f"[dim]Reports:[/dim] {timeline.total_reports}  "
        f"[dim]Actions:[/dim] {timeline.total_actions}"
    )

    for entry in timeline.treatment_timeline:
        date_text = entry.report_date.date().isoformat() if entry.report_date else "undated"
        table = Table(
            title=f"{entry.report_id} ({date_text}) - {entry.doctor} / {entry.nurse}",
            title_justify="left",
        )
        table.add_column("Category", style="cyan")
        table.add_column("Recommendation")
        table.add_column("Status", style="green")
        for action in entry.actions:
            table.add_row(action.category.value, action.recommendation, action.status.value)
        if not entry.actions:
            table.add_row("-", "[dim]No actions recorded[/dim]", "-")
        console.print(table)


def _print_plans(search: TreatmentPlanSearchResponse) -> None:
    console.print(f"\n[bold blue]Treatment Plans[/bold blue] ({search.total} found)")
    if not search.plans:
        console.print("[yellow]No treatment plans match the search[/yellow]")
        return

    table = Table()
    table.add_column("Employee", style="cyan")
    table.add_column("Name")
    table.add_column("Gender")
    table.add_column("Reports", justify="right")
    table.add_column("Actions", justify="right")
    table.add_column("Doctors")
    for plan in search.plans:
        table.add_row(
            plan.employee_id,
            plan.employee_name,
            plan.gender,
            str(plan.total_reports),
            str(plan.total_actions),
            ", ".join(plan.medical_staff.doctors) or "-",
        )
    console.print(table)

    stats = search.statistics
    console.print(
        f"[dim]With actions:[/dim] {stats.employees_with_actions}  "
        f"[dim]Without actions:[/dim] {stats.employees_without_actions}  "
        f"[dim]Total actions:[/dim] {stats.total_actions}"
    )


@app.command()
def report(
    report_id: str = typer.Argument(..., help="Medical report identifier"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Build the Comprehensive Medical Report for a medical report.

    Examples:
        occhealth report RPT-001
        occhealth report RPT-001 --json > report.json
    """
    storage = create_storage_adapter_cli()
    try:
        service = ComprehensiveReportService(
            storage,
            audit_logger=get_classification_audit_logger(),
            timeout=settings.domain_fetch_timeout,
        )
        result = asyncio.run(service.build(report_id))
    finally:
        storage.close()

    if result.is_failure():
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(result.value.model_dump_json(indent=2))
    else:
        _print_report(result.value)


@app.command()
def timeline(
    employee_id: str = typer.Argument(..., help="Employee identifier"),
    as_json: bool = typer.Option(False, "--json", help="Print the timeline as JSON"),
) -> None:
    """Build the Treatment Timeline for an employee.

    Examples:
        occhealth timeline EMP-001
        occhealth timeline EMP-001 --json
    """
    storage = create_storage_adapter_cli()
    try:
        result = TreatmentPlanService(
            storage,
            audit_logger=get_classification_audit_logger(),
        ).build(employee_id)
    finally:
        storage.close()

    if result.is_failure():
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(result.value.model_dump_json(indent=2))
    else:
        _print_timeline(result.value)


@app.command()
def plans(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Text matched against employee name or id"),
    has_actions: Optional[bool] = typer.Option(
        None, "--has-actions/--no-actions", help="Only plans with (or without) actions",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the search result as JSON"),
) -> None:
    """Search treatment plan summaries.

    Examples:
        occhealth plans
        occhealth plans --query ndlovu
        occhealth plans --no-actions --json
    """
    storage = create_storage_adapter_cli()
    try:
        result = TreatmentPlanService(
            storage,
            audit_logger=get_classification_audit_logger(),
        ).search(query=query, has_actions=has_actions)
    finally:
        storage.close()

    if result.is_failure():
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(result.value.model_dump_json(indent=2))
    else:
        _print_plans(result.value)


@app.command("init-db")
def init_db() -> None:
    """Create the report, employee, staff and clinical domain tables."""
    storage = create_storage_adapter_cli()
    try:
        with console.status("[bold green]Initializing schema..."):
            result = storage.initialize_schema()
    finally:
        storage.close()

    if result.is_failure():
        console.print(f"[red]✗[/red] {result.error}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Schema initialized ({storage.dialect})")


@app.command()
def info() -> None:
    """Display system information and configuration."""
    console.print("[bold blue]System Information[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", settings.app_name)
    info_table.add_row("Version:", APP_VERSION)
    info_table.add_row("Database Type:", settings.db_config.db_type)

    if settings.db_config.db_type == "duckdb":
        info_table.add_row("Database Path:", settings.db_config.db_path or ":memory:")
    elif settings.db_config.db_type == "postgresql":
        info_table.add_row("Database Host:", settings.db_config.host or "")
        info_table.add_row("Database Name:", settings.db_config.database or "")

    info_table.add_row("Domain Fetch Timeout:", f"{settings.domain_fetch_timeout}s")
    info_table.add_row("Log Level:", settings.log_level)

    console.print(info_table)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version information"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override OH_LOG_LEVEL"),
) -> None:
    """Occupational Health Insight Engine."""
    if version:
        console.print(f"Occupational Health Insight Engine v{APP_VERSION}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()

    level = "DEBUG" if verbose else (log_level or settings.log_level)
    # Logs go to stderr so that --json output stays parseable.
    setup_logging(use_json=settings.json_logs, log_level=level, stream=sys.stderr)
    logging.getLogger(__name__).debug(f"Logging configured at {level}")


if __name__ == "__main__":
    app()
