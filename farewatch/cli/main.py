"""
Command-line interface for FareWatch.
Runs the tracking cycle by hand, compares routes and inspects schedules.
"""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from farewatch import __app_name__, __version__
from farewatch.cli.validators import (
    airport_code_callback,
    channel_callback,
    cron_callback,
    date_callback,
    validate_airport_code,
)
from farewatch.config import settings
from farewatch.database import close_db_connections, get_session_factory, init_db
from farewatch.exceptions import TaskExecutionError
from farewatch.notifications.notification_service import (
    DeliveryResult,
    NotificationDispatcher,
    resolve_channels,
)
from farewatch.orchestration.hubs import find_suitable_hubs, minimum_layover_hours, region_of
from farewatch.orchestration.route_optimizer import MultiCityRoute, RouteComparison, RouteOptimizer
from farewatch.providers import create_gateway
from farewatch.providers.schemas import CabinClass
from farewatch.services.alert_evaluator import AlertCheckResult
from farewatch.services.task_scheduler import TaskExecutionResult
from farewatch.services.tracking_cycle import TrackingCycle, summarize_alerts, summarize_tasks
from farewatch.utils.clock import SystemClock
from farewatch.utils.cron import describe_cron_schedule, next_run_time
from farewatch.utils.date_utils import parse_date
from farewatch.utils.price_utils import format_price

app = typer.Typer(
    name="farewatch",
    help="FareWatch - flight price tracking and stopover route optimization",
    add_completion=False,
)

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")

console = Console()
logger = logging.getLogger(__name__)


# ============================================================================
# Utility Functions
# ============================================================================

def handle_error(e: Exception, message: str = "An error occurred"):
    """Handle errors with nice formatting."""
    console.print(f"\n[bold red]✗ {message}[/bold red]")
    console.print(f"[red]{type(e).__name__}: {str(e)}[/red]\n")
    if settings.debug:
        console.print_exception()
    raise typer.Exit(code=1)


def success(message: str):
    console.print(f"[bold green]✓ {message}[/bold green]")


def info(message: str):
    console.print(f"[blue]{message}[/blue]")


def warning(message: str):
    console.print(f"[yellow]⚠ {message}[/yellow]")


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(Panel(
            f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]",
            title="✈ FareWatch",
            border_style="blue",
        ))
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """
    FareWatch CLI.

    Use 'farewatch COMMAND --help' for command-specific help.
    """


async def _with_cycle(work):
    cycle = TrackingCycle.from_settings(settings, get_session_factory())
    try:
        return await work(cycle)
    finally:
        await cycle.aclose()
        await close_db_connections()


# ============================================================================
# Tracking commands
# ============================================================================

def _task_results_table(results: List[TaskExecutionResult]) -> Table:
    table = Table(title="Scheduled tasks", show_lines=False)
    table.add_column("Task", justify="right")
    table.add_column("Status")
    table.add_column("Price", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Flags")
    table.add_column("Error")

    for r in results:
        if r.success:
            status = "[yellow]no flights[/yellow]" if r.no_results else "[green]ok[/green]"
        else:
            status = "[red]failed[/red]"
        price = format_price(r.current_price, r.best_offer.currency if r.best_offer else "USD") if r.current_price is not None else "-"
        change = f"{r.price_change_percent:+d}%" if r.price_change_percent is not None else "-"
        flags = " ".join(
            flag for flag, on in (("target", r.hit_target), ("new-low", r.is_new_low)) if on
        )
        error = f"{r.error_code}: {r.error}" if r.error_code else ""
        table.add_row(str(r.task_id), status, price, change, flags, error)
    return table


def _alert_results_table(results: List[AlertCheckResult]) -> Table:
    table = Table(title="Price alerts")
    table.add_column("Alert", justify="right")
    table.add_column("Status")
    table.add_column("Current", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Note")

    for r in results:
        if not r.success:
            status = "[red]failed[/red]"
        elif r.triggered:
            status = "[bold green]triggered[/bold green]"
        else:
            status = "waiting"
        table.add_row(
            str(r.alert_id),
            status,
            format_price(r.current_price) if r.current_price is not None else "-",
            format_price(r.target_price) if r.target_price is not None else "-",
            r.error or "",
        )
    return table


@app.command("run-due")
def run_due():
    """
    Run every due scheduled task and then check pending price alerts.

    Examples:
        farewatch run-due
    """
    try:
        report = asyncio.run(_with_cycle(lambda cycle: cycle.run()))
    except Exception as e:
        handle_error(e, "Tracking cycle failed")

    if report.task_results:
        console.print(_task_results_table(report.task_results))
    else:
        info("No scheduled tasks are due")
    if report.alert_results:
        console.print(_alert_results_table(report.alert_results))

    console.print(f"Tasks: {summarize_tasks(report.task_results)}")
    console.print(f"Alerts: {summarize_alerts(report.alert_results)}")


@app.command("run-task")
def run_task(task_id: int = typer.Argument(..., help="Scheduled task ID")):
    """
    Run one scheduled task immediately.

    Examples:
        farewatch run-task 3
    """
    try:
        result = asyncio.run(_with_cycle(lambda cycle: cycle.scheduler.execute_one(task_id)))
    except TaskExecutionError as e:
        console.print(f"[bold red]✗ {e.message}[/bold red] [dim]({e.code})[/dim]")
        raise typer.Exit(code=1)
    except Exception as e:
        handle_error(e, f"Task {task_id} failed")

    console.print(_task_results_table([result]))
    if not result.success:
        raise typer.Exit(code=1)
    for delivery in result.notifications:
        if delivery.delivered:
            success(f"{delivery.channel.value} notification sent")
        else:
            warning(f"{delivery.channel.value} notification failed: {delivery.error}")


@app.command("check-alerts")
def check_alerts():
    """Check pending price alerts only."""
    try:
        results = asyncio.run(_with_cycle(lambda cycle: cycle.alert_evaluator.check_all_alerts()))
    except Exception as e:
        handle_error(e, "Price alert check failed")

    if not results:
        info("No pending price alerts")
        return
    console.print(_alert_results_table(results))


# ============================================================================
# Route commands
# ============================================================================

def _route_row(table: Table, route: MultiCityRoute, best: Optional[MultiCityRoute]) -> None:
    marker = "★ " if best is not None and route.id == best.id else ""
    savings = "-"
    if route.savings_vs_direct is not None:
        savings = f"{format_price(route.savings_vs_direct, route.currency)} ({route.savings_percent}%)"
    table.add_row(
        f"{marker}{route.type}",
        route.hub.code if route.hub else "-",
        format_price(route.total_price, route.currency),
        route.total_duration,
        route.layover_duration or "-",
        str(route.score),
        savings,
        "; ".join(route.warnings),
    )


def _print_comparison(comparison: RouteComparison) -> None:
    table = Table(title="Route comparison")
    for column in ("Type", "Hub", "Price", "Duration", "Layover", "Score", "Savings", "Warnings"):
        table.add_column(column)

    if comparison.direct_route:
        _route_row(table, comparison.direct_route, comparison.best_route)
    for route in comparison.stopover_routes:
        _route_row(table, route, comparison.best_route)

    console.print(table)
    stats = comparison.stats
    console.print(
        f"[dim]{stats.hubs_searched} hubs, {stats.total_searches} searches, "
        f"{stats.search_time_ms} ms[/dim]"
    )


@app.command()
def compare(
    origin: str = typer.Argument(..., callback=airport_code_callback, help="Origin IATA code"),
    destination: str = typer.Argument(..., callback=airport_code_callback, help="Destination IATA code"),
    departure_date: str = typer.Argument(..., callback=date_callback, help="YYYY-MM-DD"),
    return_date: Optional[str] = typer.Option(None, callback=date_callback, help="YYYY-MM-DD"),
    adults: int = typer.Option(1, min=1, max=9, help="Number of adults"),
    cabin: CabinClass = typer.Option(CabinClass.ECONOMY, help="Cabin class"),
    max_hubs: int = typer.Option(3, min=1, max=5, help="Hubs to explore"),
):
    """
    Compare the direct route with stopover routes through hub airports.

    Examples:
        farewatch compare LHR BKK 2025-06-01
        farewatch compare JFK SIN 2025-06-01 --max-hubs 5 --cabin BUSINESS
    """

    async def _compare() -> RouteComparison:
        clock = SystemClock()
        async with create_gateway(clock=clock) as gateway:
            optimizer = RouteOptimizer(gateway, clock=clock)
            return await optimizer.compare_routes(
                origin,
                destination,
                parse_date(departure_date),
                return_date=parse_date(return_date) if return_date else None,
                adults=adults,
                cabin_class=cabin,
                max_hubs=max_hubs,
            )

    try:
        with console.status("[bold yellow]Searching direct and stopover routes..."):
            comparison = asyncio.run(_compare())
    except Exception as e:
        handle_error(e, "Route comparison failed")

    if comparison.direct_route is None and not comparison.stopover_routes:
        warning("No routes found")
        return
    _print_comparison(comparison)


@app.command()
def hubs(
    origin: str = typer.Argument(..., help="Origin IATA code"),
    destination: str = typer.Argument(..., help="Destination IATA code"),
    max_hubs: int = typer.Option(5, min=1, help="Maximum hubs to list"),
):
    """
    List stopover hubs suitable for a route.

    Examples:
        farewatch hubs LHR BKK
    """
    origin = validate_airport_code(origin)
    destination = validate_airport_code(destination)

    origin_region, destination_region = region_of(origin), region_of(destination)
    console.print(f"{origin} ({origin_region}) → {destination} ({destination_region})")

    candidates = find_suitable_hubs(origin, destination, max_hubs)
    if not candidates:
        info("No stopover hubs for this route")
        return

    table = Table()
    table.add_column("Hub")
    table.add_column("City")
    table.add_column("Region")
    table.add_column("Min. layover", justify="right")
    table.add_column("Airlines")
    for hub in candidates:
        table.add_row(
            hub.code,
            hub.city,
            hub.region,
            f"{minimum_layover_hours(hub.code):g}h",
            ", ".join(hub.airlines),
        )
    console.print(table)


@app.command("cron-next")
def cron_next(
    expression: str = typer.Argument(..., callback=cron_callback, help="Five-field cron expression"),
    count: int = typer.Option(5, min=1, max=50, help="Number of run times to show"),
):
    """
    Show the next run times of a cron expression (UTC).

    Examples:
        farewatch cron-next "0 9 * * 1,4"
    """
    console.print(f"[bold]{describe_cron_schedule(expression)}[/bold]")
    instant = SystemClock().now()
    for _ in range(count):
        instant = next_run_time(expression, instant)
        console.print(f"  {instant:%Y-%m-%d %H:%M} UTC ({instant:%A})")


# ============================================================================
# Notification commands
# ============================================================================

@app.command("notify-test")
def notify_test(
    channel: str = typer.Option(
        "all", "--channel", "-c", callback=channel_callback, help="email, telegram or all"
    ),
):
    """
    Send a test notification to check channel setup.

    Examples:
        farewatch notify-test --channel telegram
    """
    async def _send() -> List[DeliveryResult]:
        dispatcher = NotificationDispatcher.from_settings(settings)
        try:
            return await dispatcher.send_test(resolve_channels(channel))
        finally:
            await dispatcher.aclose()

    try:
        results = asyncio.run(_send())
    except Exception as e:
        handle_error(e, "Test notification failed")

    for result in results:
        name = result.channel.value.lower()
        if result.delivered:
            success(f"{name}: test notification sent")
        elif result.skipped:
            warning(f"{name}: {result.error}")
        else:
            console.print(f"[red]✗ {name}: {result.error}[/red]")

    if not any(result.delivered for result in results):
        raise typer.Exit(code=1)


# ============================================================================
# Database commands
# ============================================================================

@db_app.command("init")
def db_init(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Initialize database (create all tables).

    In production, use Alembic migrations instead.
    """
    console.print(Panel(
        "[bold red]⚠ Database Initialization[/bold red]\n\n"
        "This will create all database tables.\n"
        "In production, use 'alembic upgrade head' instead.",
        border_style="red",
    ))

    if not yes and not typer.confirm("Are you sure you want to continue?"):
        warning("Operation cancelled")
        raise typer.Exit()

    async def _db_init():
        try:
            await init_db()
        finally:
            await close_db_connections()

    try:
        with console.status("[bold yellow]Creating database tables..."):
            asyncio.run(_db_init())
    except Exception as e:
        handle_error(e, "Database initialization failed")

    success(f"Database initialized at {datetime.now():%Y-%m-%d %H:%M}")


if __name__ == "__main__":
    app()
