"""Command group: stationtrack audit - inspect the audit trail.

Runs the same query service as the HTTP API against the configured
database, read-only.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from stationtrack.core.audit.repos import AuditFilters
from stationtrack.core.audit.schemas import (
    AuditEventPage,
    AuditEventResponse,
    AuditStatistics,
)
from stationtrack.core.audit.service import AuditQueryService
from stationtrack.core.constants import DEFAULT_PAGE_SIZE, DEFAULT_STATS_DAYS
from stationtrack.core.database import async_session_factory
from stationtrack.core.errors import AppException


T = TypeVar("T")

console = Console()

app = typer.Typer(
    help="Inspect the audit trail.",
    no_args_is_help=True,
)


def run_query(query: Callable[[AuditQueryService], Awaitable[T]]) -> T:
    """Run a query against a fresh session, exiting on domain errors."""

    async def _run() -> T:
        async with async_session_factory() as session:
            return await query(AuditQueryService(session))

    try:
        return asyncio.run(_run())
    except AppException as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e


def _actor_name(event: AuditEventResponse) -> str:
    if event.actor is None:
        return "[dim]deleted user[/dim]"
    return event.actor.username


def render_events(page: AuditEventPage) -> Table:
    p = page.pagination
    table = Table(
        title=f"Audit Events (page {p.current_page}/{max(p.total_pages, 1)}, "
        f"{p.total_items} total)",
        show_header=True,
    )
    table.add_column("Occurred", no_wrap=True)
    table.add_column("Actor", style="cyan")
    table.add_column("Action", style="green")
    table.add_column("Target")
    table.add_column("Source", no_wrap=True)
    table.add_column("ID", style="dim", no_wrap=True)

    for event in page.items:
        table.add_row(
            event.occurred_at.isoformat(timespec="seconds"),
            _actor_name(event),
            event.action,
            f"{event.target_type}:{event.target_id}",
            event.source_address or "",
            str(event.id),
        )
    return table


def render_statistics(stats: AuditStatistics) -> list[Table]:
    overall = Table(title=f"Overview ({stats.overall.period})", show_header=False)
    overall.add_column("Metric", style="cyan")
    overall.add_column("Value", justify="right")
    overall.add_row("Total events", str(stats.overall.total_logs))
    overall.add_row("Recent events", str(stats.overall.recent_logs))

    actions = Table(title="Top Actions", show_header=True)
    actions.add_column("Action", style="green")
    actions.add_column("Count", justify="right")
    actions.add_column("Share %", justify="right")
    for a in stats.action_stats:
        actions.add_row(a.action, str(a.count), a.share)

    targets = Table(title="Top Target Types", show_header=True)
    targets.add_column("Target Type")
    targets.add_column("Count", justify="right")
    targets.add_column("Share %", justify="right")
    for t in stats.target_type_stats:
        targets.add_row(t.target_type, str(t.count), t.share)

    actors = Table(title="Most Active Users", show_header=True)
    actors.add_column("User", style="cyan")
    actors.add_column("Count", justify="right")
    for u in stats.user_activity_stats:
        actors.add_row(u.actor.username if u.actor else str(u.actor_id), str(u.count))

    daily = Table(title="Last 7 Days", show_header=True)
    daily.add_column("Date", no_wrap=True)
    daily.add_column("Count", justify="right")
    for d in stats.daily_stats:
        daily.add_row(d.date.isoformat(), str(d.count))

    return [overall, actions, targets, actors, daily]


@app.command(name="list")
def list_events(
    user_id: UUID | None = typer.Option(None, "--user", "-u", help="Actor id"),
    action: str | None = typer.Option(None, "--action", "-a"),
    target_type: str | None = typer.Option(None, "--target-type", "-t"),
    target_id: str | None = typer.Option(None, "--target-id"),
    start_date: datetime | None = typer.Option(None, "--since"),
    end_date: datetime | None = typer.Option(None, "--until"),
    search: str | None = typer.Option(None, "--search", "-s"),
    page: int = typer.Option(1, "--page", min=1),
    limit: int = typer.Option(DEFAULT_PAGE_SIZE, "--limit", "-n", min=1, max=100),
) -> None:
    """List audit events, newest first."""
    filters = AuditFilters(
        actor_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    result = run_query(lambda svc: svc.list_events(filters, page=page, limit=limit))

    if not result.items:
        console.print("[yellow]No audit events found.[/yellow]")
        return

    console.print()
    console.print(render_events(result))
    console.print()


@app.command(name="show")
def show_event(event_id: UUID = typer.Argument(..., help="Audit event id")) -> None:
    """Show a single audit event."""
    event = run_query(lambda svc: svc.get_event(event_id))

    table = Table(title="Audit Event", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("ID", str(event.id))
    table.add_row("Occurred", event.occurred_at.isoformat())
    table.add_row("Action", event.action)
    table.add_row("Target", f"{event.target_type}:{event.target_id}")
    table.add_row("Actor", _actor_name(event))
    table.add_row("Actor ID", str(event.actor_id))
    table.add_row("Source", event.source_address or "")

    console.print()
    console.print(table)
    console.print()


@app.command(name="stats")
def show_statistics(
    user_id: UUID | None = typer.Option(None, "--user", "-u"),
    target_type: str | None = typer.Option(None, "--target-type", "-t"),
    days: int = typer.Option(DEFAULT_STATS_DAYS, "--days", "-d", min=1, max=3650),
) -> None:
    """Show audit statistics for a trailing window."""
    stats = run_query(
        lambda svc: svc.statistics(actor_id=user_id, target_type=target_type, days=days)
    )

    console.print()
    for table in render_statistics(stats):
        console.print(table)
        console.print()
