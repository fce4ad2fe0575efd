from __future__ import annotations

import json
from typing import Callable

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.orm import Session

from sync_service.logging_setup import configure_logging
from sync_service.options import JudgeSyncResult, SyncOptions
from sync_service.settings import settings as sync_settings

app = typer.Typer(help="Judicial registry sync (stale refresh, discovery, single-entity reconcile).")
console = Console()


@app.callback()
def main(log_level: str | None = typer.Option(None, help="Log level (defaults to LOG_LEVEL or INFO).")) -> None:
    configure_logging(log_level)


def _session_factory() -> Callable[[], Session]:
    # Imported lazily so --help works without a database driver configured.
    from benchwatch_core.db.session import SessionLocal

    return SessionLocal


def _build_orchestrator(client):
    from sync_service.orchestrator import SyncOrchestrator

    return SyncOrchestrator(client=client, session_factory=_session_factory(), settings=sync_settings)


def _client():
    from sync_service.registry.http_client import RateLimitedClient

    return RateLimitedClient.from_settings(sync_settings)


def _print_result(result: JudgeSyncResult, *, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(result.summary(), indent=2))
        return

    status = "[green]success[/green]" if result.success else "[red]finished with errors[/red]"
    console.print(f"Sync {result.sync_id}: {status}")
    console.print(f"  Processed: {result.processed}")
    console.print(f"  Created:   {result.created}")
    console.print(f"  Updated:   {result.updated}")
    console.print(f"  Enhanced:  {result.enhanced}")
    console.print(f"  Skipped:   {result.skipped}")
    console.print(f"  Duration:  {result.duration_ms} ms")
    if result.errors:
        console.print(f"  Errors ({len(result.errors)}):", style="red")
        for error in result.errors[:20]:
            console.print(f"    {error}", style="red")
        if len(result.errors) > 20:
            console.print(f"    ... {len(result.errors) - 20} more", style="red")


@app.command()
def judges(
    *,
    entity_id: list[str] | None = typer.Option(None, "--id", help="Sync only these registry ids (repeatable)."),
    jurisdiction: str | None = typer.Option(None, help="Two-letter state, US/FED, or native:<param>=<value>."),
    batch_size: int | None = typer.Option(None, help="Items per batch."),
    concurrency: int | None = typer.Option(None, help="Worker threads per batch (1 = sequential)."),
    force_refresh: bool = typer.Option(False, help="Ignore the staleness window and the skip window."),
    discover_limit: int | None = typer.Option(None, help="Max new entities to discover (0 disables discovery)."),
    stale_limit: int | None = typer.Option(None, help="Max stale records to refresh."),
    retries: int | None = typer.Option(None, help="Retries for transient registry errors."),
    inter_batch_delay_ms: int | None = typer.Option(None, help="Delay between batches (ms)."),
    skip_window_hours: float | None = typer.Option(None, help="Skip entities synced within this many hours."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """
    Run a full sync: explicit ids if given, otherwise stale records followed by discovery.
    """
    options = SyncOptions(
        entity_ids=entity_id or [],
        jurisdiction=jurisdiction,
        batch_size=batch_size,
        concurrency=concurrency,
        force_refresh=force_refresh,
        discover_limit=discover_limit,
        stale_limit=stale_limit,
        retries=retries,
        inter_batch_delay_ms=inter_batch_delay_ms,
        skip_window_hours=skip_window_hours,
    )
    with _client() as client:
        result = _build_orchestrator(client).sync_judges(options)
    _print_result(result, as_json=as_json)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def discover(
    *,
    jurisdiction: str | None = typer.Option(None, help="Two-letter state, US/FED, or native:<param>=<value>."),
    limit: int | None = typer.Option(None, help="Max new entities to discover."),
    batch_size: int | None = typer.Option(None, help="Items per batch."),
    concurrency: int | None = typer.Option(None, help="Worker threads per batch."),
    dry_run: bool = typer.Option(False, help="List new ids without reconciling them."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """
    Discover registry entities missing from the local store and reconcile them.
    """
    options = SyncOptions(
        jurisdiction=jurisdiction,
        discover_limit=limit,
        batch_size=batch_size,
        concurrency=concurrency,
    )
    with _client() as client:
        orchestrator = _build_orchestrator(client)
        if dry_run:
            found = orchestrator.discovery.discover(options)
            console.print(
                f"[yellow]{len(found.new_ids)} new ids[/yellow] "
                f"(jurisdiction={found.jurisdiction}, known={found.known_count}, "
                f"pages={found.pages_fetched}, scanned={found.rows_scanned})"
            )
            for external_id in found.new_ids:
                typer.echo(external_id)
            return
        result = orchestrator.discover_and_sync(options)
    _print_result(result, as_json=as_json)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def reconcile(
    external_id: str = typer.Argument(..., help="Registry id of the judge to reconcile."),
    *,
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """
    Reconcile a single entity (recorded as a specific-ids run).
    """
    with _client() as client:
        result = _build_orchestrator(client).sync_judges(
            SyncOptions(entity_ids=[external_id], inter_batch_delay_ms=0)
        )
    _print_result(result, as_json=as_json)
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def runs(limit: int = typer.Option(20, help="Number of recent runs to show.")) -> None:
    """
    Show the most recent sync runs from the audit table.
    """
    from sync_service.audit import AuditLogger

    recent = AuditLogger(_session_factory()).recent(limit)
    if not recent:
        console.print("[yellow]No sync runs recorded[/yellow]")
        return

    table = Table(title=f"Recent sync runs ({len(recent)})")
    table.add_column("Sync ID", style="cyan")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Started")
    table.add_column("Duration", justify="right")
    table.add_column("Processed", justify="right")
    table.add_column("Errors", justify="right")

    for run in recent:
        summary = run.result_summary or {}
        status_style = {"completed": "green", "failed": "red"}.get(run.status.value, "yellow")
        table.add_row(
            run.sync_id,
            run.kind.value,
            f"[{status_style}]{run.status.value}[/{status_style}]",
            run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{run.duration_ms} ms" if run.duration_ms is not None else "-",
            str(summary.get("processed", "-")),
            str(len(summary.get("errors", []))) if summary else (run.error_message or "-")[:40],
        )

    console.print(table)


if __name__ == "__main__":
    app()
