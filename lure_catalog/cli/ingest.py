"""
Ingestion CLI Commands
======================

CLI commands for running the ingestion pipeline and managing its
work item queue.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from lure_catalog.core.enums import WorkItemStatus
from lure_catalog.core.errors import LureCatalogError
from lure_catalog.db.engine import get_session, init_db
from lure_catalog.db.repositories import WorkItemRepository
from lure_catalog.ingestion.adapters import (
    build_adapter_registry,
    get_adapter_info,
    list_adapters,
)
from lure_catalog.ingestion.jobs import enqueue_pipeline_run, get_job_status, run_pipeline_sync
from lure_catalog.ingestion.normalizer import VariantExpander
from lure_catalog.ingestion.registry import get_default_registry

console = Console()
ingest_app = typer.Typer(help="Scrape manufacturer pages into the catalog")
sources_app = typer.Typer(help="Inspect configured manufacturer sources")
jobs_app = typer.Typer(help="Inspect pipeline runs enqueued in Redis")
queue_app = typer.Typer(help="Work item queue commands")

ingest_app.add_typer(sources_app, name="sources")
ingest_app.add_typer(jobs_app, name="jobs")
ingest_app.add_typer(queue_app, name="queue")

STATUS_COLORS = {
    WorkItemStatus.PENDING: "yellow",
    WorkItemStatus.IN_PROGRESS: "blue",
    WorkItemStatus.DONE: "green",
    WorkItemStatus.ERROR: "red",
}


@ingest_app.command("run")
def run_ingestion(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum work items to process"),
    sync: bool = typer.Option(False, "--sync", help="Run synchronously (blocking)"),
) -> None:
    """
    Run the ingestion pipeline over pending work items.

    Examples:
        lure-catalog ingest run --limit 5 --sync
        lure-catalog ingest run
    """
    if limit is not None and limit < 0:
        rprint("[red]Error:[/red] --limit must be >= 0")
        raise typer.Exit(1)

    if sync:
        rprint("[dim]Processing pending items in this process[/dim]\n")
        init_db()
        try:
            summary = asyncio.run(run_pipeline_sync(limit))
        except LureCatalogError as e:
            rprint(f"\n[red]Error:[/red] Pipeline failed: {e}")
            raise typer.Exit(1)

        _display_summary(summary.to_dict())
        if summary.errored:
            raise typer.Exit(1)
    else:
        try:
            job_id = asyncio.run(enqueue_pipeline_run(limit))
        except Exception as e:
            rprint(f"[red]Error:[/red] could not enqueue the run: {e}")
            rprint("\nStart Redis, or pass --sync to run in this process")
            raise typer.Exit(1)

        rprint(f"[green]Enqueued[/green] pipeline run [bold]{job_id}[/bold]")
        rprint(f"[dim]Follow it with: lure-catalog ingest jobs status {job_id}[/dim]")


@ingest_app.command("worker")
def start_worker(
    burst: bool = typer.Option(False, "--burst", help="Exit once the Redis queue is drained"),
) -> None:
    """
    Serve pipeline runs enqueued through Redis.

    Examples:
        lure-catalog ingest worker
        lure-catalog ingest worker --burst
    """
    from arq import run_worker

    from lure_catalog.ingestion.jobs import WorkerSettings

    init_db()
    mode = "burst" if burst else "continuous"
    rprint(f"[bold]Ingestion worker[/bold] ({mode} mode), Ctrl+C to stop\n")
    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] worker stopped: {e}")
        rprint("\nIs Redis reachable? Check REDIS_HOST and REDIS_PORT")
        raise typer.Exit(1)


@ingest_app.command("adapters")
def list_source_adapters() -> None:
    """List the adapter types a source may name in sources.yaml."""
    table = Table(title="Registered Adapters")
    table.add_column("Adapter", style="bold")
    table.add_column("Version")
    table.add_column("Implementation", style="dim")

    for info in filter(None, map(get_adapter_info, list_adapters())):
        table.add_row(info["name"], info["version"], info["class"])

    console.print(table)


@ingest_app.command("extract")
def extract_url(
    url: str = typer.Argument(..., help="Product page URL"),
    source: str = typer.Option(..., "--source", "-s", help="Source name whose adapter to use"),
) -> None:
    """
    Run one adapter against a URL without writing anything.

    Prints the extraction result and the catalog rows it would expand to.

    Examples:
        lure-catalog ingest extract https://fixture.lure-catalog.local/products/vision-110 -s fixture
    """
    registry = get_default_registry()
    try:
        adapter = build_adapter_registry(registry).resolve(source)
        result = asyncio.run(adapter.extract(url))
    except LureCatalogError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print_json(result.model_dump_json())

    problems = adapter.validate_result(result)
    for problem in problems:
        rprint(f"[yellow]Validation:[/yellow] {problem}")

    configured = registry.get_source(source)
    manufacturer = configured.display_name if configured else None
    rows = VariantExpander().expand(result, manufacturer=manufacturer)
    table = Table(title=f"{len(rows)} rows")
    table.add_column("Color", style="bold")
    table.add_column("Weight (g)")
    table.add_column("Price")
    for row in rows:
        weight = f"{row.weight:g}" if row.weight is not None else "-"
        table.add_row(row.color_name, weight, str(row.price))
    console.print(table)

    if problems:
        raise typer.Exit(1)


# Sources subcommands


def _enabled_label(enabled: bool) -> str:
    return "[green]enabled[/green]" if enabled else "[dim]disabled[/dim]"


@sources_app.command("list")
def list_sources(
    all_sources: bool = typer.Option(False, "--all", "-a", help="Include disabled sources"),
) -> None:
    """
    List the manufacturer sites in sources.yaml.

    Examples:
        lure-catalog ingest sources list
        lure-catalog ingest sources list --all
    """
    registry = get_default_registry()
    shown = registry.list_sources() if all_sources else registry.list_enabled_sources()

    if not shown:
        where = registry.config_path or "config/sources.yaml"
        rprint(f"[yellow]No sources to show.[/yellow] Edit {where} to add one.")
        return

    table = Table(title="Manufacturer Sources")
    table.add_column("Source", style="bold")
    table.add_column("Domain")
    table.add_column("Adapter")
    if all_sources:
        table.add_column("State")

    for source in shown:
        cells = [source.name, source.domain or "-", source.adapter]
        if all_sources:
            cells.append(_enabled_label(source.enabled))
        table.add_row(*cells)

    console.print(table)


@sources_app.command("show")
def show_source(
    name: str = typer.Argument(..., help="Source name from sources.yaml"),
) -> None:
    """
    Print one source's settings and the adapter that serves it.

    Examples:
        lure-catalog ingest sources show fixture
    """
    source = get_default_registry().get_source(name)
    if source is None:
        rprint(f"[red]Error:[/red] no source named '{name}'")
        raise typer.Exit(1)

    details = Table.grid(padding=(0, 2))
    details.add_column(style="bold")
    details.add_column()
    details.add_row("State", _enabled_label(source.enabled))
    details.add_row("Domain", source.domain or "-")
    details.add_row("Adapter", source.adapter)
    if source.image_referer:
        details.add_row("Image Referer", source.image_referer)
    if source.description:
        details.add_row("Notes", source.description)
    for key, value in source.custom_config.items():
        details.add_row(f"custom.{key}", str(value))

    rprint(f"\n[bold]{source.display_name}[/bold] ({source.name})")
    console.print(details)

    info = get_adapter_info(source.adapter)
    if info is None:
        rprint(f"\n[red]Adapter '{source.adapter}' is not registered[/red]")
    else:
        rprint(f"\n[dim]Served by {info['class']} v{info['version']}[/dim]")


# Jobs subcommands


@jobs_app.command("status")
def job_status(
    job_id: str = typer.Argument(..., help="Job ID to check"),
) -> None:
    """
    Check the status of a pipeline job.

    Examples:
        lure-catalog ingest jobs status abc123
    """
    try:
        result = asyncio.run(get_job_status(job_id))
    except Exception as e:
        rprint(f"[red]Error:[/red] Failed to get job status: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)

    if result is None:
        rprint(f"[yellow]Job '{job_id}' not found[/yellow]")
        raise typer.Exit(1)

    rprint(f"\n[bold]Job: {job_id}[/bold]")
    rprint(f"  Status: {result.get('status', 'unknown')}")

    if isinstance(result.get("result"), dict):
        _display_summary(result["result"])


# Queue subcommands


@queue_app.command("add")
def queue_add(
    url: str = typer.Argument(..., help="Product page URL"),
    source: str = typer.Option(..., "--source", "-s", help="Source name"),
    name: str = typer.Option("", "--name", "-n", help="Display name"),
) -> None:
    """
    Add a product page to the work item queue.

    Examples:
        lure-catalog ingest queue add https://example-tackle.com/products/vision-110 -s example-tackle
    """
    registry = get_default_registry()
    if registry.get_source(source) is None:
        rprint(f"[yellow]Warning:[/yellow] Source '{source}' is not configured; the item will fail until it is")

    init_db()
    with get_session() as session:
        item = WorkItemRepository(session).add(url, source, name)

    rprint(f"[green]Queued[/green] {item.name or item.url} ({item.id})")


@queue_app.command("list")
def queue_list(
    status: Optional[WorkItemStatus] = typer.Option(None, "--status", help="Only show items in this status"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum items to show"),
) -> None:
    """
    List work items in queue order.

    Examples:
        lure-catalog ingest queue list
        lure-catalog ingest queue list --status error
    """
    init_db()
    with get_session() as session:
        repo = WorkItemRepository(session)
        items = repo.list_by_status(status, limit)
        counts = repo.count_by_status()

    if not items:
        rprint("[yellow]No work items[/yellow]")
    else:
        table = Table(title="Work Items")
        table.add_column("ID", style="dim")
        table.add_column("Source")
        table.add_column("Name / URL")
        table.add_column("Status")
        table.add_column("Note")

        for item in items:
            color = STATUS_COLORS[item.status]
            table.add_row(
                item.id[:8],
                item.source,
                item.name or item.url,
                f"[{color}]{item.status.value}[/{color}]",
                item.note,
            )
        console.print(table)

    summary = ", ".join(f"{s}: {c}" for s, c in sorted(counts.items()))
    rprint(f"\n[dim]{summary or 'Queue is empty'}[/dim]")


@queue_app.command("reset")
def queue_reset(
    status: Optional[list[WorkItemStatus]] = typer.Option(
        None, "--status", help="Statuses to reset (default: error)"
    ),
    older_than: Optional[int] = typer.Option(
        None, "--older-than", help="Only items not updated in this many minutes"
    ),
    item_ids: Optional[list[str]] = typer.Option(None, "--id", help="Only these item IDs"),
) -> None:
    """
    Put items back to pending so the next run retries them.

    Examples:
        lure-catalog ingest queue reset
        lure-catalog ingest queue reset --status in_progress --older-than 60
        lure-catalog ingest queue reset --status error --status done --id 1234
    """
    statuses = status or [WorkItemStatus.ERROR]
    if WorkItemStatus.PENDING in statuses:
        rprint("[red]Error:[/red] pending items cannot be reset")
        raise typer.Exit(1)

    window = timedelta(minutes=older_than) if older_than is not None else None

    init_db()
    with get_session() as session:
        count = WorkItemRepository(session).reset(
            statuses=statuses,
            item_ids=item_ids or None,
            older_than=window,
        )

    labels = ", ".join(s.value for s in statuses)
    rprint(f"[green]Reset {count} item(s)[/green] ({labels} -> pending)")


def _display_summary(summary: dict) -> None:
    """Display a pipeline summary with a per-item table."""
    rprint("\n[bold]Pipeline Summary:[/bold]")
    rprint(f"  Processed: {summary.get('processed', 0)}")
    rprint(f"  Successful: [green]{summary.get('succeeded', 0)}[/green]")
    rprint(f"  Errors: [red]{summary.get('errored', 0)}[/red]")
    rprint(f"  Rows inserted: {summary.get('rows_inserted', 0)}")
    rprint(f"  Rows skipped: {summary.get('rows_skipped', 0)}")
    rprint(f"  Colors processed: {summary.get('colors_processed', 0)}")
    rprint(f"  Elapsed: {summary.get('elapsed_seconds', 0):.1f}s")
    if summary.get("rebuild_triggered"):
        rprint("  Rebuild: [green]triggered[/green]")

    results = summary.get("results", [])
    if not results:
        return

    table = Table(title="Items")
    table.add_column("", width=4)
    table.add_column("Name", style="bold")
    table.add_column("Message")
    for result in results:
        ok = result.get("outcome") == "success"
        table.add_row(
            "[green]OK[/green]" if ok else "[red]FAIL[/red]",
            result.get("name", ""),
            result.get("message", ""),
        )
    console.print(table)
