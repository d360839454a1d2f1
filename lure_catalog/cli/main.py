"""Lure Catalog CLI using Typer."""

import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.logging import RichHandler

from lure_catalog import __version__
from lure_catalog.cli.ingest import ingest_app

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="lure-catalog",
    help="Lure Catalog - ingest fishing lure product pages into a normalized catalog",
    add_completion=False,
)
app.add_typer(ingest_app, name="ingest")


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Lure Catalog command line."""
    setup_logging(verbose)


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from lure_catalog.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def migrate() -> None:
    """Upgrade the database schema to the latest migration."""
    from lure_catalog.db.engine import run_migrations

    typer.echo("Running migrations...")
    try:
        run_migrations()
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("Database is up to date.")


@app.command()
def version() -> None:
    """Show the Lure Catalog version."""
    typer.echo(f"Lure Catalog v{__version__}")


def _check_object_store_config() -> None:
    """Display object store configuration status."""
    store_type = os.environ.get("OBJECT_STORE_TYPE", "local").lower()
    if store_type == "s3":
        bucket = os.environ.get("S3_BUCKET")
        public_url = os.environ.get("OBJECT_STORE_PUBLIC_URL")
        if bucket and public_url:
            typer.echo(f"  Object store: S3 bucket '{bucket}' served from {public_url}")
        else:
            typer.echo("  Object store: S3 (incomplete - set S3_BUCKET and OBJECT_STORE_PUBLIC_URL)")
    else:
        path = os.environ.get("OBJECT_STORE_LOCAL_PATH", str(Path.home() / ".lure_catalog" / "images"))
        typer.echo(f"  Object store: local directory {path}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    typer.echo("Lure Catalog Configuration")
    typer.echo("=" * 40)

    # Check .env file
    env_found = False
    for _env_path in _env_paths:
        if _env_path.exists():
            typer.echo(f"  .env file: {_env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    # Check database
    from lure_catalog.db.engine import get_database_url

    typer.echo(f"  Database: {get_database_url()}")

    # Check sources
    from lure_catalog.core.errors import ConfigError
    from lure_catalog.ingestion.registry import get_default_registry

    try:
        registry = get_default_registry()
    except ConfigError as e:
        typer.echo(f"  Sources config: INVALID ({e})")
        raise typer.Exit(1)
    if registry.config_path:
        typer.echo(f"  Sources config: {registry.config_path}")
    else:
        typer.echo("  Sources config: Not found (set SOURCES_CONFIG_PATH)")
    typer.echo(f"  Enabled sources: {len(registry.list_enabled_sources())}")

    _check_object_store_config()

    if os.environ.get("REBUILD_WEBHOOK_URL"):
        typer.echo("  Rebuild webhook: configured")
    else:
        typer.echo("  Rebuild webhook: Not configured (runs will not trigger a rebuild)")


if __name__ == "__main__":
    app()
