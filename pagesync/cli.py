"""
Command-line interface for pagesync.

Usage:
    pagesync sync               # Incremental sync of every datasource
    pagesync sync --all --wipe  # Full rebuild
    pagesync init-db            # Create the pages table
    pagesync serve              # Run the trigger API
    pagesync list-datasources   # Show the datasource registry
    pagesync health             # Check service health
"""

import asyncio
import json
import sys
from typing import Any

import click

from pagesync.config.settings import get_settings
from pagesync.errors import PageSyncError
from pagesync.observability.logging import setup_logging
from pagesync.observability.metrics import get_metrics
from pagesync.provider.schemas import ensure_utc


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """pagesync - Notion to PostgreSQL content sync."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"
        get_settings.cache_clear()

    setup_logging()

    settings = get_settings()
    if settings.tracing_enabled:
        from pagesync.observability.tracing import setup_tracing

        setup_tracing(
            service_name=settings.otel_service_name,
            otlp_endpoint=settings.otel_exporter_otlp_endpoint,
        )


@main.command()
@click.option("--datasource", "-d", default=None, help="Datasource alias or provider id (default: all)")
@click.option(
    "--since",
    default=None,
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"]),
    help="Only pages edited after this time (UTC)",
)
@click.option("--all", "sync_all", is_flag=True, help="Sync every page, ignoring --since")
@click.option("--wipe", is_flag=True, help="Delete stored records before syncing")
@click.option("--registry", default=None, help="Datasource registry JSON file")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
def sync(
    datasource: str | None,
    since: Any,
    sync_all: bool,
    wipe: bool,
    registry: str | None,
    as_json: bool,
) -> None:
    """Sync Notion datasources into the pages table.

    Example:
        pagesync sync -d blog --since 2024-01-01
        pagesync sync --all --wipe
    """
    from pagesync.storage.database import Database
    from pagesync.sync.config import load_datasource_configs
    from pagesync.sync.service import sync_from_provider

    if wipe and not sync_all:
        click.confirm("--wipe without --all leaves only recently edited pages. Continue?", abort=True)

    async def run():
        configs = load_datasource_configs(registry)
        db = Database()
        await db.connect()
        try:
            return await sync_from_provider(
                configs,
                db,
                datasource=datasource,
                since=ensure_utc(since),
                sync_all=sync_all,
                wipe=wipe,
            )
        finally:
            await db.close()

    try:
        result = asyncio.run(run())
    except PageSyncError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo("\nSync Results:")
        click.echo("-" * 60)
        for summary in result.summaries:
            color = "green" if summary.status.value == "success" else "red"
            click.echo(click.style(
                f"  {summary.alias}: {summary.status.value} "
                f"(processed={summary.processed} skipped={summary.skipped} "
                f"failed={summary.failed}, {summary.duration_ms:.0f}ms)",
                fg=color,
            ))
            if summary.details:
                click.echo(f"    {summary.details}")
        click.echo("-" * 60)

    sys.exit(1 if result.has_errors else 0)


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from pagesync.storage.database import Database
    from pagesync.sync.repository import PostRepository

    async def run():
        db = Database()
        await db.connect()
        try:
            await PostRepository(db).create_table()
            click.echo("Database initialized successfully")
        finally:
            await db.close()

    asyncio.run(run())


@main.command("list-datasources")
@click.option("--registry", default=None, help="Datasource registry JSON file")
@click.option("--counts", is_flag=True, help="Include stored record counts")
def list_datasources(registry: str | None, counts: bool) -> None:
    """Show configured datasources."""
    from pagesync.sync.config import load_datasource_configs

    try:
        configs = load_datasource_configs(registry)
    except PageSyncError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(2)

    record_counts: dict[str, int] = {}
    if counts:
        from pagesync.storage.database import Database
        from pagesync.sync.repository import PostRepository

        async def run():
            db = Database()
            await db.connect()
            try:
                repo = PostRepository(db)
                for config in configs:
                    record_counts[config.alias] = await repo.count_for_source(
                        config.data_source_id
                    )
            finally:
                await db.close()

        asyncio.run(run())

    click.echo(f"\n{len(configs)} datasource(s):")
    for config in configs:
        line = f"  {config.alias:<20} {config.data_source_id}"
        if counts:
            line += f"  records={record_counts.get(config.alias, 0)}"
        click.echo(line)


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check() -> dict[str, bool]:
        results: dict[str, bool] = {}
        try:
            from pagesync.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        results["notion_configured"] = get_settings().notion_configured
        return results

    results = asyncio.run(check())

    click.echo("\nHealth Check Results:")
    click.echo("-" * 40)
    for name, status in results.items():
        icon = "✓" if status else "✗"
        color = "green" if status else "red"
        click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
    click.echo("-" * 40)

    sys.exit(0 if results["postgres"] else 1)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def serve(host: str | None, port: int | None, reload: bool, metrics: bool) -> None:
    """Start the trigger API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics and settings.metrics_enabled:
        get_metrics().start_server()
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "pagesync.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
