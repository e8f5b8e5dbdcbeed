"""
CLI for MBS Vector Sync.

Provides command-line interface for syncing MBS item files into Qdrant
and for running the HTTP server.
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from mbs_sync.core.config import load_config, setup_logging
from mbs_sync.core.records import InvalidBatchError, load_batch_file
from mbs_sync.services import RunSummary, ServicesContainer, create_services, verify_services

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="mbs-sync",
    help="MBS Vector Sync - keep a Qdrant collection of MBS item embeddings up to date",
    add_completion=False,
)


def get_services(config_path: Optional[Path] = None) -> ServicesContainer:
    """Initialize services from config file, .env and environment."""
    container = create_services(config_path=config_path)
    setup_logging(container.config.logging)
    return container


def _print_summary(summary: RunSummary) -> None:
    grid = Table.grid(padding=1)
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Processed:", str(summary.items_processed))
    grid.add_row("Skipped (unchanged):", str(summary.items_skipped))
    grid.add_row("Updated:", str(summary.items_updated))
    grid.add_row("Removed:", str(summary.items_removed))
    if summary.items_failed:
        grid.add_row("Failed:", f"[red]{summary.items_failed}[/red]")
    if summary.items_unaccounted:
        grid.add_row("Lookup failures:", f"[yellow]{summary.items_unaccounted}[/yellow]")
    grid.add_row("Duration:", f"{summary.duration_seconds:.2f}s")

    console.print(
        Panel(
            grid,
            title="[bold green]Sync Complete[/bold green]",
            border_style="green",
            expand=False,
        )
    )

    if summary.failed_identifiers:
        console.print("\n[bold red]Failed Items:[/bold red]")
        for identifier in summary.failed_identifiers[:5]:
            console.print(f"  - {identifier}")
        if len(summary.failed_identifiers) > 5:
            console.print(f"  ... and {len(summary.failed_identifiers) - 5} more")


@app.command()
def sync(
    file: Path = typer.Argument(..., help="JSON file with an MBS_Items list"),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of concurrent embedding workers"
    ),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML or JSON config file"),
):
    """Sync an MBS item file into the vector index."""
    try:
        items = load_batch_file(file)
    except (FileNotFoundError, InvalidBatchError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if workers is not None and workers < 1:
        console.print("[bold red]Error:[/bold red] --workers must be at least 1")
        raise typer.Exit(1)

    console.print(f"[bold blue]Syncing[/bold blue] {len(items)} items from {file}...")

    try:
        services = get_services(config)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Connecting...", total=None)

            def update_progress(current: int, total: int, message: str) -> None:
                progress.update(task, completed=current, total=total, description=message)

            sync_service = services.create_sync_service(
                num_workers=workers, progress_callback=update_progress
            )

            async def run() -> RunSummary:
                try:
                    await verify_services(services)
                    return await sync_service.sync(items)
                finally:
                    await services.close()

            summary = asyncio.run(run())

        _print_summary(summary)

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def status(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML or JSON config file"),
):
    """Show collection size, service health and configuration."""
    try:
        services = get_services(config)
        cfg = services.config

        console.print("[bold]System Health:[/bold]")

        async def check_vector_store() -> int:
            try:
                await services.vector_store.initialize()
                return await services.vector_store.count()
            finally:
                await services.vector_store.close()

        try:
            count = asyncio.run(check_vector_store())
            console.print(f"  [green]✓[/green] Vector Store: Connected ({count} items)")
        except Exception as e:
            console.print(f"  [red]✗[/red] Vector Store: Error - {e}")

        console.print(
            f"  [green]✓[/green] Embedding API: {cfg.embedding.api_url} ({cfg.embedding.model})"
        )

        grid = Table.grid(padding=1)
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Qdrant:", f"{cfg.vector_store.host}:{cfg.vector_store.port}")
        grid.add_row("Collection:", cfg.vector_store.collection_name)
        grid.add_row("Vector Size:", str(cfg.vector_store.vector_size))
        grid.add_row("Workers:", str(cfg.sync.num_workers))
        grid.add_row("Server Port:", str(cfg.server.port))

        console.print(Panel(grid, title="Configuration", border_style="dim", expand=False))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="HTTP host (default from MBS_SERVER_HOST or 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="HTTP port (default from SERVER_PORT or 8080)"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML or JSON config file"),
):
    """Start the HTTP API server."""
    import uvicorn

    try:
        from mbs_sync.http_server import create_app

        cfg = load_config(config)
        setup_logging(cfg.logging)
        actual_host = host if host is not None else cfg.server.host
        actual_port = port if port is not None else cfg.server.port

        app_instance = create_app(create_services(config=cfg))
        console.print(f"[bold green]Starting API server at http://{actual_host}:{actual_port}[/bold green]")
        uvicorn.run(
            app_instance,
            host=actual_host,
            port=actual_port,
            reload=False,
            log_level="info",
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
