"""
Showcase CLI — command-line interface.

Usage:
    xeroshowcase serve --port 5000
    xeroshowcase routes
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from xeroshowcase import __version__

app = typer.Typer(
    name="xeroshowcase",
    help="Xero API Showcase — walk the Xero Accounting API through OAuth2",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold]Xero API Showcase[/bold] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Xero API Showcase — consent, callback, and ~30 demo pages."""


@app.command()
def serve(
    config: str = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML config file",
    ),
    host: str = typer.Option(
        None,
        "--host",
        help="Interface to bind (default from config)",
    ),
    port: int = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to listen on (default from config / PORT)",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="DEBUG, INFO, WARNING or ERROR",
    ),
) -> None:
    """Run the web app."""
    import uvicorn
    from dotenv import load_dotenv

    from xeroshowcase.config import ShowcaseConfig
    from xeroshowcase.web.app import create_app

    load_dotenv()
    cfg = ShowcaseConfig.load(config)
    if host:
        cfg.server.host = host
    if port:
        cfg.server.port = port
    if log_level:
        cfg.server.log_level = log_level.upper()

    logging.basicConfig(
        level=cfg.server.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    missing = cfg.xero.missing_credentials()
    if missing:
        console.print(
            f"[yellow]Warning: {', '.join(missing)} not set — "
            "authorization will fail until they are.[/yellow]"
        )

    console.print(Panel.fit(
        f"[bold blue]Xero API Showcase[/bold blue] running at http://{cfg.server.host}:{cfg.server.port}",
        subtitle=f"v{__version__}",
    ))
    uvicorn.run(create_app(cfg), host=cfg.server.host, port=cfg.server.port, log_level=cfg.server.log_level.lower())


@app.command()
def routes() -> None:
    """List the resource pages and the Xero endpoints they call."""
    from xeroshowcase.resources.registry import ResourceRegistry

    table = Table(title="Resource Routes")
    table.add_column("Path", style="bold")
    table.add_column("Endpoint")
    table.add_column("Shape")

    for route in ResourceRegistry.builtin():
        shape = route.action.__name__ if route.action else f"count of {route.collection}"
        table.add_row(route.url_path, route.endpoint, shape)

    console.print(table)


if __name__ == "__main__":
    app()
