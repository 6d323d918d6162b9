"""Main CLI application."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from nodegeo import __version__

# Create main app
app = typer.Typer(
    name="nodegeo",
    help="Geolocation enrichment for storage-node addresses",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]nodegeo[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """nodegeo - resolve node addresses to countries, cities and coordinates."""


@app.command()
def resolve(
    addresses: Annotated[
        list[str] | None,
        typer.Argument(help="Addresses to resolve (host or host:port)"),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="File with one address per line"),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Config file path"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print JSON instead of a table"),
    ] = False,
    single: Annotated[
        bool,
        typer.Option(
            "--single",
            help="One lookup per IP, run concurrently up to concurrency.max_concurrency",
        ),
    ] = False,
) -> None:
    """Resolve addresses to geolocation records."""
    from nodegeo.cli.commands.resolve import run_resolve

    exit_code = asyncio.run(
        run_resolve(
            addresses=addresses or [],
            file=file,
            config_file=config,
            as_json=as_json,
            single=single,
        )
    )
    if exit_code:
        raise typer.Exit(exit_code)


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
