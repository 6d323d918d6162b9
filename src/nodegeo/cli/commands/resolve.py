"""Resolve command implementation."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.table import Table

from nodegeo.core.engine.pool import create_executor
from nodegeo.core.geo.resolver import create_resolver, extract_ip
from nodegeo.core.logging_config import configure_logging
from nodegeo.core.models.config import Config

if TYPE_CHECKING:
    from pathlib import Path

    from nodegeo.core.engine.pool import BoundedExecutor
    from nodegeo.core.geo.resolver import GeoResolver
    from nodegeo.core.models.geo import GeoLocation

console = Console()


def read_addresses(file: Path) -> list[str]:
    """Read one address per line, skipping blanks and # comments."""
    addresses = []
    for line in file.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            addresses.append(line)
    return addresses


async def resolve_singly(
    resolver: GeoResolver,
    addresses: list[str],
    executor: BoundedExecutor,
) -> dict[str, GeoLocation]:
    """Resolve each distinct IP with its own lookup, bounded by the executor."""
    ips = list(dict.fromkeys(extract_ip(address) for address in addresses))

    async def locate(ip: str) -> tuple[str, GeoLocation | None]:
        return ip, await resolver.resolve_one(ip)

    pairs = await executor.map(ips, locate)
    return {ip: location for ip, location in pairs if location is not None}


async def run_resolve(
    addresses: list[str],
    file: Path | None,
    config_file: Path | None,
    as_json: bool,
    single: bool = False,
) -> int:
    """Resolve addresses and print the result. Returns the exit code."""
    if config_file is not None and not config_file.exists():
        console.print(f"[red]Config file not found: {config_file}[/red]")
        return 1
    config = Config.from_yaml(config_file) if config_file else Config()
    configure_logging(config.logging)

    addresses = list(addresses)
    if file is not None:
        if not file.exists():
            console.print(f"[red]Address file not found: {file}[/red]")
            return 1
        addresses.extend(read_addresses(file))

    if not addresses:
        console.print("[red]No addresses given[/red]")
        return 1

    async with create_resolver(config) as resolver:
        if single:
            locations = await resolve_singly(resolver, addresses, create_executor(config))
        else:
            locations = await resolver.resolve_many(addresses)

    if as_json:
        payload = {ip: location.to_dict() for ip, location in locations.items()}
        typer.echo(json.dumps(payload, indent=2))
        return 0

    table = Table(title=f"Resolved {len(locations)} of {len({extract_ip(a) for a in addresses})} IPs")
    table.add_column("Address", style="cyan")
    table.add_column("Country", style="green")
    table.add_column("Region", style="yellow")
    table.add_column("City", style="yellow")
    table.add_column("Lat/Lon", style="magenta")
    table.add_column("Timezone", style="blue")

    for address in addresses:
        location = locations.get(extract_ip(address))
        if location is None:
            table.add_row(address, "[dim]-[/dim]", "-", "-", "-", "-")
            continue
        table.add_row(
            address,
            location.country,
            location.region,
            location.city,
            f"{location.latitude:.4f}, {location.longitude:.4f}",
            location.timezone,
        )

    console.print(table)
    return 0
