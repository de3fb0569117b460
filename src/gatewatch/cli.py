"""Gatewatch CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from gatewatch.config.models import GatewatchConfig

app = typer.Typer(
    name="gatewatch",
    help="Gatewatch: instance registry and health monitor",
    no_args_is_help=True,
)
console = Console()

_STATUS_STYLES = {"healthy": "green", "degraded": "yellow", "unhealthy": "red"}
_PROBE_STYLES = {"connected": "green", "disabled": "dim", "disconnected": "yellow", "error": "red"}


def _load(path: Path | None) -> GatewatchConfig:
    from gatewatch.config.loader import load_config

    try:
        config = load_config(path=path)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    logging.basicConfig(
        level=config.log.level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


ConfigPath = typer.Option(None, "--path", "-p", help="Path to .gatewatch.yaml")


@app.command()
def status(path: Path | None = ConfigPath) -> None:
    """Hydrate the registry, probe dependencies and print the health verdict."""
    from gatewatch.services import build_services

    config = _load(path)
    services = build_services(config)

    async def _check():
        await services.registry.hydrate()
        try:
            return await services.aggregator.get_health_status()
        finally:
            await services.close()

    health = asyncio.run(_check())

    table = Table(title=f"{config.gatewatch.name} Health")
    table.add_column("Dependency", style="bold")
    table.add_column("Status")
    table.add_column("Latency")
    table.add_column("Error")
    for label, probe in (("database", health.database), ("cache", health.cache)):
        style = _PROBE_STYLES.get(probe.status.value, "red")
        latency = f"{probe.response_time_ms:.0f}ms" if probe.response_time_ms is not None else "-"
        table.add_row(label, f"[{style}]{probe.status.value}[/{style}]", latency, probe.error or "")
    console.print(table)

    counts = health.instances
    console.print(f"Instances: {counts.total} total, {counts.active} active, {counts.inactive} inactive")
    overall = health.status.value
    style = _STATUS_STYLES[overall]
    console.print(f"\n[{style} bold]Overall: {overall}[/{style} bold]")
    if health.status.http_status != 200:
        raise typer.Exit(1)


@app.command()
def metrics(path: Path | None = ConfigPath) -> None:
    """Print the Prometheus metrics exposition."""
    from gatewatch.services import build_services

    services = build_services(_load(path))

    async def _render() -> str:
        await services.registry.hydrate()
        try:
            return await services.aggregator.get_metrics()
        finally:
            await services.close()

    typer.echo(asyncio.run(_render()), nl=False)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
) -> None:
    """Start the Gatewatch API server."""
    import uvicorn

    console.print(f"[bold]Gatewatch[/bold] starting on http://{host}:{port}")
    uvicorn.run("gatewatch.api.app:create_app", host=host, port=port, factory=True, reload=False)


@app.command()
def instances(
    name: list[str] = typer.Option(None, "--name", "-n", help="Restrict to these loaded instances"),
    path: Path | None = ConfigPath,
) -> None:
    """List persisted instances for this deployment."""
    from gatewatch.errors import GatewatchError
    from gatewatch.services import build_services

    services = build_services(_load(path))

    async def _lookup():
        await services.registry.hydrate()
        try:
            return await services.registry.lookup_by_names(name or None)
        finally:
            await services.close()

    try:
        records = asyncio.run(_lookup())
    except GatewatchError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Instances")
    table.add_column("Name", style="bold")
    table.add_column("ID")
    table.add_column("Integration")
    table.add_column("Number")
    for r in records:
        table.add_row(r.name, r.id, r.integration.value, r.number or "-")
    console.print(table)


config_app = typer.Typer(name="config", help="Configuration commands")
app.add_typer(config_app)


@config_app.command("validate")
def config_validate(path: Path | None = ConfigPath) -> None:
    """Validate configuration file."""
    from urllib.parse import urlparse

    from gatewatch.registry.hydration import HydrationMode, resolve_hydration_mode

    config = _load(path)
    console.print("[green]✓[/green] Configuration parses and validates")

    errors: list[str] = []
    if config.cache_enabled:
        parsed = urlparse(config.cache.redis.uri)
        if parsed.scheme not in ("redis", "rediss", "unix") or (parsed.scheme != "unix" and not parsed.netloc):
            errors.append(f"Invalid Redis URI '{config.cache.redis.uri}'")
        else:
            console.print("[green]✓[/green] Redis URI is valid")

    mode = resolve_hydration_mode(config)
    if mode is HydrationMode.CACHE and not config.cache_enabled:
        errors.append("Hydration mode 'cache' requires cache.redis.enabled")
    else:
        console.print(f"[green]✓[/green] Hydration mode: {mode.value}")

    if errors:
        for err in errors:
            console.print(f"[red]✗ {err}[/red]")
        console.print(f"\n[red bold]{len(errors)} validation error(s) found.[/red bold]")
        raise typer.Exit(1)
    console.print("\n[green bold]Configuration is valid.[/green bold]")


@config_app.command("show")
def config_show(path: Path | None = ConfigPath) -> None:
    """Print resolved configuration."""
    from gatewatch.registry.hydration import resolve_hydration_mode

    config = _load(path)
    console.print(f"[bold]Gatewatch[/bold] {config.gatewatch.name} v{config.gatewatch.version}\n")

    console.print("[bold]Database:[/bold]")
    console.print(f"  Path: {config.database.path}")
    console.print(f"  Client name: {config.database.client_name}")
    console.print(f"  Save instances: {config.database.save_instances}\n")

    redis_cfg = config.cache.redis
    console.print("[bold]Cache:[/bold]")
    if redis_cfg.enabled:
        console.print(f"  Redis: {redis_cfg.uri} (prefix {redis_cfg.prefix_key}, ttl {redis_cfg.ttl}s)")
        console.print(f"  Save instances: {redis_cfg.save_instances}\n")
    else:
        console.print("  disabled\n")

    console.print(f"[bold]Hydration:[/bold] {resolve_hydration_mode(config).value}")
    console.print(
        f"[bold]Probe timeouts:[/bold] database {config.health.database_timeout}s,"
        f" cache {config.health.cache_timeout}s"
    )
    console.print(f"[bold]Auth:[/bold] {'enabled' if config.auth.api_key else 'disabled'}")


def main() -> None:
    app()
