"""Command-line interface for mcwatch."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .agent import run_agent
from .config import load_settings
from .errors import ConfigError, FileSystemError, ProtocolError, StatusConnectionError
from .population import count_entries
from .probe import StatusProbe
from .signing import rfc1123_date, sign

app = typer.Typer(
    name="mcwatch",
    help="Minecraft server telemetry sidecar for Azure Log Analytics",
    add_completion=False,
)

console = Console()


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


@app.command()
def run(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML settings file"),
):
    """Start polling and publishing until SIGTERM/SIGINT."""
    raise typer.Exit(run_agent(config))


@app.command()
def status(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML settings file"),
):
    """Query the server once and show what would be published."""
    try:
        settings = load_settings(config)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    probe = StatusProbe(timeout=settings.probe_timeout)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Querying {settings.address}...", total=None)
        try:
            reply = run_async(probe.query(settings.host, settings.port))
        except (StatusConnectionError, ProtocolError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1)

    try:
        population = str(count_entries(settings.data_volume))
    except FileSystemError as e:
        population = f"[yellow]unavailable ({e})[/yellow]"

    table = Table(title=f"Server {settings.address}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Pod", settings.pod_name)
    table.add_row("Version", reply.version_name or "-")
    table.add_row("Description", reply.description or "-")
    table.add_row("Online Players", str(reply.online_players))
    table.add_row("Max Players", str(reply.max_players))
    table.add_row("Population", population)

    console.print(table)


@app.command("sign")
def sign_command(
    customer_id: str = typer.Option(..., "--customer-id", help="Log Analytics workspace id"),
    shared_key: str = typer.Option(..., "--shared-key", help="Base64 workspace key"),
    length: int = typer.Option(..., "--length", "-l", help="Body length in bytes"),
    date: Optional[str] = typer.Option(None, "--date", "-d", help="RFC 1123 date (default: now)"),
    method: str = typer.Option("POST", "--method", "-m"),
    resource: str = typer.Option("/api/logs", "--resource", "-r"),
):
    """Print the Authorization header for a request."""
    date = date or rfc1123_date()
    try:
        signature = sign(customer_id, shared_key, date, length, method, resource)
    except ValueError as e:
        console.print(f"[red]Invalid shared key: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"x-ms-date: {date}", highlight=False, soft_wrap=True)
    console.print(f"Authorization: {signature}", highlight=False, soft_wrap=True)


if __name__ == "__main__":
    app()
