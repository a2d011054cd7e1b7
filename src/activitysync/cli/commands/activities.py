"""
Activity listing and maintenance commands for CLI.
"""

import asyncio
import json
import sys
from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from ...config import config
from ...models import now_ms
from ...storage.json_queue import JSONActivityQueue

console = Console()


def _queue() -> JSONActivityQueue:
    return JSONActivityQueue(path=config.store_path, max_events=config.max_queued_events)


def _summary(data: dict) -> str:
    for key in ("path", "command", "question", "response", "acceptedText"):
        if data.get(key):
            text = str(data[key]).replace("\n", " ")
            return text if len(text) <= 60 else text[:57] + "..."
    return ""


@click.command("list")
@click.option("--limit", "-l", type=int, default=20, help="Maximum number of activities")
@click.option("--since-minutes", "-s", type=int, help="Only activities from the last N minutes")
@click.option("--format", "-f", type=click.Choice(["table", "json"]), default="table")
def activities_command(limit: int, since_minutes: int, format: str):
    """
    List queued (not yet synced) activities, most recent last.
    """
    try:
        events = asyncio.run(_queue().read_all())
        if since_minutes:
            cutoff = now_ms() - since_minutes * 60 * 1000
            events = [e for e in events if e.timestamp >= cutoff]
        events = events[-limit:] if limit > 0 else events

        if format == "json":
            console.print_json(json.dumps([e.to_dict() for e in events]))
            return

        if not events:
            console.print("[yellow]No queued activities[/yellow]")
            return

        table = Table(title="Queued Activities", show_header=True, header_style="bold magenta")
        table.add_column("Time", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Details", style="yellow")

        for event in events:
            table.add_row(
                datetime.fromtimestamp(event.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S"),
                event.type.value,
                _summary(event.data),
            )

        console.print(table)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@click.command("stats")
def stats_command():
    """
    Show queue size and time span.
    """
    try:
        stats = asyncio.run(_queue().stats())

        def fmt(ts: int) -> str:
            if not ts:
                return "-"
            return datetime.fromtimestamp(ts / 1000).strftime("%Y-%m-%d %H:%M:%S")

        table = Table(title="Activity Store", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="yellow")
        table.add_row("Events", str(stats.total_events))
        table.add_row("Oldest", fmt(stats.oldest_event_timestamp))
        table.add_row("Newest", fmt(stats.last_event_timestamp))
        table.add_row("Size on disk", f"{stats.storage_size} bytes")
        console.print(table)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@click.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def clear_command(yes: bool):
    """
    Drop every queued activity without syncing it.
    """
    if not yes:
        click.confirm("Discard all queued activities?", abort=True)
    try:
        asyncio.run(_queue().clear())
        console.print("[green]Activity queue cleared[/green]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
