"""
Status command for CLI.
"""

import asyncio
import sys

import click
from rich.console import Console
from rich.table import Table

from ...config import config
from ...storage.json_queue import JSONActivityQueue

console = Console()


@click.command("status")
def status_command():
    """
    Show the local queue and remote sync configuration.
    """
    try:
        queue = JSONActivityQueue(path=config.store_path, max_events=config.max_queued_events)
        document = asyncio.run(queue.read_document())

        table = Table(title="Activity Sync Status", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Store", str(config.store_path))
        table.add_row("Pending activities", str(len(document["activities"])))
        table.add_row("Last sync", document.get("lastSync") or "never")
        table.add_row("Schema version", document["metadata"].get("version", "?"))
        table.add_row(
            "Remote",
            f"{config.remote_endpoint} ({config.table_name})"
            if config.remote_endpoint else "[red]not configured[/red]",
        )
        table.add_row("Credential", "set" if config.remote_credential else "[red]missing[/red]")
        table.add_row(
            "Auto-sync",
            f"every {config.sync_interval_ms / 1000:g}s" if config.auto_sync_enabled else "disabled",
        )

        console.print(table)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
