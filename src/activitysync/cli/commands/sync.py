"""
Sync command for CLI.
"""

import asyncio
import sys
from dataclasses import replace

import click
from rich.console import Console
from rich.panel import Panel

from ...config import config
from ...models import SyncResult
from ...service import ActivityPipeline

console = Console()


async def _run_sync() -> SyncResult:
    pipeline = ActivityPipeline(cfg=replace(config, auto_sync_enabled=False))
    try:
        pipeline.sync.initialize()
        return await pipeline.manual_sync()
    finally:
        await pipeline.dispose()


@click.command("sync")
def sync_command():
    """
    Push every queued activity to the remote table now.
    """
    try:
        result = asyncio.run(_run_sync())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if result.success:
        if result.synced:
            console.print(f"[green]Synced {result.synced} activities[/green]")
        else:
            console.print("[yellow]Nothing to sync[/yellow]")
        return

    console.print(
        Panel(
            f"[red]Sync failed: {result.error}[/red]\n"
            f"Queued activities were kept and will be retried.",
            title="Sync Error",
        )
    )
    sys.exit(1)
