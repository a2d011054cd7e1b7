"""
Watch command for CLI.
"""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console

from ...capture.filesystem import start_filesystem_capture
from ...capture.signals import EditorSignals
from ...config import config
from ...models import ActivityEvent
from ...service import ActivityPipeline

console = Console()


async def _watch(root: Path, echo: bool) -> None:
    editor = EditorSignals()
    async with ActivityPipeline() as pipeline:
        pipeline.add_default_contributors(editor=editor)
        if echo:
            def show(event: ActivityEvent) -> None:
                console.print(f"[cyan]{event.type.value}[/cyan] {event.data.get('path', '')}")

            pipeline.on_activity_event(show)

        observer = start_filesystem_capture(str(root), editor)
        await pipeline.wait_for_contributors()
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            observer.stop()
            observer.join(timeout=5.0)


@click.command("watch")
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--quiet", "-q", is_flag=True, help="Do not print captured activities")
def watch_command(root: Path, quiet: bool):
    """
    Capture file activity under ROOT until interrupted.
    """
    console.print(f"[green]Watching {root} (store: {config.store_path})[/green]")
    console.print("Press Ctrl+C to stop...")
    try:
        asyncio.run(_watch(root, echo=not quiet))
    except KeyboardInterrupt:
        console.print("\nShutting down...")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
