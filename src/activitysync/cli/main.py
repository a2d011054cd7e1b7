"""
CLI entry point.
"""

import logging
import sys

import click

from .. import __version__
from .commands.activities import activities_command, clear_command, stats_command
from .commands.status import status_command
from .commands.sync import sync_command
from .commands.watch import watch_command


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """
    activitysync CLI

    Inspect the local activity queue and push it to the remote table.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# Register commands
cli.add_command(status_command)
cli.add_command(sync_command)
cli.add_command(activities_command)
cli.add_command(stats_command)
cli.add_command(clear_command)
cli.add_command(watch_command)


def main():
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
