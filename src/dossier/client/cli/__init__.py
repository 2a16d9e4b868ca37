"""Command-line interface for dossier.

This module provides the main CLI entry point and assembles all commands.

Commands:
- sync: Mirror a local directory into the store
- upload: Upload a single file
- ls: List stored files with their digests
- serve: Run the server
"""

from __future__ import annotations

import click

from dossier.client.cli.server import serve
from dossier.client.cli.sync import list_files, sync, upload


@click.group()
@click.version_option(package_name="dossier")
def cli() -> None:
    """Dossier - static file hosting with content-addressed sync."""


# Sync commands
cli.add_command(sync)
cli.add_command(upload)
cli.add_command(list_files)

# Server command
cli.add_command(serve)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
]
