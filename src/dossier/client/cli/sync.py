"""Sync commands for the dossier CLI.

Commands:
- sync: Mirror a local directory into the store
- upload: Upload a single file
- ls: List stored files and their digests
"""

from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import click

from dossier.client.cli.config import CLI_ERRORS, open_target, setup_cli_logging

server_option = click.option(
    "--server",
    "server_url",
    default=None,
    help="Server URL (default: DOSSIER_SERVER_URL).",
)
db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write to a local database file instead of a server.",
)


@click.command()
@click.argument("local", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("remote")
@server_option
@db_option
@click.option("--workers", "-w", type=click.IntRange(min=1), default=None, help="Worker threads per pool.")
@click.option("--dry-run", is_flag=True, help="Show the plan without changing anything.")
@click.option("--keep-going", is_flag=True, help="Keep syncing other files after a failure.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def sync(
    local: Path,
    remote: str,
    server_url: str | None,
    db_path: str | None,
    workers: int | None,
    dry_run: bool,
    keep_going: bool,
    verbose: bool,
) -> None:
    """Make REMOTE mirror the LOCAL directory.

    Uploads new and changed files and deletes stored files that no longer
    exist locally.
    """
    from dossier.client.sync import (
        CreateOperation,
        ReplaceOperation,
        SyncProgress,
        Synchronizer,
    )
    from dossier.core.config import SyncConfig

    setup_cli_logging(verbose)

    config = SyncConfig.from_env()
    if workers:
        config = replace(config, workers=workers)
    if keep_going:
        config = replace(config, stop_on_error=False)

    def on_progress(progress: SyncProgress) -> None:
        click.echo(f"{progress.path} ({progress.completed}/{progress.total})")

    try:
        with open_target(server_url, db_path) as target:
            report = Synchronizer(target, config).sync(
                local, remote, on_progress=on_progress, dry_run=dry_run
            )
    except CLI_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if dry_run:
        for operation in report.operations:
            if isinstance(operation, CreateOperation):
                marker = "+"
            elif isinstance(operation, ReplaceOperation):
                marker = "~"
            else:
                marker = "-"
            click.echo(f"  {marker} {operation.path}")

    if report.errors:
        click.echo(click.style("\nErrors:", fg="red"))
        for path, message in report.errors:
            click.echo(f"  ✗ {path}: {message}")

    if report.in_sync:
        click.echo("Everything is up to date.")
    else:
        click.echo(
            f"\n{'Planned' if dry_run else 'Sync complete'}: "
            f"{report.created} created, {report.replaced} replaced, "
            f"{report.deleted} deleted, {report.unchanged} unchanged"
        )

    if not report.succeeded:
        sys.exit(1)


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote")
@server_option
@db_option
def upload(file: Path, remote: str, server_url: str | None, db_path: str | None) -> None:
    """Upload FILE to REMOTE.

    A REMOTE ending in "/" is a directory; the file keeps its name.
    """
    from dossier.client.sync import upload_file
    from dossier.core.config import SyncConfig

    try:
        with open_target(server_url, db_path) as target:
            remote_path = upload_file(target, file, remote, SyncConfig.from_env())
    except CLI_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"File uploaded to {remote_path}")


@click.command("ls")
@click.argument("prefix", default="/")
@server_option
@db_option
def list_files(prefix: str, server_url: str | None, db_path: str | None) -> None:
    """List stored files under PREFIX with their digests."""
    from dossier.core.hashing import encode_digest
    from dossier.core.paths import normalize_prefix

    try:
        with open_target(server_url, db_path) as target:
            files = target.list_files(normalize_prefix(prefix))
    except CLI_ERRORS as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for path in sorted(files):
        click.echo(f"{path}  {encode_digest(files[path])}")
