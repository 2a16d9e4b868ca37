"""Configuration utilities for the dossier CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
import httpx

from dossier.client.api import APIError, SyncClient
from dossier.client.target import StoreTarget, SyncTarget
from dossier.core.config import ServerConfig
from dossier.core.errors import DossierError
from dossier.server.database import Database

DEFAULT_DB_PATH = "dossier.db"

# Failures a command reports as "Error: ..." with exit status 1
CLI_ERRORS: tuple[type[Exception], ...] = (DossierError, APIError, httpx.HTTPError, OSError)


def get_server_url(server_url: str | None) -> str | None:
    """Resolve the server URL from the option or DOSSIER_SERVER_URL."""
    return server_url or os.environ.get("DOSSIER_SERVER_URL") or None


def get_db_path(db_path: str | None) -> Path:
    """Resolve the database path from the option or DOSSIER_DB_PATH."""
    return Path(db_path or os.environ.get("DOSSIER_DB_PATH", DEFAULT_DB_PATH))


@contextmanager
def open_target(server_url: str | None, db_path: str | None) -> Iterator[SyncTarget]:
    """Open the sync target selected by the --server/--db options.

    A server URL (option or environment) selects the HTTP sync API,
    otherwise the database file is opened directly.
    """
    if server_url and db_path:
        raise click.UsageError("--server and --db are mutually exclusive")

    url = None if db_path else get_server_url(server_url)
    if url:
        with SyncClient.from_config(ServerConfig(server_url=url)) as client:
            yield client
        return

    database = Database(get_db_path(db_path))
    try:
        yield StoreTarget(database)
    finally:
        database.close()


def setup_cli_logging(verbose: bool) -> None:
    """Send dossier log records to stderr.

    Only warnings and errors are shown unless verbose is set.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    dossier_logger = logging.getLogger("dossier")
    for existing in dossier_logger.handlers[:]:
        dossier_logger.removeHandler(existing)
    dossier_logger.addHandler(handler)
    dossier_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    dossier_logger.propagate = False
