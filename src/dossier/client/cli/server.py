"""Server command for the dossier CLI.

Commands:
- serve: Run the dossier server (sync API and file server)
"""

from __future__ import annotations

import click


@click.command()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to database file (default: DOSSIER_DB_PATH or ./dossier.db).",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=3000, show_default=True, help="Port to listen on.")
def serve(db_path: str | None, host: str, port: int) -> None:
    """Serve stored files over HTTP and accept syncs.

    Files are served at their store paths with ETag validators. The sync
    API lives under /_api.
    """
    import uvicorn

    from dossier.client.cli.config import get_db_path
    from dossier.server.app import LOG_PATH, create_app, setup_logging
    from dossier.server.database import Database

    setup_logging(LOG_PATH)
    database = Database(get_db_path(db_path))
    try:
        uvicorn.run(create_app(database), host=host, port=port)
    finally:
        database.close()
