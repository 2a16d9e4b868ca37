"""FastAPI application for the dossier server.

This module creates and configures the FastAPI application with:
- Sync API under /_api for listing, uploading and deleting files
- Conditional file server for everything else

Usage:
    uvicorn dossier.server.app:app_factory --factory --host 127.0.0.1 --port 3000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from dossier import __version__
from dossier.core.errors import DossierError
from dossier.server.api.deps import dossier_error_handler
from dossier.server.api.router import router as api_router
from dossier.server.database import Database
from dossier.server.storage import ContentStore
from dossier.server.web import router as web_router

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("DOSSIER_DB_PATH", "dossier.db"))
LOG_PATH = Path(os.environ.get("DOSSIER_LOG_PATH", "dossier-server.log"))

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for dossier
    root_logger = logging.getLogger("dossier")
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_name)
        uvicorn_logger.addHandler(file_handler)


def create_app(store: ContentStore) -> FastAPI:
    """Create FastAPI application serving a content store.

    Tests pass an isolated store; the server entry points pass the
    configured Database.

    Args:
        store: ContentStore to serve and sync into.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("=" * 60)
        logger.info("Dossier Server Starting")
        logger.info("=" * 60)
        logger.info("  Store: %s", store.location)
        logger.info("  Logs:  %s", LOG_PATH.absolute())
        logger.info("=" * 60)

        yield

        # Shutdown
        logger.info("Dossier Server shutting down")

    application = FastAPI(
        title="Dossier Server",
        description="Static file host with content-addressed sync",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.store = store

    application.add_exception_handler(DossierError, dossier_error_handler)

    # The API goes first: the file server matches every path
    application.include_router(api_router)
    application.include_router(web_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(LOG_PATH)
    return create_app(store=Database(DB_PATH))
