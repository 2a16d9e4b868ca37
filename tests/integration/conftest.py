"""Pytest fixtures for integration tests.

This module provides fixtures for end-to-end testing with a real server
running in a background thread over a SQLite store.
"""

from __future__ import annotations

import socket
import threading
import time
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
import uvicorn
from httpx import Client

from dossier.client.api import SyncClient
from dossier.server.app import create_app
from dossier.server.database import Database


@dataclass
class TestServer:
    """Container for test server resources."""

    db: Database
    url: str


class UvicornTestServer:
    """Uvicorn server running in a background thread for testing."""

    def __init__(self, app: Any, host: str = "127.0.0.1", port: int = 0) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.server: uvicorn.Server | None = None
        self.thread: threading.Thread | None = None

    def start(self) -> int:
        """Start the server and return the port."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((self.host, 0))
            self.port = s.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self.server = uvicorn.Server(config)

        self.thread = threading.Thread(target=self.server.run, daemon=True)
        self.thread.start()

        self._wait_for_ready()

        return self.port

    def _wait_for_ready(self, timeout: float = 5.0) -> None:
        """Wait for the server to be ready to accept connections."""
        start = time.time()
        while time.time() - start < timeout:
            try:
                with Client() as client:
                    response = client.get(f"http://{self.host}:{self.port}/_api/health")
                    if response.status_code == 200:
                        return
            except Exception:
                pass
            time.sleep(0.1)
        raise RuntimeError("Server failed to start in time")

    def stop(self) -> None:
        """Stop the server and wait for its thread."""
        if self.server:
            self.server.should_exit = True
        if self.thread:
            self.thread.join(timeout=5)


@pytest.fixture
def test_server(tmp_path: Path) -> Generator[TestServer, None, None]:
    """Create and start a test server with its own database."""
    db_path = tmp_path / "server" / "test.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = Database(db_path)

    server = UvicornTestServer(create_app(db))
    port = server.start()

    yield TestServer(db=db, url=f"http://127.0.0.1:{port}")

    server.stop()
    db.close()


@pytest.fixture
def sync_client(test_server: TestServer) -> Generator[SyncClient, None, None]:
    """HTTP sync client connected to the test server."""
    with SyncClient(test_server.url) as client:
        yield client


@pytest.fixture
def http(test_server: TestServer) -> Generator[Client, None, None]:
    """Plain HTTP client for fetching served files."""
    with Client(base_url=test_server.url) as client:
        yield client
