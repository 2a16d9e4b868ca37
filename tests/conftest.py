"""Shared fixtures for dossier tests."""

from __future__ import annotations

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from dossier.client.target import StoreTarget
from dossier.server.database import Database


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def target(db: Database) -> StoreTarget:
    """Create an in-process sync target over the test database."""
    return StoreTarget(db)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, bytes]], Path]:
    """Return a helper that writes a local directory tree.

    Keys are relative paths, values the file contents.
    """

    def _make(files: dict[str, bytes]) -> Path:
        root = tmp_path / "site"
        root.mkdir(exist_ok=True)
        for relative, data in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return root

    return _make
