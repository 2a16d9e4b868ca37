"""Sync targets.

A sync target is the store a sync run writes to. The engine only needs
three calls from it, so the same run can go straight to a local store
(StoreTarget) or over HTTP to a dossier server (SyncClient).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from dossier.server import operations

if TYPE_CHECKING:
    from dossier.server.storage import ContentStore


class SyncTarget(Protocol):
    """Operations the sync engine performs against a store."""

    def write_chunk(self, path: str, data: bytes, start: bool, finished: bool) -> bytes | None:
        """Write one upload chunk.

        Returns:
            The digest recorded by the store once ``finished`` is set,
            None for intermediate chunks (or if the store records none).
        """
        ...

    def delete(self, path: str) -> bool:
        """Delete a file, returning whether it existed."""
        ...

    def list_files(self, prefix: str) -> dict[str, bytes]:
        """Map every digested file under *prefix* to its digest."""
        ...


class StoreTarget:
    """Sync target writing directly into an in-process ContentStore."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store

    @property
    def store(self) -> ContentStore:
        return self._store

    def write_chunk(self, path: str, data: bytes, start: bool, finished: bool) -> bytes | None:
        return operations.write_file_data(self._store, path, data, start, finished)

    def delete(self, path: str) -> bool:
        return operations.delete_file(self._store, path)

    def list_files(self, prefix: str) -> dict[str, bytes]:
        return operations.list_files(self._store, prefix)
