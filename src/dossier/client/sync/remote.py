"""Snapshot of the files a store holds under a prefix."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from dossier.core.paths import normalize_prefix, validate_path

if TYPE_CHECKING:
    from dossier.client.target import SyncTarget

logger = logging.getLogger(__name__)


class RemoteIndex(Mapping[str, bytes]):
    """Read-only path -> digest mapping captured once per sync run."""

    def __init__(self, prefix: str, files: Mapping[str, bytes]) -> None:
        self._prefix = prefix
        self._files = MappingProxyType(dict(files))

    @classmethod
    def fetch(cls, target: SyncTarget, prefix: str) -> RemoteIndex:
        """List the target once and freeze the result.

        Args:
            target: Store to list.
            prefix: Directory prefix; normalized to end with ``/``.
        """
        prefix = normalize_prefix(prefix)
        validate_path(prefix)
        files = target.list_files(prefix)
        logger.info(f"Remote index for {prefix}: {len(files)} files")
        return cls(prefix, files)

    @property
    def prefix(self) -> str:
        return self._prefix

    def copy(self) -> dict[str, bytes]:
        """Return a mutable working copy for the planner."""
        return dict(self._files)

    def __getitem__(self, path: str) -> bytes:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)
