"""Shared types for dossier.

This module defines types used by both client and server.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class FileRecord:
    """A file's store path and content digest.

    The unit exchanged between the scanner, the remote index and the diff
    planner. Records produced by the local scanner also remember the file
    they were read from.

    Attributes:
        path: Absolute store path.
        digest: 32-byte content digest.
        local_path: Local source file, None for remote records.
    """

    path: str
    digest: bytes
    local_path: Path | None = None

    def __repr__(self) -> str:
        """Human-readable representation."""
        return f"FileRecord({self.path!r}, digest={self.digest.hex()[:12]}...)"
