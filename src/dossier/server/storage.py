"""Content store abstraction.

This module provides:
- ContentStore: abstract interface for a path-addressed file store
- FileHandle: abstract handle on one stored file
- FileMetadata: metadata recorded per file (the content digest)
- TruncateMode: which end of a file a truncation removes
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class TruncateMode(Enum):
    """Which bytes a truncation discards."""

    REMOVING_START = "removing_start"
    REMOVING_END = "removing_end"


@dataclass(frozen=True)
class FileMetadata:
    """Metadata attached to a stored file.

    Attributes:
        digest: Digest of the file contents when it was last finished.
    """

    digest: bytes


class FileHandle(ABC):
    """Handle on a single stored file.

    Every method raises DeletedError if the file was removed after the
    handle was obtained.
    """

    @property
    @abstractmethod
    def path(self) -> str:
        """Absolute store path of the file."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Last segment of the path."""

    @property
    @abstractmethod
    def length(self) -> int:
        """Current content length in bytes."""

    @abstractmethod
    def append(self, data: bytes) -> None:
        """Append bytes to the end of the file."""

    @abstractmethod
    def truncate(self, length: int, mode: TruncateMode) -> None:
        """Shrink the file so that at most *length* bytes remain.

        Args:
            length: Number of bytes to keep.
            mode: REMOVING_START keeps the last bytes, REMOVING_END the first.
        """

    @abstractmethod
    def update_metadata(self, metadata: FileMetadata) -> None:
        """Replace the file's metadata."""

    @abstractmethod
    def clear_metadata(self) -> None:
        """Drop the file's metadata until the next update_metadata."""

    @abstractmethod
    def metadata(self) -> FileMetadata | None:
        """Return the file's metadata, or None if none was recorded yet."""

    @abstractmethod
    def contents(self) -> Iterator[bytes]:
        """Stream the file contents in storage order."""


class ContentStore(ABC):
    """Abstract interface for the file store served and synced by dossier."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of where files are stored."""

    @abstractmethod
    def list_recursive(self, prefix: str) -> list[FileHandle]:
        """List every file whose path starts with the directory *prefix*."""

    @abstractmethod
    def list(self, prefix: str) -> list[FileHandle]:
        """List the files directly inside the directory *prefix*."""

    @abstractmethod
    def load(self, path: str) -> FileHandle | None:
        """Open a file.

        Returns:
            The handle, or None if no file exists at *path*.
        """

    @abstractmethod
    def create(self, path: str) -> FileHandle:
        """Create an empty file.

        Raises:
            AlreadyExistsError: If a file already exists at *path*.
        """

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Delete a file.

        Returns:
            True if the file was deleted, False if it didn't exist.
        """
