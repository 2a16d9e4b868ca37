"""Chunked upload with digest verification.

This module provides:
- UploadSession: per-attempt state (running hash, chunk index)
- ChunkedUploader: streams a local file to a SyncTarget in fixed-size
  chunks and only reports success once the store's digest matches

A mismatch restarts the upload from byte zero: the first chunk of every
attempt carries ``start`` so the store discards what the failed attempt
wrote.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from dossier.client.sync.retry import retry_with_backoff
from dossier.core.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
)
from dossier.core.errors import RetriesExhaustedError, VerificationMismatchError
from dossier.core.hashing import Hasher
from dossier.core.paths import validate_file_path

if TYPE_CHECKING:
    from dossier.client.target import SyncTarget
    from dossier.core.config import SyncConfig

logger = logging.getLogger(__name__)


@dataclass
class UploadSession:
    """State of one upload attempt."""

    path: str
    hasher: Hasher = field(default_factory=Hasher)
    chunk_index: int = 0
    first: bool = True
    bytes_sent: int = 0


class ChunkedUploader:
    """Upload files chunk by chunk and verify the stored digest."""

    def __init__(
        self,
        target: SyncTarget,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the uploader.

        Args:
            target: Store to upload into.
            chunk_size: Bytes per chunk.
            max_retries: Re-uploads allowed after a verification mismatch.
            initial_backoff: Delay before the first re-upload, in seconds.
            max_backoff: Upper bound for the delay, in seconds.
            sleep: Called with each delay.
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._target = target
        self._chunk_size = chunk_size
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._sleep = sleep

    @classmethod
    def from_config(cls, target: SyncTarget, config: SyncConfig) -> ChunkedUploader:
        """Create an uploader tuned by a SyncConfig."""
        return cls(
            target,
            chunk_size=config.chunk_size,
            max_retries=config.max_retries,
            initial_backoff=config.initial_backoff,
            max_backoff=config.max_backoff,
        )

    def upload(
        self,
        local_path: Path,
        remote_path: str,
        expected_digest: bytes | None = None,
    ) -> bytes:
        """Upload a file and verify it.

        Args:
            local_path: File to read.
            remote_path: Absolute store path to write.
            expected_digest: Digest the store must end up with. Defaults to
                the digest of the bytes sent.

        Returns:
            The verified digest.

        Raises:
            InvalidPathError: If remote_path is not a valid file path.
            RetriesExhaustedError: If every attempt failed verification.
            OSError: If the local file cannot be read.
        """
        validate_file_path(remote_path)

        def attempt() -> bytes:
            return self._upload_once(Path(local_path), remote_path, expected_digest)

        try:
            digest: bytes = retry_with_backoff(
                attempt,
                max_retries=self._max_retries,
                initial_backoff=self._initial_backoff,
                max_backoff=self._max_backoff,
                retryable_exceptions=(VerificationMismatchError,),
                sleep=self._sleep,
            )
        except VerificationMismatchError as e:
            raise RetriesExhaustedError(remote_path, self._max_retries + 1) from e
        return digest

    def _upload_once(
        self,
        local_path: Path,
        remote_path: str,
        expected_digest: bytes | None,
    ) -> bytes:
        session = UploadSession(remote_path)
        stored: bytes | None = None

        with open(local_path, "rb") as f:
            chunk = f.read(self._chunk_size)
            while True:
                # Read one chunk ahead so the last one can be flagged
                next_chunk = f.read(self._chunk_size) if chunk else b""
                finished = not next_chunk

                session.hasher.update(chunk)
                stored = self._target.write_chunk(
                    remote_path, chunk, start=session.first, finished=finished
                )
                session.first = False
                session.chunk_index += 1
                session.bytes_sent += len(chunk)

                if finished:
                    break
                chunk = next_chunk

        local_digest = session.hasher.finalize()
        expected = expected_digest if expected_digest is not None else local_digest
        actual = stored if stored is not None else local_digest
        if actual != expected:
            raise VerificationMismatchError(remote_path, expected, actual)

        logger.debug(
            f"Uploaded {local_path} to {remote_path} "
            f"({session.bytes_sent} bytes, {session.chunk_index} chunks)"
        )
        return actual
