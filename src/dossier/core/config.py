"""Shared configuration classes for dossier.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# Default upload chunk size (bounds memory per in-flight upload)
DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB

# Default retry configuration for upload verification
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 0.5  # seconds
DEFAULT_MAX_BACKOFF = 30.0  # seconds


def default_worker_count() -> int:
    """Return the default worker pool size: twice the available CPUs."""
    return 2 * (os.cpu_count() or 1)


@dataclass
class ServerConfig:
    """Configuration for connecting to a dossier server.

    Attributes:
        server_url: Base URL of the server (e.g., "http://127.0.0.1:3000").
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")


@dataclass
class SyncConfig:
    """Tuning for a sync run.

    Attributes:
        workers: Threads per pool (scanner and executor pools are separate).
        chunk_size: Bytes per uploaded chunk.
        max_retries: Full re-uploads allowed after a verification mismatch.
        initial_backoff: First delay between verification retries, in seconds.
        max_backoff: Upper bound for the retry delay, in seconds.
        stop_on_error: Stop taking new operations after the first failure.
    """

    workers: int = field(default_factory=default_worker_count)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF
    stop_on_error: bool = True

    def __post_init__(self) -> None:
        """Validate values."""
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Build a config from DOSSIER_* environment variables.

        Unset variables fall back to the defaults.
        """
        workers = os.environ.get("DOSSIER_WORKERS")
        chunk_size = os.environ.get("DOSSIER_CHUNK_SIZE")
        max_retries = os.environ.get("DOSSIER_MAX_RETRIES")
        return cls(
            workers=int(workers) if workers else default_worker_count(),
            chunk_size=int(chunk_size) if chunk_size else DEFAULT_CHUNK_SIZE,
            max_retries=int(max_retries) if max_retries else DEFAULT_MAX_RETRIES,
        )
