"""HTTP client for the dossier server sync API.

This module provides:
- SyncClient: HTTP client implementing the SyncTarget operations
- APIError: raised for failures that are not store errors

Store errors reported by the server (invalid path, deleted, ...) are raised
as the matching dossier.core.errors class, so callers handle a remote store
exactly like a local one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from dossier.core.errors import ERRORS_BY_KIND
from dossier.core.hashing import decode_digest
from dossier.core.paths import validate_file_path, validate_path

if TYPE_CHECKING:
    from dossier.core.config import ServerConfig

logger = logging.getLogger(__name__)

SYNC_FILES_PATH = "/_api/sync/files"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SyncClient:
    """HTTP client for the dossier server sync API."""

    def __init__(
        self,
        server_url: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the sync client.

        Args:
            server_url: Base URL of the server.
            timeout: Request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self._server_url = server_url.rstrip("/")
        self._timeout = timeout
        self._client = httpx.Client(
            base_url=self._server_url,
            timeout=timeout,
            verify=verify_ssl,
        )

    @classmethod
    def from_config(cls, config: ServerConfig) -> SyncClient:
        """Create a client from a ServerConfig."""
        return cls(config.server_url, timeout=config.timeout, verify_ssl=config.verify_ssl)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> SyncClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code < 400:
            return response

        try:
            body = response.json()
        except ValueError:
            body = {"detail": response.text}
        if not isinstance(body, dict):
            body = {"detail": str(body)}

        detail = str(body.get("detail", "Unknown error"))
        error_class = ERRORS_BY_KIND.get(str(body.get("error")))
        if error_class is not None:
            raise error_class(detail)
        raise APIError(detail, response.status_code)

    @staticmethod
    def _file_url(path: str) -> str:
        return SYNC_FILES_PATH + quote(path, safe="/")

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy.

        Returns:
            True if server is healthy.
        """
        try:
            response = self._client.get("/_api/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Sync operations ===

    def list_files(self, prefix: str) -> dict[str, bytes]:
        """List digested files under a prefix.

        Args:
            prefix: Directory prefix to list recursively.

        Returns:
            Dict mapping file path to its 32-byte digest.
        """
        validate_path(prefix)
        response = self._client.get(SYNC_FILES_PATH, params={"prefix": prefix})
        self._handle_response(response)
        files = response.json()["files"]
        return {path: decode_digest(digest) for path, digest in files.items()}

    def write_chunk(self, path: str, data: bytes, start: bool, finished: bool) -> bytes | None:
        """Upload one chunk of a file.

        Args:
            path: Absolute file path in the store.
            data: Chunk bytes.
            start: First chunk; the server discards existing content.
            finished: Last chunk; the server hashes what it stored.

        Returns:
            The server-recorded digest after the last chunk, else None.
        """
        validate_file_path(path)
        response = self._client.put(
            self._file_url(path),
            content=data,
            params={"start": str(start).lower(), "finished": str(finished).lower()},
            headers={"Content-Type": "application/octet-stream"},
        )
        self._handle_response(response)
        digest = response.json().get("digest")
        logger.debug(f"Wrote {len(data)} bytes to {path} (start={start}, finished={finished})")
        return decode_digest(digest) if digest else None

    def delete(self, path: str) -> bool:
        """Delete a file.

        Args:
            path: Absolute file path in the store.

        Returns:
            True if the file existed.
        """
        validate_file_path(path)
        response = self._client.delete(self._file_url(path))
        self._handle_response(response)
        return bool(response.json()["deleted"])
