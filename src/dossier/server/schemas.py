"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Sync schemas ===


class FileListResponse(BaseModel):
    """Digested files under a prefix, keyed by path.

    Digests are base64url text without padding.
    """

    files: dict[str, str]


class WriteFileResponse(BaseModel):
    """Result of writing one upload chunk.

    The digest is only set once the final chunk was written.
    """

    digest: str | None = None


class DeleteFileResponse(BaseModel):
    """Result of a delete request."""

    deleted: bool


class ErrorResponse(BaseModel):
    """Error body returned by the sync API."""

    detail: str
    error: str
