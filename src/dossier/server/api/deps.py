"""FastAPI dependencies and error handling for API routes."""

from __future__ import annotations

import logging
from typing import cast

from fastapi import Request, status
from fastapi.responses import JSONResponse

from dossier.core.errors import (
    AlreadyExistsError,
    DeletedError,
    DossierError,
    InvalidNameError,
    InvalidPathError,
    NotFoundError,
)
from dossier.server.schemas import ErrorResponse
from dossier.server.storage import ContentStore

logger = logging.getLogger(__name__)

# HTTP status for each error class the store can raise
ERROR_STATUS: dict[type[DossierError], int] = {
    InvalidPathError: status.HTTP_400_BAD_REQUEST,
    InvalidNameError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
    DeletedError: status.HTTP_409_CONFLICT,
}


def get_store(request: Request) -> ContentStore:
    """Get content store from app state."""
    store: ContentStore = request.app.state.store
    return store


async def dossier_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a DossierError as a JSON error body carrying its kind."""
    error = cast(DossierError, exc)
    status_code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {error}")
    body = ErrorResponse(detail=str(error), error=error.kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())
