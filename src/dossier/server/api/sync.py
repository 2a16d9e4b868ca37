"""Sync API routes.

HTTP rendering of the store-side sync operations. Store errors propagate to
the DossierError handler registered by the app, which maps them to status
codes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from dossier.core.hashing import encode_digest
from dossier.server import operations
from dossier.server.api.deps import get_store
from dossier.server.schemas import DeleteFileResponse, FileListResponse, WriteFileResponse
from dossier.server.storage import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/files", response_model=FileListResponse)
def list_files(
    prefix: str = "/",
    store: ContentStore = Depends(get_store),
) -> FileListResponse:
    """List digested files under a prefix."""
    files = operations.list_files(store, prefix)
    return FileListResponse(files={path: encode_digest(digest) for path, digest in files.items()})


@router.put("/files/{path:path}", response_model=WriteFileResponse)
async def write_file(
    path: str,
    request: Request,
    start: bool = False,
    finished: bool = False,
    store: ContentStore = Depends(get_store),
) -> WriteFileResponse:
    """Write one upload chunk; the raw request body is the chunk."""
    data = await request.body()
    # Store calls block on the write lock and re-hash on finish
    digest = await run_in_threadpool(
        operations.write_file_data, store, "/" + path, data, start, finished
    )
    if digest is None:
        return WriteFileResponse()
    logger.info(f"Stored /{path}")
    return WriteFileResponse(digest=encode_digest(digest))


@router.delete("/files/{path:path}", response_model=DeleteFileResponse)
def delete_file(
    path: str,
    store: ContentStore = Depends(get_store),
) -> DeleteFileResponse:
    """Delete a file."""
    deleted = operations.delete_file(store, "/" + path)
    if deleted:
        logger.info(f"Deleted /{path}")
    return DeleteFileResponse(deleted=deleted)
