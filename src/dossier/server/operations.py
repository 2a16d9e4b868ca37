"""Store-side sync operations.

This module provides the three operations a sync client needs from a store:
- write_file_data: append one upload chunk, finishing with a recorded digest
- delete_file: remove a file
- list_files: map every digested file under a prefix to its digest

Both the HTTP sync API and the in-process StoreTarget call these, so a
local sync and a remote one behave identically.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dossier.core.errors import AlreadyExistsError, DeletedError
from dossier.core.hashing import Hasher
from dossier.server.storage import FileMetadata, TruncateMode

if TYPE_CHECKING:
    from dossier.server.storage import ContentStore, FileHandle

logger = logging.getLogger(__name__)


def _restart(handle: FileHandle) -> None:
    """Empty a file for a new upload.

    The old digest goes first, so an upload that never finishes leaves a
    file without a digest rather than partial content under the old one.
    """
    handle.clear_metadata()
    handle.truncate(0, TruncateMode.REMOVING_START)


def _open_for_write(store: ContentStore, path: str, start: bool) -> FileHandle:
    """Get the handle a chunk is appended to.

    A starting chunk empties an existing file or creates a new one. Any
    other chunk needs the file a previous chunk started.
    """
    handle = store.load(path)
    if handle is not None:
        if start:
            _restart(handle)
        return handle

    if not start:
        raise DeletedError(f"{path} was deleted during upload")

    try:
        return store.create(path)
    except AlreadyExistsError:
        # Lost a creation race; the winner's content is discarded below
        handle = store.load(path)
        if handle is None:
            raise DeletedError(f"{path} was deleted during upload") from None
        _restart(handle)
        return handle


def write_file_data(
    store: ContentStore,
    path: str,
    data: bytes,
    start: bool,
    finished: bool,
) -> bytes | None:
    """Write one chunk of an upload.

    Args:
        store: Store to write to.
        path: Absolute file path.
        data: Chunk bytes (may be empty).
        start: This is the first chunk; existing content is discarded.
        finished: This is the last chunk; the stored content is hashed.

    Returns:
        The digest of the stored contents when finished, None otherwise.

    Raises:
        InvalidPathError: If the path is malformed.
        DeletedError: If a continuing chunk finds no file.
    """
    handle = _open_for_write(store, path, start)
    handle.append(data)

    if not finished:
        return None

    hasher = Hasher()
    for block in handle.contents():
        hasher.update(block)
    digest = hasher.finalize()
    handle.update_metadata(FileMetadata(digest=digest))
    logger.debug(f"Finished {path} ({handle.length} bytes)")
    return digest


def delete_file(store: ContentStore, path: str) -> bool:
    """Delete a file.

    Returns:
        True if the file existed.
    """
    return store.delete(path)


def list_files(store: ContentStore, prefix: str) -> dict[str, bytes]:
    """List digested files under a prefix.

    Files that were never finished have no digest and are left out, so a
    half-written upload always looks out of date to the next sync.
    """
    files: dict[str, bytes] = {}
    for handle in store.list_recursive(prefix):
        try:
            metadata = handle.metadata()
        except DeletedError:
            continue
        if metadata is not None:
            files[handle.path] = metadata.digest
    return files
