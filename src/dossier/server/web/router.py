"""Conditional file server.

Serves every stored file at its own path:
- ETag is the quoted base64url content digest
- If-None-Match listing the current digest answers 304 without a body
- A directory holding an ``index.*`` file serves that file, redirecting to
  the trailing-slash URL first
- HEAD and OPTIONS are answered, any other method gets 405
"""

from __future__ import annotations

import logging
import mimetypes
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse, RedirectResponse, StreamingResponse

from dossier.core.errors import DossierError, InvalidPathError, NotFoundError
from dossier.core.hashing import decode_digest, encode_digest
from dossier.core.paths import decode_escaped_path
from dossier.server.api.deps import ERROR_STATUS, get_store
from dossier.server.storage import ContentStore, FileHandle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])

ALLOW = "OPTIONS, GET, HEAD"

# Methods routed here so unsupported ones get a proper 405
ROUTED_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]

INDEX_PREFIX = "index."


def parse_etags(header: str) -> set[bytes]:
    """Parse an If-None-Match header into the digests it lists.

    Entries that are not valid digests are ignored. An entry without a
    quoted tag makes the whole header unusable, so nothing matches.
    """
    digests: set[bytes] = set()
    for field in header.split(","):
        parts = field.split('"')
        if len(parts) < 3:
            return set()
        try:
            digests.add(decode_digest(parts[1]))
        except ValueError:
            continue
    return digests


def format_etag(digest: bytes) -> str:
    """Render a digest as a strong ETag value."""
    return f'"{encode_digest(digest)}"'


def _guess_mime(name: str) -> str | None:
    mime, _ = mimetypes.guess_type(name)
    return mime


def _request_path(request: Request) -> str:
    """Decode the path exactly as the client sent it.

    The routing path has already been percent-decoded, which would turn a
    ``%2F`` inside a segment into a separator.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return decode_escaped_path(request.url.path)
    try:
        raw_path = raw.split(b"?", 1)[0].decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidPathError("path is not valid UTF-8") from e
    return decode_escaped_path(raw_path)


def _resolve(store: ContentStore, path: str) -> tuple[FileHandle | None, bool]:
    """Find the file for a request path.

    Returns:
        Tuple of (handle or None, whether to redirect to ``path + "/"``).
    """
    handle = None if path.endswith("/") else store.load(path)
    if handle is not None:
        return handle, False

    for child in store.list(path):
        if child.name.startswith(INDEX_PREFIX):
            return child, not path.endswith("/")
    return None, False


def _file_response(request: Request, handle: FileHandle) -> Response:
    metadata = handle.metadata()
    headers: dict[str, str] = {}
    mime = _guess_mime(handle.name)
    if mime:
        headers["Content-Type"] = mime
    if metadata is not None:
        headers["ETag"] = format_etag(metadata.digest)

    not_modified = False
    if_none_match = request.headers.get("if-none-match")
    if if_none_match is not None and metadata is not None:
        not_modified = metadata.digest in parse_etags(if_none_match)
    status_code = status.HTTP_304_NOT_MODIFIED if not_modified else status.HTTP_200_OK

    if request.method == "HEAD":
        headers["Content-Length"] = str(handle.length)
        return Response(status_code=status_code, headers=headers)

    if not_modified:
        return Response(status_code=status_code, headers=headers)

    headers["Content-Length"] = str(handle.length)
    return StreamingResponse(handle.contents(), status_code=status_code, headers=headers)


def _serve(request: Request, store: ContentStore) -> Response:
    if request.method not in ("GET", "HEAD", "OPTIONS"):
        return PlainTextResponse(
            f"method {request.method} not allowed",
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            headers={"Allow": ALLOW},
        )

    path = _request_path(request)
    handle, redirect = _resolve(store, path)
    if redirect:
        return RedirectResponse(
            quote(path, safe="/") + "/",
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )
    if handle is None:
        raise NotFoundError("Not found")

    if request.method == "OPTIONS":
        return Response(status_code=status.HTTP_200_OK, headers={"Allow": ALLOW})
    return _file_response(request, handle)


@router.api_route("/{path:path}", methods=ROUTED_METHODS, include_in_schema=False)
def serve_file(request: Request, store: ContentStore = Depends(get_store)) -> Response:
    """Serve a stored file, never letting a failure take the server down."""
    try:
        return _serve(request, store)
    except DossierError as e:
        status_code = ERROR_STATUS.get(type(e), status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
            return PlainTextResponse(str(e), status_code=status_code)
        logger.exception(f"Error serving {request.url.path}")
        return PlainTextResponse(f"an error occurred: {e}", status_code=status_code)
    except Exception as e:
        logger.exception(f"Error serving {request.url.path}")
        return PlainTextResponse(
            f"an error occurred: {e}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
