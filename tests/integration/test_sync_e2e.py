"""End-to-end integration tests for the sync workflow.

Tests the complete flow: local tree -> HTTP sync API -> served files.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from httpx import Client

from dossier.client.api import SyncClient
from dossier.client.sync import Synchronizer, upload_file
from dossier.core.config import SyncConfig
from dossier.core.errors import DeletedError, InvalidPathError
from dossier.core.hashing import encode_digest, hash_bytes

SITE = {
    "index.html": b"<html>home</html>",
    "blog/index.html": b"<html>blog</html>",
    "blog/first post.html": b"<html>first</html>",
    "static/app.js": b"console.log('hi')",
    "static/big.bin": bytes(range(256)) * 300,
}


@pytest.fixture
def synchronizer(sync_client: SyncClient) -> Synchronizer:
    return Synchronizer(sync_client, SyncConfig(workers=4, chunk_size=4096))


class TestSyncOverHTTP:
    """Sync a local tree through the HTTP API and read it back."""

    def test_sync_then_serve(
        self,
        synchronizer: Synchronizer,
        http: Client,
        make_tree: Callable[[dict[str, bytes]], Path],
    ) -> None:
        """Every synced file should be served with its digest as ETag."""
        report = synchronizer.sync(make_tree(SITE), "/site")

        assert report.succeeded
        assert report.created == len(SITE)

        for relative, data in SITE.items():
            response = http.get(f"/site/{relative}")
            assert response.status_code == 200, relative
            assert response.content == data
            assert response.headers["etag"] == f'"{encode_digest(hash_bytes(data))}"'

    def test_index_and_conditional_get(
        self,
        synchronizer: Synchronizer,
        http: Client,
        make_tree: Callable[[dict[str, bytes]], Path],
    ) -> None:
        """Directory URLs serve their index and revalidation gives 304."""
        synchronizer.sync(make_tree(SITE), "/site")

        redirect = http.get("/site/blog", follow_redirects=False)
        assert redirect.status_code == 307
        assert redirect.headers["location"] == "/site/blog/"

        page = http.get("/site/blog/")
        assert page.content == SITE["blog/index.html"]

        cached = http.get("/site/blog/", headers={"If-None-Match": page.headers["etag"]})
        assert cached.status_code == 304
        assert cached.content == b""

    def test_resync_mirrors_changes(
        self,
        synchronizer: Synchronizer,
        sync_client: SyncClient,
        http: Client,
        make_tree: Callable[[dict[str, bytes]], Path],
    ) -> None:
        """Changes, additions and removals should all reach the server."""
        root = make_tree(SITE)
        synchronizer.sync(root, "/site")

        (root / "index.html").write_bytes(b"<html>v2</html>")
        (root / "static" / "app.js").unlink()
        (root / "about.html").write_bytes(b"<html>about</html>")

        report = synchronizer.sync(root, "/site")

        assert (report.created, report.replaced, report.deleted) == (1, 1, 1)
        assert http.get("/site/index.html").content == b"<html>v2</html>"
        assert http.get("/site/static/app.js").status_code == 404
        assert "/site/about.html" in sync_client.list_files("/site/")

        assert synchronizer.sync(root, "/site").in_sync


class TestSyncClientErrors:
    """Errors reported by the server arrive as dossier errors."""

    def test_continuation_of_unknown_file(self, sync_client: SyncClient) -> None:
        """A continuing chunk with no started upload is a DeletedError."""
        with pytest.raises(DeletedError):
            sync_client.write_chunk("/never-started.txt", b"x", start=False, finished=True)

    def test_invalid_path_checked_locally(self, sync_client: SyncClient) -> None:
        """Malformed paths never leave the client."""
        with pytest.raises(InvalidPathError):
            sync_client.write_chunk("/a//b", b"x", start=True, finished=True)

    def test_upload_single_file(self, sync_client: SyncClient, http: Client, tmp_path: Path) -> None:
        """upload_file should place the file under a directory destination."""
        local = tmp_path / "notes.txt"
        local.write_bytes(b"notes")

        path = upload_file(sync_client, local, "/docs/", SyncConfig(workers=1, chunk_size=2))

        assert path == "/docs/notes.txt"
        assert http.get("/docs/notes.txt").content == b"notes"
        assert sync_client.delete(path) is True
        assert http.get("/docs/notes.txt").status_code == 404
