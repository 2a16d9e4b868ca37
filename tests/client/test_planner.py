"""Tests for the diff planner and the remote index."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from dossier.client.sync.planner import DiffPlanner
from dossier.client.sync.remote import RemoteIndex
from dossier.client.sync.types import CreateOperation, DeleteOperation, ReplaceOperation
from dossier.core.errors import InvalidPathError, ScanError
from dossier.core.hashing import hash_bytes
from dossier.core.types import FileRecord

H1 = hash_bytes(b"one")
H2 = hash_bytes(b"two")
H3 = hash_bytes(b"three")


def record(path: str, digest: bytes) -> FileRecord:
    return FileRecord(path, digest, Path("/local") / path.lstrip("/"))


class TestRemoteIndex:
    """Tests for RemoteIndex."""

    def test_fetch_lists_once(self) -> None:
        """Fetching should call list_files exactly once with a normalized prefix."""
        target = MagicMock()
        target.list_files.return_value = {"/p/a": H1}

        index = RemoteIndex.fetch(target, "p")

        target.list_files.assert_called_once_with("/p/")
        assert index.prefix == "/p/"
        assert dict(index) == {"/p/a": H1}

    def test_fetch_rejects_invalid_prefix(self) -> None:
        """A malformed prefix should never reach the target."""
        target = MagicMock()
        with pytest.raises(InvalidPathError):
            RemoteIndex.fetch(target, "/a//b/")
        target.list_files.assert_not_called()

    def test_snapshot_is_immutable(self) -> None:
        """The index should not change when the source dict or a copy does."""
        files = {"/a": H1}
        index = RemoteIndex("/", files)
        files["/b"] = H2
        working = index.copy()
        working.pop("/a")

        assert dict(index) == {"/a": H1}
        with pytest.raises(TypeError):
            index["/c"] = H3  # type: ignore[index]


class TestDiffPlanner:
    """Tests for DiffPlanner."""

    def test_create_and_delete(self) -> None:
        """Remote {a, b} against local {a, c} should delete b and create c."""
        index = RemoteIndex("/", {"/a": H1, "/b": H2})
        planner = DiffPlanner(index)

        operations = list(planner.plan([record("/a", H1), record("/c", H3)]))

        assert operations == [CreateOperation(record("/c", H3)), DeleteOperation("/b")]
        assert (planner.created, planner.replaced, planner.deleted, planner.unchanged) == (1, 0, 1, 1)

    def test_replace(self) -> None:
        """A changed digest should produce exactly one replace."""
        index = RemoteIndex("/", {"/a": H1})
        planner = DiffPlanner(index)

        operations = list(planner.plan([record("/a", H2)]))

        assert operations == [ReplaceOperation(record("/a", H2), previous_digest=H1)]

    def test_in_sync(self) -> None:
        """Matching trees should plan nothing."""
        index = RemoteIndex("/", {"/a": H1, "/b": H2})
        planner = DiffPlanner(index)

        assert list(planner.plan([record("/b", H2), record("/a", H1)])) == []
        assert planner.unchanged == 2
        assert planner.total == 0

    def test_deletes_are_sorted(self) -> None:
        """Deletes should come out in path order."""
        index = RemoteIndex("/", {"/z": H1, "/a": H1, "/m": H1})
        operations = list(DiffPlanner(index).plan([]))
        assert [op.path for op in operations] == ["/a", "/m", "/z"]

    def test_every_path_once(self) -> None:
        """Each path should appear in at most one operation."""
        index = RemoteIndex("/", {"/a": H1, "/b": H2, "/c": H3})
        local = [record("/a", H1), record("/b", H3), record("/d", H1)]

        paths = [op.path for op in DiffPlanner(index).plan(local)]

        assert sorted(paths) == ["/b", "/c", "/d"]
        assert len(paths) == len(set(paths))

    def test_scan_error_stops_before_deletes(self) -> None:
        """A scan error should be raised and no delete emitted."""
        index = RemoteIndex("/", {"/unreadable": H1, "/gone": H2})
        stream = [record("/new", H3), ScanError("/local/unreadable", PermissionError("denied"))]

        emitted = []
        with pytest.raises(ScanError):
            for operation in DiffPlanner(index).plan(stream):
                emitted.append(operation)

        assert emitted == [CreateOperation(record("/new", H3))]

    def test_plan_does_not_mutate_index(self) -> None:
        """Planning should work on a copy of the snapshot."""
        index = RemoteIndex("/", {"/a": H1, "/b": H2})
        list(DiffPlanner(index).plan([record("/a", H1)]))
        assert dict(index) == {"/a": H1, "/b": H2}
