"""Tests for the concurrent local tree scanner."""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

from dossier.client.sync.scanner import DirectoryStack, LocalTreeScanner
from dossier.core.errors import ScanError
from dossier.core.hashing import hash_bytes, hash_file
from dossier.core.types import FileRecord


def scan_records(scanner: LocalTreeScanner) -> dict[str, FileRecord]:
    """Run a scan that must not fail and index records by path."""
    records: dict[str, FileRecord] = {}
    for item in scanner.scan():
        assert isinstance(item, FileRecord), item
        records[item.path] = item
    return records


class TestDirectoryStack:
    """Tests for DirectoryStack."""

    def test_lifo(self, tmp_path: Path) -> None:
        """Directories should come back last-in first-out."""
        stack = DirectoryStack()
        cancel = threading.Event()
        stack.push(tmp_path / "a", "/a/")
        stack.push(tmp_path / "b", "/b/")
        assert stack.pop(cancel) == (tmp_path / "b", "/b/")
        assert len(stack) == 1

    def test_pop_returns_none_when_all_done(self, tmp_path: Path) -> None:
        """Once every directory is done, pop should stop waiting."""
        stack = DirectoryStack()
        cancel = threading.Event()
        stack.push(tmp_path, "/")
        assert stack.pop(cancel) is not None
        stack.task_done()
        assert stack.pop(cancel) is None

    def test_pop_waits_for_pending_work(self, tmp_path: Path) -> None:
        """An idle worker should wait while another may still push."""
        stack = DirectoryStack()
        cancel = threading.Event()
        stack.push(tmp_path, "/")
        stack.pop(cancel)  # in progress elsewhere

        result: list[object] = []
        waiter = threading.Thread(target=lambda: result.append(stack.pop(cancel)))
        waiter.start()

        stack.push(tmp_path / "sub", "/sub/")
        stack.task_done()
        waiter.join(timeout=5)

        assert result == [(tmp_path / "sub", "/sub/")]

    def test_pop_returns_none_when_cancelled(self, tmp_path: Path) -> None:
        """A cancelled scan should release waiting workers."""
        stack = DirectoryStack()
        cancel = threading.Event()
        stack.push(tmp_path, "/")
        stack.pop(cancel)
        cancel.set()
        assert stack.pop(cancel) is None

    def test_release_wakes_waiting_worker(self, tmp_path: Path) -> None:
        """Releasing after a cancel should end a blocked pop right away."""
        stack = DirectoryStack()
        cancel = threading.Event()
        stack.push(tmp_path, "/")
        stack.pop(cancel)  # in progress elsewhere

        result: list[object] = []
        started = threading.Event()

        def wait() -> None:
            started.set()
            result.append(stack.pop(cancel))

        waiter = threading.Thread(target=wait)
        waiter.start()
        started.wait(timeout=5)

        cancel.set()
        stack.release()
        waiter.join(timeout=1)

        assert not waiter.is_alive()
        assert result == [None]


class TestLocalTreeScanner:
    """Tests for LocalTreeScanner."""

    def test_scans_nested_tree(self, make_tree: Callable[[dict[str, bytes]], Path]) -> None:
        """Every regular file should be reported with its store path and digest."""
        root = make_tree(
            {
                "index.html": b"<html/>",
                "css/main.css": b"body {}",
                "js/lib/app.js": b"1",
                "empty.txt": b"",
            }
        )

        records = scan_records(LocalTreeScanner(root, "/project", workers=3))

        assert set(records) == {
            "/project/index.html",
            "/project/css/main.css",
            "/project/js/lib/app.js",
            "/project/empty.txt",
        }
        assert records["/project/css/main.css"].digest == hash_bytes(b"body {}")
        assert records["/project/empty.txt"].digest == hash_bytes(b"")
        assert records["/project/js/lib/app.js"].local_path == root / "js" / "lib" / "app.js"

    def test_empty_directory(self, tmp_path: Path) -> None:
        """An empty tree should yield nothing and terminate."""
        (tmp_path / "empty").mkdir()
        assert scan_records(LocalTreeScanner(tmp_path / "empty", "/")) == {}

    def test_single_worker(self, make_tree: Callable[[dict[str, bytes]], Path]) -> None:
        """One worker should still walk the whole tree."""
        root = make_tree({f"d{i}/f{i}.txt": str(i).encode() for i in range(10)})
        records = scan_records(LocalTreeScanner(root, "/", workers=1))
        assert len(records) == 10

    def test_deep_chain_with_many_workers(self, tmp_path: Path) -> None:
        """Idle workers must not exit while a deep chain is still being walked."""
        root = tmp_path / "root"
        current = root
        for depth in range(30):
            current = current / f"level{depth}"
        current.mkdir(parents=True)
        (current / "leaf.txt").write_bytes(b"leaf")

        records = scan_records(LocalTreeScanner(root, "/", workers=8))

        assert len(records) == 1
        assert next(iter(records)).endswith("/level29/leaf.txt")

    @pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
    def test_skips_symlinks(self, make_tree: Callable[[dict[str, bytes]], Path]) -> None:
        """Symlinks should not be followed or uploaded."""
        root = make_tree({"real.txt": b"real"})
        (root / "link.txt").symlink_to(root / "real.txt")

        records = scan_records(LocalTreeScanner(root, "/"))

        assert set(records) == {"/real.txt"}

    @pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem accepting raw bytes")
    def test_skips_non_utf8_names(self, make_tree: Callable[[dict[str, bytes]], Path]) -> None:
        """Names that are not UTF-8 should be skipped with a warning."""
        root = make_tree({"good.txt": b"good"})
        with open(os.path.join(os.fsencode(root), b"bad\xff.txt"), "wb") as f:
            f.write(b"bad")

        records = scan_records(LocalTreeScanner(root, "/"))

        assert set(records) == {"/good.txt"}

    def test_unreadable_directory_is_reported(
        self, make_tree: Callable[[dict[str, bytes]], Path]
    ) -> None:
        """An unreadable directory should yield a ScanError while siblings continue."""
        root = make_tree({"ok/a.txt": b"a", "locked/b.txt": b"b"})
        real_scandir = os.scandir

        def scandir(path):
            if Path(path).name == "locked":
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        with patch("dossier.client.sync.scanner.os.scandir", side_effect=scandir):
            items = list(LocalTreeScanner(root, "/", workers=2).scan())

        errors = [item for item in items if isinstance(item, ScanError)]
        records = [item for item in items if isinstance(item, FileRecord)]
        assert len(errors) == 1
        assert errors[0].local_path == str(root / "locked")
        assert [record.path for record in records] == ["/ok/a.txt"]

    def test_unreadable_file_is_reported(
        self, make_tree: Callable[[dict[str, bytes]], Path]
    ) -> None:
        """A file that cannot be hashed should yield a ScanError naming it."""
        root = make_tree({"ok/a.txt": b"a", "bad/b.txt": b"b"})

        def failing_hash(path: Path, block_size: int) -> bytes:
            if path.name == "b.txt":
                raise OSError(5, "Input/output error", str(path))
            return hash_file(path, block_size)

        with patch("dossier.client.sync.scanner.hash_file", side_effect=failing_hash):
            items = list(LocalTreeScanner(root, "/", workers=2).scan())

        errors = [item for item in items if isinstance(item, ScanError)]
        records = [item for item in items if isinstance(item, FileRecord)]
        assert len(errors) == 1
        assert errors[0].local_path.endswith("b.txt")
        assert [record.path for record in records] == ["/ok/a.txt"]

    def test_closing_early_cancels(self, make_tree: Callable[[dict[str, bytes]], Path]) -> None:
        """Closing the stream should stop the workers."""
        root = make_tree({f"d{i}/f.txt": b"x" for i in range(50)})
        cancel = threading.Event()

        stream = LocalTreeScanner(root, "/", workers=2).scan(cancel)
        next(stream)
        stream.close()

        assert cancel.is_set()
