"""Concurrent local tree scanner.

This module provides:
- DirectoryStack: shared work stack of directories still to list
- LocalTreeScanner: walks a directory tree with a pool of threads and
  streams a FileRecord (store path + digest) for every regular file

Workers pop a directory, push its subdirectories back onto the stack and
hash its files. The stack counts directories that are taken but not yet
finished, so an idle worker waits while a sibling may still push more work
instead of exiting early.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from dossier.core.config import default_worker_count
from dossier.core.errors import ScanError
from dossier.core.hashing import HASH_BLOCK_SIZE, hash_file
from dossier.core.paths import join_path, normalize_prefix
from dossier.core.types import FileRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# Seconds an idle worker waits before re-checking a cancel set by the caller
IDLE_WAIT = 0.1

# Marks a worker exiting in the results queue
_WORKER_DONE = object()


class DirectoryStack:
    """Thread-safe LIFO of (local directory, store prefix) pairs."""

    def __init__(self) -> None:
        self._items: list[tuple[Path, str]] = []
        self._pending = 0  # pushed but not yet marked done
        self._condition = threading.Condition()

    def push(self, directory: Path, prefix: str) -> None:
        """Add a directory to scan."""
        with self._condition:
            self._items.append((directory, prefix))
            self._pending += 1
            self._condition.notify()

    def pop(self, cancel: threading.Event) -> tuple[Path, str] | None:
        """Take the next directory, waiting while others may still push.

        Returns:
            The next directory, or None once every pushed directory is done
            or the scan was cancelled.
        """
        with self._condition:
            while not self._items:
                if self._pending == 0 or cancel.is_set():
                    return None
                self._condition.wait(IDLE_WAIT)
            return self._items.pop()

    def task_done(self) -> None:
        """Mark a popped directory as fully listed."""
        with self._condition:
            self._pending -= 1
            if self._pending == 0:
                self._condition.notify_all()

    def release(self) -> None:
        """Wake every waiting worker so it re-checks for cancellation."""
        with self._condition:
            self._condition.notify_all()

    def __len__(self) -> int:
        with self._condition:
            return len(self._items)


class LocalTreeScanner:
    """Hash every regular file under a local directory concurrently.

    Usage:
        scanner = LocalTreeScanner(Path("site"), "/project/")
        for item in scanner.scan():
            if isinstance(item, ScanError):
                raise item
            print(item.path, item.digest.hex())
    """

    def __init__(
        self,
        root: Path,
        remote_prefix: str,
        workers: int | None = None,
        block_size: int = HASH_BLOCK_SIZE,
    ) -> None:
        """Initialize the scanner.

        Args:
            root: Local directory to walk.
            remote_prefix: Store directory that mirrors *root*.
            workers: Number of threads (default: twice the CPU count).
            block_size: Bytes read per call while hashing.
        """
        self._root = Path(root)
        self._prefix = normalize_prefix(remote_prefix)
        self._workers = workers or default_worker_count()
        self._block_size = block_size

    def scan(self, cancel: threading.Event | None = None) -> Iterator[FileRecord | ScanError]:
        """Stream FileRecords for every regular file, in no particular order.

        A failure on one entry is yielded as a ScanError and ends only the
        worker that hit it. Closing the generator early cancels the scan.

        Args:
            cancel: Set to stop workers promptly; created if not supplied.

        Yields:
            FileRecord or ScanError items.
        """
        if cancel is None:
            cancel = threading.Event()

        stack = DirectoryStack()
        stack.push(self._root, self._prefix)
        results: queue.Queue[object] = queue.Queue()

        threads = [
            threading.Thread(
                target=self._worker,
                args=(stack, results, cancel),
                name=f"scanner-{i}",
                daemon=True,
            )
            for i in range(self._workers)
        ]
        for thread in threads:
            thread.start()
        logger.debug(f"Scanning {self._root} with {len(threads)} workers")

        running = len(threads)
        try:
            while running:
                item = results.get()
                if item is _WORKER_DONE:
                    running -= 1
                    continue
                yield item
        finally:
            if running:
                cancel.set()
                stack.release()
            for thread in threads:
                thread.join()

    def _worker(
        self,
        stack: DirectoryStack,
        results: queue.Queue[object],
        cancel: threading.Event,
    ) -> None:
        """Pop directories until the stack drains, the scan is cancelled or an entry fails."""
        try:
            while not cancel.is_set():
                item = stack.pop(cancel)
                if item is None:
                    break
                directory, prefix = item
                try:
                    self._scan_directory(directory, prefix, stack, results, cancel)
                except ScanError as e:
                    logger.warning(str(e))
                    results.put(e)
                    break
                finally:
                    stack.task_done()
        finally:
            results.put(_WORKER_DONE)

    def _scan_directory(
        self,
        directory: Path,
        prefix: str,
        stack: DirectoryStack,
        results: queue.Queue[object],
        cancel: threading.Event,
    ) -> None:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            raise ScanError(str(directory), e) from e

        for entry in entries:
            if cancel.is_set():
                return

            # Undecodable bytes come back as surrogate escapes
            try:
                entry.name.encode("utf-8")
            except UnicodeEncodeError:
                logger.warning(
                    f"Skipping {entry.path!r} due to path containing invalid UTF-8 characters"
                )
                continue

            store_path = join_path(prefix, entry.name)
            try:
                if entry.is_dir(follow_symlinks=False):
                    stack.push(Path(entry.path), store_path + "/")
                elif entry.is_file(follow_symlinks=False):
                    local_path = Path(entry.path)
                    digest = hash_file(local_path, self._block_size)
                    results.put(FileRecord(store_path, digest, local_path))
                else:
                    logger.debug(f"Skipping {entry.path}: not a regular file or directory")
            except OSError as e:
                raise ScanError(entry.path, e) from e
