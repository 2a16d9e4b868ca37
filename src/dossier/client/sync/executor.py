"""Concurrent execution of planned sync operations.

This module provides:
- SyncExecutor: runs operations on a pool of threads and streams a
  SyncProgress for each one as it finishes

Operations go into a queue owned by the run, followed by one poison pill
per worker. Results come back in completion order, not plan order.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING

from dossier.client.sync.types import (
    CreateOperation,
    DeleteOperation,
    OperationResult,
    ReplaceOperation,
    SyncOperation,
    SyncProgress,
)
from dossier.core.config import default_worker_count
from dossier.core.errors import SyncError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from dossier.client.sync.uploader import ChunkedUploader
    from dossier.client.target import SyncTarget

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Execute sync operations concurrently.

    A failed operation never interrupts siblings that are already running.
    With stop_on_error, workers stop taking new operations after the first
    failure and the run ends with only part of the plan done.

    Usage:
        executor = SyncExecutor(target, uploader)
        for progress in executor.run(operations):
            print(f"{progress.path} ({progress.completed}/{progress.total})")
    """

    def __init__(
        self,
        target: SyncTarget,
        uploader: ChunkedUploader,
        workers: int | None = None,
        stop_on_error: bool = True,
    ) -> None:
        """Initialize the executor.

        Args:
            target: Store that delete operations go to.
            uploader: Performs create and replace operations.
            workers: Number of threads (default: twice the CPU count).
            stop_on_error: Stop taking new operations after a failure.
        """
        self._target = target
        self._uploader = uploader
        self._workers = workers or default_worker_count()
        self._stop_on_error = stop_on_error

    def run(
        self,
        operations: Iterable[SyncOperation],
        cancel: threading.Event | None = None,
    ) -> Iterator[SyncProgress]:
        """Execute operations and stream progress.

        Args:
            operations: Planned operations; consumed up front to know the total.
            cancel: Set to stop workers taking new operations.

        Yields:
            One SyncProgress per finished operation.
        """
        if cancel is None:
            cancel = threading.Event()

        pending = list(operations)
        total = len(pending)
        if total == 0:
            return

        tasks: queue.Queue[SyncOperation | None] = queue.Queue()
        for operation in pending:
            tasks.put(operation)
        worker_count = min(self._workers, total)
        for _ in range(worker_count):
            tasks.put(None)  # Poison pill

        results: queue.Queue[OperationResult | None] = queue.Queue()
        threads = [
            threading.Thread(
                target=self._worker_loop,
                args=(tasks, results, cancel),
                name=f"SyncExecutor-{i}",
                daemon=True,
            )
            for i in range(worker_count)
        ]
        for thread in threads:
            thread.start()
        logger.debug(f"Executing {total} operations with {worker_count} workers")

        completed = 0
        running = worker_count
        try:
            while running:
                item = results.get()
                if item is None:  # A worker exited
                    running -= 1
                    continue
                completed += 1
                yield SyncProgress(result=item, completed=completed, total=total)
        finally:
            if running:
                cancel.set()
            for thread in threads:
                thread.join()

        if completed < total:
            logger.warning(f"Sync stopped early: {completed}/{total} operations finished")

    def _worker_loop(
        self,
        tasks: queue.Queue[SyncOperation | None],
        results: queue.Queue[OperationResult | None],
        cancel: threading.Event,
    ) -> None:
        """Take operations until a poison pill or cancellation."""
        try:
            while not cancel.is_set():
                operation = tasks.get()
                if operation is None:
                    break

                try:
                    self._perform(operation)
                except Exception as e:
                    logger.error(f"Failed to sync {operation.path}: {e}")
                    results.put(OperationResult(operation, e))
                    if self._stop_on_error:
                        cancel.set()
                else:
                    results.put(OperationResult(operation))
        finally:
            results.put(None)

    def _perform(self, operation: SyncOperation) -> None:
        if isinstance(operation, CreateOperation):
            self._upload(operation, expected_digest=None)
        elif isinstance(operation, ReplaceOperation):
            self._upload(operation, expected_digest=operation.record.digest)
        elif isinstance(operation, DeleteOperation):
            self._target.delete(operation.path)
        else:
            raise TypeError(f"Unknown sync operation: {operation!r}")

    def _upload(
        self,
        operation: CreateOperation | ReplaceOperation,
        expected_digest: bytes | None,
    ) -> None:
        local_path = operation.record.local_path
        if local_path is None:
            raise SyncError(f"No local file to upload for {operation.path}")
        self._uploader.upload(local_path, operation.path, expected_digest=expected_digest)
