"""Sync driver.

Ties the pipeline together for one run:

    RemoteIndex.fetch -> LocalTreeScanner.scan -> DiffPlanner.plan -> SyncExecutor.run

Planning finishes before execution starts, so progress can report a total.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from dossier.client.sync.executor import SyncExecutor
from dossier.client.sync.planner import DiffPlanner
from dossier.client.sync.remote import RemoteIndex
from dossier.client.sync.scanner import LocalTreeScanner
from dossier.client.sync.types import SyncReport
from dossier.client.sync.uploader import ChunkedUploader
from dossier.core.config import SyncConfig
from dossier.core.errors import SyncError
from dossier.core.paths import SEPARATOR, normalize_prefix, validate_file_path, validate_path

if TYPE_CHECKING:
    from dossier.client.sync.types import ProgressCallback
    from dossier.client.target import SyncTarget

logger = logging.getLogger(__name__)


class Synchronizer:
    """Make a store prefix mirror a local directory."""

    def __init__(self, target: SyncTarget, config: SyncConfig | None = None) -> None:
        """Initialize the synchronizer.

        Args:
            target: Store to sync into.
            config: Tuning; defaults to SyncConfig().
        """
        self._target = target
        self._config = config or SyncConfig()

    @property
    def config(self) -> SyncConfig:
        return self._config

    def sync(
        self,
        local_root: Path,
        remote_prefix: str,
        on_progress: ProgressCallback | None = None,
        dry_run: bool = False,
    ) -> SyncReport:
        """Run one sync.

        Args:
            local_root: Directory to mirror.
            remote_prefix: Store directory to mirror into.
            on_progress: Called after each finished operation.
            dry_run: Plan only, execute nothing.

        Returns:
            SyncReport with the plan and its outcome.

        Raises:
            SyncError: If local_root is not a directory.
            InvalidPathError: If remote_prefix is malformed.
            ScanError: If the local tree could not be fully read; nothing
                is executed in that case.
        """
        root = Path(local_root)
        if not root.is_dir():
            raise SyncError(f"sync can only be used with directories: {root}")
        prefix = normalize_prefix(remote_prefix)
        validate_path(prefix)

        logger.info(f"Syncing {root} to {prefix}")
        index = RemoteIndex.fetch(self._target, prefix)

        scanner = LocalTreeScanner(root, prefix, workers=self._config.workers)
        planner = DiffPlanner(index)
        cancel = threading.Event()
        records = scanner.scan(cancel)
        try:
            operations = list(planner.plan(records))
        finally:
            records.close()

        report = SyncReport(
            operations=operations,
            unchanged=planner.unchanged,
            dry_run=dry_run,
        )
        if dry_run or not operations:
            return report

        uploader = ChunkedUploader.from_config(self._target, self._config)
        executor = SyncExecutor(
            self._target,
            uploader,
            workers=self._config.workers,
            stop_on_error=self._config.stop_on_error,
        )
        for progress in executor.run(operations):
            if progress.result.error is None:
                report.completed.append(progress.path)
            else:
                report.errors.append((progress.path, str(progress.result.error)))
            if on_progress:
                on_progress(progress)

        logger.info(
            f"Sync finished: {len(report.completed)}/{len(operations)} operations, "
            f"{len(report.errors)} errors"
        )
        return report


def upload_file(
    target: SyncTarget,
    local_path: Path,
    remote_path: str,
    config: SyncConfig | None = None,
) -> str:
    """Upload a single file.

    A remote path ending in ``/`` names a directory; the local file name is
    appended to it.

    Args:
        target: Store to upload into.
        local_path: File to upload.
        remote_path: Destination path or directory.
        config: Upload tuning.

    Returns:
        The store path the file was written to.

    Raises:
        SyncError: If local_path is not a regular file.
    """
    local_path = Path(local_path)
    if not local_path.is_file():
        raise SyncError(f"upload can only be used with files: {local_path}")

    if not remote_path.startswith(SEPARATOR):
        remote_path = SEPARATOR + remote_path
    if remote_path.endswith(SEPARATOR):
        remote_path += local_path.name
    validate_file_path(remote_path)

    uploader = ChunkedUploader.from_config(target, config or SyncConfig())
    uploader.upload(local_path, remote_path)
    logger.info(f"File uploaded to {remote_path}")
    return remote_path
