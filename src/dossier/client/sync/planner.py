"""Diff planner: turns a scan stream into sync operations.

Every scanned file is matched against a working copy of the remote index:

    match      -> removed from the copy, nothing emitted
    differs    -> removed from the copy, ReplaceOperation
    absent     -> CreateOperation

Whatever is left in the copy once the scan drains no longer exists locally
and gets a DeleteOperation. A ScanError stops planning before that delete
pass, so a file that could not be read is never deleted remotely.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dossier.client.sync.types import (
    CreateOperation,
    DeleteOperation,
    ReplaceOperation,
    SyncOperation,
)
from dossier.core.errors import ScanError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from dossier.client.sync.remote import RemoteIndex
    from dossier.core.types import FileRecord

logger = logging.getLogger(__name__)


class DiffPlanner:
    """Plan the operations that make the store mirror a local scan.

    Attributes:
        created: CreateOperations emitted so far.
        replaced: ReplaceOperations emitted so far.
        deleted: DeleteOperations emitted so far.
        unchanged: Scanned files whose digest already matched.
    """

    def __init__(self, index: RemoteIndex) -> None:
        self._index = index
        self.created = 0
        self.replaced = 0
        self.deleted = 0
        self.unchanged = 0

    @property
    def total(self) -> int:
        """Operations emitted so far."""
        return self.created + self.replaced + self.deleted

    def plan(self, records: Iterable[FileRecord | ScanError]) -> Iterator[SyncOperation]:
        """Stream operations while consuming the scan.

        Args:
            records: Scanner output.

        Yields:
            Create and Replace operations as records arrive, then Delete
            operations in path order.

        Raises:
            ScanError: If the scan reported an error.
        """
        remaining = self._index.copy()

        for record in records:
            if isinstance(record, ScanError):
                raise record

            previous = remaining.pop(record.path, None)
            if previous is None:
                self.created += 1
                yield CreateOperation(record)
            elif previous != record.digest:
                self.replaced += 1
                yield ReplaceOperation(record, previous)
            else:
                self.unchanged += 1

        for path in sorted(remaining):
            self.deleted += 1
            yield DeleteOperation(path)

        logger.info(
            f"Plan: {self.created} to create, {self.replaced} to replace, "
            f"{self.deleted} to delete, {self.unchanged} unchanged"
        )
