"""Shared types and dataclasses for sync runs.

This module provides:
- CreateOperation, ReplaceOperation, DeleteOperation: planned changes
- SyncOperation: union of the three operation types
- OperationResult: outcome of executing one operation
- SyncProgress: one completed operation plus running counters
- SyncReport: overall result of a sync run
- Type aliases for callbacks
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeAlias

from dossier.core.types import FileRecord


@dataclass(frozen=True)
class CreateOperation:
    """Upload a file that the store does not have."""

    record: FileRecord

    @property
    def path(self) -> str:
        return self.record.path


@dataclass(frozen=True)
class ReplaceOperation:
    """Upload a file whose stored digest differs from the local one.

    Attributes:
        record: Local file and its digest.
        previous_digest: Digest the store held when the run was planned.
    """

    record: FileRecord
    previous_digest: bytes

    @property
    def path(self) -> str:
        return self.record.path


@dataclass(frozen=True)
class DeleteOperation:
    """Remove a stored file that no longer exists locally."""

    path: str


SyncOperation: TypeAlias = CreateOperation | ReplaceOperation | DeleteOperation


@dataclass(frozen=True)
class OperationResult:
    """Outcome of executing one operation."""

    operation: SyncOperation
    error: Exception | None = None

    @property
    def path(self) -> str:
        return self.operation.path

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SyncProgress:
    """Progress information emitted after each finished operation.

    Attributes:
        result: The operation that just finished.
        completed: Operations finished so far, this one included.
        total: Operations planned for the run.
    """

    result: OperationResult
    completed: int
    total: int

    @property
    def path(self) -> str:
        return self.result.path


# Type alias for progress callback
ProgressCallback = Callable[[SyncProgress], None]


@dataclass
class SyncReport:
    """Result of a sync run.

    Attributes:
        operations: Everything the planner emitted, in plan order.
        completed: Paths whose operation succeeded.
        errors: (path, message) for every failed operation.
        unchanged: Files skipped because their digests already matched.
        dry_run: True if nothing was executed.
    """

    operations: list[SyncOperation] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)
    unchanged: int = 0
    dry_run: bool = False

    @property
    def created(self) -> int:
        return sum(1 for op in self.operations if isinstance(op, CreateOperation))

    @property
    def replaced(self) -> int:
        return sum(1 for op in self.operations if isinstance(op, ReplaceOperation))

    @property
    def deleted(self) -> int:
        return sum(1 for op in self.operations if isinstance(op, DeleteOperation))

    @property
    def in_sync(self) -> bool:
        """True if the local tree and the store already matched."""
        return not self.operations

    @property
    def succeeded(self) -> bool:
        """True if every planned operation completed (or none were run)."""
        if self.errors:
            return False
        return self.dry_run or len(self.completed) == len(self.operations)
