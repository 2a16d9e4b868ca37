"""Directory sync for dossier.

Architecture:
    RemoteIndex → LocalTreeScanner → DiffPlanner → SyncExecutor

Components:
- **RemoteIndex**: Snapshot of the store's files under the target prefix
- **LocalTreeScanner**: Hashes the local tree on a pool of threads
- **DiffPlanner**: Streams create/replace/delete operations from the scan
- **SyncExecutor**: Runs operations concurrently, reporting progress
- **ChunkedUploader**: Chunked transfer with digest verification and retry
- **Synchronizer**: Drives a whole run and returns a SyncReport
"""

from dossier.client.sync.engine import Synchronizer, upload_file
from dossier.client.sync.executor import SyncExecutor
from dossier.client.sync.planner import DiffPlanner
from dossier.client.sync.remote import RemoteIndex
from dossier.client.sync.retry import DEFAULT_BACKOFF_MULTIPLIER, retry_with_backoff
from dossier.client.sync.scanner import DirectoryStack, LocalTreeScanner
from dossier.client.sync.types import (
    CreateOperation,
    DeleteOperation,
    OperationResult,
    ProgressCallback,
    ReplaceOperation,
    SyncOperation,
    SyncProgress,
    SyncReport,
)
from dossier.client.sync.uploader import ChunkedUploader, UploadSession

__all__ = [
    # Engine
    "Synchronizer",
    "upload_file",
    # Pipeline stages
    "ChunkedUploader",
    "DiffPlanner",
    "DirectoryStack",
    "LocalTreeScanner",
    "RemoteIndex",
    "SyncExecutor",
    "UploadSession",
    # Retry
    "DEFAULT_BACKOFF_MULTIPLIER",
    "retry_with_backoff",
    # Types
    "CreateOperation",
    "DeleteOperation",
    "OperationResult",
    "ProgressCallback",
    "ReplaceOperation",
    "SyncOperation",
    "SyncProgress",
    "SyncReport",
]
