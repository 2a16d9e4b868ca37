"""Core module - Shared hashing, paths, errors, and configuration."""

from dossier.core.config import ServerConfig, SyncConfig, default_worker_count
from dossier.core.errors import (
    AlreadyExistsError,
    DeletedError,
    DossierError,
    InvalidNameError,
    InvalidPathError,
    NotFoundError,
    RetriesExhaustedError,
    ScanError,
    StoreError,
    SyncError,
    VerificationMismatchError,
)
from dossier.core.hashing import (
    DIGEST_SIZE,
    Hasher,
    decode_digest,
    encode_digest,
    hash_bytes,
    hash_file,
)
from dossier.core.paths import (
    decode_escaped_path,
    join_path,
    normalize_prefix,
    split_path,
    validate_file_path,
    validate_name,
    validate_path,
)
from dossier.core.types import FileRecord

__all__ = [
    # Config
    "ServerConfig",
    "SyncConfig",
    "default_worker_count",
    # Errors
    "AlreadyExistsError",
    "DeletedError",
    "DossierError",
    "InvalidNameError",
    "InvalidPathError",
    "NotFoundError",
    "RetriesExhaustedError",
    "ScanError",
    "StoreError",
    "SyncError",
    "VerificationMismatchError",
    # Hashing
    "DIGEST_SIZE",
    "Hasher",
    "decode_digest",
    "encode_digest",
    "hash_bytes",
    "hash_file",
    # Paths
    "decode_escaped_path",
    "join_path",
    "normalize_prefix",
    "split_path",
    "validate_file_path",
    "validate_name",
    "validate_path",
    # Types
    "FileRecord",
]
