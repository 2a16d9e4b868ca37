"""Error taxonomy shared by the store, the sync engine and the HTTP layers.

Every error carries a stable ``kind`` string. The sync API puts it on the
wire so the HTTP client can raise the same class on the other side.
"""

from __future__ import annotations


class DossierError(Exception):
    """Base exception for all dossier errors."""

    kind = "error"


class NotFoundError(DossierError):
    """The path does not exist in the store."""

    kind = "not_found"


class InvalidPathError(DossierError):
    """A path was not absolute or contained an invalid segment."""

    kind = "invalid_path"


class InvalidNameError(DossierError):
    """A single path segment was empty or contained ``/``."""

    kind = "invalid_name"


class AlreadyExistsError(DossierError):
    """A file already exists at the path being created."""

    kind = "already_exists"


class DeletedError(DossierError):
    """The file was deleted while an operation was using it."""

    kind = "deleted"


class StoreError(DossierError):
    """The underlying store failed."""

    kind = "store"


class VerificationMismatchError(DossierError):
    """The digest recorded by the store differs from the source digest."""

    kind = "verification_mismatch"

    def __init__(self, path: str, expected: bytes, actual: bytes | None) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Digest mismatch for {path}: expected {expected.hex()}, "
            f"store has {actual.hex() if actual else 'none'}"
        )


class RetriesExhaustedError(DossierError):
    """Upload verification kept failing after all retry attempts."""

    kind = "retries_exhausted"

    def __init__(self, path: str, attempts: int) -> None:
        self.path = path
        self.attempts = attempts
        super().__init__(f"Upload of {path} failed verification after {attempts} attempts")


class ScanError(DossierError):
    """Reading a local entry failed while scanning."""

    kind = "scan"

    def __init__(self, local_path: str, cause: BaseException) -> None:
        self.local_path = local_path
        self.cause = cause
        super().__init__(f"Failed to scan {local_path}: {cause}")


class SyncError(DossierError):
    """A sync run could not be started or completed."""

    kind = "sync"


ERRORS_BY_KIND: dict[str, type[DossierError]] = {
    cls.kind: cls
    for cls in (
        NotFoundError,
        InvalidPathError,
        InvalidNameError,
        AlreadyExistsError,
        DeletedError,
        StoreError,
    )
}
