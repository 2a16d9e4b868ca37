"""Content digests for dossier.

This module provides:
- Hasher: streaming SHA-256 accumulator producing 32-byte digests
- hash_bytes / hash_file: one-shot helpers built on Hasher
- encode_digest / decode_digest: base64url (no padding) text form used in
  the sync API and in ETag headers
"""

from __future__ import annotations

import base64
import binascii
import hashlib
from pathlib import Path

DIGEST_SIZE = 32  # bytes

# Block size used when hashing local files
HASH_BLOCK_SIZE = 64 * 1024


class Hasher:
    """Incremental content hasher.

    Feeding the same bytes in any chunking yields the same digest, so the
    scanner (hashing whole files) and the uploader (hashing outbound chunks)
    agree on a file's identity.
    """

    def __init__(self) -> None:
        self._hash = hashlib.sha256()

    def update(self, data: bytes) -> None:
        """Feed more bytes into the digest."""
        self._hash.update(data)

    def finalize(self) -> bytes:
        """Return the 32-byte digest of everything fed so far."""
        return self._hash.digest()


def hash_bytes(data: bytes) -> bytes:
    """Compute the digest of an in-memory byte string."""
    hasher = Hasher()
    hasher.update(data)
    return hasher.finalize()


def hash_file(path: Path, block_size: int = HASH_BLOCK_SIZE) -> bytes:
    """Compute the digest of a file.

    Reads the file in blocks to handle large files efficiently.

    Args:
        path: Path to the file to hash.
        block_size: Number of bytes read per call.

    Returns:
        32-byte digest.
    """
    hasher = Hasher()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(block_size), b""):
            hasher.update(block)
    return hasher.finalize()


def encode_digest(digest: bytes) -> str:
    """Encode a digest as unpadded base64url text."""
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def decode_digest(text: str) -> bytes:
    """Decode unpadded base64url text back into a digest.

    Raises:
        ValueError: If the text is not base64url or not DIGEST_SIZE bytes long.
    """
    padded = text + "=" * (-len(text) % 4)
    try:
        digest = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid digest encoding: {text!r}") from e
    if len(digest) != DIGEST_SIZE:
        raise ValueError(f"Digest must be {DIGEST_SIZE} bytes, got {len(digest)}")
    return digest
