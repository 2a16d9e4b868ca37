"""Store path helpers.

Store paths are absolute, ``/``-separated strings. A trailing ``/`` marks a
directory prefix used for listing; it never names a file.
"""

from __future__ import annotations

from dossier.core.errors import InvalidNameError, InvalidPathError

SEPARATOR = "/"

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def validate_name(name: str) -> None:
    """Check a single path segment.

    Raises:
        InvalidNameError: If the name is empty or contains a separator.
    """
    if not name or SEPARATOR in name:
        raise InvalidNameError(f"names must not be empty or contain '/': {name!r}")


def validate_path(path: str) -> None:
    """Check an absolute store path (file or directory prefix).

    Raises:
        InvalidPathError: If the path has no leading separator or contains an
            empty segment.
    """
    if not path.startswith(SEPARATOR):
        raise InvalidPathError(f"all paths must start with a leading '/': {path!r}")
    segments = path[1:].split(SEPARATOR)
    if segments and segments[-1] == "":
        # Trailing separator: directory prefix
        segments = segments[:-1]
    if any(segment == "" for segment in segments):
        raise InvalidPathError(f"paths must not contain empty segments: {path!r}")


def validate_file_path(path: str) -> None:
    """Check a path that must name a file rather than a directory."""
    validate_path(path)
    if path.endswith(SEPARATOR):
        raise InvalidPathError(f"a file path must not end with '/': {path!r}")


def normalize_prefix(path: str) -> str:
    """Return *path* with a leading and trailing separator."""
    if not path.startswith(SEPARATOR):
        path = SEPARATOR + path
    if not path.endswith(SEPARATOR):
        path += SEPARATOR
    return path


def join_path(prefix: str, name: str) -> str:
    """Append a validated segment name to a directory prefix."""
    validate_name(name)
    return normalize_prefix(prefix) + name


def split_path(path: str) -> tuple[str, str]:
    """Split a file path into its directory prefix and name.

    ``/a/b/c.txt`` becomes ``("/a/b/", "c.txt")``.
    """
    validate_file_path(path)
    directory, _, name = path.rpartition(SEPARATOR)
    return directory + SEPARATOR, name


def decode_escaped_path(raw: str) -> str:
    """Percent-decode a request path.

    ``+`` decodes to a space (legacy form encoding). A ``%2F`` escape would
    smuggle a separator into a single segment, so it is rejected.

    Raises:
        InvalidPathError: On malformed escapes, escaped separators, or bytes
            that are not valid UTF-8.
    """
    decoded = bytearray()
    i = 0
    while i < len(raw):
        char = raw[i]
        if char == "%":
            hex_digits = raw[i + 1 : i + 3]
            if len(hex_digits) != 2 or not set(hex_digits) <= _HEX_DIGITS:
                raise InvalidPathError("invalid percent escape sequence")
            byte = int(hex_digits, 16)
            if byte == ord(SEPARATOR):
                raise InvalidPathError("/ is invalid in a path segment")
            decoded.append(byte)
            i += 3
            continue
        if char == "+":
            decoded.extend(b" ")
        else:
            decoded.extend(char.encode("utf-8"))
        i += 1

    try:
        return decoded.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidPathError("path is not valid UTF-8") from e
