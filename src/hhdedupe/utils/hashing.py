"""Hashing utilities for hhdedupe.

This module provides consistent hashing functions for files, strings and
fingerprint key material.
"""

import hashlib
from collections.abc import Iterable
from pathlib import Path

__all__ = [
    "format_sha256",
    "calculate_file_sha256",
    "stable_digest",
]

KEY_DELIMITER = "\x1f"


def format_sha256(hex_digest: str) -> str:
    """Format SHA256 hash with standard prefix.

    Parameters
    ----------
    hex_digest : str
        Raw hexadecimal digest.

    Returns
    -------
    str
        Formatted hash with "sha256:" prefix.
    """
    return f"sha256:{hex_digest}"


def calculate_file_sha256(path: Path) -> str:
    """Calculate SHA256 hash of file contents from file path.

    Parameters
    ----------
    path : Path
        Path to file.

    Returns
    -------
    str
        SHA256 hash with "sha256:" prefix.

    Raises
    ------
    FileNotFoundError
        If file does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    sha256_hash = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256_hash.update(chunk)

    return format_sha256(sha256_hash.hexdigest())


def stable_digest(parts: Iterable[str], delimiter: str = KEY_DELIMITER) -> str:
    """Hash an ordered sequence of key fields.

    The parts are joined with a control-character delimiter that cannot
    appear in normalized text, so ``("ab", "c")`` and ``("a", "bc")`` never
    collide.

    Parameters
    ----------
    parts : Iterable[str]
        Key fields in a fixed order.
    delimiter : str, optional
        Join delimiter, by default ``"\\x1f"``.

    Returns
    -------
    str
        Hex SHA-256 digest (immune to ``PYTHONHASHSEED``).
    """
    payload = delimiter.join(parts)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
