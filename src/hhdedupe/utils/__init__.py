"""Common utility functions for hhdedupe.

This module consolidates shared utility functions used across the codebase,
including hashing and timestamps.
"""

from hhdedupe.utils.hashing import (
    calculate_file_sha256,
    format_sha256,
    stable_digest,
)
from hhdedupe.utils.timestamps import get_iso_timestamp, parse_iso_timestamp, to_iso

__all__ = [
    "get_iso_timestamp",
    "parse_iso_timestamp",
    "to_iso",
    "calculate_file_sha256",
    "format_sha256",
    "stable_digest",
]
