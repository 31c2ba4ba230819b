"""Canonical member selection."""

from hhdedupe.canonical.selector import (
    DEFAULT_AUTHORITY_ORDER,
    SourceAuthority,
    canonical_key,
    select_canonical,
)

__all__ = [
    "DEFAULT_AUTHORITY_ORDER",
    "SourceAuthority",
    "canonical_key",
    "select_canonical",
]
