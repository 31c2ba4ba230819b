"""Key-field normalization for hhdedupe.

Full record normalization happens upstream. This package derives the
comparison forms shared by fingerprinting, blocking and scoring.
"""

from hhdedupe.normalize._helpers import (
    normalize_email,
    normalize_location,
    normalize_phone,
    normalize_province,
    normalize_text,
    normalize_title,
    registrable_domain,
    strip_legal_suffixes,
    tokenize,
)
from hhdedupe.normalize.keys import MatchKeys, build_keys

__all__ = [
    "MatchKeys",
    "build_keys",
    "normalize_email",
    "normalize_location",
    "normalize_phone",
    "normalize_province",
    "normalize_text",
    "normalize_title",
    "registrable_domain",
    "strip_legal_suffixes",
    "tokenize",
]
