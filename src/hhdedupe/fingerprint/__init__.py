"""Record fingerprinting (exact hash + MinHash sketch)."""

from hhdedupe.fingerprint.generator import (
    exact_hash,
    fingerprint,
    minhash_sketch,
    shingles,
    sketch_similarity,
)
from hhdedupe.fingerprint.models import MAX_HASH, Fingerprint

__all__ = [
    "MAX_HASH",
    "Fingerprint",
    "exact_hash",
    "fingerprint",
    "minhash_sketch",
    "shingles",
    "sketch_similarity",
]
