"""Fingerprint generation: exact content hash plus a MinHash sketch.

Both parts are pure functions of the record's normalized fields. The exact
hash catches reposts of the same posting verbatim; the sketch estimates the
Jaccard similarity of two descriptions without comparing their text.
"""

from __future__ import annotations

from collections.abc import Sequence

from datasketch import MinHash

from hhdedupe.fingerprint.models import MAX_HASH, Fingerprint
from hhdedupe.kinds import get_profile
from hhdedupe.models.records import Record
from hhdedupe.utils.hashing import stable_digest

MINHASH_NUM_PERM = 128
MINHASH_SEED = 42
SHINGLE_SIZE = 5


def shingles(tokens: Sequence[str], size: int = SHINGLE_SIZE) -> list[str]:
    """Build word n-gram shingles.

    Parameters
    ----------
    tokens : Sequence[str]
        Normalized tokens.
    size : int, optional
        Words per shingle, by default 5.

    Returns
    -------
    list[str]
        Shingles in order. A token list shorter than ``size`` yields a
        single shingle of all its tokens; an empty list yields none.
    """
    if not tokens:
        return []
    if len(tokens) < size:
        return [" ".join(tokens)]
    return [" ".join(tokens[i : i + size]) for i in range(len(tokens) - size + 1)]


def minhash_sketch(items: Sequence[str], num_perm: int = MINHASH_NUM_PERM) -> tuple[int, ...]:
    """Compute the MinHash minima of a shingle set.

    Parameters
    ----------
    items : Sequence[str]
        Shingles.
    num_perm : int, optional
        Sketch length K, by default 128.

    Returns
    -------
    tuple[int, ...]
        K minima, or K ``MAX_HASH`` sentinels when ``items`` is empty.
    """
    if not items:
        return (MAX_HASH,) * num_perm

    mh = MinHash(num_perm=num_perm, seed=MINHASH_SEED)
    for item in items:
        mh.update(item.encode("utf-8"))
    return tuple(int(value) for value in mh.hashvalues)


def exact_hash(record: Record) -> str:
    """SHA-256 of the record kind and its normalized exact-key fields."""
    profile = get_profile(record.kind)
    keys = profile.normalize(record)
    return stable_digest((record.kind.value, *profile.exact_fields(keys)))


def fingerprint(
    record: Record,
    num_perm: int = MINHASH_NUM_PERM,
    shingle_size: int = SHINGLE_SIZE,
) -> Fingerprint:
    """Compute the fingerprint of a record.

    Deterministic: the same normalized fields always produce the same
    fingerprint, across processes and runs.

    Parameters
    ----------
    record : Record
        Normalized record.
    num_perm : int, optional
        Sketch length K, by default 128.
    shingle_size : int, optional
        Words per description shingle, by default 5.

    Returns
    -------
    Fingerprint
        Exact hash and MinHash sketch.
    """
    profile = get_profile(record.kind)
    keys = profile.normalize(record)
    tokens = profile.shingle_text(keys).split()
    return Fingerprint(
        record_id=record.record_id,
        exact_hash=stable_digest((record.kind.value, *profile.exact_fields(keys))),
        sketch=minhash_sketch(shingles(tokens, shingle_size), num_perm),
    )


def sketch_similarity(a: Sequence[int], b: Sequence[int]) -> float:
    """Estimate Jaccard similarity from two MinHash sketches.

    Parameters
    ----------
    a, b : Sequence[int]
        Sketches of equal length.

    Returns
    -------
    float
        Fraction of positions holding equal minima. A sentinel-only sketch
        (no text) has similarity 0.0 with everything, itself included.

    Raises
    ------
    ValueError
        If the sketches differ in length.
    """
    if len(a) != len(b):
        raise ValueError(f"Sketch lengths differ: {len(a)} != {len(b)}")
    if not a:
        return 0.0
    if all(v == MAX_HASH for v in a) or all(v == MAX_HASH for v in b):
        return 0.0
    matches = sum(1 for x, y in zip(a, b, strict=True) if x == y)
    return matches / len(a)
