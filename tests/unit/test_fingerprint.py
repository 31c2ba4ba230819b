"""Tests for record fingerprinting (exact hash + MinHash sketch)."""

from collections.abc import Callable

import pytest

from hhdedupe.fingerprint import (
    MAX_HASH,
    exact_hash,
    fingerprint,
    minhash_sketch,
    shingles,
    sketch_similarity,
)
from hhdedupe.models import Record
from hhdedupe.utils import stable_digest

DESCRIPTION = (
    "We are looking for a senior developer to design, build and operate "
    "payment services on a modern cloud platform with a small product team."
)


@pytest.mark.unit
def test_shingles() -> None:
    """Test word shingles, including short and empty token lists."""
    tokens = "a b c d e f".split()

    assert shingles(tokens, 5) == ["a b c d e", "b c d e f"]
    assert shingles(["a", "b"], 5) == ["a b"]
    assert shingles([], 5) == []


@pytest.mark.unit
def test_minhash_sketch_empty_is_sentinel() -> None:
    """Test an empty shingle set yields K sentinel values."""
    sketch = minhash_sketch([], num_perm=16)

    assert sketch == (MAX_HASH,) * 16


@pytest.mark.unit
def test_fingerprint_is_deterministic(make_job: Callable[..., Record]) -> None:
    """Test identical normalized fields give identical fingerprints."""
    first = fingerprint(make_job(description=DESCRIPTION))
    second = fingerprint(make_job(description=DESCRIPTION))

    assert first == second
    assert len(first.sketch) == 128
    assert not first.is_empty_sketch


@pytest.mark.unit
def test_exact_hash_ignores_legal_suffix_and_description(
    make_job: Callable[..., Record],
) -> None:
    """Test the exact hash covers only normalized title, organization and city."""
    a = make_job("job-a", organization="Google", description="first text")
    b = make_job("job-b", organization="Google (Pty) Ltd", description="other text", days=3)

    assert exact_hash(a) == exact_hash(b)
    assert fingerprint(a).exact_hash == exact_hash(a)


@pytest.mark.unit
def test_exact_hash_differs_on_city(make_job: Callable[..., Record]) -> None:
    """Test a different city changes the exact hash."""
    a = make_job("job-a", city="Cape Town")
    b = make_job("job-b", city="Stellenbosch")

    assert exact_hash(a) != exact_hash(b)


@pytest.mark.unit
def test_exact_hash_is_kind_scoped(
    make_job: Callable[..., Record], make_org: Callable[..., Record]
) -> None:
    """Test job and organization hashes never collide on equal text."""
    job = make_job(title="Acme", organization="Acme", city="Cape Town")
    org = make_org(name="Acme", city="Cape Town")

    assert exact_hash(job) != exact_hash(org)


@pytest.mark.unit
def test_stable_digest_delimits_parts() -> None:
    """Test part boundaries are part of the digest."""
    assert stable_digest(("ab", "c")) != stable_digest(("a", "bc"))


@pytest.mark.unit
def test_sketch_similarity(make_job: Callable[..., Record]) -> None:
    """Test MinHash similarity for identical, unrelated and empty texts."""
    same_a = fingerprint(make_job("job-a", description=DESCRIPTION))
    same_b = fingerprint(make_job("job-b", description=DESCRIPTION))
    other = fingerprint(
        make_job("job-c", description="Night shift warehouse picker needed for cold storage depot")
    )
    empty = fingerprint(make_job("job-d"))

    assert sketch_similarity(same_a.sketch, same_b.sketch) == 1.0
    assert sketch_similarity(same_a.sketch, other.sketch) < 0.5
    assert empty.is_empty_sketch
    assert sketch_similarity(empty.sketch, empty.sketch) == 0.0


@pytest.mark.unit
def test_sketch_similarity_rejects_length_mismatch() -> None:
    """Test sketches of different K cannot be compared."""
    with pytest.raises(ValueError, match="Sketch lengths differ"):
        sketch_similarity((1, 2, 3), (1, 2))


@pytest.mark.unit
def test_fingerprint_custom_parameters(make_job: Callable[..., Record]) -> None:
    """Test sketch length follows num_perm."""
    fp = fingerprint(make_job(description=DESCRIPTION), num_perm=64, shingle_size=3)

    assert len(fp.sketch) == 64
    assert fp.to_dict()["record_id"] == "job-001"
