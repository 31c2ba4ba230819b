"""Tests for blockers, the blocker factory and the blocking index."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from hhdedupe.audit.logger import AuditLogger
from hhdedupe.candidates import (
    Blocker,
    BlockerConfig,
    BlockingIndex,
    JobOrgProvinceWindowBlocker,
    OrgDomainBlocker,
    OrgInitialIndustryBlocker,
    OrgInitialProvinceBlocker,
    create_blocker,
    create_blockers,
    default_blocker_configs,
)
from hhdedupe.errors import ConfigError
from hhdedupe.models import EntityKind, Record


def _default_index(**kwargs: Any) -> BlockingIndex:
    """Build an index with every kind's default blockers."""
    return BlockingIndex(
        {kind: create_blockers(default_blocker_configs(kind), kind) for kind in EntityKind},
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Blockers
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "blocker",
    [
        JobOrgProvinceWindowBlocker(),
        OrgInitialProvinceBlocker(),
        OrgInitialIndustryBlocker(),
        OrgDomainBlocker(),
    ],
)
def test_blockers_satisfy_protocol(blocker: Blocker) -> None:
    """Test every blocker implements the Blocker protocol."""
    assert isinstance(blocker, Blocker)
    assert blocker.name
    assert blocker.match_key


@pytest.mark.unit
def test_job_window_blocker_emits_neighbouring_windows(make_job: Callable[..., Record]) -> None:
    """Test one key per window offset, prefixed with the blocker name."""
    blocker = JobOrgProvinceWindowBlocker(window_days=30)
    record = make_job()
    keys = list(blocker.block_keys(record))
    bucket = blocker.window_of(record)

    assert keys == [
        f"job_org_province_window:n:google|western cape|w{bucket + offset}"
        for offset in (-1, 0, 1)
    ]


@pytest.mark.unit
def test_job_window_blocker_recall_within_window(make_job: Callable[..., Record]) -> None:
    """Test postings of one organization and province within the window always share a key."""
    blocker = JobOrgProvinceWindowBlocker(window_days=30)
    for start in range(0, 60, 7):
        anchor = set(blocker.block_keys(make_job("job-a", days=start)))
        for delta in range(0, 31):
            other = set(blocker.block_keys(make_job("job-b", days=start + delta)))
            assert anchor & other, f"start={start} delta={delta}"


@pytest.mark.unit
def test_job_window_blocker_missing_fields(make_job: Callable[..., Record]) -> None:
    """Test no organization means no keys; a missing province is a placeholder."""
    blocker = JobOrgProvinceWindowBlocker()

    assert list(blocker.block_keys(make_job(organization=None, organization_id=None))) == []
    keys = list(blocker.block_keys(make_job(province=None)))
    assert all("|_|" in key for key in keys)


@pytest.mark.unit
def test_job_window_blocker_rejects_bad_window() -> None:
    """Test a non-positive window is refused."""
    with pytest.raises(ValueError, match="window_days"):
        JobOrgProvinceWindowBlocker(window_days=0)


@pytest.mark.unit
def test_organization_blockers(make_org: Callable[..., Record]) -> None:
    """Test organization blockers key on initial, province, industry and domain."""
    record = make_org()

    assert list(OrgInitialProvinceBlocker().block_keys(record)) == [
        "org_initial_province:a|western cape"
    ]
    assert list(OrgInitialIndustryBlocker().block_keys(record)) == [
        "org_initial_industry:a|software"
    ]
    assert list(OrgDomainBlocker().block_keys(record)) == ["org_domain:acme.co.za"]
    assert list(OrgDomainBlocker().block_keys(make_org(website=None))) == []
    assert list(OrgInitialIndustryBlocker().block_keys(make_org(industry=None))) == []


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_blocker_config_from_value() -> None:
    """Test configs build from a bare name or a mapping."""
    assert BlockerConfig.from_value("org_domain") == BlockerConfig(type="org_domain")
    cfg = BlockerConfig.from_value(
        {"type": "job_org_province_window", "params": {"window_days": 14}}
    )
    assert cfg.params == {"window_days": 14}
    assert cfg.enabled is True
    assert cfg.to_dict()["type"] == "job_org_province_window"


@pytest.mark.unit
def test_create_blocker_forwards_params() -> None:
    """Test params reach the blocker constructor."""
    blocker = create_blocker(
        BlockerConfig(type="job_org_province_window", params={"window_days": 14})
    )

    assert isinstance(blocker, JobOrgProvinceWindowBlocker)
    assert blocker.window_days == 14


@pytest.mark.unit
@pytest.mark.parametrize(
    ("config", "kind", "match"),
    [
        (BlockerConfig(type="bogus"), None, "Unknown blocker type"),
        (BlockerConfig(type="org_domain", params={"x": 1}), None, "Invalid params"),
        (
            BlockerConfig(type="job_org_province_window", params={"window_days": -1}),
            None,
            "Invalid params",
        ),
        (BlockerConfig(type="org_domain"), EntityKind.JOB, "keys organization records"),
    ],
)
def test_create_blocker_errors(
    config: BlockerConfig, kind: EntityKind | None, match: str
) -> None:
    """Test unknown types, bad params and kind mismatches raise ConfigError."""
    with pytest.raises(ConfigError, match=match):
        create_blocker(config, kind)


@pytest.mark.unit
def test_create_blockers_skips_disabled() -> None:
    """Test disabled configs are filtered out."""
    blockers = create_blockers(
        [
            BlockerConfig(type="org_domain"),
            BlockerConfig(type="org_initial_industry", enabled=False),
        ]
    )

    assert [b.name for b in blockers] == ["org_domain"]


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_index_insert_and_candidates(make_job: Callable[..., Record]) -> None:
    """Test records sharing a key are candidates; the record never is its own."""
    index = _default_index()
    a = make_job("job-a")
    b = make_job("job-b", days=5)
    c = make_job("job-c", organization="Amazon")

    for record in (a, b, c):
        index.insert(record)

    assert index.candidates(a) == {"job-b"}
    assert index.candidates(c) == set()
    assert len(index) == 3
    assert "job-a" in index


@pytest.mark.unit
def test_index_version_and_remove(make_job: Callable[..., Record]) -> None:
    """Test version counts mutations and removal empties buckets."""
    index = _default_index()
    a = make_job("job-a")
    b = make_job("job-b")

    index.insert(a)
    index.insert(b)
    assert index.version == 2

    assert index.remove("job-b") is True
    assert index.remove("job-b") is False
    assert index.version == 3
    assert index.candidates(a) == set()


@pytest.mark.unit
def test_index_reinsert_drops_stale_keys(make_job: Callable[..., Record]) -> None:
    """Test re-inserting a changed record removes its old bucket entries."""
    index = _default_index()
    index.insert(make_job("job-a", organization="Google"))
    index.insert(make_job("job-a", organization="Amazon"))
    probe = make_job("job-z", organization="Google")

    assert index.candidates(probe) == set()
    assert all("google" not in key for key in index.keys_of("job-a"))


@pytest.mark.unit
def test_index_namespaces_kinds(
    make_job: Callable[..., Record], make_org: Callable[..., Record]
) -> None:
    """Test keys are prefixed by kind so kinds never share a bucket."""
    index = _default_index()
    job_keys = index.keys_for(make_job())
    org_keys = index.keys_for(make_org())

    assert all(key.startswith("job:") for key in job_keys)
    assert all(key.startswith("organization:") for key in org_keys)


@pytest.mark.unit
def test_index_warns_once_on_oversized_block(
    tmp_path: Path, make_job: Callable[..., Record]
) -> None:
    """Test an oversized bucket is logged once and never truncated."""
    log_path = tmp_path / "events.jsonl"
    with AuditLogger(run_id="r", log_path=log_path) as logger:
        index = _default_index(max_block_size=2, logger=logger)
        for i in range(5):
            index.insert(make_job(f"job-{i}"))
        assert index.candidates(make_job("job-new")) == {f"job-{i}" for i in range(5)}

    with log_path.open() as f:
        events = [json.loads(line) for line in f]
    oversized = [e for e in events if e["event"] == "oversized_block"]
    # One warning per bucket (three window keys share the same members)
    assert len(oversized) == 3
    assert all(e["level"] == "WARN" for e in oversized)
    assert {e["data"]["size"] for e in oversized} == {3}


@pytest.mark.unit
def test_index_bucket_sizes(
    make_job: Callable[..., Record], make_org: Callable[..., Record]
) -> None:
    """Test bucket sizes report every non-empty bucket."""
    index = _default_index()
    index.insert(make_job("job-a"))
    index.insert(make_job("job-b"))
    index.insert(make_org("org-a"))

    sizes = index.bucket_sizes()

    assert {size for key, size in sizes.items() if key.startswith("job:")} == {2}
    assert {size for key, size in sizes.items() if key.startswith("organization:")} == {1}
    assert len(sizes) == 3 + 3
