"""Pytest configuration and fixtures for test suite."""

import json
import sys
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add src directory to path for imports
SRC_PATH = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_PATH))

from hhdedupe.models import (  # noqa: E402
    EntityKind,
    JobAttributes,
    OrganizationAttributes,
    Record,
    SourceRef,
)

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def base_time() -> datetime:
    """Fixed reference timestamp for observed_at arithmetic."""
    return BASE_TIME


@pytest.fixture
def make_job() -> Callable[..., Record]:
    """Factory for job posting records with minimal boilerplate.

    ``days`` offsets ``observed_at`` from ``BASE_TIME``.
    """

    def _factory(
        rid: str = "job-001",
        *,
        title: str = "Senior Developer",
        organization: str | None = "Google",
        organization_id: str | None = None,
        city: str | None = "Cape Town",
        province: str | None = "Western Cape",
        description: str | None = None,
        organization_size: int | None = None,
        days: float = 0,
        quality: float = 50.0,
        source: str = "pnet",
        category: str | None = "aggregator",
    ) -> Record:
        return Record(
            record_id=rid,
            kind=EntityKind.JOB,
            source=SourceRef(name=source, source_id=rid, category=category),
            attributes=JobAttributes(
                title=title,
                organization_name=organization,
                organization_id=organization_id,
                city=city,
                province=province,
                description=description,
                organization_size=organization_size,
            ),
            observed_at=BASE_TIME + timedelta(days=days),
            quality_score=quality,
        )

    return _factory


@pytest.fixture
def make_org() -> Callable[..., Record]:
    """Factory for organization records with minimal boilerplate."""

    def _factory(
        rid: str = "org-001",
        *,
        name: str = "Acme (Pty) Ltd",
        industry: str | None = "Software",
        city: str | None = "Cape Town",
        province: str | None = "Western Cape",
        website: str | None = "https://www.acme.co.za",
        description: str | None = None,
        emails: tuple[str, ...] = (),
        phones: tuple[str, ...] = (),
        employee_count: int | None = None,
        days: float = 0,
        quality: float = 50.0,
        source: str = "company-registry",
        category: str | None = None,
    ) -> Record:
        return Record(
            record_id=rid,
            kind=EntityKind.ORGANIZATION,
            source=SourceRef(name=source, source_id=rid, category=category),
            attributes=OrganizationAttributes(
                name=name,
                industry=industry,
                city=city,
                province=province,
                website=website,
                description=description,
                emails=emails,
                phones=phones,
                employee_count=employee_count,
            ),
            observed_at=BASE_TIME + timedelta(days=days),
            quality_score=quality,
        )

    return _factory


@pytest.fixture
def sample_records(
    make_job: Callable[..., Record], make_org: Callable[..., Record]
) -> list[Record]:
    """Small mixed batch: one job duplicate pair, one review-band job, one org pair."""
    return [
        make_job("job-a", organization="Google"),
        make_job("job-b", organization="Google (Pty) Ltd", days=2, source="linkedin"),
        make_job("job-c", organization="Google", city="Stellenbosch"),
        make_org("org-a", name="Acme (Pty) Ltd"),
        make_org("org-b", name="ACME Ltd", quality=80.0),
    ]


@pytest.fixture
def records_file(tmp_path: Path, sample_records: list[Record]) -> Path:
    """``sample_records`` written as JSON Lines."""
    path = tmp_path / "records.jsonl"
    with path.open("w", encoding="utf-8") as f:
        for record in sample_records:
            f.write(json.dumps(record.to_dict()) + "\n")
    return path
