from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from safety_engine.errors import InvalidInput
from safety_engine.geometry import BoundingBox
from safety_engine.models import Coordinate, HazardCategory
from safety_engine.reports import InMemoryIncidentReportRepository, build_user_report

REGION = BoundingBox(min_lat=12.9, min_lon=77.5, max_lat=13.0, max_lon=77.7)
NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def test_build_user_report_normalizes_fields() -> None:
    report = build_user_report(
        kind="  Theft ",
        description=" Phone snatched near the bus stop ",
        location=Coordinate(lat=12.95, lon=77.6),
        reporter="client-1",
        now=NOW,
    )

    assert report.id.startswith("report-")
    assert report.category is HazardCategory.USER_REPORT
    assert report.kind == "theft"
    assert report.description == "Phone snatched near the bus stop"
    assert report.observed_at == NOW
    assert report.reporter == "client-1"


@pytest.mark.parametrize(
    ("kind", "description", "message"),
    [
        ("", "something", "category is required"),
        ("theft", "   ", "description is required"),
    ],
)
def test_build_user_report_requires_text(kind: str, description: str, message: str) -> None:
    with pytest.raises(InvalidInput, match=message):
        build_user_report(kind=kind, description=description, location=Coordinate(lat=12.95, lon=77.6))


@pytest.mark.asyncio
async def test_query_by_region_returns_reports_inside_box() -> None:
    repository = InMemoryIncidentReportRepository(clock=lambda: NOW)
    inside = build_user_report("lighting", "Street lights out", Coordinate(lat=12.95, lon=77.6), now=NOW)
    outside = build_user_report("theft", "Bag stolen", Coordinate(lat=28.61, lon=77.2), now=NOW)
    await repository.append(inside)
    await repository.append(outside)

    assert await repository.query_by_region(REGION) == [inside]
    assert await repository.get(outside.id) == outside
    assert await repository.get("missing") is None


@pytest.mark.asyncio
async def test_repository_is_bounded_by_count() -> None:
    repository = InMemoryIncidentReportRepository(max_entries=2, clock=lambda: NOW)
    reports = [
        build_user_report("other", f"report {index}", Coordinate(lat=12.95, lon=77.6), now=NOW)
        for index in range(3)
    ]
    for report in reports:
        await repository.append(report)

    assert len(repository) == 2
    assert await repository.get(reports[0].id) is None


@pytest.mark.asyncio
async def test_repository_evicts_expired_reports() -> None:
    current = {"now": NOW}
    repository = InMemoryIncidentReportRepository(retention=timedelta(hours=1), clock=lambda: current["now"])
    await repository.append(build_user_report("other", "old", Coordinate(lat=12.95, lon=77.6), now=NOW))

    current["now"] = NOW + timedelta(hours=2)

    assert await repository.query_by_region(REGION) == []
    assert len(repository) == 0


def test_repository_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        InMemoryIncidentReportRepository(max_entries=0)
