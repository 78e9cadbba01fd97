from __future__ import annotations

from collections import deque
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import uuid4

from safety_engine.errors import InvalidInput
from safety_engine.geometry import BoundingBox
from safety_engine.models import Coordinate, HazardCategory, HazardIncident


class IncidentReportRepository(Protocol):
    async def append(self, report: HazardIncident) -> None: ...

    async def query_by_region(self, region: BoundingBox) -> list[HazardIncident]: ...

    async def get(self, report_id: str) -> HazardIncident | None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_user_report(
    kind: str,
    description: str,
    location: Coordinate,
    reporter: str | None = None,
    now: datetime | None = None,
) -> HazardIncident:
    kind = (kind or "").strip()
    description = (description or "").strip()
    if not kind:
        raise InvalidInput("category is required")
    if not description:
        raise InvalidInput("description is required")
    return HazardIncident(
        id=f"report-{uuid4().hex}",
        location=location,
        category=HazardCategory.USER_REPORT,
        severity=None,
        description=description,
        observed_at=now or _utcnow(),
        kind=kind.lower(),
        reporter=reporter,
    )


class InMemoryIncidentReportRepository:
    """Append-only report store bounded by entry count and age.

    Reads work on a snapshot so concurrent appends never disturb a query.
    """

    def __init__(
        self,
        max_entries: int = 5000,
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._reports: deque[HazardIncident] = deque(maxlen=max_entries)
        self._retention = retention
        self._clock = clock

    async def append(self, report: HazardIncident) -> None:
        self._evict_expired()
        self._reports.append(report)

    async def query_by_region(self, region: BoundingBox) -> list[HazardIncident]:
        self._evict_expired()
        snapshot = tuple(self._reports)
        return [report for report in snapshot if region.contains(report.location)]

    async def get(self, report_id: str) -> HazardIncident | None:
        for report in tuple(self._reports):
            if report.id == report_id:
                return report
        return None

    def __len__(self) -> int:
        return len(self._reports)

    def _evict_expired(self) -> None:
        cutoff = self._clock() - self._retention
        while self._reports and self._is_expired(self._reports[0], cutoff):
            self._reports.popleft()

    @staticmethod
    def _is_expired(report: HazardIncident, cutoff: datetime) -> bool:
        return report.observed_at is not None and report.observed_at < cutoff
