from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from safety_engine.geometry import BoundingBox, bounding_box, clamp_radius_km, is_finite_number
from safety_engine.models import Coordinate, CrimeZone, HazardCategory, HazardIncident, HazardSnapshot
from safety_engine.reports import IncidentReportRepository

logger = logging.getLogger(__name__)

# TomTom incident iconCategory codes.
INCIDENT_KINDS = {
    0: "unknown",
    1: "accident",
    2: "fog",
    3: "dangerous-conditions",
    4: "rain",
    5: "ice",
    6: "jam",
    7: "lane-closed",
    8: "road-closed",
    9: "road-works",
    10: "wind",
    11: "flooding",
    14: "broken-down-vehicle",
}


class TrafficIncidentProvider(Protocol):
    async def fetch_incidents(self, region: BoundingBox) -> list[dict[str, Any]]: ...


class CrimeZoneCatalog(Protocol):
    async def list_zones(self, region: BoundingBox | None = None) -> list[CrimeZone]: ...


@dataclass(frozen=True)
class HazardAggregatorConfig:
    min_radius_km: float = 1.0
    max_radius_km: float = 80.0
    default_radius_km: float = 33.0
    filter_crime_zones_by_region: bool = True

    def __post_init__(self) -> None:
        if self.min_radius_km <= 0 or self.min_radius_km > self.max_radius_km:
            raise ValueError("radius range must satisfy 0 < min_radius_km <= max_radius_km")


def _incident_center(raw: dict[str, Any]) -> tuple[Any, Any] | None:
    geometry = raw.get("geometry") or {}
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        if "latitude" in raw and "longitude" in raw:
            return raw["latitude"], raw["longitude"]
        return None
    if geometry.get("type") == "LineString":
        middle = coordinates[len(coordinates) // 2]
        if not isinstance(middle, (list, tuple)) or len(middle) < 2:
            return None
        return middle[1], middle[0]
    if len(coordinates) < 2:
        return None
    return coordinates[1], coordinates[0]


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _incident_description(properties: dict[str, Any]) -> str:
    events = properties.get("events") or []
    for event in events:
        if isinstance(event, dict) and event.get("description"):
            return str(event["description"])
    return str(properties.get("description") or "No description")


def _content_id(lat: float, lon: float, icon_category: Any) -> str:
    """Id derived from where and what the incident is, so repeated fetches agree."""
    incident_id = f"traffic-{lat:.5f},{lon:.5f}"
    if isinstance(icon_category, int):
        incident_id = f"{incident_id}-{icon_category}"
    return incident_id


def normalize_traffic_incidents(raw_items: Sequence[dict[str, Any]]) -> list[HazardIncident]:
    """Turn provider incidents into hazards, dropping any without a numeric center."""
    incidents: list[HazardIncident] = []
    used_ids: set[str] = set()
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            continue
        center = _incident_center(raw)
        if center is None:
            continue
        lat, lon = center
        if not (is_finite_number(lat) and is_finite_number(lon)):
            continue
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            continue
        properties = raw.get("properties") or {}
        icon_category = properties.get("iconCategory")
        incident_id = str(raw.get("id") or properties.get("id") or _content_id(lat, lon, icon_category))
        # Only a collision within the same payload gets an index suffix.
        if incident_id in used_ids:
            incident_id = f"{incident_id}-{index}"
        used_ids.add(incident_id)
        severity = properties.get("magnitudeOfDelay", properties.get("probability"))
        kind = INCIDENT_KINDS.get(icon_category, "incident") if isinstance(icon_category, int) else "incident"
        incidents.append(
            HazardIncident(
                id=incident_id,
                location=Coordinate(lat=float(lat), lon=float(lon)),
                category=HazardCategory.TRAFFIC,
                severity=float(severity) if is_finite_number(severity) else None,
                description=_incident_description(properties),
                observed_at=_parse_timestamp(properties.get("startTime")),
                kind=kind,
            )
        )
    return incidents


class HazardAggregator:
    def __init__(
        self,
        traffic_provider: TrafficIncidentProvider,
        crime_catalog: CrimeZoneCatalog,
        report_repository: IncidentReportRepository,
        config: HazardAggregatorConfig | None = None,
    ) -> None:
        self._traffic_provider = traffic_provider
        self._crime_catalog = crime_catalog
        self._report_repository = report_repository
        self._config = config or HazardAggregatorConfig()

    @property
    def config(self) -> HazardAggregatorConfig:
        return self._config

    def region_for(self, center: Coordinate, radius_km: float | None = None) -> BoundingBox:
        requested = self._config.default_radius_km if radius_km is None else radius_km
        radius = clamp_radius_km(requested, self._config.min_radius_km, self._config.max_radius_km)
        return bounding_box(center, radius)

    async def fetch(self, center: Coordinate, radius_km: float | None = None) -> HazardSnapshot:
        region = self.region_for(center, radius_km)
        traffic, reports, zones = await asyncio.gather(
            self._fetch_traffic(region),
            self._report_repository.query_by_region(region),
            self._fetch_crime_zones(region),
        )
        return HazardSnapshot(traffic=tuple(traffic) + tuple(reports), crime=tuple(zones))

    async def _fetch_traffic(self, region: BoundingBox) -> list[HazardIncident]:
        try:
            raw_items = await self._traffic_provider.fetch_incidents(region)
        except Exception as exc:
            logger.warning(
                "traffic_provider_degraded",
                extra={"component": "hazard_aggregator", "error": repr(exc)},
            )
            return []
        return normalize_traffic_incidents(raw_items)

    async def _fetch_crime_zones(self, region: BoundingBox) -> list[CrimeZone]:
        if self._config.filter_crime_zones_by_region:
            return await self._crime_catalog.list_zones(region)
        return await self._crime_catalog.list_zones()
