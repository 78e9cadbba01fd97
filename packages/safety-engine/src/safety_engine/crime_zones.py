from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from safety_engine.errors import InvalidInput
from safety_engine.geometry import BoundingBox, envelope
from safety_engine.models import Coordinate, CrimeZone, RiskLevel


def _ring(*points: tuple[float, float]) -> tuple[Coordinate, ...]:
    coords = tuple(Coordinate(lat=lat, lon=lon) for lat, lon in points)
    return coords + (coords[0],)


# Community-sourced hotspots around central Bengaluru.
DEFAULT_CRIME_ZONES: tuple[CrimeZone, ...] = (
    CrimeZone(
        id="blr-majestic",
        name="Majestic Bus Stand",
        risk_level=RiskLevel.HIGH,
        polygon=_ring((12.9790, 77.5700), (12.9790, 77.5760), (12.9740, 77.5760), (12.9740, 77.5700)),
    ),
    CrimeZone(
        id="blr-kr-market",
        name="KR Market",
        risk_level=RiskLevel.MEDIUM,
        polygon=_ring((12.9660, 77.5750), (12.9660, 77.5800), (12.9620, 77.5800), (12.9620, 77.5750)),
    ),
    CrimeZone(
        id="blr-shivajinagar",
        name="Shivajinagar Market",
        risk_level=RiskLevel.MEDIUM,
        polygon=_ring((12.9870, 77.6030), (12.9870, 77.6080), (12.9830, 77.6080), (12.9830, 77.6030)),
    ),
    CrimeZone(
        id="blr-cubbon-park-east",
        name="Cubbon Park East Edge",
        risk_level=RiskLevel.LOW,
        polygon=_ring((12.9780, 77.5960), (12.9780, 77.6000), (12.9740, 77.6000), (12.9740, 77.5960)),
    ),
)


def parse_crime_zone_feature(feature: dict[str, Any], index: int) -> CrimeZone:
    geometry = feature.get("geometry") or {}
    if geometry.get("type") != "Polygon":
        raise InvalidInput(f"crime zone feature {index} must be a Polygon")
    rings = geometry.get("coordinates") or []
    if not rings:
        raise InvalidInput(f"crime zone feature {index} has no coordinates")
    properties = feature.get("properties") or {}
    try:
        risk_level = RiskLevel(str(properties.get("risk", "medium")).lower())
    except ValueError as exc:
        raise InvalidInput(f"crime zone feature {index} has an unknown risk level") from exc
    polygon = tuple(Coordinate(lat=float(lat), lon=float(lon)) for lon, lat, *_ in rings[0])
    return CrimeZone(
        id=str(feature.get("id") or properties.get("id") or f"zone-{index}"),
        name=str(properties.get("name") or f"Zone {index}"),
        risk_level=risk_level,
        polygon=polygon,
    )


def load_crime_zones_geojson(path: str | Path) -> tuple[CrimeZone, ...]:
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if payload.get("type") != "FeatureCollection":
        raise InvalidInput("crime zone catalog must be a GeoJSON FeatureCollection")
    return tuple(
        parse_crime_zone_feature(feature, index)
        for index, feature in enumerate(payload.get("features") or [])
    )


class StaticCrimeZoneCatalog:
    def __init__(self, zones: Sequence[CrimeZone] = DEFAULT_CRIME_ZONES) -> None:
        self._zones = tuple(zones)
        self._envelopes = {zone.id: envelope(zone.polygon) for zone in self._zones}

    async def list_zones(self, region: BoundingBox | None = None) -> list[CrimeZone]:
        if region is None:
            return list(self._zones)
        return [zone for zone in self._zones if self._envelopes[zone.id].intersects(region)]
