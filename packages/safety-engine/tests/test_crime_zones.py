from __future__ import annotations

import json

import pytest

from safety_engine.crime_zones import (
    DEFAULT_CRIME_ZONES,
    StaticCrimeZoneCatalog,
    load_crime_zones_geojson,
)
from safety_engine.errors import InvalidInput
from safety_engine.geometry import BoundingBox
from safety_engine.models import RiskLevel


def _feature(zone_id: str, risk: str = "high") -> dict:
    return {
        "type": "Feature",
        "id": zone_id,
        "properties": {"name": "Station Road", "risk": risk},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[[77.60, 12.95], [77.61, 12.95], [77.61, 12.96], [77.60, 12.96], [77.60, 12.95]]],
        },
    }


def test_default_catalog_polygons_are_closed() -> None:
    for zone in DEFAULT_CRIME_ZONES:
        assert zone.polygon[0] == zone.polygon[-1]
        assert len(zone.polygon) >= 4


@pytest.mark.asyncio
async def test_catalog_filters_by_region() -> None:
    catalog = StaticCrimeZoneCatalog()
    around_majestic = BoundingBox(min_lat=12.975, min_lon=77.571, max_lat=12.978, max_lon=77.574)
    far_away = BoundingBox(min_lat=28.5, min_lon=77.1, max_lat=28.7, max_lon=77.3)

    assert [zone.id for zone in await catalog.list_zones(around_majestic)] == ["blr-majestic"]
    assert await catalog.list_zones(far_away) == []
    assert len(await catalog.list_zones()) == len(DEFAULT_CRIME_ZONES)


def test_load_geojson_feature_collection(tmp_path) -> None:
    path = tmp_path / "zones.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": [_feature("z-1", "LOW")]}))

    zones = load_crime_zones_geojson(path)

    assert len(zones) == 1
    assert zones[0].id == "z-1"
    assert zones[0].risk_level is RiskLevel.LOW
    assert zones[0].polygon[0].lat == 12.95
    assert zones[0].polygon[0].lon == 77.60


def test_load_geojson_rejects_unknown_risk(tmp_path) -> None:
    path = tmp_path / "zones.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": [_feature("z-1", "extreme")]}))

    with pytest.raises(InvalidInput):
        load_crime_zones_geojson(path)


def test_load_geojson_rejects_other_documents(tmp_path) -> None:
    path = tmp_path / "zones.geojson"
    path.write_text(json.dumps(_feature("z-1")))

    with pytest.raises(InvalidInput):
        load_crime_zones_geojson(path)
