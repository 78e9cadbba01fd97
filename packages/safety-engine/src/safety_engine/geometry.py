from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from safety_engine.models import Coordinate

EARTH_RADIUS_METERS = 6_371_000
KM_PER_DEGREE_LAT = 111.0
MIN_COS_LATITUDE = 1e-6


def haversine_distance_meters(start: Coordinate, end: Coordinate) -> float:
    start_lat = math.radians(start.lat)
    end_lat = math.radians(end.lat)
    delta_lat = math.radians(end.lat - start.lat)
    delta_lon = math.radians(end.lon - start.lon)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(start_lat) * math.cos(end_lat) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_point_inside_radius(center: Coordinate, point: Coordinate, radius_meters: float) -> bool:
    if radius_meters < 0:
        raise ValueError("radius_meters must be >= 0")
    return haversine_distance_meters(center, point) <= radius_meters


def is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def clamp_radius_km(radius_km: float, min_km: float, max_km: float) -> float:
    if min_km > max_km:
        raise ValueError("min_km must be <= max_km")
    return min(max(radius_km, min_km), max_km)


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def contains(self, point: Coordinate) -> bool:
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lon <= point.lon <= self.max_lon
        )

    def intersects(self, other: BoundingBox) -> bool:
        return not (
            other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
            or other.min_lon > self.max_lon
            or other.max_lon < self.min_lon
        )

    def as_provider_bbox(self) -> str:
        """Comma separated ``minLon,minLat,maxLon,maxLat`` as traffic providers expect."""
        return f"{self.min_lon},{self.min_lat},{self.max_lon},{self.max_lat}"


def bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    delta_lat = radius_km / KM_PER_DEGREE_LAT
    delta_lon = delta_lat / max(math.cos(math.radians(center.lat)), MIN_COS_LATITUDE)
    return BoundingBox(
        min_lat=max(-90.0, center.lat - delta_lat),
        min_lon=max(-180.0, center.lon - delta_lon),
        max_lat=min(90.0, center.lat + delta_lat),
        max_lon=min(180.0, center.lon + delta_lon),
    )


def envelope(points: Iterable[Coordinate]) -> BoundingBox:
    items = list(points)
    if not items:
        raise ValueError("points must not be empty")
    return BoundingBox(
        min_lat=min(p.lat for p in items),
        min_lon=min(p.lon for p in items),
        max_lat=max(p.lat for p in items),
        max_lon=max(p.lon for p in items),
    )


def is_point_in_polygon(point: Coordinate, ring: Sequence[Coordinate]) -> bool:
    # Ray casting over a closed ring, longitude as x.
    inside = False
    for index in range(len(ring) - 1):
        a = ring[index]
        b = ring[index + 1]
        if (a.lat > point.lat) == (b.lat > point.lat):
            continue
        crossing_lon = a.lon + (point.lat - a.lat) * (b.lon - a.lon) / (b.lat - a.lat)
        if point.lon < crossing_lon:
            inside = not inside
    return inside


def _orientation(a: Coordinate, b: Coordinate, c: Coordinate) -> float:
    return (b.lon - a.lon) * (c.lat - a.lat) - (b.lat - a.lat) * (c.lon - a.lon)


def _on_segment(a: Coordinate, b: Coordinate, c: Coordinate) -> bool:
    return min(a.lon, b.lon) <= c.lon <= max(a.lon, b.lon) and min(a.lat, b.lat) <= c.lat <= max(a.lat, b.lat)


def segments_intersect(p1: Coordinate, p2: Coordinate, q1: Coordinate, q2: Coordinate) -> bool:
    d1 = _orientation(q1, q2, p1)
    d2 = _orientation(q1, q2, p2)
    d3 = _orientation(p1, p2, q1)
    d4 = _orientation(p1, p2, q2)
    if ((d1 > 0 and d2 < 0) or (d1 < 0 and d2 > 0)) and ((d3 > 0 and d4 < 0) or (d3 < 0 and d4 > 0)):
        return True
    # Collinear touches.
    return (
        (d1 == 0 and _on_segment(q1, q2, p1))
        or (d2 == 0 and _on_segment(q1, q2, p2))
        or (d3 == 0 and _on_segment(p1, p2, q1))
        or (d4 == 0 and _on_segment(p1, p2, q2))
    )


def path_enters_polygon(path: Sequence[Coordinate], ring: Sequence[Coordinate]) -> bool:
    """True when any vertex of ``path`` lies inside ``ring`` or any of its segments crosses the ring."""
    if any(is_point_in_polygon(point, ring) for point in path):
        return True
    for index in range(len(path) - 1):
        start, end = path[index], path[index + 1]
        for edge in range(len(ring) - 1):
            if segments_intersect(start, end, ring[edge], ring[edge + 1]):
                return True
    return False


def bounding_circle(points: Sequence[Coordinate]) -> tuple[Coordinate, float]:
    """Center of the envelope and the largest distance (km) from it to any point."""
    box = envelope(points)
    center = Coordinate(
        lat=(box.min_lat + box.max_lat) / 2,
        lon=(box.min_lon + box.max_lon) / 2,
    )
    radius_meters = max(haversine_distance_meters(center, point) for point in points)
    return center, radius_meters / 1000.0
