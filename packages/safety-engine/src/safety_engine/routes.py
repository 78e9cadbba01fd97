from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Protocol

from safety_engine.errors import ComputationFailure, InvalidInput, RouteNotFound
from safety_engine.geometry import (
    bounding_circle,
    haversine_distance_meters,
    is_finite_number,
    path_enters_polygon,
)
from safety_engine.hazards import HazardAggregator
from safety_engine.models import (
    Coordinate,
    CrimeZone,
    HazardIncident,
    RouteEvaluation,
    RouteSummary,
    SafetyScore,
    TurnInstruction,
    WeatherSnapshot,
)
from safety_engine.scoring import calculate_safety_score, unavailable_safety_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteMode:
    name: str
    route_type: str
    traffic: bool
    travel_mode: str = "pedestrian"


FASTEST_MODE = RouteMode(name="fastest", route_type="fastest", traffic=True)
SAFEST_MODE = RouteMode(name="safest", route_type="shortest", traffic=False)


class RouteProvider(Protocol):
    async def calculate_route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        mode: RouteMode,
    ) -> dict[str, Any]: ...


class WeatherProvider(Protocol):
    async def current_weather(self, location: Coordinate) -> WeatherSnapshot: ...


def extract_geometry(legs: Sequence[dict[str, Any]]) -> tuple[Coordinate, ...]:
    geometry: list[Coordinate] = []
    for leg in legs:
        for point in leg.get("points") or []:
            if not isinstance(point, dict):
                continue
            lat = point.get("latitude")
            lon = point.get("longitude")
            if not (is_finite_number(lat) and is_finite_number(lon)):
                continue
            try:
                geometry.append(Coordinate(lat=float(lat), lon=float(lon)))
            except InvalidInput:
                continue
    return tuple(geometry)


def _span(start: Any, end: Any) -> float | None:
    if not (is_finite_number(start) and is_finite_number(end)) or end < start:
        return None
    return float(end - start)


def extract_turn_instructions(
    route: dict[str, Any],
    total_meters: float | None = None,
    total_seconds: float | None = None,
) -> tuple[TurnInstruction, ...]:
    """Build turn-by-turn steps.

    Provider offsets and times are cumulative from the route start, so each step
    covers the stretch up to the next instruction; the last one runs to the end
    of the route.
    """
    guidance = route.get("guidance") or {}
    steps: list[tuple[str, Any, Any]] = []
    for item in guidance.get("instructions") or []:
        if not isinstance(item, dict):
            continue
        text = item.get("message") or item.get("combinedMessage")
        if not text:
            continue
        steps.append((str(text), item.get("routeOffsetInMeters"), item.get("travelTimeInSeconds")))

    instructions: list[TurnInstruction] = []
    for index, (text, offset, elapsed) in enumerate(steps):
        if index + 1 < len(steps):
            _, next_offset, next_elapsed = steps[index + 1]
        else:
            next_offset, next_elapsed = total_meters, total_seconds
        instructions.append(
            TurnInstruction(
                text=text,
                distance_meters=_span(offset, next_offset),
                travel_time_seconds=_span(elapsed, next_elapsed),
            )
        )
    return tuple(instructions)


def build_route_summary(payload: dict[str, Any], mode: RouteMode) -> RouteSummary:
    label = mode.name.capitalize()
    routes = payload.get("routes") if isinstance(payload, dict) else None
    if not routes or not isinstance(routes[0], dict):
        raise RouteNotFound(f"{label} route not found")
    route = routes[0]
    legs = [leg for leg in route.get("legs") or [] if isinstance(leg, dict)]
    if not legs:
        raise RouteNotFound(f"{label} route not found")
    geometry = extract_geometry(legs)
    if len(geometry) < 2:
        raise RouteNotFound(f"{label} route not found")

    summary = route.get("summary") or legs[0].get("summary") or {}
    seconds = summary.get("travelTimeInSeconds")
    meters = summary.get("lengthInMeters")
    if not (is_finite_number(seconds) and is_finite_number(meters)) or seconds < 0 or meters < 0:
        raise ComputationFailure(f"{label} route summary is malformed")

    return RouteSummary(
        mode=mode.name,
        geometry=geometry,
        travel_time_minutes=round(seconds / 60, 1),
        distance_km=round(meters / 1000, 1),
        raw_travel_time_seconds=float(seconds),
        raw_length_meters=float(meters),
        turn_instructions=extract_turn_instructions(route, float(meters), float(seconds)),
    )


def incidents_near_route(
    incidents: Sequence[HazardIncident],
    geometry: Sequence[Coordinate],
    corridor_meters: float,
) -> list[HazardIncident]:
    return [
        incident
        for incident in incidents
        if any(haversine_distance_meters(point, incident.location) <= corridor_meters for point in geometry)
    ]


def zones_crossed_by_route(zones: Sequence[CrimeZone], geometry: Sequence[Coordinate]) -> list[CrimeZone]:
    return [zone for zone in zones if path_enters_polygon(geometry, zone.polygon)]


class RouteEvaluator:
    """Fetches the fastest and safest alternatives and scores the safest one.

    The safest alternative is a conservative provider mode; its geometry is scored
    for hazards, it is not optimised around them.
    """

    def __init__(
        self,
        route_provider: RouteProvider,
        hazard_aggregator: HazardAggregator,
        weather_provider: WeatherProvider | None = None,
        clock: Callable[[], datetime] = datetime.now,
        corridor_meters: float = 250.0,
    ) -> None:
        self._route_provider = route_provider
        self._hazard_aggregator = hazard_aggregator
        self._weather_provider = weather_provider
        self._clock = clock
        self._corridor_meters = corridor_meters

    async def evaluate(self, origin: Coordinate, destination: Coordinate) -> RouteEvaluation:
        fastest_payload, safest_payload = await asyncio.gather(
            self._route_provider.calculate_route(origin, destination, FASTEST_MODE),
            self._route_provider.calculate_route(origin, destination, SAFEST_MODE),
        )
        fastest = build_route_summary(fastest_payload, FASTEST_MODE)
        safest = build_route_summary(safest_payload, SAFEST_MODE)
        safety = await self.score_geometry(safest.geometry)
        logger.info(
            "route_evaluated",
            extra={
                "component": "route_evaluator",
                "fastest_minutes": fastest.travel_time_minutes,
                "safest_minutes": safest.travel_time_minutes,
                "safety_score": safety.score,
            },
        )
        return RouteEvaluation(
            fastest=fastest,
            safest=replace(safest, safety=safety, warnings=safety.warnings),
        )

    async def score_geometry(self, geometry: Sequence[Coordinate]) -> SafetyScore:
        center, radius_km = bounding_circle(geometry)
        radius_km += self._corridor_meters / 1000.0
        try:
            hazards, weather = await asyncio.gather(
                self._hazard_aggregator.fetch(center, radius_km),
                self._current_weather(geometry[0]),
            )
        except Exception as exc:
            logger.warning(
                "route_hazards_unavailable",
                extra={"component": "route_evaluator", "error": repr(exc)},
            )
            return unavailable_safety_score()
        return calculate_safety_score(
            incidents=incidents_near_route(hazards.traffic, geometry, self._corridor_meters),
            crime_zones=zones_crossed_by_route(hazards.crime, geometry),
            weather=weather,
            hour_of_day=self._clock().hour,
        )

    async def _current_weather(self, location: Coordinate) -> WeatherSnapshot | None:
        if self._weather_provider is None:
            return None
        try:
            return await self._weather_provider.current_weather(location)
        except Exception as exc:
            logger.warning(
                "weather_provider_degraded",
                extra={"component": "route_evaluator", "error": repr(exc)},
            )
            return None
