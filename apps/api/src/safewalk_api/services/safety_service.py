from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from safety_engine.errors import InvalidInput, NotFound
from safety_engine.hazards import HazardAggregator
from safety_engine.models import Coordinate, WeatherSnapshot
from safety_engine.reports import IncidentReportRepository, build_user_report
from safety_engine.routes import RouteEvaluator, WeatherProvider
from safety_engine.scoring import calculate_safety_score, safety_level, safety_recommendation

from safewalk_api.schemas.hazards import (
    HazardSnapshotOut,
    IncidentReportRequest,
    ReportAcceptedOut,
    SafetySnapshotOut,
    WeatherOut,
)
from safewalk_api.schemas.route import GeocodeOut, RouteEvaluationOut

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    async def geocode(self, query: str) -> Coordinate | None: ...


class SafetyService:
    def __init__(
        self,
        route_evaluator: RouteEvaluator,
        hazard_aggregator: HazardAggregator,
        report_repository: IncidentReportRepository,
        weather_provider: WeatherProvider,
        geocoder: Geocoder,
        clock: Callable[[], datetime] = datetime.now,
        safety_radius_km: float = 2.0,
    ) -> None:
        self._route_evaluator = route_evaluator
        self._hazard_aggregator = hazard_aggregator
        self._report_repository = report_repository
        self._weather_provider = weather_provider
        self._geocoder = geocoder
        self._clock = clock
        self._safety_radius_km = safety_radius_km

    async def evaluate_route(self, origin: Coordinate, destination: Coordinate) -> RouteEvaluationOut:
        evaluation = await self._route_evaluator.evaluate(origin, destination)
        return RouteEvaluationOut.from_domain(evaluation)

    async def incidents(self, center: Coordinate, radius_km: float | None) -> HazardSnapshotOut:
        snapshot = await self._hazard_aggregator.fetch(center, radius_km)
        return HazardSnapshotOut.from_domain(snapshot)

    async def report_incident(self, payload: IncidentReportRequest) -> ReportAcceptedOut:
        report = build_user_report(
            kind=payload.category,
            description=payload.description,
            location=Coordinate(lat=payload.latitude, lon=payload.longitude),
            reporter=payload.reporter,
        )
        await self._report_repository.append(report)
        logger.info("incident_reported", extra={"report_id": report.id, "kind": report.kind})
        return ReportAcceptedOut(id=report.id)

    async def weather(self, location: Coordinate) -> WeatherOut:
        snapshot = await self._weather_provider.current_weather(location)
        return WeatherOut.from_domain(snapshot)

    async def safety_snapshot(self, location: Coordinate) -> SafetySnapshotOut:
        hazards, weather = await asyncio.gather(
            self._hazard_aggregator.fetch(location, self._safety_radius_km),
            self._weather_or_none(location),
        )
        safety = calculate_safety_score(hazards.traffic, hazards.crime, weather, self._clock().hour)
        return SafetySnapshotOut(
            score=safety.score,
            level=safety_level(safety.score),
            recommendation=safety_recommendation(safety.score),
            warnings=list(safety.warnings),
            nearby_incidents=safety.factors.incident_count,
            crime_zones=safety.factors.crime_zone_count,
            weather_risk=safety.factors.weather_risk.value,
            weather=WeatherOut.from_domain(weather) if weather is not None else None,
        )

    async def geocode(self, query: str) -> GeocodeOut:
        query = query.strip()
        if not query:
            raise InvalidInput("query is required")
        location = await self._geocoder.geocode(query)
        if location is None:
            raise NotFound("Location not found")
        return GeocodeOut(lat=location.lat, lon=location.lon)

    async def _weather_or_none(self, location: Coordinate) -> WeatherSnapshot | None:
        try:
            return await self._weather_provider.current_weather(location)
        except Exception as exc:
            logger.warning(
                "weather_provider_degraded",
                extra={"component": "safety_service", "error": repr(exc)},
            )
            return None
