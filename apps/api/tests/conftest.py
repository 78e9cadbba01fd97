from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from safety_engine.crime_zones import StaticCrimeZoneCatalog
from safety_engine.emergency import InMemoryEmergencySessionRepository
from safety_engine.geometry import BoundingBox
from safety_engine.hazards import HazardAggregator
from safety_engine.models import Coordinate, TripSession, WeatherSnapshot
from safety_engine.monitor import MonitorConfig, TripMonitor, TripRegistry
from safety_engine.reports import InMemoryIncidentReportRepository
from safety_engine.routes import RouteEvaluator, RouteMode

from safewalk_api.app import create_app
from safewalk_api.dependencies import (
    get_emergency_service,
    get_report_rate_limiter,
    get_safety_service,
    get_trip_service,
)
from safewalk_api.rate_limit import InMemoryRateLimitStore, SlidingWindowRateLimiter
from safewalk_api.services.emergency_service import EmergencyService
from safewalk_api.services.safety_service import SafetyService
from safewalk_api.services.trip_service import TripService

NOON = datetime(2026, 10, 18, 12, 0)


def route_payload(seconds: float, meters: float) -> dict:
    return {
        "routes": [
            {
                "summary": {"travelTimeInSeconds": seconds, "lengthInMeters": meters},
                "legs": [
                    {
                        "points": [
                            {"latitude": 12.9716, "longitude": 77.5946},
                            {"latitude": 12.9600, "longitude": 77.6050},
                            {"latitude": 12.9352, "longitude": 77.6245},
                        ]
                    }
                ],
                "guidance": {"instructions": [{"message": "Head south on MG Road", "routeOffsetInMeters": 0}]},
            }
        ]
    }


class FakeRouteProvider:
    def __init__(self) -> None:
        self.payloads = {"fastest": route_payload(754, 8437), "safest": route_payload(901, 7049)}
        self.errors: dict[str, Exception] = {}

    async def calculate_route(self, origin: Coordinate, destination: Coordinate, mode: RouteMode) -> dict:
        if mode.name in self.errors:
            raise self.errors[mode.name]
        return self.payloads[mode.name]


class FakeTrafficProvider:
    def __init__(self) -> None:
        self.incidents: list[dict] = []

    async def fetch_incidents(self, region: BoundingBox) -> list[dict]:
        return list(self.incidents)


class FakeWeatherProvider:
    def __init__(self) -> None:
        self.snapshot = WeatherSnapshot(description="clear sky", visibility_meters=10000, temperature_c=27.5)
        self.error: Exception | None = None

    async def current_weather(self, location: Coordinate) -> WeatherSnapshot:
        if self.error is not None:
            raise self.error
        return self.snapshot


class FakeGeocoder:
    def __init__(self) -> None:
        self.places = {"mg road": Coordinate(lat=12.9756, lon=77.6066)}

    async def geocode(self, query: str) -> Coordinate | None:
        return self.places.get(query.lower())


@dataclass
class Engine:
    routes: FakeRouteProvider = field(default_factory=FakeRouteProvider)
    traffic: FakeTrafficProvider = field(default_factory=FakeTrafficProvider)
    weather: FakeWeatherProvider = field(default_factory=FakeWeatherProvider)
    geocoder: FakeGeocoder = field(default_factory=FakeGeocoder)
    reports: InMemoryIncidentReportRepository = field(default_factory=InMemoryIncidentReportRepository)
    rate_limiter: SlidingWindowRateLimiter = field(
        default_factory=lambda: SlidingWindowRateLimiter(InMemoryRateLimitStore(), limit_per_minute=10)
    )
    scorer: object | None = None

    def __post_init__(self) -> None:
        self.aggregator = HazardAggregator(self.traffic, StaticCrimeZoneCatalog(zones=()), self.reports)
        self.evaluator = RouteEvaluator(self.routes, self.aggregator, self.weather, clock=lambda: NOON)
        self.safety_service = SafetyService(
            route_evaluator=self.evaluator,
            hazard_aggregator=self.aggregator,
            report_repository=self.reports,
            weather_provider=self.weather,
            geocoder=self.geocoder,
            clock=lambda: NOON,
        )
        self.emergency_service = EmergencyService(
            InMemoryEmergencySessionRepository(),
            public_base_url="https://safewalk.example.com/",
        )
        self.trip_service = TripService(TripRegistry(self._build_monitor))

    def _build_monitor(self, session: TripSession) -> TripMonitor:
        extra = {"scorer": self.scorer} if self.scorer is not None else {}
        return TripMonitor(
            session=session,
            hazard_aggregator=self.aggregator,
            route_evaluator=self.evaluator,
            weather_provider=self.weather,
            config=MonitorConfig(poll_interval_seconds=0),
            clock=lambda: NOON,
            **extra,
        )


@pytest.fixture
def engine() -> Engine:
    return Engine()


@pytest.fixture
def client(engine: Engine) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_safety_service] = lambda: engine.safety_service
    app.dependency_overrides[get_emergency_service] = lambda: engine.emergency_service
    app.dependency_overrides[get_trip_service] = lambda: engine.trip_service
    app.dependency_overrides[get_report_rate_limiter] = lambda: engine.rate_limiter
    return TestClient(app)
