from __future__ import annotations

from datetime import timedelta

from devkit.config import SafeWalkSettings, load_settings
from devkit.timezone import now_local
from safety_engine.crime_zones import StaticCrimeZoneCatalog, load_crime_zones_geojson
from safety_engine.emergency import InMemoryEmergencySessionRepository
from safety_engine.hazards import HazardAggregator, HazardAggregatorConfig
from safety_engine.models import TripSession
from safety_engine.monitor import MonitorConfig, TripMonitor, TripRegistry
from safety_engine.reports import InMemoryIncidentReportRepository
from safety_engine.routes import RouteEvaluator

from safewalk_api.circuit_breaker import CircuitBreaker, ProviderGuard
from safewalk_api.clients.openweather_client import OpenWeatherClient
from safewalk_api.clients.tomtom_client import TomTomClient
from safewalk_api.rate_limit import InMemoryRateLimitStore, SlidingWindowRateLimiter
from safewalk_api.services.emergency_service import EmergencyService
from safewalk_api.services.safety_service import SafetyService
from safewalk_api.services.trip_service import TripService

_settings = load_settings("safewalk-api")
_timeout = _settings.PROVIDER_TIMEOUT_SECONDS

_tomtom_client = TomTomClient(
    api_key=_settings.TOMTOM_API_KEY,
    base_url=_settings.TOMTOM_BASE_URL,
    timeout_seconds=_timeout,
    routing_guard=ProviderGuard(CircuitBreaker("tomtom-routing"), timeout_seconds=_timeout),
    search_guard=ProviderGuard(CircuitBreaker("tomtom-search"), timeout_seconds=_timeout),
)
_weather_client = OpenWeatherClient(
    api_key=_settings.OPENWEATHER_API_KEY,
    base_url=_settings.OPENWEATHER_BASE_URL,
    timeout_seconds=_timeout,
    guard=ProviderGuard(CircuitBreaker("openweather"), timeout_seconds=_timeout),
)

if _settings.CRIME_ZONES_PATH:
    _crime_catalog = StaticCrimeZoneCatalog(load_crime_zones_geojson(_settings.CRIME_ZONES_PATH))
else:
    _crime_catalog = StaticCrimeZoneCatalog()

_report_repository = InMemoryIncidentReportRepository(
    max_entries=_settings.REPORT_STORE_MAX_ENTRIES,
    retention=timedelta(hours=_settings.REPORT_RETENTION_HOURS),
)
_emergency_repository = InMemoryEmergencySessionRepository(
    max_sessions=_settings.EMERGENCY_STORE_MAX_SESSIONS,
    retention=timedelta(hours=_settings.EMERGENCY_RETENTION_HOURS),
)

_hazard_aggregator = HazardAggregator(
    traffic_provider=_tomtom_client,
    crime_catalog=_crime_catalog,
    report_repository=_report_repository,
    config=HazardAggregatorConfig(
        min_radius_km=_settings.HAZARD_MIN_RADIUS_KM,
        max_radius_km=_settings.HAZARD_MAX_RADIUS_KM,
        default_radius_km=_settings.HAZARD_DEFAULT_RADIUS_KM,
        filter_crime_zones_by_region=_settings.FILTER_CRIME_ZONES_BY_REGION,
    ),
)
_route_evaluator = RouteEvaluator(
    route_provider=_tomtom_client,
    hazard_aggregator=_hazard_aggregator,
    weather_provider=_weather_client,
    clock=now_local,
    corridor_meters=_settings.ROUTE_CORRIDOR_METERS,
)
_monitor_config = MonitorConfig(
    poll_interval_seconds=_settings.TRIP_POLL_INTERVAL_SECONDS,
    hazard_radius_km=_settings.TRIP_HAZARD_RADIUS_KM,
    proximity_meters=_settings.TRIP_PROXIMITY_METERS,
)


def _build_trip_monitor(session: TripSession) -> TripMonitor:
    return TripMonitor(
        session=session,
        hazard_aggregator=_hazard_aggregator,
        route_evaluator=_route_evaluator,
        weather_provider=_weather_client,
        config=_monitor_config,
        clock=now_local,
    )


_safety_service = SafetyService(
    route_evaluator=_route_evaluator,
    hazard_aggregator=_hazard_aggregator,
    report_repository=_report_repository,
    weather_provider=_weather_client,
    geocoder=_tomtom_client,
    clock=now_local,
    safety_radius_km=_settings.SAFETY_SCORE_RADIUS_KM,
)
_emergency_service = EmergencyService(_emergency_repository, public_base_url=_settings.PUBLIC_BASE_URL)
_trip_service = TripService(TripRegistry(_build_trip_monitor))
_report_rate_limiter = SlidingWindowRateLimiter(
    InMemoryRateLimitStore(),
    limit_per_minute=_settings.REPORT_RATE_LIMIT_PER_MINUTE,
    window_seconds=60,
)


def get_settings() -> SafeWalkSettings:
    return _settings


def get_safety_service() -> SafetyService:
    return _safety_service


def get_emergency_service() -> EmergencyService:
    return _emergency_service


def get_trip_service() -> TripService:
    return _trip_service


def get_report_rate_limiter() -> SlidingWindowRateLimiter:
    return _report_rate_limiter
