"""Safety-aware route evaluation and on-trip monitoring engine."""

from safety_engine.crime_zones import DEFAULT_CRIME_ZONES, StaticCrimeZoneCatalog, load_crime_zones_geojson
from safety_engine.emergency import EmergencyStatus, InMemoryEmergencySessionRepository
from safety_engine.errors import (
    ComputationFailure,
    InvalidInput,
    InvalidTripState,
    NotFound,
    ProviderTimeout,
    ProviderUnavailable,
    RouteNotFound,
    SafetyEngineError,
)
from safety_engine.hazards import HazardAggregator, HazardAggregatorConfig, normalize_traffic_incidents
from safety_engine.models import (
    Coordinate,
    CrimeZone,
    HazardCategory,
    HazardIncident,
    HazardSnapshot,
    RiskLevel,
    RouteEvaluation,
    RouteSummary,
    SafetyScore,
    TripSession,
    TripState,
    WeatherRisk,
    WeatherSnapshot,
)
from safety_engine.monitor import MonitorConfig, TripMonitor, TripRegistry
from safety_engine.reports import InMemoryIncidentReportRepository, build_user_report
from safety_engine.routes import FASTEST_MODE, SAFEST_MODE, RouteEvaluator, RouteMode
from safety_engine.scoring import calculate_safety_score, safety_level, safety_recommendation

__all__ = [
    "ComputationFailure",
    "Coordinate",
    "CrimeZone",
    "DEFAULT_CRIME_ZONES",
    "EmergencyStatus",
    "FASTEST_MODE",
    "HazardAggregator",
    "HazardAggregatorConfig",
    "HazardCategory",
    "HazardIncident",
    "HazardSnapshot",
    "InMemoryEmergencySessionRepository",
    "InMemoryIncidentReportRepository",
    "InvalidInput",
    "InvalidTripState",
    "MonitorConfig",
    "NotFound",
    "ProviderTimeout",
    "ProviderUnavailable",
    "RiskLevel",
    "RouteEvaluation",
    "RouteEvaluator",
    "RouteMode",
    "RouteNotFound",
    "RouteSummary",
    "SAFEST_MODE",
    "SafetyEngineError",
    "SafetyScore",
    "StaticCrimeZoneCatalog",
    "TripMonitor",
    "TripRegistry",
    "TripSession",
    "TripState",
    "WeatherRisk",
    "WeatherSnapshot",
    "build_user_report",
    "calculate_safety_score",
    "load_crime_zones_geojson",
    "normalize_traffic_incidents",
    "safety_level",
    "safety_recommendation",
]
