from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from safety_engine.errors import InvalidInput


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not -90 <= self.lat <= 90:
            raise InvalidInput("latitude must be between -90 and 90")
        if not -180 <= self.lon <= 180:
            raise InvalidInput("longitude must be between -180 and 180")


class HazardCategory(str, Enum):
    TRAFFIC = "traffic"
    CRIME = "crime"
    WEATHER = "weather"
    USER_REPORT = "user-report"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WeatherRisk(str, Enum):
    NORMAL = "normal"
    RAIN_STORM = "rain-storm"
    LOW_VISIBILITY = "low-visibility"


@dataclass(frozen=True)
class HazardIncident:
    id: str
    location: Coordinate
    category: HazardCategory
    severity: float | None
    description: str
    observed_at: datetime | None
    kind: str = "incident"
    reporter: str | None = None


@dataclass(frozen=True)
class CrimeZone:
    id: str
    name: str
    risk_level: RiskLevel
    polygon: tuple[Coordinate, ...]

    def __post_init__(self) -> None:
        if len(self.polygon) < 4:
            raise InvalidInput(f"crime zone {self.id} needs at least 4 ring points")
        if self.polygon[0] != self.polygon[-1]:
            raise InvalidInput(f"crime zone {self.id} ring must be closed")


@dataclass(frozen=True)
class HazardSnapshot:
    traffic: tuple[HazardIncident, ...]
    crime: tuple[CrimeZone, ...]


@dataclass(frozen=True)
class WeatherSnapshot:
    description: str
    visibility_meters: float | None = None
    temperature_c: float | None = None
    feels_like_c: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    icon: str | None = None


@dataclass(frozen=True)
class SafetyFactors:
    incident_count: int
    crime_zone_count: int
    weather_risk: WeatherRisk


@dataclass(frozen=True)
class SafetyScore:
    score: int
    warnings: tuple[str, ...]
    factors: SafetyFactors


@dataclass(frozen=True)
class TurnInstruction:
    text: str
    distance_meters: float | None = None
    travel_time_seconds: float | None = None


@dataclass(frozen=True)
class RouteSummary:
    """Display values are rounded to one decimal; raw provider values keep full precision."""

    mode: str
    geometry: tuple[Coordinate, ...]
    travel_time_minutes: float
    distance_km: float
    raw_travel_time_seconds: float
    raw_length_meters: float
    turn_instructions: tuple[TurnInstruction, ...] = ()
    warnings: tuple[str, ...] = ()
    safety: SafetyScore | None = None


@dataclass(frozen=True)
class RouteEvaluation:
    fastest: RouteSummary
    safest: RouteSummary


class TripState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    REROUTE_SUGGESTED = "reroute-suggested"
    STOPPED = "stopped"


@dataclass
class TripSession:
    id: str
    origin: Coordinate
    destination: Coordinate
    current_position: Coordinate | None = None
    seen_incident_ids: set[str] = field(default_factory=set)
    last_score: SafetyScore | None = None
    reroute_suggested: bool = False
    state: TripState = TripState.IDLE
    active_route: RouteSummary | None = None


@dataclass(frozen=True)
class Acknowledgement:
    at: datetime
    source_address: str


@dataclass
class EmergencySession:
    id: str
    origin: Coordinate
    contacts: tuple[dict, ...]
    created_at: datetime
    acknowledgements: list[Acknowledgement] = field(default_factory=list)
