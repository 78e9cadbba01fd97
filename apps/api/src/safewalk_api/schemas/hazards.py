from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from safety_engine.models import CrimeZone, HazardIncident, HazardSnapshot, WeatherSnapshot

from safewalk_api.schemas.common import ApiModel, CoordinateOut


class IncidentReportRequest(BaseModel):
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    latitude: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("longitude", "lon", "lng"))
    reporter: str | None = None


class HazardIncidentOut(ApiModel):
    id: str
    location: CoordinateOut
    category: str
    kind: str
    severity: float | None
    description: str
    observed_at: datetime | None

    @classmethod
    def from_domain(cls, incident: HazardIncident) -> HazardIncidentOut:
        return cls(
            id=incident.id,
            location=CoordinateOut.from_domain(incident.location),
            category=incident.category.value,
            kind=incident.kind,
            severity=incident.severity,
            description=incident.description,
            observed_at=incident.observed_at,
        )


class CrimeZoneOut(ApiModel):
    id: str
    name: str
    risk_level: str
    polygon: list[CoordinateOut]

    @classmethod
    def from_domain(cls, zone: CrimeZone) -> CrimeZoneOut:
        return cls(
            id=zone.id,
            name=zone.name,
            risk_level=zone.risk_level.value,
            polygon=[CoordinateOut.from_domain(point) for point in zone.polygon],
        )


class HazardSnapshotOut(ApiModel):
    traffic: list[HazardIncidentOut]
    crime: list[CrimeZoneOut]

    @classmethod
    def from_domain(cls, snapshot: HazardSnapshot) -> HazardSnapshotOut:
        return cls(
            traffic=[HazardIncidentOut.from_domain(item) for item in snapshot.traffic],
            crime=[CrimeZoneOut.from_domain(zone) for zone in snapshot.crime],
        )


class ReportAcceptedOut(ApiModel):
    ok: bool = True
    id: str


class WeatherOut(ApiModel):
    description: str
    visibility_meters: float | None = None
    temperature_c: float | None = None
    feels_like_c: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    icon: str | None = None

    @classmethod
    def from_domain(cls, weather: WeatherSnapshot) -> WeatherOut:
        return cls(
            description=weather.description,
            visibility_meters=weather.visibility_meters,
            temperature_c=weather.temperature_c,
            feels_like_c=weather.feels_like_c,
            humidity=weather.humidity,
            wind_speed=weather.wind_speed,
            icon=weather.icon,
        )


class SafetySnapshotOut(ApiModel):
    score: int
    level: str
    recommendation: str
    warnings: list[str]
    nearby_incidents: int
    crime_zones: int
    weather_risk: str
    weather: WeatherOut | None = None
