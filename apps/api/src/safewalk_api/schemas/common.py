from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from safety_engine.models import Coordinate, SafetyScore
from safety_engine.scoring import safety_level, safety_recommendation


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoordinateIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90, validation_alias=AliasChoices("lat", "latitude"))
    lon: float = Field(..., ge=-180, le=180, validation_alias=AliasChoices("lon", "lng", "longitude"))

    def to_domain(self) -> Coordinate:
        return Coordinate(lat=self.lat, lon=self.lon)


class CoordinateOut(ApiModel):
    lat: float
    lon: float

    @classmethod
    def from_domain(cls, coordinate: Coordinate) -> CoordinateOut:
        return cls(lat=coordinate.lat, lon=coordinate.lon)


class SafetyFactorsOut(ApiModel):
    incident_count: int
    crime_zone_count: int
    weather_risk: str


class SafetyScoreOut(ApiModel):
    score: int
    level: str
    recommendation: str
    warnings: list[str]
    contributing_factors: SafetyFactorsOut

    @classmethod
    def from_domain(cls, safety: SafetyScore) -> SafetyScoreOut:
        return cls(
            score=safety.score,
            level=safety_level(safety.score),
            recommendation=safety_recommendation(safety.score),
            warnings=list(safety.warnings),
            contributing_factors=SafetyFactorsOut(
                incident_count=safety.factors.incident_count,
                crime_zone_count=safety.factors.crime_zone_count,
                weather_risk=safety.factors.weather_risk.value,
            ),
        )
