from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from safety_engine.models import RouteEvaluation, RouteSummary

from safewalk_api.schemas.common import ApiModel, CoordinateIn, SafetyScoreOut


class RouteRequest(BaseModel):
    origin: CoordinateIn
    destination: CoordinateIn


class TurnInstructionOut(ApiModel):
    text: str
    distance_meters: float | None = None
    travel_time_seconds: float | None = None


class RouteSummaryOut(ApiModel):
    mode: str
    geometry: dict[str, Any]
    travel_time_minutes: float
    distance_km: float
    turn_instructions: list[TurnInstructionOut]
    warnings: list[str]
    safety: SafetyScoreOut | None = None

    @classmethod
    def from_domain(cls, summary: RouteSummary) -> RouteSummaryOut:
        return cls(
            mode=summary.mode,
            geometry={
                "type": "LineString",
                "coordinates": [[point.lon, point.lat] for point in summary.geometry],
            },
            travel_time_minutes=summary.travel_time_minutes,
            distance_km=summary.distance_km,
            turn_instructions=[
                TurnInstructionOut(
                    text=item.text,
                    distance_meters=item.distance_meters,
                    travel_time_seconds=item.travel_time_seconds,
                )
                for item in summary.turn_instructions
            ],
            warnings=list(summary.warnings),
            safety=SafetyScoreOut.from_domain(summary.safety) if summary.safety is not None else None,
        )


class RouteEvaluationOut(ApiModel):
    fastest: RouteSummaryOut
    safest: RouteSummaryOut

    @classmethod
    def from_domain(cls, evaluation: RouteEvaluation) -> RouteEvaluationOut:
        return cls(
            fastest=RouteSummaryOut.from_domain(evaluation.fastest),
            safest=RouteSummaryOut.from_domain(evaluation.safest),
        )


class GeocodeOut(ApiModel):
    lat: float
    lon: float
