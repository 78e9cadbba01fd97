from __future__ import annotations

from pydantic import BaseModel

from safety_engine.monitor import DiscoveredHazard, TickReport, TripMonitor

from safewalk_api.schemas.common import ApiModel, CoordinateIn, CoordinateOut, SafetyScoreOut
from safewalk_api.schemas.hazards import HazardIncidentOut
from safewalk_api.schemas.route import RouteSummaryOut


class TripCreateRequest(BaseModel):
    origin: CoordinateIn
    destination: CoordinateIn
    position: CoordinateIn | None = None


class DiscoveredHazardOut(ApiModel):
    incident: HazardIncidentOut
    distance_meters: float

    @classmethod
    def from_domain(cls, discovered: DiscoveredHazard) -> DiscoveredHazardOut:
        return cls(
            incident=HazardIncidentOut.from_domain(discovered.incident),
            distance_meters=round(discovered.distance_meters, 1),
        )


class TickReportOut(ApiModel):
    state: str
    skipped: bool
    score: SafetyScoreOut | None = None
    low_light: bool | None = None
    newly_discovered: list[DiscoveredHazardOut]
    reroute_suggested: bool

    @classmethod
    def from_domain(cls, report: TickReport) -> TickReportOut:
        return cls(
            state=report.state.value,
            skipped=report.skipped,
            score=SafetyScoreOut.from_domain(report.score) if report.score is not None else None,
            low_light=report.low_light,
            newly_discovered=[DiscoveredHazardOut.from_domain(item) for item in report.newly_discovered],
            reroute_suggested=report.reroute_suggested,
        )


class TripOut(ApiModel):
    trip_id: str
    state: str
    origin: CoordinateOut
    destination: CoordinateOut
    current_position: CoordinateOut | None = None
    reroute_suggested: bool
    last_score: SafetyScoreOut | None = None
    active_route: RouteSummaryOut | None = None
    recent_discoveries: list[DiscoveredHazardOut]

    @classmethod
    def from_monitor(cls, monitor: TripMonitor) -> TripOut:
        session = monitor.session
        return cls(
            trip_id=session.id,
            state=session.state.value,
            origin=CoordinateOut.from_domain(session.origin),
            destination=CoordinateOut.from_domain(session.destination),
            current_position=(
                CoordinateOut.from_domain(session.current_position)
                if session.current_position is not None
                else None
            ),
            reroute_suggested=session.reroute_suggested,
            last_score=SafetyScoreOut.from_domain(session.last_score) if session.last_score is not None else None,
            active_route=(
                RouteSummaryOut.from_domain(session.active_route) if session.active_route is not None else None
            ),
            recent_discoveries=[DiscoveredHazardOut.from_domain(item) for item in monitor.recent_discoveries],
        )
