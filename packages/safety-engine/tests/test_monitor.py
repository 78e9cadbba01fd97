from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from safety_engine.errors import InvalidTripState, NotFound
from safety_engine.geometry import BoundingBox
from safety_engine.hazards import HazardAggregator
from safety_engine.models import (
    Coordinate,
    HazardCategory,
    HazardIncident,
    HazardSnapshot,
    RouteEvaluation,
    RouteSummary,
    SafetyFactors,
    SafetyScore,
    TripSession,
    TripState,
    WeatherRisk,
)
from safety_engine.monitor import MonitorConfig, TripMonitor, TripRegistry, diff_hazards, plan_tick
from safety_engine.reports import InMemoryIncidentReportRepository

ORIGIN = Coordinate(lat=12.9716, lon=77.5946)
DESTINATION = Coordinate(lat=12.9352, lon=77.6245)
POSITION = Coordinate(lat=12.9700, lon=77.5960)


def _score(value: int) -> SafetyScore:
    return SafetyScore(
        score=value,
        warnings=(),
        factors=SafetyFactors(incident_count=0, crime_zone_count=0, weather_risk=WeatherRisk.NORMAL),
    )


def _incident(incident_id: str, lat: float = 12.9705, lon: float = 77.5962) -> HazardIncident:
    return HazardIncident(
        id=incident_id,
        location=Coordinate(lat=lat, lon=lon),
        category=HazardCategory.TRAFFIC,
        severity=1.0,
        description="Jam",
        observed_at=None,
    )


def _summary(mode: str) -> RouteSummary:
    return RouteSummary(
        mode=mode,
        geometry=(POSITION, DESTINATION),
        travel_time_minutes=10.0,
        distance_km=4.2,
        raw_travel_time_seconds=600.0,
        raw_length_meters=4200.0,
    )


class FakeAggregator:
    def __init__(self, snapshots: list[HazardSnapshot | Exception] | None = None) -> None:
        self.snapshots = snapshots or []
        self.calls = 0

    async def fetch(self, center: Coordinate, radius_km: float | None = None) -> HazardSnapshot:
        self.calls += 1
        if not self.snapshots:
            return HazardSnapshot(traffic=(), crime=())
        item = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if isinstance(item, Exception):
            raise item
        return item


class UnkeyedTrafficProvider:
    """Returns one incident with no provider id on every fetch."""

    async def fetch_incidents(self, region: BoundingBox) -> list[dict]:
        return [{"geometry": {"type": "Point", "coordinates": [77.5962, 12.9703]}, "properties": {"iconCategory": 6}}]


class EmptyCrimeCatalog:
    async def list_zones(self, region: BoundingBox | None = None) -> list:
        return []


class FakeEvaluator:
    def __init__(self) -> None:
        self.calls: list[tuple[Coordinate, Coordinate]] = []

    async def evaluate(self, origin: Coordinate, destination: Coordinate) -> RouteEvaluation:
        self.calls.append((origin, destination))
        return RouteEvaluation(fastest=_summary("fastest"), safest=_summary("safest"))


class ScriptedScorer:
    def __init__(self, values: list[int]) -> None:
        self.values = values

    def __call__(self, incidents, crime_zones, weather, hour_of_day) -> SafetyScore:
        return _score(self.values.pop(0))


def _monitor(
    scores: list[int],
    aggregator: FakeAggregator | None = None,
    evaluator: FakeEvaluator | None = None,
    hour: int = 12,
) -> TripMonitor:
    return TripMonitor(
        session=TripSession(id="trip-1", origin=ORIGIN, destination=DESTINATION),
        hazard_aggregator=aggregator or FakeAggregator(),
        route_evaluator=evaluator or FakeEvaluator(),
        config=MonitorConfig(poll_interval_seconds=0),
        clock=lambda: datetime(2026, 10, 18, hour, 0),
        scorer=ScriptedScorer(scores),
    )


def test_diff_hazards_reports_only_unseen_nearby_incidents() -> None:
    near = _incident("near")
    far = _incident("far", lat=12.99, lon=77.62)
    seen, discovered = diff_hazards(POSITION, [near, far], frozenset({"old"}), proximity_meters=500)

    assert seen == frozenset({"old", "near", "far"})
    assert [item.incident.id for item in discovered] == ["near"]
    assert discovered[0].distance_meters < 500


def test_plan_tick_is_pure() -> None:
    seen = frozenset({"a"})
    hazards = HazardSnapshot(traffic=(_incident("b"),), crime=())

    plan = plan_tick(POSITION, hazards, seen, _score(70), 20, MonitorConfig())

    assert seen == frozenset({"a"})
    assert plan.seen_incident_ids == frozenset({"a", "b"})
    assert plan.low_light is True
    assert plan.reroute is True


@pytest.mark.asyncio
async def test_score_sequence_suggests_reroute_once_and_recovers() -> None:
    monitor = _monitor([90, 55, 90])

    first = await monitor.start(POSITION)
    second = await monitor.tick()
    third = await monitor.tick()

    assert first.state is TripState.TRACKING
    assert second.state is TripState.REROUTE_SUGGESTED
    assert second.transitioned is True
    assert third.state is TripState.TRACKING
    transitions_into_suggested = [
        report for report in (first, second, third)
        if report.transitioned and report.state is TripState.REROUTE_SUGGESTED
    ]
    assert len(transitions_into_suggested) == 1
    assert monitor.session.last_score.score == 90


@pytest.mark.asyncio
async def test_low_light_raises_reroute_threshold() -> None:
    monitor = _monitor([75], hour=22)

    report = await monitor.start(POSITION)

    assert report.low_light is True
    assert report.state is TripState.REROUTE_SUGGESTED
    assert monitor.session.reroute_suggested is True


@pytest.mark.asyncio
async def test_seen_incident_is_never_reported_twice() -> None:
    snapshot = HazardSnapshot(traffic=(_incident("t-1"),), crime=())
    monitor = _monitor([90, 90, 90], aggregator=FakeAggregator([snapshot]))

    first = await monitor.start(POSITION)
    second = await monitor.update_position(Coordinate(lat=12.9702, lon=77.5961))
    third = await monitor.tick()

    assert [item.incident.id for item in first.newly_discovered] == ["t-1"]
    assert second.newly_discovered == ()
    assert third.newly_discovered == ()
    assert monitor.session.seen_incident_ids == {"t-1"}
    assert len(monitor.recent_discoveries) == 1


@pytest.mark.asyncio
async def test_failed_hazard_fetch_skips_tick_without_transition() -> None:
    aggregator = FakeAggregator(
        [
            HazardSnapshot(traffic=(), crime=()),
            RuntimeError("hazards down"),
            HazardSnapshot(traffic=(), crime=()),
        ]
    )
    monitor = _monitor([55, 90], aggregator=aggregator)

    first = await monitor.start(POSITION)
    skipped = await monitor.tick()

    assert first.state is TripState.REROUTE_SUGGESTED
    assert skipped.skipped is True
    assert skipped.score is None
    assert monitor.state is TripState.REROUTE_SUGGESTED
    assert monitor.session.last_score.score == 55

    recovered = await monitor.tick()
    assert recovered.state is TripState.TRACKING


@pytest.mark.asyncio
async def test_dismiss_returns_to_tracking() -> None:
    monitor = _monitor([40])
    await monitor.start(POSITION)

    await monitor.dismiss()

    assert monitor.state is TripState.TRACKING
    assert monitor.session.active_route is None
    with pytest.raises(InvalidTripState):
        await monitor.dismiss()


@pytest.mark.asyncio
async def test_accept_reroute_uses_current_position_and_original_destination() -> None:
    evaluator = FakeEvaluator()
    monitor = _monitor([40], evaluator=evaluator)
    await monitor.start(POSITION)

    evaluation = await monitor.accept_reroute()

    assert evaluator.calls == [(POSITION, DESTINATION)]
    assert monitor.session.active_route == evaluation.safest
    assert monitor.state is TripState.TRACKING


@pytest.mark.asyncio
async def test_stopped_trip_ignores_ticks_and_positions() -> None:
    aggregator = FakeAggregator()
    monitor = _monitor([90], aggregator=aggregator)
    await monitor.start(POSITION)
    await monitor.stop()

    report = await monitor.tick()

    assert report.skipped is True
    assert report.state is TripState.STOPPED
    assert aggregator.calls == 1
    with pytest.raises(InvalidTripState):
        await monitor.update_position(POSITION)


@pytest.mark.asyncio
async def test_idle_trip_rejects_positions() -> None:
    monitor = _monitor([90])
    with pytest.raises(InvalidTripState):
        await monitor.update_position(POSITION)


@pytest.mark.asyncio
async def test_polling_timer_ticks_until_stopped() -> None:
    aggregator = FakeAggregator()
    monitor = TripMonitor(
        session=TripSession(id="trip-2", origin=ORIGIN, destination=DESTINATION),
        hazard_aggregator=aggregator,
        route_evaluator=FakeEvaluator(),
        config=MonitorConfig(poll_interval_seconds=0.01),
        clock=lambda: datetime(2026, 10, 18, 12, 0),
        scorer=lambda *_: _score(95),
    )
    await monitor.start(POSITION)
    await asyncio.sleep(0.05)
    await monitor.stop()
    calls_at_stop = aggregator.calls
    await asyncio.sleep(0.03)

    assert calls_at_stop >= 2
    assert aggregator.calls == calls_at_stop


@pytest.mark.asyncio
async def test_follow_consumes_position_stream() -> None:
    monitor = _monitor([90, 90])
    await monitor.start()

    async def positions():
        yield POSITION
        yield Coordinate(lat=12.9690, lon=77.5970)

    await monitor.follow(positions())

    assert monitor.session.current_position == Coordinate(lat=12.9690, lon=77.5970)
    assert monitor.session.last_score.score == 90


@pytest.mark.asyncio
async def test_registry_creates_and_stops_trips() -> None:
    registry = TripRegistry(lambda session: _monitor_for(session))
    monitor = await registry.create(TripSession(id="trip-3", origin=ORIGIN, destination=DESTINATION))

    assert registry.get("trip-3") is monitor
    assert monitor.state is TripState.TRACKING
    with pytest.raises(NotFound):
        registry.get("missing")

    await registry.stop_all()
    assert monitor.state is TripState.STOPPED


def _monitor_for(session: TripSession) -> TripMonitor:
    return TripMonitor(
        session=session,
        hazard_aggregator=FakeAggregator(),
        route_evaluator=FakeEvaluator(),
        config=MonitorConfig(poll_interval_seconds=0),
    )


@pytest.mark.asyncio
async def test_start_with_position_scores_immediately() -> None:
    aggregator = FakeAggregator()
    monitor = _monitor([85], aggregator=aggregator)

    report = await monitor.start(POSITION)

    assert report is not None
    assert report.skipped is False
    assert aggregator.calls == 1
    assert monitor.session.last_score.score == 85
    assert monitor.state is TripState.TRACKING


@pytest.mark.asyncio
async def test_start_without_position_waits_for_first_sample() -> None:
    aggregator = FakeAggregator()
    monitor = _monitor([85], aggregator=aggregator)

    report = await monitor.start()

    assert report is None
    assert aggregator.calls == 0
    assert monitor.session.last_score is None


@pytest.mark.asyncio
async def test_incident_without_provider_id_is_discovered_once_across_fetches() -> None:
    aggregator = HazardAggregator(
        traffic_provider=UnkeyedTrafficProvider(),
        crime_catalog=EmptyCrimeCatalog(),
        report_repository=InMemoryIncidentReportRepository(),
    )
    monitor = _monitor([90, 90, 90], aggregator=aggregator)

    first = await monitor.start(POSITION)
    second = await monitor.tick()
    third = await monitor.update_position(Coordinate(lat=12.9701, lon=77.5961))

    assert len(first.newly_discovered) == 1
    assert first.newly_discovered[0].distance_meters < 500
    assert second.newly_discovered == ()
    assert third.newly_discovered == ()
    assert len(monitor.session.seen_incident_ids) == 1


@pytest.mark.asyncio
async def test_registry_remove_stops_and_forgets_trip() -> None:
    registry = TripRegistry(lambda session: _monitor_for(session))
    monitor = await registry.create(TripSession(id="trip-4", origin=ORIGIN, destination=DESTINATION))

    removed = await registry.remove("trip-4")

    assert removed is monitor
    assert monitor.state is TripState.STOPPED
    with pytest.raises(NotFound):
        registry.get("trip-4")
    with pytest.raises(NotFound):
        await registry.remove("trip-4")
