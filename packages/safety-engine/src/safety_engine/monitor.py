from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from safety_engine.errors import InvalidTripState, NotFound
from safety_engine.geometry import haversine_distance_meters
from safety_engine.hazards import HazardAggregator
from safety_engine.models import (
    Coordinate,
    CrimeZone,
    HazardIncident,
    HazardSnapshot,
    RouteEvaluation,
    SafetyScore,
    TripSession,
    TripState,
    WeatherSnapshot,
)
from safety_engine.routes import RouteEvaluator, WeatherProvider
from safety_engine.scheduler import PeriodicTask
from safety_engine.scoring import calculate_safety_score, is_low_light, should_suggest_reroute

logger = logging.getLogger(__name__)

Scorer = Callable[[Sequence[HazardIncident], Sequence[CrimeZone], WeatherSnapshot | None, int], SafetyScore]


@dataclass(frozen=True)
class MonitorConfig:
    poll_interval_seconds: float = 8.0
    hazard_radius_km: float = 1.0
    proximity_meters: float = 500.0
    reroute_threshold: int = 60
    low_light_threshold: int = 80
    max_recent_discoveries: int = 20


@dataclass(frozen=True)
class DiscoveredHazard:
    incident: HazardIncident
    distance_meters: float


@dataclass(frozen=True)
class TickPlan:
    seen_incident_ids: frozenset[str]
    newly_discovered: tuple[DiscoveredHazard, ...]
    low_light: bool
    reroute: bool


@dataclass(frozen=True)
class TickReport:
    state: TripState
    skipped: bool = False
    score: SafetyScore | None = None
    low_light: bool | None = None
    newly_discovered: tuple[DiscoveredHazard, ...] = ()
    reroute_suggested: bool = False
    transitioned: bool = False


def diff_hazards(
    position: Coordinate,
    incidents: Sequence[HazardIncident],
    seen_incident_ids: frozenset[str] | set[str],
    proximity_meters: float,
) -> tuple[frozenset[str], tuple[DiscoveredHazard, ...]]:
    """Mark unseen incidents as seen; those within ``proximity_meters`` are newly discovered."""
    seen = set(seen_incident_ids)
    discovered: list[DiscoveredHazard] = []
    for incident in incidents:
        if incident.id in seen:
            continue
        seen.add(incident.id)
        distance = haversine_distance_meters(position, incident.location)
        if distance < proximity_meters:
            discovered.append(DiscoveredHazard(incident=incident, distance_meters=distance))
    return frozenset(seen), tuple(discovered)


def plan_tick(
    position: Coordinate,
    hazards: HazardSnapshot,
    seen_incident_ids: frozenset[str] | set[str],
    score: SafetyScore,
    hour_of_day: int,
    config: MonitorConfig,
) -> TickPlan:
    seen, discovered = diff_hazards(position, hazards.traffic, seen_incident_ids, config.proximity_meters)
    low_light = is_low_light(hour_of_day)
    return TickPlan(
        seen_incident_ids=seen,
        newly_discovered=discovered,
        low_light=low_light,
        reroute=should_suggest_reroute(
            score.score,
            low_light,
            threshold=config.reroute_threshold,
            low_light_threshold=config.low_light_threshold,
        ),
    )


class TripMonitor:
    """Tracks one trip: Idle -> Tracking <-> RerouteSuggested -> Stopped.

    Ticks come from the polling timer and from position samples; both are
    serialized through one lock so a trip only ever runs one tick at a time.
    """

    def __init__(
        self,
        session: TripSession,
        hazard_aggregator: HazardAggregator,
        route_evaluator: RouteEvaluator,
        weather_provider: WeatherProvider | None = None,
        config: MonitorConfig | None = None,
        clock: Callable[[], datetime] = datetime.now,
        scorer: Scorer = calculate_safety_score,
    ) -> None:
        self._session = session
        self._hazard_aggregator = hazard_aggregator
        self._route_evaluator = route_evaluator
        self._weather_provider = weather_provider
        self._config = config or MonitorConfig()
        self._clock = clock
        self._scorer = scorer
        self._lock = asyncio.Lock()
        self._timer: PeriodicTask | None = None
        self._stream_task: asyncio.Task | None = None
        self._recent: list[DiscoveredHazard] = []

    @property
    def session(self) -> TripSession:
        return self._session

    @property
    def state(self) -> TripState:
        return self._session.state

    @property
    def recent_discoveries(self) -> tuple[DiscoveredHazard, ...]:
        return tuple(self._recent)

    async def start(self, position: Coordinate | None = None) -> TickReport | None:
        """Enter Tracking; a known position is scored right away rather than on the first poll."""
        if self._session.state is not TripState.IDLE:
            raise InvalidTripState(f"trip {self._session.id} already started")
        if position is not None:
            self._session.current_position = position
        self._session.state = TripState.TRACKING
        logger.info("trip_tracking_started", extra={"trip_id": self._session.id})
        report = await self.tick() if self._session.current_position is not None else None
        if self._config.poll_interval_seconds > 0 and self._session.state is not TripState.STOPPED:
            self._timer = PeriodicTask(
                self._config.poll_interval_seconds,
                self._poll,
                name=f"trip-{self._session.id}",
            )
            self._timer.start()
        return report

    def follow(self, stream: AsyncIterator[Coordinate]) -> asyncio.Task:
        """Consume a position stream in the background; stopping the trip unsubscribes it."""
        self._stream_task = asyncio.get_running_loop().create_task(self._consume(stream))
        return self._stream_task

    async def update_position(self, position: Coordinate) -> TickReport:
        if self._session.state in (TripState.IDLE, TripState.STOPPED):
            raise InvalidTripState(f"trip {self._session.id} is not being tracked")
        self._session.current_position = position
        return await self.tick()

    async def tick(self) -> TickReport:
        async with self._lock:
            return await self._tick()

    async def dismiss(self) -> None:
        if self._session.state is not TripState.REROUTE_SUGGESTED:
            raise InvalidTripState(f"trip {self._session.id} has no reroute suggestion")
        self._set_suggested(False)

    async def accept_reroute(self) -> RouteEvaluation:
        if self._session.state is not TripState.REROUTE_SUGGESTED:
            raise InvalidTripState(f"trip {self._session.id} has no reroute suggestion")
        origin = self._session.current_position or self._session.origin
        evaluation = await self._route_evaluator.evaluate(origin, self._session.destination)
        if self._session.state is TripState.STOPPED:
            raise InvalidTripState(f"trip {self._session.id} stopped during reroute")
        self._session.active_route = evaluation.safest
        self._set_suggested(False)
        logger.info("trip_rerouted", extra={"trip_id": self._session.id})
        return evaluation

    async def stop(self) -> None:
        if self._session.state is TripState.STOPPED:
            return
        self._session.state = TripState.STOPPED
        self._session.reroute_suggested = False
        if self._timer is not None:
            await self._timer.stop()
            self._timer = None
        if self._stream_task is not None and self._stream_task is not asyncio.current_task():
            self._stream_task.cancel()
        self._stream_task = None
        logger.info("trip_stopped", extra={"trip_id": self._session.id})

    async def _consume(self, stream: AsyncIterator[Coordinate]) -> None:
        async for position in stream:
            if self._session.state is TripState.STOPPED:
                break
            await self.update_position(position)

    async def _poll(self) -> None:
        if self._session.current_position is None:
            return
        await self.tick()

    async def _tick(self) -> TickReport:
        position = self._session.current_position
        if self._session.state is TripState.STOPPED or position is None:
            return TickReport(state=self._session.state, skipped=True)
        try:
            hazards, weather = await asyncio.gather(
                self._hazard_aggregator.fetch(position, self._config.hazard_radius_km),
                self._current_weather(position),
            )
            hour_of_day = self._clock().hour
            score = self._scorer(hazards.traffic, hazards.crime, weather, hour_of_day)
        except Exception as exc:
            logger.warning(
                "trip_tick_skipped",
                extra={"trip_id": self._session.id, "error": repr(exc)},
            )
            return TickReport(state=self._session.state, skipped=True)

        if self._session.state is TripState.STOPPED:
            return TickReport(state=self._session.state, skipped=True)

        plan = plan_tick(position, hazards, self._session.seen_incident_ids, score, hour_of_day, self._config)
        self._session.seen_incident_ids = set(plan.seen_incident_ids)
        self._session.last_score = score
        self._recent = (list(plan.newly_discovered) + self._recent)[: self._config.max_recent_discoveries]
        previous = self._session.state
        self._set_suggested(plan.reroute)
        transitioned = previous is not self._session.state
        if transitioned and plan.reroute:
            logger.info(
                "trip_reroute_suggested",
                extra={"trip_id": self._session.id, "score": score.score, "low_light": plan.low_light},
            )
        return TickReport(
            state=self._session.state,
            score=score,
            low_light=plan.low_light,
            newly_discovered=plan.newly_discovered,
            reroute_suggested=self._session.reroute_suggested,
            transitioned=transitioned,
        )

    def _set_suggested(self, suggested: bool) -> None:
        self._session.reroute_suggested = suggested
        self._session.state = TripState.REROUTE_SUGGESTED if suggested else TripState.TRACKING

    async def _current_weather(self, position: Coordinate) -> WeatherSnapshot | None:
        if self._weather_provider is None:
            return None
        try:
            return await self._weather_provider.current_weather(position)
        except Exception as exc:
            logger.warning(
                "weather_provider_degraded",
                extra={"component": "trip_monitor", "error": repr(exc)},
            )
            return None


class TripRegistry:
    """Process-wide registry of trip monitors, oldest evicted first."""

    def __init__(self, monitor_factory: Callable[[TripSession], TripMonitor], max_trips: int = 1000) -> None:
        if max_trips <= 0:
            raise ValueError("max_trips must be > 0")
        self._monitor_factory = monitor_factory
        self._max_trips = max_trips
        self._monitors: dict[str, TripMonitor] = {}

    async def create(self, session: TripSession, position: Coordinate | None = None) -> TripMonitor:
        monitor = self._monitor_factory(session)
        await monitor.start(position)
        self._monitors[session.id] = monitor
        while len(self._monitors) > self._max_trips:
            oldest_id = next(iter(self._monitors))
            await self._monitors.pop(oldest_id).stop()
        return monitor

    def get(self, trip_id: str) -> TripMonitor:
        monitor = self._monitors.get(trip_id)
        if monitor is None:
            raise NotFound(f"trip {trip_id} not found")
        return monitor

    async def remove(self, trip_id: str) -> TripMonitor:
        """Stop a trip and drop it from the registry."""
        monitor = self._monitors.pop(trip_id, None)
        if monitor is None:
            raise NotFound(f"trip {trip_id} not found")
        await monitor.stop()
        return monitor

    async def stop_all(self) -> None:
        for monitor in list(self._monitors.values()):
            await monitor.stop()
        self._monitors.clear()
