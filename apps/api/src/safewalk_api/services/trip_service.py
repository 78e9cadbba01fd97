from __future__ import annotations

from uuid import uuid4

from safety_engine.models import Coordinate, TripSession
from safety_engine.monitor import TripRegistry

from safewalk_api.schemas.route import RouteEvaluationOut
from safewalk_api.schemas.trips import TickReportOut, TripOut


class TripService:
    def __init__(self, registry: TripRegistry) -> None:
        self._registry = registry

    async def create(
        self,
        origin: Coordinate,
        destination: Coordinate,
        position: Coordinate | None = None,
    ) -> TripOut:
        session = TripSession(id=uuid4().hex, origin=origin, destination=destination)
        monitor = await self._registry.create(session, position)
        return TripOut.from_monitor(monitor)

    async def get(self, trip_id: str) -> TripOut:
        return TripOut.from_monitor(self._registry.get(trip_id))

    async def update_position(self, trip_id: str, position: Coordinate) -> TickReportOut:
        report = await self._registry.get(trip_id).update_position(position)
        return TickReportOut.from_domain(report)

    async def dismiss(self, trip_id: str) -> TripOut:
        monitor = self._registry.get(trip_id)
        await monitor.dismiss()
        return TripOut.from_monitor(monitor)

    async def reroute(self, trip_id: str) -> RouteEvaluationOut:
        evaluation = await self._registry.get(trip_id).accept_reroute()
        return RouteEvaluationOut.from_domain(evaluation)

    async def stop(self, trip_id: str) -> TripOut:
        monitor = await self._registry.remove(trip_id)
        return TripOut.from_monitor(monitor)

    async def shutdown(self) -> None:
        await self._registry.stop_all()
