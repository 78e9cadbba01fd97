from __future__ import annotations

from typing import Any
from urllib.parse import quote

from safety_engine.errors import ProviderUnavailable
from safety_engine.geometry import BoundingBox, is_finite_number
from safety_engine.models import Coordinate
from safety_engine.routes import RouteMode

from safewalk_api.circuit_breaker import ProviderGuard
from safewalk_api.clients.http import ClientFactory, default_client_factory, fetch_json

INCIDENT_FIELDS = (
    "{incidents{type,geometry{type,coordinates},"
    "properties{id,iconCategory,magnitudeOfDelay,startTime,events{description,code}}}}"
)


def _format_point(point: Coordinate) -> str:
    return f"{point.lat},{point.lon}"


class TomTomClient:
    """Routing, traffic-incident and geocoding calls against the TomTom APIs."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.tomtom.com",
        timeout_seconds: float = 5.0,
        client_factory: ClientFactory | None = None,
        routing_guard: ProviderGuard | None = None,
        search_guard: ProviderGuard | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client_factory = client_factory or default_client_factory(timeout_seconds)
        self._routing_guard = routing_guard
        self._search_guard = search_guard

    async def calculate_route(self, origin: Coordinate, destination: Coordinate, mode: RouteMode) -> dict[str, Any]:
        path = f"/routing/1/calculateRoute/{_format_point(origin)}:{_format_point(destination)}/json"
        params = {
            "routeType": mode.route_type,
            "traffic": "true" if mode.traffic else "false",
            "travelMode": mode.travel_mode,
            "instructionsType": "text",
        }
        # TomTom answers 400/404 when no route exists between the points.
        payload = await self._get(path, params, guard=self._routing_guard, empty_statuses=(400, 404))
        return payload or {"routes": []}

    async def fetch_incidents(self, region: BoundingBox) -> list[dict[str, Any]]:
        params = {
            "bbox": region.as_provider_bbox(),
            "fields": INCIDENT_FIELDS,
            "language": "en-GB",
            "timeValidityFilter": "present",
        }
        payload = await self._get("/traffic/services/5/incidentDetails", params)
        incidents = (payload or {}).get("incidents") or []
        return [item for item in incidents if isinstance(item, dict)]

    async def geocode(self, query: str) -> Coordinate | None:
        path = f"/search/2/geocode/{quote(query, safe='')}.json"
        payload = await self._get(path, {"limit": 1}, guard=self._search_guard)
        for result in (payload or {}).get("results") or []:
            position = result.get("position") if isinstance(result, dict) else None
            if not isinstance(position, dict):
                continue
            lat, lon = position.get("lat"), position.get("lon")
            if is_finite_number(lat) and is_finite_number(lon):
                return Coordinate(lat=float(lat), lon=float(lon))
        return None

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        guard: ProviderGuard | None = None,
        empty_statuses: tuple[int, ...] = (),
    ) -> dict[str, Any] | None:
        if not self._api_key:
            raise ProviderUnavailable("TomTom API key is not configured")

        async def request() -> dict[str, Any] | None:
            return await fetch_json(
                self._client_factory,
                "TomTom",
                f"{self._base_url}{path}",
                {"key": self._api_key, **params},
                empty_statuses=empty_statuses,
            )

        if guard is None:
            return await request()
        return await guard.run(request)
