from __future__ import annotations

from typing import Any

from safety_engine.errors import ComputationFailure, ProviderUnavailable
from safety_engine.geometry import is_finite_number
from safety_engine.models import Coordinate, WeatherSnapshot

from safewalk_api.circuit_breaker import ProviderGuard
from safewalk_api.clients.http import ClientFactory, default_client_factory, fetch_json


def _number(value: Any) -> float | None:
    return float(value) if is_finite_number(value) else None


def parse_current_weather(payload: dict[str, Any]) -> WeatherSnapshot:
    conditions = payload.get("weather") or []
    first = conditions[0] if conditions and isinstance(conditions[0], dict) else None
    if first is None:
        raise ComputationFailure("OpenWeather payload has no current conditions")
    main = payload.get("main") or {}
    wind = payload.get("wind") or {}
    return WeatherSnapshot(
        description=str(first.get("description") or first.get("main") or ""),
        visibility_meters=_number(payload.get("visibility")),
        temperature_c=_number(main.get("temp")),
        feels_like_c=_number(main.get("feels_like")),
        humidity=_number(main.get("humidity")),
        wind_speed=_number(wind.get("speed")),
        icon=first.get("icon"),
    )


class OpenWeatherClient:
    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.openweathermap.org",
        timeout_seconds: float = 5.0,
        client_factory: ClientFactory | None = None,
        guard: ProviderGuard | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client_factory = client_factory or default_client_factory(timeout_seconds)
        self._guard = guard

    async def current_weather(self, location: Coordinate) -> WeatherSnapshot:
        if not self._api_key:
            raise ProviderUnavailable("Weather API key is not configured")

        async def request() -> dict[str, Any] | None:
            return await fetch_json(
                self._client_factory,
                "OpenWeather",
                f"{self._base_url}/data/2.5/weather",
                {"lat": location.lat, "lon": location.lon, "appid": self._api_key, "units": "metric"},
            )

        payload = await (self._guard.run(request) if self._guard is not None else request())
        return parse_current_weather(payload or {})
