from __future__ import annotations

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from devkit.timezone import configure_local_timezone


class SafeWalkSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    SERVICE_NAME: str = "safewalk-api"
    LOG_LEVEL: str = "INFO"

    TOMTOM_API_KEY: str | None = None
    TOMTOM_BASE_URL: str = "https://api.tomtom.com"
    OPENWEATHER_API_KEY: str | None = None
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org"
    PROVIDER_TIMEOUT_SECONDS: float = 5.0

    HAZARD_MIN_RADIUS_KM: float = 1.0
    HAZARD_MAX_RADIUS_KM: float = 80.0
    HAZARD_DEFAULT_RADIUS_KM: float = 33.0
    CRIME_ZONES_PATH: str | None = None
    FILTER_CRIME_ZONES_BY_REGION: bool = True
    SAFETY_SCORE_RADIUS_KM: float = 2.0
    ROUTE_CORRIDOR_METERS: float = 250.0

    REPORT_STORE_MAX_ENTRIES: int = 5000
    REPORT_RETENTION_HOURS: float = 24.0
    EMERGENCY_STORE_MAX_SESSIONS: int = 1000
    EMERGENCY_RETENTION_HOURS: float = 12.0
    REPORT_RATE_LIMIT_PER_MINUTE: int = 10

    TRIP_POLL_INTERVAL_SECONDS: float = 8.0
    TRIP_PROXIMITY_METERS: float = 500.0
    TRIP_HAZARD_RADIUS_KM: float = 1.0

    PUBLIC_BASE_URL: str = "http://localhost:8000"
    LOCAL_TIMEZONE: str = "Asia/Kolkata"

    @model_validator(mode="after")
    def _check_ranges(self) -> SafeWalkSettings:
        if not 0 < self.HAZARD_MIN_RADIUS_KM <= self.HAZARD_MAX_RADIUS_KM:
            raise ValueError("HAZARD_MIN_RADIUS_KM must be > 0 and <= HAZARD_MAX_RADIUS_KM")
        if self.PROVIDER_TIMEOUT_SECONDS <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS must be > 0")
        if self.TRIP_POLL_INTERVAL_SECONDS < 0:
            raise ValueError("TRIP_POLL_INTERVAL_SECONDS must be >= 0")
        return self


def load_settings(service_name: str = "safewalk-api") -> SafeWalkSettings:
    settings = SafeWalkSettings(SERVICE_NAME=service_name)
    configure_local_timezone(settings.LOCAL_TIMEZONE)
    return settings
