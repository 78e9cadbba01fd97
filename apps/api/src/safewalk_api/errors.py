from __future__ import annotations

from dataclasses import dataclass, field

from safety_engine.errors import (
    ComputationFailure,
    InvalidInput,
    InvalidTripState,
    NotFound,
    ProviderTimeout,
    ProviderUnavailable,
    RouteNotFound,
    SafetyEngineError,
)


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)


# Most specific classes first.
_ENGINE_ERROR_CODES: tuple[tuple[type[SafetyEngineError], str, int], ...] = (
    (InvalidInput, "INVALID_INPUT", 400),
    (NotFound, "NOT_FOUND", 404),
    (InvalidTripState, "INVALID_TRIP_STATE", 409),
    (ProviderTimeout, "PROVIDER_TIMEOUT", 500),
    (ProviderUnavailable, "PROVIDER_UNAVAILABLE", 500),
    (RouteNotFound, "ROUTE_NOT_FOUND", 500),
    (ComputationFailure, "COMPUTATION_FAILURE", 500),
)


def from_engine_error(exc: SafetyEngineError) -> ApiError:
    for error_type, code, status_code in _ENGINE_ERROR_CODES:
        if isinstance(exc, error_type):
            return ApiError(code, str(exc), status_code)
    return ApiError("INTERNAL_ERROR", str(exc), 500)
