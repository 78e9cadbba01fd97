class SafetyEngineError(Exception):
    """Base safety engine exception."""


class InvalidInput(SafetyEngineError, ValueError):
    """Raised when a required field is missing or not numeric."""


class ProviderUnavailable(SafetyEngineError):
    """Raised when an upstream provider call failed."""


class ProviderTimeout(ProviderUnavailable):
    """Raised when an upstream provider did not answer in time."""


class NotFound(SafetyEngineError, LookupError):
    """Raised when a trip or emergency session id is unknown."""


class ComputationFailure(SafetyEngineError):
    """Raised when a provider payload cannot be turned into a geometry or score."""


class RouteNotFound(ComputationFailure):
    """Raised when a routing response has no usable leg."""


class InvalidTripState(SafetyEngineError):
    """Raised when a trip transition is not allowed from its current state."""
