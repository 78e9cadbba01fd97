from __future__ import annotations

from collections.abc import Callable, Collection
from typing import Any

import httpx

from safety_engine.errors import ComputationFailure, ProviderTimeout, ProviderUnavailable

ClientFactory = Callable[[], httpx.AsyncClient]


def default_client_factory(timeout_seconds: float) -> ClientFactory:
    return lambda: httpx.AsyncClient(timeout=timeout_seconds)


async def fetch_json(
    client_factory: ClientFactory,
    provider: str,
    url: str,
    params: dict[str, Any],
    empty_statuses: Collection[int] = (),
) -> dict[str, Any] | None:
    """GET ``url`` and decode a JSON object.

    Statuses listed in ``empty_statuses`` mean "no result" and return None.
    """
    try:
        async with client_factory() as client:
            response = await client.get(url, params=params)
            if response.status_code in empty_statuses:
                return None
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ProviderTimeout(f"{provider} request timed out") from exc
    except httpx.HTTPStatusError as exc:
        raise ProviderUnavailable(f"{provider} returned HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise ProviderUnavailable(f"{provider} request failed") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise ComputationFailure(f"{provider} returned a malformed payload") from exc
    if not isinstance(payload, dict):
        raise ComputationFailure(f"{provider} returned a malformed payload")
    return payload
