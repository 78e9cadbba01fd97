from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Query, Request

from safety_engine.models import Coordinate

from safewalk_api.dependencies import get_report_rate_limiter, get_safety_service
from safewalk_api.errors import ApiError
from safewalk_api.rate_limit import SlidingWindowRateLimiter, resolve_client_key
from safewalk_api.response import success_response
from safewalk_api.schemas.hazards import IncidentReportRequest
from safewalk_api.services.safety_service import SafetyService

router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.get("")
async def list_incidents(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_km: float | None = Query(default=None, alias="radiusKm", ge=0),
    service: SafetyService = Depends(get_safety_service),
) -> dict:
    result = await service.incidents(Coordinate(lat=lat, lon=lon), radius_km)
    return success_response(
        result.model_dump(by_alias=True, mode="json"),
        meta={"trafficCount": len(result.traffic), "crimeZoneCount": len(result.crime)},
    )


@router.post("/report")
async def report_incident(
    request: Request,
    payload: IncidentReportRequest,
    service: SafetyService = Depends(get_safety_service),
    rate_limiter: SlidingWindowRateLimiter = Depends(get_report_rate_limiter),
) -> dict:
    decision = await rate_limiter.check(resolve_client_key(request), now_seconds=time.time())
    if not decision.allowed:
        raise ApiError(
            "RATE_LIMIT_EXCEEDED",
            "Too many reports, please retry later",
            429,
            headers={"Retry-After": str(decision.retry_after_seconds)},
        )
    result = await service.report_incident(payload)
    return success_response(
        result.model_dump(by_alias=True, mode="json"),
        meta={"reportsRemaining": decision.remaining},
    )
