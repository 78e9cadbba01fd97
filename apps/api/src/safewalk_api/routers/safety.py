from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from safety_engine.models import Coordinate

from safewalk_api.dependencies import get_safety_service
from safewalk_api.response import success_response
from safewalk_api.services.safety_service import SafetyService

router = APIRouter(tags=["safety"])


@router.get("/weather")
async def current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    service: SafetyService = Depends(get_safety_service),
) -> dict:
    result = await service.weather(Coordinate(lat=lat, lon=lon))
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.get("/safety-score")
async def safety_score(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    service: SafetyService = Depends(get_safety_service),
) -> dict:
    result = await service.safety_snapshot(Coordinate(lat=lat, lon=lon))
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})
