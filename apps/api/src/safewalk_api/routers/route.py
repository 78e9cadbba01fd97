from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from safewalk_api.dependencies import get_safety_service
from safewalk_api.response import success_response
from safewalk_api.schemas.route import RouteRequest
from safewalk_api.services.safety_service import SafetyService

router = APIRouter(tags=["route"])


@router.post("/route")
async def evaluate_route(
    payload: RouteRequest,
    service: SafetyService = Depends(get_safety_service),
) -> dict:
    result = await service.evaluate_route(payload.origin.to_domain(), payload.destination.to_domain())
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.get("/geocode")
async def geocode(
    q: str = Query(..., max_length=256),
    service: SafetyService = Depends(get_safety_service),
) -> dict:
    result = await service.geocode(q)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})
