from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from safewalk_api.dependencies import get_emergency_service
from safewalk_api.response import success_response
from safewalk_api.schemas.emergency import EmergencyStartRequest
from safewalk_api.services.emergency_service import EmergencyService

router = APIRouter(prefix="/emergency", tags=["emergency"])


@router.post("/start")
async def start_emergency(
    payload: EmergencyStartRequest,
    service: EmergencyService = Depends(get_emergency_service),
) -> dict:
    result = await service.start(payload.origin.to_domain(), payload.contacts)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.post("/ack/{session_id}")
async def acknowledge_emergency(
    session_id: str,
    request: Request,
    service: EmergencyService = Depends(get_emergency_service),
) -> dict:
    source_address = request.client.host if request.client else "unknown"
    result = await service.acknowledge(session_id, source_address)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.get("/status/{session_id}")
async def emergency_status(
    session_id: str,
    service: EmergencyService = Depends(get_emergency_service),
) -> dict:
    result = await service.status(session_id)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})
