from __future__ import annotations

from fastapi import APIRouter, Depends

from safewalk_api.dependencies import get_trip_service
from safewalk_api.response import success_response
from safewalk_api.schemas.common import CoordinateIn
from safewalk_api.schemas.trips import TripCreateRequest
from safewalk_api.services.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("")
async def create_trip(
    payload: TripCreateRequest,
    service: TripService = Depends(get_trip_service),
) -> dict:
    result = await service.create(
        payload.origin.to_domain(),
        payload.destination.to_domain(),
        payload.position.to_domain() if payload.position is not None else None,
    )
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.get("/{trip_id}")
async def get_trip(trip_id: str, service: TripService = Depends(get_trip_service)) -> dict:
    result = await service.get(trip_id)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.post("/{trip_id}/position")
async def update_position(
    trip_id: str,
    payload: CoordinateIn,
    service: TripService = Depends(get_trip_service),
) -> dict:
    result = await service.update_position(trip_id, payload.to_domain())
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.post("/{trip_id}/dismiss")
async def dismiss_reroute(trip_id: str, service: TripService = Depends(get_trip_service)) -> dict:
    result = await service.dismiss(trip_id)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.post("/{trip_id}/reroute")
async def accept_reroute(trip_id: str, service: TripService = Depends(get_trip_service)) -> dict:
    result = await service.reroute(trip_id)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})


@router.post("/{trip_id}/stop")
async def stop_trip(trip_id: str, service: TripService = Depends(get_trip_service)) -> dict:
    result = await service.stop(trip_id)
    return success_response(result.model_dump(by_alias=True, mode="json"), meta={})
