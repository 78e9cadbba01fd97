from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from safewalk_api.schemas.common import ApiModel, CoordinateIn


class EmergencyStartRequest(BaseModel):
    origin: CoordinateIn
    contacts: list[dict[str, Any]] = Field(default_factory=list)


class EmergencyStartedOut(ApiModel):
    session_id: str
    tracking_url: str


class AcknowledgedOut(ApiModel):
    ok: bool = True


class EmergencyStatusOut(ApiModel):
    ack_count: int
    acknowledged: bool
