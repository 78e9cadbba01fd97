from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from safety_engine.emergency import EmergencySessionRepository
from safety_engine.models import Coordinate

from safewalk_api.schemas.emergency import AcknowledgedOut, EmergencyStartedOut, EmergencyStatusOut


class EmergencyService:
    def __init__(
        self,
        repository: EmergencySessionRepository,
        public_base_url: str,
    ) -> None:
        self._repository = repository
        self._public_base_url = public_base_url.rstrip("/")

    async def start(self, origin: Coordinate, contacts: Sequence[dict[str, Any]]) -> EmergencyStartedOut:
        session = await self._repository.create(origin, contacts)
        return EmergencyStartedOut(
            session_id=session.id,
            tracking_url=f"{self._public_base_url}/emergency/status/{session.id}",
        )

    async def acknowledge(self, session_id: str, source_address: str) -> AcknowledgedOut:
        await self._repository.acknowledge(session_id, source_address)
        return AcknowledgedOut()

    async def status(self, session_id: str) -> EmergencyStatusOut:
        status = await self._repository.status(session_id)
        return EmergencyStatusOut(ack_count=status.ack_count, acknowledged=status.acknowledged)
