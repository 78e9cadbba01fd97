from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import uuid4

from safety_engine.errors import NotFound
from safety_engine.models import Acknowledgement, Coordinate, EmergencySession

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EmergencyStatus:
    ack_count: int
    acknowledged: bool


class EmergencySessionRepository(Protocol):
    async def create(self, origin: Coordinate, contacts: Sequence[dict]) -> EmergencySession: ...

    async def get(self, session_id: str) -> EmergencySession: ...

    async def acknowledge(self, session_id: str, source_address: str) -> EmergencySession: ...

    async def status(self, session_id: str) -> EmergencyStatus: ...


class InMemoryEmergencySessionRepository:
    def __init__(
        self,
        max_sessions: int = 1000,
        retention: timedelta = timedelta(hours=12),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be > 0")
        self._sessions: OrderedDict[str, EmergencySession] = OrderedDict()
        self._max_sessions = max_sessions
        self._retention = retention
        self._clock = clock

    async def create(self, origin: Coordinate, contacts: Sequence[dict]) -> EmergencySession:
        self._evict()
        session = EmergencySession(
            id=uuid4().hex,
            origin=origin,
            contacts=tuple(dict(contact) for contact in contacts),
            created_at=self._clock(),
        )
        self._sessions[session.id] = session
        while len(self._sessions) > self._max_sessions:
            self._sessions.popitem(last=False)
        logger.info(
            "emergency_session_started",
            extra={"session_id": session.id, "contact_count": len(session.contacts)},
        )
        return session

    async def get(self, session_id: str) -> EmergencySession:
        self._evict()
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFound(f"emergency session {session_id} not found")
        return session

    async def acknowledge(self, session_id: str, source_address: str) -> EmergencySession:
        session = await self.get(session_id)
        session.acknowledgements.append(Acknowledgement(at=self._clock(), source_address=source_address))
        logger.info(
            "emergency_session_acknowledged",
            extra={"session_id": session_id, "ack_count": len(session.acknowledgements)},
        )
        return session

    async def status(self, session_id: str) -> EmergencyStatus:
        session = await self.get(session_id)
        ack_count = len(session.acknowledgements)
        return EmergencyStatus(ack_count=ack_count, acknowledged=ack_count > 0)

    def _evict(self) -> None:
        cutoff = self._clock() - self._retention
        while self._sessions:
            oldest = next(iter(self._sessions.values()))
            if oldest.created_at >= cutoff:
                break
            self._sessions.popitem(last=False)
