# src/tk_event/domain/repository.py
"""Repository Protocol: events are owned by the catalogue service, read-only here."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_event.domain.models import Event


class EventRepositoryProtocol(Protocol):
    async def get_by_id(self, event_id: str, db: AsyncSession) -> Event | None: ...
