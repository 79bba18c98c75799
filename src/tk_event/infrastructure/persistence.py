"""EventRepository: raw SQL lookup against the events table."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_event.domain.models import Event

_GET_EVENT_SQL = text("""
    SELECT id, name, venue, status, starts_at
    FROM events
    WHERE id = :event_id
""")


def _row_to_event(row: Any) -> Event:
    return Event(
        id=row.id,
        name=row.name,
        venue=row.venue,
        status=row.status,
        starts_at=row.starts_at,
    )


class EventRepository:
    async def get_by_id(self, event_id: str, db: AsyncSession) -> Event | None:
        result = await db.execute(_GET_EVENT_SQL, {"event_id": event_id})
        row = result.fetchone()
        return _row_to_event(row) if row else None
