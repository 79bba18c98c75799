"""DB helper for offer_events: append-only audit trail of offer transitions.

Called within the caller's transaction so the audit row commits (or rolls
back) together with the state change it describes.
"""
import json

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_common.enums import OfferEventType

_INSERT_OFFER_EVENT_SQL = text("""
    INSERT INTO offer_events (offer_id, event_type, actor_id, payload)
    VALUES (:offer_id, :event_type, :actor_id, :payload)
""")


async def write_offer_event(
    event_type: OfferEventType,
    offer_id: str,
    actor_id: str | None,
    payload: dict[str, object],
    db: AsyncSession,
) -> None:
    """Insert one row into offer_events within the caller's transaction."""
    await db.execute(
        _INSERT_OFFER_EVENT_SQL,
        {
            "offer_id": offer_id,
            "event_type": event_type.value,
            "actor_id": actor_id,
            "payload": json.dumps(payload, default=str),
        },
    )
