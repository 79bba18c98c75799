# src/tk_offer/infrastructure/persistence.py
"""OfferRepository: raw SQL persistence implementation.

Transaction ownership: the CALLER opens and commits the transaction
(`async with db.begin()`). Every state transition is a conditional UPDATE on
`status = 'active'`; a False return means another writer got there first.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_common.enums import HoldState, OfferSort
from src.tk_offer.domain.models import BuyerOffer

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_OFFER_SQL = text("""
    INSERT INTO buyer_offers (id, buyer_id, event_id, sections,
        max_price_cents, quantity,
        suggested_price_cents, acceptance_probability,
        authorization_id, held_amount_cents, hold_state, authorized_at,
        status, expires_at)
    VALUES (:id, :buyer_id, :event_id, :sections,
        :max_price_cents, :quantity,
        :suggested_price_cents, :acceptance_probability,
        :authorization_id, :held_amount_cents, :hold_state, :authorized_at,
        :status, :expires_at)
""")

_SELECT_COLUMNS = """
    id, buyer_id, event_id, sections, max_price_cents, quantity,
    suggested_price_cents, acceptance_probability,
    authorization_id, held_amount_cents, hold_state, authorized_at,
    status, expires_at, matched_at, matched_listing_id,
    view_count, expiry_attempts, reconcile_attempts, next_reconcile_at,
    created_at, updated_at
"""

_GET_OFFER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM buyer_offers WHERE id = :id
""")

_GET_OFFER_FOR_UPDATE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM buyer_offers WHERE id = :id
    FOR UPDATE
""")

_MARK_MATCHED_SQL = text("""
    UPDATE buyer_offers
    SET status = 'matched', matched_at = :matched_at,
        matched_listing_id = :listing_id, updated_at = NOW()
    WHERE id = :id AND status = 'active'
    RETURNING id
""")

_CLOSE_OFFER_SQL = text("""
    UPDATE buyer_offers
    SET status = :status, hold_state = :hold_state, updated_at = NOW()
    WHERE id = :id AND status = 'active'
    RETURNING id
""")

_UPDATE_HOLD_STATE_SQL = text("""
    UPDATE buyer_offers
    SET hold_state = :hold_state, updated_at = NOW()
    WHERE id = :id
""")

_INCREMENT_EXPIRY_ATTEMPTS_SQL = text("""
    UPDATE buyer_offers
    SET expiry_attempts = expiry_attempts + 1, updated_at = NOW()
    WHERE id = :id
    RETURNING expiry_attempts
""")

_LIST_EXPIRABLE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM buyer_offers
    WHERE status = 'active' AND expires_at <= :now
    ORDER BY expires_at ASC
    LIMIT :limit
""")

_LIST_UNSETTLED_MATCHES_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM buyer_offers
    WHERE status = 'matched'
      AND reconcile_attempts < :max_attempts
      AND (next_reconcile_at IS NULL OR next_reconcile_at <= :now)
      AND (hold_state = 'capture_failed'
           OR (hold_state = 'authorized' AND matched_at <= :matched_before))
    ORDER BY COALESCE(next_reconcile_at, matched_at) ASC
    LIMIT :limit
""")

_RECORD_RECONCILE_FAILURE_SQL = text("""
    UPDATE buyer_offers
    SET reconcile_attempts = reconcile_attempts + 1,
        next_reconcile_at = :next_attempt_at, updated_at = NOW()
    WHERE id = :id AND status = 'matched'
""")

_LIST_BY_BUYER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM buyer_offers
    WHERE buyer_id = :buyer_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_EVENT_OFFERS_FILTER = """
    FROM buyer_offers
    WHERE event_id = :event_id
      AND status = 'active'
      AND (CAST(:sections AS TEXT[]) IS NULL OR sections && CAST(:sections AS TEXT[]))
      AND (CAST(:min_price_cents AS BIGINT) IS NULL OR max_price_cents >= :min_price_cents)
"""

_LIST_EVENT_OFFERS_SQL = {
    OfferSort.MAX_PRICE: text(f"""
        SELECT {_SELECT_COLUMNS} {_EVENT_OFFERS_FILTER}
        ORDER BY max_price_cents DESC, id DESC
    """),
    OfferSort.CREATED_AT: text(f"""
        SELECT {_SELECT_COLUMNS} {_EVENT_OFFERS_FILTER}
        ORDER BY created_at DESC, id DESC
    """),
}

_INCREMENT_VIEWS_SQL = text("""
    UPDATE buyer_offers
    SET view_count = view_count + 1
    WHERE id = ANY(CAST(:offer_ids AS TEXT[]))
""")

_INSERT_VIEWS_SQL = text("""
    INSERT INTO offer_views (offer_id, viewer_id, viewed_at)
    SELECT unnest(CAST(:offer_ids AS TEXT[])), :viewer_id, :viewed_at
""")


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_offer(row: Any) -> BuyerOffer:
    """Convert a DB result row to a BuyerOffer domain object."""
    return BuyerOffer(
        id=row.id,
        buyer_id=row.buyer_id,
        event_id=row.event_id,
        sections=list(row.sections),
        max_price_cents=row.max_price_cents,
        quantity=row.quantity,
        suggested_price_cents=row.suggested_price_cents,
        acceptance_probability=row.acceptance_probability,
        authorization_id=row.authorization_id,
        held_amount_cents=row.held_amount_cents,
        hold_state=row.hold_state,
        authorized_at=row.authorized_at,
        status=row.status,
        expires_at=row.expires_at,
        matched_at=row.matched_at,
        matched_listing_id=row.matched_listing_id,
        view_count=row.view_count,
        expiry_attempts=row.expiry_attempts,
        reconcile_attempts=row.reconcile_attempts,
        next_reconcile_at=row.next_reconcile_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OfferRepository:
    """Concrete implementation of OfferRepositoryProtocol using raw SQL."""

    async def save(self, offer: BuyerOffer, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_OFFER_SQL,
            {
                "id": offer.id,
                "buyer_id": offer.buyer_id,
                "event_id": offer.event_id,
                "sections": offer.sections,
                "max_price_cents": offer.max_price_cents,
                "quantity": offer.quantity,
                "suggested_price_cents": offer.suggested_price_cents,
                "acceptance_probability": offer.acceptance_probability,
                "authorization_id": offer.authorization_id,
                "held_amount_cents": offer.held_amount_cents,
                "hold_state": offer.hold_state,
                "authorized_at": offer.authorized_at,
                "status": offer.status,
                "expires_at": offer.expires_at,
            },
        )

    async def get_by_id(self, offer_id: str, db: AsyncSession) -> BuyerOffer | None:
        result = await db.execute(_GET_OFFER_BY_ID_SQL, {"id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def get_for_update(self, offer_id: str, db: AsyncSession) -> BuyerOffer | None:
        """Row-lock the offer until the caller's transaction ends."""
        result = await db.execute(_GET_OFFER_FOR_UPDATE_SQL, {"id": offer_id})
        row = result.fetchone()
        return _row_to_offer(row) if row else None

    async def mark_matched(
        self, offer_id: str, listing_id: str, matched_at: datetime, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _MARK_MATCHED_SQL,
            {"id": offer_id, "listing_id": listing_id, "matched_at": matched_at},
        )
        return result.fetchone() is not None

    async def close_offer(
        self, offer_id: str, status: str, hold_state: str, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _CLOSE_OFFER_SQL,
            {"id": offer_id, "status": status, "hold_state": hold_state},
        )
        return result.fetchone() is not None

    async def update_hold_state(
        self, offer_id: str, hold_state: str, db: AsyncSession
    ) -> None:
        await db.execute(
            _UPDATE_HOLD_STATE_SQL, {"id": offer_id, "hold_state": HoldState(hold_state).value}
        )

    async def increment_expiry_attempts(self, offer_id: str, db: AsyncSession) -> int:
        result = await db.execute(_INCREMENT_EXPIRY_ATTEMPTS_SQL, {"id": offer_id})
        return int(result.scalar_one())

    async def list_expirable(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[BuyerOffer]:
        result = await db.execute(_LIST_EXPIRABLE_SQL, {"now": now, "limit": limit})
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_unsettled_matches(
        self,
        matched_before: datetime,
        now: datetime,
        max_attempts: int,
        limit: int,
        db: AsyncSession,
    ) -> list[BuyerOffer]:
        """Matched offers due for re-capture, skipping those backed off or past the cap."""
        result = await db.execute(
            _LIST_UNSETTLED_MATCHES_SQL,
            {
                "matched_before": matched_before,
                "now": now,
                "max_attempts": max_attempts,
                "limit": limit,
            },
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def record_reconcile_failure(
        self, offer_id: str, next_attempt_at: datetime, db: AsyncSession
    ) -> None:
        await db.execute(
            _RECORD_RECONCILE_FAILURE_SQL, {"id": offer_id, "next_attempt_at": next_attempt_at}
        )

    async def list_by_buyer(
        self, buyer_id: str, limit: int, cursor_id: str | None, db: AsyncSession
    ) -> list[BuyerOffer]:
        result = await db.execute(
            _LIST_BY_BUYER_SQL,
            {"buyer_id": buyer_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def list_active_for_event(
        self,
        event_id: str,
        sections: list[str] | None,
        min_price_cents: int | None,
        sort_by: str,
        db: AsyncSession,
    ) -> list[BuyerOffer]:
        sql = _LIST_EVENT_OFFERS_SQL[OfferSort(sort_by)]
        result = await db.execute(
            sql,
            {
                "event_id": event_id,
                "sections": sections or None,
                "min_price_cents": min_price_cents,
            },
        )
        return [_row_to_offer(row) for row in result.fetchall()]

    async def record_views(
        self, offer_ids: list[str], viewer_id: str, viewed_at: datetime, db: AsyncSession
    ) -> None:
        if not offer_ids:
            return
        await db.execute(_INCREMENT_VIEWS_SQL, {"offer_ids": offer_ids})
        await db.execute(
            _INSERT_VIEWS_SQL,
            {"offer_ids": offer_ids, "viewer_id": viewer_id, "viewed_at": viewed_at},
        )
