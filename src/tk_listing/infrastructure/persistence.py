# src/tk_listing/infrastructure/persistence.py
"""ListingRepository: raw SQL persistence implementation."""
import json
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_listing.domain.models import SellerListing

_INSERT_LISTING_SQL = text("""
    INSERT INTO seller_listings (id, seller_id, event_id, section, row, seats,
        quantity, asking_price_cents, delivery_method, delivery_details,
        status, go_live_at, is_live)
    VALUES (:id, :seller_id, :event_id, :section, :row, :seats,
        :quantity, :asking_price_cents, :delivery_method, CAST(:delivery_details AS JSONB),
        :status, :go_live_at, :is_live)
""")

_GET_LISTING_BY_ID_SQL = text("""
    SELECT id, seller_id, event_id, section, row, seats,
           quantity, asking_price_cents, delivery_method, delivery_details,
           status, go_live_at, is_live, created_at
    FROM seller_listings WHERE id = :id
""")


def _row_to_listing(row: Any) -> SellerListing:
    return SellerListing(
        id=row.id,
        seller_id=row.seller_id,
        event_id=row.event_id,
        section=row.section,
        row=row.row,
        seats=list(row.seats),
        quantity=row.quantity,
        asking_price_cents=row.asking_price_cents,
        delivery_method=row.delivery_method,
        delivery_details=dict(row.delivery_details or {}),
        status=row.status,
        go_live_at=row.go_live_at,
        is_live=row.is_live,
        created_at=row.created_at,
    )


class ListingRepository:
    async def save(self, listing: SellerListing, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "seller_id": listing.seller_id,
                "event_id": listing.event_id,
                "section": listing.section,
                "row": listing.row,
                "seats": listing.seats,
                "quantity": listing.quantity,
                "asking_price_cents": listing.asking_price_cents,
                "delivery_method": listing.delivery_method,
                "delivery_details": json.dumps(listing.delivery_details),
                "status": listing.status,
                "go_live_at": listing.go_live_at,
                "is_live": listing.is_live,
            },
        )

    async def get_by_id(self, listing_id: str, db: AsyncSession) -> SellerListing | None:
        result = await db.execute(_GET_LISTING_BY_ID_SQL, {"id": listing_id})
        row = result.fetchone()
        return _row_to_listing(row) if row else None
