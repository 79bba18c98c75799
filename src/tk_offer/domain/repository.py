# src/tk_offer/domain/repository.py
"""OfferRepository Protocol: interface contract for persistence layer."""
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_offer.domain.models import BuyerOffer


class OfferRepositoryProtocol(Protocol):
    async def save(self, offer: BuyerOffer, db: AsyncSession) -> None: ...

    async def get_by_id(self, offer_id: str, db: AsyncSession) -> BuyerOffer | None: ...

    async def get_for_update(self, offer_id: str, db: AsyncSession) -> BuyerOffer | None: ...

    async def mark_matched(
        self, offer_id: str, listing_id: str, matched_at: datetime, db: AsyncSession
    ) -> bool: ...

    async def close_offer(
        self, offer_id: str, status: str, hold_state: str, db: AsyncSession
    ) -> bool: ...

    async def update_hold_state(
        self, offer_id: str, hold_state: str, db: AsyncSession
    ) -> None: ...

    async def increment_expiry_attempts(self, offer_id: str, db: AsyncSession) -> int: ...

    async def list_expirable(
        self, now: datetime, limit: int, db: AsyncSession
    ) -> list[BuyerOffer]: ...

    async def list_unsettled_matches(
        self,
        matched_before: datetime,
        now: datetime,
        max_attempts: int,
        limit: int,
        db: AsyncSession,
    ) -> list[BuyerOffer]: ...

    async def record_reconcile_failure(
        self, offer_id: str, next_attempt_at: datetime, db: AsyncSession
    ) -> None: ...

    async def list_by_buyer(
        self, buyer_id: str, limit: int, cursor_id: str | None, db: AsyncSession
    ) -> list[BuyerOffer]: ...

    async def list_active_for_event(
        self,
        event_id: str,
        sections: list[str] | None,
        min_price_cents: int | None,
        sort_by: str,
        db: AsyncSession,
    ) -> list[BuyerOffer]: ...

    async def record_views(
        self, offer_ids: list[str], viewer_id: str, viewed_at: datetime, db: AsyncSession
    ) -> None: ...
