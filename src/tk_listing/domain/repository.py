# src/tk_listing/domain/repository.py
"""ListingRepository Protocol: listings are insert-only."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_listing.domain.models import SellerListing


class ListingRepositoryProtocol(Protocol):
    async def save(self, listing: SellerListing, db: AsyncSession) -> None: ...

    async def get_by_id(self, listing_id: str, db: AsyncSession) -> SellerListing | None: ...
