"""Seller listing domain model: pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.tk_common.enums import ListingStatus


@dataclass
class SellerListing:
    """A seller's ticket allocation.

    Listings created by accepting an offer are MATCHED and never change;
    proactive listings start as DRAFT (scheduled go-live) or ACTIVE.
    """

    id: str
    seller_id: str
    event_id: str
    section: str
    row: str | None
    seats: list[str]
    quantity: int
    asking_price_cents: int
    delivery_method: str
    delivery_details: dict[str, Any] = field(default_factory=dict)
    status: str = ListingStatus.ACTIVE
    go_live_at: datetime | None = None
    is_live: bool = True
    created_at: datetime | None = None


@dataclass
class BulkItemFailure:
    index: int
    message: str


@dataclass
class BulkIntakeResult:
    created: list[SellerListing] = field(default_factory=list)
    failures: list[BulkItemFailure] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)
