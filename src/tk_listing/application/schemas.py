# src/tk_listing/application/schemas.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.tk_listing.domain.models import BulkIntakeResult, SellerListing


class ListingSpec(BaseModel):
    """One proactive listing. Values are checked per item by the intake service."""

    event_id: str
    section: str
    row: str | None = None
    seats: list[str] = Field(default_factory=list)
    quantity: int
    asking_price_cents: int
    delivery_method: str
    delivery_details: dict[str, Any] = Field(default_factory=dict)
    go_live_at: datetime | None = None


class BulkUploadRequest(BaseModel):
    listings: list[ListingSpec] = Field(min_length=1, max_length=500)


class ListingResponse(BaseModel):
    id: str
    seller_id: str
    event_id: str
    section: str
    row: str | None
    seats: list[str]
    quantity: int
    asking_price_cents: int
    delivery_method: str
    status: str
    go_live_at: datetime | None = None
    is_live: bool

    @classmethod
    def from_domain(cls, listing: SellerListing) -> "ListingResponse":
        return cls(
            id=listing.id,
            seller_id=listing.seller_id,
            event_id=listing.event_id,
            section=listing.section,
            row=listing.row,
            seats=listing.seats,
            quantity=listing.quantity,
            asking_price_cents=listing.asking_price_cents,
            delivery_method=listing.delivery_method,
            status=listing.status,
            go_live_at=listing.go_live_at,
            is_live=listing.is_live,
        )


class BulkFailureItem(BaseModel):
    index: int
    message: str


class BulkUploadResponse(BaseModel):
    created: int
    listings: list[ListingResponse]
    failures: list[BulkFailureItem]

    @classmethod
    def from_result(cls, result: BulkIntakeResult) -> "BulkUploadResponse":
        return cls(
            created=result.created_count,
            listings=[ListingResponse.from_domain(x) for x in result.created],
            failures=[BulkFailureItem(index=f.index, message=f.message) for f in result.failures],
        )
