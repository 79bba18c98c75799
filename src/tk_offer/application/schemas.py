# src/tk_offer/application/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.tk_common.cents import validate_unit_price
from src.tk_offer.domain.models import BuyerOffer, SweepResult


class CreateOfferRequest(BaseModel):
    event_id: str
    sections: list[str] = Field(min_length=1)
    max_price_cents: int
    quantity: int = Field(ge=1)

    @field_validator("max_price_cents")
    @classmethod
    def positive_price(cls, v: int) -> int:
        validate_unit_price(v)
        return v


class PaymentHoldInfo(BaseModel):
    authorization_id: str
    amount_cents: int
    state: str
    authorized_at: datetime | None = None


class OfferResponse(BaseModel):
    id: str
    buyer_id: str
    event_id: str
    sections: list[str]
    max_price_cents: int
    quantity: int
    suggested_price_cents: int | None = None
    acceptance_probability: float | None = None
    payment_hold: PaymentHoldInfo
    status: str
    expires_at: datetime | None = None
    matched_at: datetime | None = None
    matched_listing_id: str | None = None
    view_count: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, offer: BuyerOffer) -> "OfferResponse":
        return cls(
            id=offer.id,
            buyer_id=offer.buyer_id,
            event_id=offer.event_id,
            sections=offer.sections,
            max_price_cents=offer.max_price_cents,
            quantity=offer.quantity,
            suggested_price_cents=offer.suggested_price_cents,
            acceptance_probability=offer.acceptance_probability,
            payment_hold=PaymentHoldInfo(
                authorization_id=offer.authorization_id,
                amount_cents=offer.held_amount_cents,
                state=offer.hold_state,
                authorized_at=offer.authorized_at,
            ),
            status=offer.status,
            expires_at=offer.expires_at,
            matched_at=offer.matched_at,
            matched_listing_id=offer.matched_listing_id,
            view_count=offer.view_count,
            created_at=offer.created_at,
        )


class EventOfferItem(BaseModel):
    """Seller-facing view: no payment details."""

    id: str
    event_id: str
    sections: list[str]
    max_price_cents: int
    quantity: int
    expires_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, offer: BuyerOffer) -> "EventOfferItem":
        return cls(
            id=offer.id,
            event_id=offer.event_id,
            sections=offer.sections,
            max_price_cents=offer.max_price_cents,
            quantity=offer.quantity,
            expires_at=offer.expires_at,
            created_at=offer.created_at,
        )


class OfferListResponse(BaseModel):
    items: list[OfferResponse]
    next_cursor: str | None
    has_more: bool


class EventOffersResponse(BaseModel):
    offers: list[EventOfferItem]


class SweepResponse(BaseModel):
    examined: int
    succeeded: int
    failed: int
    errored: int
    offer_ids: list[str]

    @classmethod
    def from_result(cls, result: SweepResult) -> "SweepResponse":
        return cls(
            examined=result.examined,
            succeeded=result.succeeded,
            failed=result.failed,
            errored=result.errored,
            offer_ids=result.offer_ids,
        )
