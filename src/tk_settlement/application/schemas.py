# src/tk_settlement/application/schemas.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.tk_settlement.domain.models import SettledTransaction, SettlementResult


class AcceptOfferRequest(BaseModel):
    section: str
    row: str | None = None
    seats: list[str] = Field(default_factory=list)
    delivery_method: str
    delivery_details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("section", "delivery_method")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class TransactionResponse(BaseModel):
    id: str
    buyer_id: str
    seller_id: str
    offer_id: str
    listing_id: str
    event_id: str
    section: str
    row: str | None
    seats: list[str]
    quantity: int
    delivery_method: str
    sale_price_cents: int
    buyer_paid_cents: int
    seller_fee_cents: int
    seller_payout_cents: int
    authorization_id: str
    needs_reconciliation: bool
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, txn: SettledTransaction) -> "TransactionResponse":
        return cls(
            id=txn.id,
            buyer_id=txn.buyer_id,
            seller_id=txn.seller_id,
            offer_id=txn.offer_id,
            listing_id=txn.listing_id,
            event_id=txn.event_id,
            section=txn.section,
            row=txn.row,
            seats=txn.seats,
            quantity=txn.quantity,
            delivery_method=txn.delivery_method,
            sale_price_cents=txn.sale_price_cents,
            buyer_paid_cents=txn.buyer_paid_cents,
            seller_fee_cents=txn.seller_fee_cents,
            seller_payout_cents=txn.seller_payout_cents,
            authorization_id=txn.authorization_id,
            needs_reconciliation=txn.needs_reconciliation,
            created_at=txn.created_at,
        )


class AcceptOfferResponse(BaseModel):
    offer_id: str
    offer_status: str
    hold_state: str
    listing_id: str
    transaction: TransactionResponse

    @classmethod
    def from_result(cls, result: SettlementResult) -> "AcceptOfferResponse":
        return cls(
            offer_id=result.offer.id,
            offer_status=result.offer.status,
            hold_state=result.offer.hold_state,
            listing_id=result.listing.id,
            transaction=TransactionResponse.from_domain(result.transaction),
        )


class ReconciliationQueueResponse(BaseModel):
    items: list[TransactionResponse]


class RetryCaptureResponse(BaseModel):
    offer_id: str
    hold_state: str
