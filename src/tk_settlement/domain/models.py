"""Settlement domain models: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime

from src.tk_listing.domain.models import SellerListing
from src.tk_offer.domain.models import BuyerOffer
from src.tk_settlement.domain.fee import split_sale


@dataclass
class SettledTransaction:
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
    needs_reconciliation: bool = False
    created_at: datetime | None = None


def build_settlement(
    transaction_id: str,
    offer: BuyerOffer,
    listing: SellerListing,
    fee_bps: int,
    now: datetime,
) -> SettledTransaction:
    """Financial terms of a match: the sale closes at the buyer's unit ceiling."""
    sale_price = offer.max_price_cents
    fee, payout = split_sale(sale_price, fee_bps)
    return SettledTransaction(
        id=transaction_id,
        buyer_id=offer.buyer_id,
        seller_id=listing.seller_id,
        offer_id=offer.id,
        listing_id=listing.id,
        event_id=offer.event_id,
        section=listing.section,
        row=listing.row,
        seats=listing.seats,
        quantity=offer.quantity,
        delivery_method=listing.delivery_method,
        sale_price_cents=sale_price,
        buyer_paid_cents=offer.held_amount_cents,
        seller_fee_cents=fee,
        seller_payout_cents=payout,
        authorization_id=offer.authorization_id,
        created_at=now,
    )


@dataclass
class SettlementResult:
    transaction: SettledTransaction
    listing: SellerListing
    offer: BuyerOffer
