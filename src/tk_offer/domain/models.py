"""Offer domain model: pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import datetime

from src.tk_common.enums import HoldState, OfferStatus


def hold_amount(max_price_cents: int, quantity: int) -> int:
    """Funds reserved for an offer: the unit ceiling times the ticket count."""
    return max_price_cents * quantity


@dataclass
class BuyerOffer:
    id: str
    buyer_id: str
    event_id: str
    sections: list[str]
    max_price_cents: int  # unit price ceiling
    quantity: int
    # Payment hold
    authorization_id: str
    held_amount_cents: int
    hold_state: str = HoldState.AUTHORIZED
    authorized_at: datetime | None = None
    # Pricing engine output, write-once at creation
    suggested_price_cents: int | None = None
    acceptance_probability: float | None = None
    # Lifecycle
    status: str = OfferStatus.ACTIVE
    expires_at: datetime | None = None
    matched_at: datetime | None = None
    matched_listing_id: str | None = None
    # Analytics / sweeper bookkeeping
    view_count: int = 0
    expiry_attempts: int = 0
    reconcile_attempts: int = 0
    next_reconcile_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == OfferStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def covers_section(self, section: str) -> bool:
        return section in self.sections


@dataclass
class SweepResult:
    """Outcome of one background sweep pass."""

    examined: int = 0
    succeeded: int = 0
    failed: int = 0
    errored: int = 0
    offer_ids: list[str] = field(default_factory=list)
