"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OfferStatus(str, Enum):
    """Buyer offer lifecycle: ACTIVE is the only non-terminal state."""
    ACTIVE = "active"
    MATCHED = "matched"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    ERROR = "error"


class HoldState(str, Enum):
    """State of the payment authorization backing an offer."""
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    CANCELLED = "cancelled"
    CAPTURE_FAILED = "capture_failed"


class ListingStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    MATCHED = "matched"


class OfferEventType(str, Enum):
    OFFER_CREATED = "OFFER_CREATED"
    OFFER_CANCELLED = "OFFER_CANCELLED"
    OFFER_EXPIRED = "OFFER_EXPIRED"
    OFFER_ERRORED = "OFFER_ERRORED"
    OFFER_MATCHED = "OFFER_MATCHED"
    PAYMENT_CAPTURED = "PAYMENT_CAPTURED"
    CAPTURE_FAILED = "CAPTURE_FAILED"


class OfferSort(str, Enum):
    MAX_PRICE = "maxPrice"
    CREATED_AT = "createdAt"
