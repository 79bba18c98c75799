"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Event
  3xxx: Offer
  4xxx: Settlement
  5xxx: Payment
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class ForbiddenError(AppError):
    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(1006, detail, 403)


# --- 2xxx: Event ---

class EventNotFoundError(AppError):
    def __init__(self, event_id: str) -> None:
        super().__init__(2001, f"Event not found: {event_id}", 404)


class EventNotUpcomingError(AppError):
    def __init__(self, event_id: str, status: str) -> None:
        super().__init__(2002, f"Event {event_id} is not upcoming (status={status})", 422)


# --- 3xxx: Offer ---

class OfferNotFoundError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(3001, f"Offer not found: {offer_id}", 404)


class InvalidOfferError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid offer: {detail}", 422)


class OfferNotCancellableError(AppError):
    def __init__(self, offer_id: str, status: str) -> None:
        super().__init__(3003, f"Offer {offer_id} in status {status} cannot be cancelled", 422)


class OfferWriteFailedError(AppError):
    def __init__(self) -> None:
        super().__init__(3004, "Offer could not be stored; payment hold was released", 503)


# --- 4xxx: Settlement ---

class OfferNotAvailableError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(4001, f"Offer not available: {offer_id}", 409)


class SectionMismatchError(AppError):
    def __init__(self, section: str) -> None:
        super().__init__(4002, f"Section not in buyer preferences: {section}", 422)


class SettlementWriteFailedError(AppError):
    def __init__(self, offer_id: str) -> None:
        super().__init__(
            4003, f"Settlement could not be recorded for offer {offer_id}; offer is still active", 503
        )


class TransactionNotFoundError(AppError):
    def __init__(self, transaction_id: str) -> None:
        super().__init__(4004, f"Transaction not found: {transaction_id}", 404)


class NotReconcilableError(AppError):
    def __init__(self, offer_id: str, detail: str) -> None:
        super().__init__(4005, f"Offer {offer_id} cannot be reconciled: {detail}", 422)


class SelfMatchError(AppError):
    def __init__(self) -> None:
        super().__init__(4006, "Sellers cannot accept their own offer", 422)


# --- 5xxx: Payment ---

class PaymentHoldFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(5001, f"Payment hold failed: {detail}", 402)


class HoldCancelFailedError(AppError):
    def __init__(self, offer_id: str, detail: str) -> None:
        super().__init__(
            5002, f"Hold cancellation failed for offer {offer_id}; offer is still active: {detail}", 502
        )


class CaptureFailedError(AppError):
    def __init__(self, offer_id: str, transaction_id: str) -> None:
        self.offer_id = offer_id
        self.transaction_id = transaction_id
        super().__init__(
            5003,
            f"Settlement {transaction_id} recorded but payment capture for offer {offer_id} "
            "failed; queued for reconciliation",
            502,
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class PricingUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Pricing engine unavailable: {detail}", 503)
