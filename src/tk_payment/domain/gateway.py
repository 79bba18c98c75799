# src/tk_payment/domain/gateway.py
"""PaymentGateway Protocol: the Payment Authorization Service boundary.

All three operations are safe to retry: the authorization id (or, for holds,
the caller-supplied idempotency key) is the dedup key on the provider side.
"""
from typing import Any, Protocol


class PaymentServiceError(Exception):
    """Base class for failures reported by (or while reaching) the payment service."""

    def __init__(self, message: str, transient: bool = False) -> None:
        self.message = message
        self.transient = transient
        super().__init__(message)


class HoldDeclined(PaymentServiceError):
    """The hold was refused, timed out, or the service could not be reached."""


class CaptureFailed(PaymentServiceError):
    """The capture of an existing authorization did not go through."""


class CancelFailed(PaymentServiceError):
    """The authorization could not be released."""


class PaymentGateway(Protocol):
    async def hold(
        self,
        amount: int,
        currency: str,
        payer_ref: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> str:
        """Reserve `amount` cents; returns the authorization id."""
        ...

    async def capture(self, authorization_id: str) -> None: ...

    async def cancel(self, authorization_id: str) -> None: ...
