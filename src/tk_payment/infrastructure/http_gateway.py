"""HttpPaymentGateway: httpx client for the Payment Authorization Service.

Every call has a bounded timeout. Transport and protocol errors, timeouts and 5xx
responses are retried with exponential backoff (tenacity); 4xx responses are
final. A 409 that reports the authorization already in the requested state is
treated as success, which makes capture/cancel retries idempotent.
"""
import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from src.tk_payment.domain.gateway import CancelFailed, CaptureFailed, HoldDeclined

logger = logging.getLogger(__name__)


class _TransientPaymentError(Exception):
    """Retryable condition: transport failure, timeout or 5xx."""


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or f"HTTP {resp.status_code}")
    return f"HTTP {resp.status_code}"


def _reported_status(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get("status") if isinstance(body, dict) else None


class HttpPaymentGateway:
    def __init__(
        self,
        client: httpx.AsyncClient,
        max_attempts: int = 3,
        backoff_seconds: float = 0.2,
    ) -> None:
        self._client = client
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds

    @classmethod
    def from_settings(cls) -> "HttpPaymentGateway":
        client = httpx.AsyncClient(
            base_url=settings.PAYMENT_SERVICE_URL,
            timeout=httpx.Timeout(settings.PAYMENT_TIMEOUT_SECONDS),
            headers={"Authorization": f"Bearer {settings.PAYMENT_API_KEY}"},
        )
        return cls(client, max_attempts=settings.PAYMENT_MAX_ATTEMPTS)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(
        self, path: str, idempotency_key: str, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        """POST with retries on transient failures. Returns the final non-5xx response."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_seconds, max=5),
            retry=retry_if_exception_type(_TransientPaymentError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    resp = await self._client.post(
                        path, json=json, headers={"Idempotency-Key": idempotency_key}
                    )
                except httpx.HTTPError as exc:
                    logger.warning(
                        "Payment call %s failed (attempt %d): %s",
                        path, attempt.retry_state.attempt_number, exc,
                    )
                    raise _TransientPaymentError(str(exc) or type(exc).__name__) from exc
                if resp.status_code >= 500:
                    logger.warning(
                        "Payment call %s returned %d (attempt %d)",
                        path, resp.status_code, attempt.retry_state.attempt_number,
                    )
                    raise _TransientPaymentError(_error_detail(resp))
                return resp
        raise AssertionError("unreachable: tenacity reraises on exhaustion")

    async def hold(
        self,
        amount: int,
        currency: str,
        payer_ref: str,
        metadata: dict[str, Any],
        idempotency_key: str,
    ) -> str:
        body = {
            "amount": amount,
            "currency": currency,
            "payer_ref": payer_ref,
            "capture_method": "manual",
            "metadata": metadata,
        }
        try:
            resp = await self._post("/authorizations", f"hold-{idempotency_key}", json=body)
        except _TransientPaymentError as exc:
            raise HoldDeclined(str(exc), transient=True) from exc
        if resp.status_code not in (200, 201):
            raise HoldDeclined(_error_detail(resp))
        try:
            payload = resp.json()
        except ValueError as exc:
            raise HoldDeclined("payment service returned a malformed body", transient=True) from exc
        authorization_id = payload.get("id") if isinstance(payload, dict) else None
        if not authorization_id:
            raise HoldDeclined("payment service returned no authorization id", transient=True)
        return str(authorization_id)

    async def capture(self, authorization_id: str) -> None:
        try:
            resp = await self._post(
                f"/authorizations/{authorization_id}/capture", f"capture-{authorization_id}"
            )
        except _TransientPaymentError as exc:
            raise CaptureFailed(str(exc), transient=True) from exc
        if resp.status_code == 200:
            return
        if resp.status_code == 409 and _reported_status(resp) == "captured":
            logger.info("Capture already applied: authorization=%s", authorization_id)
            return
        raise CaptureFailed(_error_detail(resp))

    async def cancel(self, authorization_id: str) -> None:
        try:
            resp = await self._post(
                f"/authorizations/{authorization_id}/cancel", f"cancel-{authorization_id}"
            )
        except _TransientPaymentError as exc:
            raise CancelFailed(str(exc), transient=True) from exc
        if resp.status_code == 200:
            return
        if resp.status_code == 409 and _reported_status(resp) == "cancelled":
            logger.info("Cancel already applied: authorization=%s", authorization_id)
            return
        raise CancelFailed(_error_detail(resp))
