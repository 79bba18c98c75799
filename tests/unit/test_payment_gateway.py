"""Unit tests for HttpPaymentGateway against httpx.MockTransport."""
import json
from collections.abc import Callable

import httpx
import pytest

from src.tk_payment.domain.gateway import CancelFailed, CaptureFailed, HoldDeclined
from src.tk_payment.infrastructure.http_gateway import HttpPaymentGateway

Handler = Callable[[httpx.Request], httpx.Response]


def _gateway(handler: Handler, max_attempts: int = 3) -> HttpPaymentGateway:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://payments.test/v1"
    )
    return HttpPaymentGateway(client, max_attempts=max_attempts, backoff_seconds=0)


class _Recorder:
    """Replays `responses` in order and records every request."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class TestHold:
    async def test_returns_authorization_id(self) -> None:
        rec = _Recorder(httpx.Response(201, json={"id": "auth-9", "status": "authorized"}))
        gateway = _gateway(rec)

        auth_id = await gateway.hold(200, "usd", "buyer-1", {"offer_id": "off-1"}, "off-1")

        assert auth_id == "auth-9"
        (req,) = rec.requests
        assert req.url.path == "/v1/authorizations"
        assert req.headers["Idempotency-Key"] == "hold-off-1"
        body = json.loads(req.content)
        assert body["amount"] == 200
        assert body["currency"] == "usd"
        assert body["capture_method"] == "manual"
        assert body["metadata"] == {"offer_id": "off-1"}

    async def test_declined_is_not_retried(self) -> None:
        rec = _Recorder(httpx.Response(402, json={"error": "insufficient funds"}))
        gateway = _gateway(rec)

        with pytest.raises(HoldDeclined) as exc_info:
            await gateway.hold(200, "usd", "buyer-1", {}, "off-1")

        assert exc_info.value.message == "insufficient funds"
        assert exc_info.value.transient is False
        assert len(rec.requests) == 1

    async def test_retries_server_errors(self) -> None:
        rec = _Recorder(
            httpx.Response(503),
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"id": "auth-1"}),
        )
        gateway = _gateway(rec)

        assert await gateway.hold(100, "usd", "buyer-1", {}, "off-1") == "auth-1"
        assert len(rec.requests) == 3
        assert {r.headers["Idempotency-Key"] for r in rec.requests} == {"hold-off-1"}

    async def test_gives_up_after_max_attempts(self) -> None:
        rec = _Recorder(*(httpx.ReadTimeout("timed out") for _ in range(2)))
        gateway = _gateway(rec, max_attempts=2)

        with pytest.raises(HoldDeclined) as exc_info:
            await gateway.hold(100, "usd", "buyer-1", {}, "off-1")

        assert exc_info.value.transient is True
        assert len(rec.requests) == 2

    async def test_missing_authorization_id(self) -> None:
        gateway = _gateway(_Recorder(httpx.Response(200, json={"status": "authorized"})))
        with pytest.raises(HoldDeclined):
            await gateway.hold(100, "usd", "buyer-1", {}, "off-1")

    async def test_non_json_success_body(self) -> None:
        gateway = _gateway(_Recorder(httpx.Response(200, text="<html>ok</html>")))
        with pytest.raises(HoldDeclined) as exc_info:
            await gateway.hold(100, "usd", "buyer-1", {}, "off-1")
        assert exc_info.value.transient is True

    async def test_non_object_success_body(self) -> None:
        gateway = _gateway(_Recorder(httpx.Response(201, json=["auth-1"])))
        with pytest.raises(HoldDeclined) as exc_info:
            await gateway.hold(100, "usd", "buyer-1", {}, "off-1")
        assert exc_info.value.transient is True


class TestCapture:
    async def test_success(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"status": "captured"}))
        await _gateway(rec).capture("auth-1")
        (req,) = rec.requests
        assert req.url.path == "/v1/authorizations/auth-1/capture"
        assert req.headers["Idempotency-Key"] == "capture-auth-1"

    async def test_already_captured_is_success(self) -> None:
        rec = _Recorder(httpx.Response(409, json={"status": "captured"}))
        await _gateway(rec).capture("auth-1")

    async def test_conflict_in_other_state_fails(self) -> None:
        rec = _Recorder(httpx.Response(409, json={"status": "cancelled", "error": "hold released"}))
        with pytest.raises(CaptureFailed) as exc_info:
            await _gateway(rec).capture("auth-1")
        assert exc_info.value.message == "hold released"

    async def test_retry_after_lost_response(self) -> None:
        # First attempt reached the provider but the response was lost
        rec = _Recorder(
            httpx.ReadTimeout("timed out"),
            httpx.Response(409, json={"status": "captured"}),
        )
        await _gateway(rec).capture("auth-1")
        assert len(rec.requests) == 2

    async def test_persistent_outage_is_transient_failure(self) -> None:
        rec = _Recorder(*(httpx.Response(502) for _ in range(3)))
        with pytest.raises(CaptureFailed) as exc_info:
            await _gateway(rec).capture("auth-1")
        assert exc_info.value.transient is True
        assert len(rec.requests) == 3

    async def test_decoding_error_is_transient_failure(self) -> None:
        rec = _Recorder(*(httpx.DecodingError("malformed gzip body") for _ in range(3)))
        with pytest.raises(CaptureFailed) as exc_info:
            await _gateway(rec).capture("auth-1")
        assert exc_info.value.transient is True
        assert len(rec.requests) == 3

    async def test_redirect_loop_is_transient_failure(self) -> None:
        rec = _Recorder(*(httpx.TooManyRedirects("too many redirects") for _ in range(2)))
        with pytest.raises(CaptureFailed) as exc_info:
            await _gateway(rec, max_attempts=2).capture("auth-1")
        assert exc_info.value.transient is True


class TestCancel:
    async def test_success(self) -> None:
        rec = _Recorder(httpx.Response(200, json={"status": "cancelled"}))
        await _gateway(rec).cancel("auth-1")
        assert rec.requests[0].url.path == "/v1/authorizations/auth-1/cancel"

    async def test_already_cancelled_is_success(self) -> None:
        await _gateway(_Recorder(httpx.Response(409, json={"status": "cancelled"}))).cancel("auth-1")

    async def test_unknown_authorization(self) -> None:
        rec = _Recorder(httpx.Response(404, text="not found"))
        with pytest.raises(CancelFailed) as exc_info:
            await _gateway(rec).cancel("auth-x")
        assert exc_info.value.message == "HTTP 404"
