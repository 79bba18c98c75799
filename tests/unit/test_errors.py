"""Tests for tk_common.errors and tk_common.response."""

import pytest

from src.tk_common.errors import (
    AppError,
    CaptureFailedError,
    EventNotFoundError,
    EventNotUpcomingError,
    ForbiddenError,
    HoldCancelFailedError,
    InvalidOfferError,
    OfferNotAvailableError,
    OfferNotCancellableError,
    OfferNotFoundError,
    OfferWriteFailedError,
    PaymentHoldFailedError,
    PricingUnavailableError,
    SectionMismatchError,
    SelfMatchError,
    SettlementWriteFailedError,
    TransactionNotFoundError,
)
from src.tk_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert isinstance(err, Exception)


class TestSpecificErrors:
    @pytest.mark.parametrize(
        ("err", "code", "status"),
        [
            (ForbiddenError(), 1006, 403),
            (EventNotFoundError("evt-1"), 2001, 404),
            (EventNotUpcomingError("evt-1", "live"), 2002, 422),
            (OfferNotFoundError("off-1"), 3001, 404),
            (InvalidOfferError("quantity"), 3002, 422),
            (OfferNotCancellableError("off-1", "matched"), 3003, 422),
            (OfferWriteFailedError(), 3004, 503),
            (OfferNotAvailableError("off-1"), 4001, 409),
            (SectionMismatchError("C"), 4002, 422),
            (SettlementWriteFailedError("off-1"), 4003, 503),
            (TransactionNotFoundError("txn-1"), 4004, 404),
            (SelfMatchError(), 4006, 422),
            (PaymentHoldFailedError("declined"), 5001, 402),
            (HoldCancelFailedError("off-1", "timeout"), 5002, 502),
            (PricingUnavailableError("timeout"), 9003, 503),
        ],
    )
    def test_codes(self, err: AppError, code: int, status: int) -> None:
        assert err.code == code
        assert err.http_status == status

    def test_capture_failed_carries_ids(self) -> None:
        err = CaptureFailedError("off-1", "txn-9")
        assert err.code == 5003
        assert err.http_status == 502
        assert err.offer_id == "off-1"
        assert err.transaction_id == "txn-9"
        assert "txn-9" in err.message

    def test_not_cancellable_mentions_status(self) -> None:
        assert "matched" in OfferNotCancellableError("off-1", "matched").message


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"id": "off-1"})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.data == {"id": "off-1"}
        assert resp.request_id.startswith("req_")

    def test_error(self) -> None:
        resp = error_response(4001, "Offer not available: off-1")
        assert resp.code == 4001
        assert resp.data is None
