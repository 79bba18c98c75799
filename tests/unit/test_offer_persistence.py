# tests/unit/test_offer_persistence.py
"""Unit tests for OfferRepository using MagicMock AsyncSession."""
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.tk_common.enums import HoldState, OfferSort, OfferStatus
from src.tk_offer.domain.models import BuyerOffer
from src.tk_offer.infrastructure.persistence import (
    _LIST_EVENT_OFFERS_SQL,
    OfferRepository,
)

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _make_row(**kwargs: Any) -> MagicMock:
    """Create a mock row with all buyer_offers columns."""
    row = MagicMock()
    row.id = kwargs.get("id", "off-1")
    row.buyer_id = kwargs.get("buyer_id", "buyer-1")
    row.event_id = kwargs.get("event_id", "evt-1")
    row.sections = kwargs.get("sections", ["A", "B"])
    row.max_price_cents = kwargs.get("max_price_cents", 100)
    row.quantity = kwargs.get("quantity", 2)
    row.suggested_price_cents = kwargs.get("suggested_price_cents", 95)
    row.acceptance_probability = kwargs.get("acceptance_probability", 0.4)
    row.authorization_id = kwargs.get("authorization_id", "auth-1")
    row.held_amount_cents = kwargs.get("held_amount_cents", 200)
    row.hold_state = kwargs.get("hold_state", "authorized")
    row.authorized_at = kwargs.get("authorized_at", NOW)
    row.status = kwargs.get("status", "active")
    row.expires_at = kwargs.get("expires_at", NOW)
    row.matched_at = kwargs.get("matched_at")
    row.matched_listing_id = kwargs.get("matched_listing_id")
    row.view_count = kwargs.get("view_count", 0)
    row.expiry_attempts = kwargs.get("expiry_attempts", 0)
    row.reconcile_attempts = kwargs.get("reconcile_attempts", 0)
    row.next_reconcile_at = kwargs.get("next_reconcile_at")
    row.created_at = kwargs.get("created_at", NOW)
    row.updated_at = kwargs.get("updated_at", NOW)
    return row


def _db_returning(*, one: Any = None, many: list[Any] | None = None) -> AsyncMock:
    db = AsyncMock()
    result_mock = MagicMock()
    result_mock.fetchone.return_value = one
    result_mock.fetchall.return_value = many or []
    db.execute.return_value = result_mock
    return db


class TestOfferRepository:
    async def test_save_executes_insert(self) -> None:
        db = AsyncMock()
        offer = BuyerOffer(
            id="off-1",
            buyer_id="buyer-1",
            event_id="evt-1",
            sections=["A"],
            max_price_cents=100,
            quantity=2,
            authorization_id="auth-1",
            held_amount_cents=200,
        )
        await OfferRepository().save(offer, db)
        params = db.execute.await_args.args[1]
        assert params["sections"] == ["A"]
        assert params["held_amount_cents"] == 200
        assert params["status"] == OfferStatus.ACTIVE

    async def test_get_by_id_maps_row(self) -> None:
        db = _db_returning(one=_make_row(sections=("A", "B")))
        offer = await OfferRepository().get_by_id("off-1", db)
        assert offer is not None
        assert offer.sections == ["A", "B"]
        assert offer.held_amount_cents == 200
        assert offer.hold_state == "authorized"

    async def test_get_by_id_returns_none_when_not_found(self) -> None:
        offer = await OfferRepository().get_by_id("missing", _db_returning(one=None))
        assert offer is None

    async def test_get_for_update_locks_row(self) -> None:
        db = _db_returning(one=_make_row())
        await OfferRepository().get_for_update("off-1", db)
        assert "FOR UPDATE" in str(db.execute.await_args.args[0])

    async def test_mark_matched_true_when_row_updated(self) -> None:
        db = _db_returning(one=MagicMock(id="off-1"))
        assert await OfferRepository().mark_matched("off-1", "lst-1", NOW, db) is True

    async def test_mark_matched_false_when_not_active(self) -> None:
        db = _db_returning(one=None)
        assert await OfferRepository().mark_matched("off-1", "lst-1", NOW, db) is False

    async def test_close_offer_is_conditional_on_active(self) -> None:
        db = _db_returning(one=None)
        closed = await OfferRepository().close_offer(
            "off-1", OfferStatus.CANCELLED, HoldState.CANCELLED, db
        )
        assert closed is False
        assert "status = 'active'" in str(db.execute.await_args.args[0])

    async def test_increment_expiry_attempts(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.scalar_one.return_value = 3
        db.execute.return_value = result_mock
        assert await OfferRepository().increment_expiry_attempts("off-1", db) == 3

    async def test_list_unsettled_matches_skips_backed_off_and_exhausted(self) -> None:
        db = _db_returning(
            many=[_make_row(status="matched", hold_state="capture_failed", reconcile_attempts=2)]
        )
        offers = await OfferRepository().list_unsettled_matches(
            NOW - timedelta(minutes=5), NOW, 8, 100, db
        )
        sql, params = db.execute.await_args.args
        assert "reconcile_attempts < :max_attempts" in str(sql)
        assert "next_reconcile_at <= :now" in str(sql)
        assert params["max_attempts"] == 8
        assert params["now"] == NOW
        assert offers[0].reconcile_attempts == 2

    async def test_record_reconcile_failure(self) -> None:
        db = AsyncMock()
        await OfferRepository().record_reconcile_failure("off-1", NOW, db)
        sql, params = db.execute.await_args.args
        assert "reconcile_attempts = reconcile_attempts + 1" in str(sql)
        assert params == {"id": "off-1", "next_attempt_at": NOW}

    async def test_list_by_buyer(self) -> None:
        db = _db_returning(many=[_make_row(id="off-2"), _make_row(id="off-1")])
        offers = await OfferRepository().list_by_buyer("buyer-1", 21, None, db)
        assert [o.id for o in offers] == ["off-2", "off-1"]

    async def test_list_active_for_event_uses_sort(self) -> None:
        db = _db_returning(many=[_make_row()])
        await OfferRepository().list_active_for_event("evt-1", [], None, "createdAt", db)
        sql, params = db.execute.await_args.args
        assert sql is _LIST_EVENT_OFFERS_SQL[OfferSort.CREATED_AT]
        assert params["sections"] is None

    async def test_record_views_skips_empty(self) -> None:
        db = AsyncMock()
        await OfferRepository().record_views([], "seller-1", NOW, db)
        db.execute.assert_not_awaited()

    async def test_record_views_counts_and_logs(self) -> None:
        db = AsyncMock()
        await OfferRepository().record_views(["off-1", "off-2"], "seller-1", NOW, db)
        assert db.execute.await_count == 2
