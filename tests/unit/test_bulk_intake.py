"""Unit tests for BulkIntakeService."""
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.tk_common.enums import ListingStatus
from src.tk_event.domain.models import Event
from src.tk_listing.application.schemas import ListingSpec
from src.tk_listing.application.service import BulkIntakeService

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _spec(**kwargs: Any) -> ListingSpec:
    defaults: dict[str, Any] = {
        "event_id": "evt-1",
        "section": "A",
        "row": "3",
        "seats": ["1", "2"],
        "quantity": 2,
        "asking_price_cents": 9000,
        "delivery_method": "mobile_transfer",
    }
    defaults.update(kwargs)
    return ListingSpec(**defaults)


@pytest.fixture
def listings() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def events() -> AsyncMock:
    repo = AsyncMock()
    repo.get_by_id.side_effect = lambda event_id, db: (
        Event(id=event_id, name="Finals", venue=None, status="upcoming", starts_at=NOW)
        if event_id.startswith("evt-")
        else None
    )
    return repo


@pytest.fixture
def service(session_factory: MagicMock, listings: AsyncMock, events: AsyncMock) -> BulkIntakeService:
    return BulkIntakeService(session_factory, listings, events, clock=lambda: NOW)


class TestBulkCreateListings:
    async def test_all_valid(self, service: BulkIntakeService, listings: AsyncMock) -> None:
        result = await service.bulk_create_listings("seller-1", [_spec(), _spec(section="B")])

        assert result.created_count == 2
        assert result.failures == []
        assert listings.save.await_count == 2
        first = result.created[0]
        assert first.seller_id == "seller-1"
        assert first.status == ListingStatus.ACTIVE
        assert first.is_live is True
        assert first.created_at == NOW

    async def test_partial_success_reports_indexes(self, service: BulkIntakeService) -> None:
        specs = [
            _spec(),
            _spec(quantity=0, seats=[]),
            _spec(asking_price_cents=0),
            _spec(event_id="unknown"),
            _spec(seats=["1"]),
            _spec(section="C"),
        ]

        result = await service.bulk_create_listings("seller-1", specs)

        assert result.created_count == 2
        assert [f.index for f in result.failures] == [1, 2, 3, 4]
        assert "quantity" in result.failures[0].message
        assert "asking price" in result.failures[1].message
        assert "event not found" in result.failures[2].message
        assert "seats" in result.failures[3].message

    async def test_scheduled_listing_starts_as_draft(self, service: BulkIntakeService) -> None:
        go_live = NOW + timedelta(days=2)
        result = await service.bulk_create_listings("seller-1", [_spec(go_live_at=go_live)])
        (listing,) = result.created
        assert listing.status == ListingStatus.DRAFT
        assert listing.is_live is False
        assert listing.go_live_at == go_live

    async def test_store_rejection_skips_only_that_item(
        self, service: BulkIntakeService, listings: AsyncMock
    ) -> None:
        listings.save.side_effect = [None, RuntimeError("value too long"), None]

        result = await service.bulk_create_listings("seller-1", [_spec(), _spec(), _spec()])

        assert result.created_count == 2
        assert len(result.failures) == 1
        assert result.failures[0].index == 1
        assert result.failures[0].message == "listing could not be stored"

    async def test_event_lookup_cached(self, service: BulkIntakeService, events: AsyncMock) -> None:
        await service.bulk_create_listings("seller-1", [_spec(), _spec(), _spec(event_id="evt-2")])
        assert events.get_by_id.await_count == 2

    async def test_blank_delivery_method(self, service: BulkIntakeService) -> None:
        result = await service.bulk_create_listings("seller-1", [_spec(delivery_method=" ")])
        assert result.created_count == 0
        assert result.failures[0].message == "delivery method is required"
