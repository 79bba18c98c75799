# src/tk_listing/application/service.py
"""BulkIntakeService: proactive seller listings, one savepoint per item.

A failing item is reported and skipped; the rest of the batch still commits.
"""
import logging

from src.tk_common.database import SessionFactory
from src.tk_common.datetime_utils import Clock, utc_now
from src.tk_common.enums import ListingStatus
from src.tk_common.errors import AppError
from src.tk_common.id_generator import LISTING_PREFIX, generate_id
from src.tk_event.domain.repository import EventRepositoryProtocol
from src.tk_listing.application.schemas import ListingSpec
from src.tk_listing.domain.models import BulkIntakeResult, BulkItemFailure, SellerListing
from src.tk_listing.domain.repository import ListingRepositoryProtocol

logger = logging.getLogger(__name__)


def _check_spec(spec: ListingSpec) -> str | None:
    """Return a failure message, or None if the item is acceptable."""
    if not spec.section.strip():
        return "section is required"
    if spec.quantity < 1:
        return f"quantity must be at least 1, got {spec.quantity}"
    if spec.asking_price_cents <= 0:
        return f"asking price must be greater than 0, got {spec.asking_price_cents}"
    if spec.seats and len(spec.seats) != spec.quantity:
        return f"{len(spec.seats)} seats given for quantity {spec.quantity}"
    if not spec.delivery_method.strip():
        return "delivery method is required"
    return None


class BulkIntakeService:
    def __init__(
        self,
        session_factory: SessionFactory,
        listings: ListingRepositoryProtocol,
        events: EventRepositoryProtocol,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._listings = listings
        self._events = events
        self._clock = clock

    async def bulk_create_listings(
        self, seller_id: str, specs: list[ListingSpec]
    ) -> BulkIntakeResult:
        result = BulkIntakeResult()
        known_events: dict[str, bool] = {}

        async with self._session_factory() as db, db.begin():
            for index, spec in enumerate(specs):
                problem = _check_spec(spec)
                if problem is None:
                    if spec.event_id not in known_events:
                        event = await self._events.get_by_id(spec.event_id, db)
                        known_events[spec.event_id] = event is not None
                    if not known_events[spec.event_id]:
                        problem = f"event not found: {spec.event_id}"
                if problem is not None:
                    result.failures.append(BulkItemFailure(index=index, message=problem))
                    continue

                scheduled = spec.go_live_at is not None
                listing = SellerListing(
                    id=generate_id(LISTING_PREFIX),
                    seller_id=seller_id,
                    event_id=spec.event_id,
                    section=spec.section.strip(),
                    row=spec.row,
                    seats=spec.seats,
                    quantity=spec.quantity,
                    asking_price_cents=spec.asking_price_cents,
                    delivery_method=spec.delivery_method,
                    delivery_details=spec.delivery_details,
                    status=ListingStatus.DRAFT if scheduled else ListingStatus.ACTIVE,
                    go_live_at=spec.go_live_at,
                    is_live=not scheduled,
                    created_at=self._clock(),
                )
                try:
                    async with db.begin_nested():
                        await self._listings.save(listing, db)
                except AppError as exc:
                    result.failures.append(BulkItemFailure(index=index, message=exc.message))
                    continue
                except Exception as exc:
                    logger.warning("Bulk listing item %d rejected by store: %s", index, exc)
                    result.failures.append(
                        BulkItemFailure(index=index, message="listing could not be stored")
                    )
                    continue
                result.created.append(listing)

        logger.info(
            "Bulk intake: seller=%s created=%d failed=%d",
            seller_id, result.created_count, len(result.failures),
        )
        return result
