# src/tk_offer/application/lifecycle.py
"""OfferLifecycleManager: create, cancel, expire and read buyer offers.

Ordering rules:
  - The payment hold is authorized before the offer row exists; a failed hold
    persists nothing.
  - Cancel and expire take the offer row lock, release the hold while holding
    it, and only then move the offer to its terminal state. A failed release
    rolls the transaction back and leaves the offer active.
"""
import asyncio
import logging
from datetime import datetime, timedelta

from config.settings import settings
from src.tk_common.database import SessionFactory
from src.tk_common.datetime_utils import Clock, utc_now
from src.tk_common.enums import HoldState, OfferEventType, OfferStatus
from src.tk_common.errors import (
    EventNotFoundError,
    EventNotUpcomingError,
    HoldCancelFailedError,
    InvalidOfferError,
    OfferNotCancellableError,
    OfferNotFoundError,
    OfferWriteFailedError,
    PaymentHoldFailedError,
)
from src.tk_common.id_generator import OFFER_PREFIX, generate_id
from src.tk_event.domain.repository import EventRepositoryProtocol
from src.tk_notify.domain.hooks import InstantMatchHook
from src.tk_offer.domain.models import BuyerOffer, SweepResult, hold_amount
from src.tk_offer.domain.repository import OfferRepositoryProtocol
from src.tk_offer.infrastructure.audit import write_offer_event
from src.tk_payment.domain.gateway import PaymentGateway, PaymentServiceError
from src.tk_pricing.domain.models import PricingEngineProtocol, PricingRequest

logger = logging.getLogger(__name__)


def normalize_sections(sections: list[str]) -> list[str]:
    """Strip whitespace and drop blanks/duplicates, keeping first-seen order."""
    seen: dict[str, None] = {}
    for s in sections:
        name = s.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def validate_offer_terms(sections: list[str], max_price_cents: int, quantity: int) -> None:
    if not sections:
        raise InvalidOfferError("at least one section is required")
    if max_price_cents <= 0:
        raise InvalidOfferError(f"max price must be greater than 0, got {max_price_cents}")
    if quantity < 1:
        raise InvalidOfferError(f"quantity must be at least 1, got {quantity}")


class OfferLifecycleManager:
    def __init__(
        self,
        session_factory: SessionFactory,
        offers: OfferRepositoryProtocol,
        events: EventRepositoryProtocol,
        payments: PaymentGateway,
        pricing: PricingEngineProtocol,
        instant_match: InstantMatchHook | None = None,
        clock: Clock = utc_now,
        expiry_buffer: timedelta = timedelta(minutes=settings.OFFER_EXPIRY_BUFFER_MINUTES),
        currency: str = settings.PAYMENT_CURRENCY,
        sweep_batch_size: int = settings.EXPIRY_SWEEP_BATCH_SIZE,
        expiry_max_attempts: int = settings.EXPIRY_MAX_ATTEMPTS,
    ) -> None:
        self._session_factory = session_factory
        self._offers = offers
        self._events = events
        self._payments = payments
        self._pricing = pricing
        self._instant_match = instant_match
        self._clock = clock
        self._expiry_buffer = expiry_buffer
        self._currency = currency
        self._sweep_batch_size = sweep_batch_size
        self._expiry_max_attempts = expiry_max_attempts
        self._background: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_offer(
        self,
        buyer_id: str,
        event_id: str,
        sections: list[str],
        max_price_cents: int,
        quantity: int,
    ) -> BuyerOffer:
        sections = normalize_sections(sections)
        validate_offer_terms(sections, max_price_cents, quantity)

        async with self._session_factory() as db:
            event = await self._events.get_by_id(event_id, db)
        if event is None:
            raise EventNotFoundError(event_id)
        if not event.is_upcoming:
            raise EventNotUpcomingError(event_id, event.status)

        suggestion = await self._pricing.suggest(
            PricingRequest(
                event_id=event_id,
                sections=tuple(sections),
                max_price_cents=max_price_cents,
                quantity=quantity,
            )
        )

        offer_id = generate_id(OFFER_PREFIX)
        amount = hold_amount(max_price_cents, quantity)
        try:
            authorization_id = await self._payments.hold(
                amount=amount,
                currency=self._currency,
                payer_ref=buyer_id,
                metadata={"buyer_id": buyer_id, "event_id": event_id, "offer_id": offer_id},
                idempotency_key=offer_id,
            )
        except PaymentServiceError as exc:
            logger.warning(
                "Hold refused: buyer=%s event=%s amount=%d: %s",
                buyer_id, event_id, amount, exc.message,
            )
            raise PaymentHoldFailedError(exc.message) from exc

        now = self._clock()
        offer = BuyerOffer(
            id=offer_id,
            buyer_id=buyer_id,
            event_id=event_id,
            sections=sections,
            max_price_cents=max_price_cents,
            quantity=quantity,
            authorization_id=authorization_id,
            held_amount_cents=amount,
            hold_state=HoldState.AUTHORIZED,
            authorized_at=now,
            suggested_price_cents=suggestion.suggested_price_cents,
            acceptance_probability=suggestion.probability,
            status=OfferStatus.ACTIVE,
            expires_at=event.starts_at - self._expiry_buffer,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self._session_factory() as db, db.begin():
                await self._offers.save(offer, db)
                await write_offer_event(
                    OfferEventType.OFFER_CREATED,
                    offer.id,
                    buyer_id,
                    {"authorization_id": authorization_id, "held_amount_cents": amount},
                    db,
                )
        except Exception as exc:
            logger.exception(
                "Offer %s not stored after hold %s; releasing hold", offer_id, authorization_id
            )
            await self._release_orphan_hold(authorization_id)
            raise OfferWriteFailedError() from exc

        logger.info(
            "Offer created: id=%s buyer=%s event=%s held=%d",
            offer.id, buyer_id, event_id, amount,
        )
        self._schedule_instant_match(offer)
        return offer

    async def _release_orphan_hold(self, authorization_id: str) -> None:
        try:
            await self._payments.cancel(authorization_id)
        except PaymentServiceError as exc:
            logger.error(
                "Orphan hold %s could not be released: %s", authorization_id, exc.message
            )

    def _schedule_instant_match(self, offer: BuyerOffer) -> None:
        if self._instant_match is None:
            return
        task = asyncio.create_task(self._run_instant_match(offer))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_instant_match(self, offer: BuyerOffer) -> None:
        assert self._instant_match is not None
        try:
            await self._instant_match.check_for_instant_match(offer)
        except Exception:
            logger.exception("Instant-match hook failed for offer %s", offer.id)

    async def drain(self) -> None:
        """Wait for scheduled instant-match hooks (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    async def cancel_offer(self, offer_id: str, requester_id: str) -> BuyerOffer:
        async with self._session_factory() as db, db.begin():
            offer = await self._offers.get_for_update(offer_id, db)
            # Other buyers' offers are reported as missing
            if offer is None or offer.buyer_id != requester_id:
                raise OfferNotFoundError(offer_id)
            if not offer.is_active:
                raise OfferNotCancellableError(offer.id, offer.status)

            try:
                await self._payments.cancel(offer.authorization_id)
            except PaymentServiceError as exc:
                logger.warning(
                    "Hold cancel failed: offer=%s authorization=%s: %s",
                    offer.id, offer.authorization_id, exc.message,
                )
                raise HoldCancelFailedError(offer.id, exc.message) from exc

            await self._offers.close_offer(
                offer.id, OfferStatus.CANCELLED, HoldState.CANCELLED, db
            )
            await write_offer_event(
                OfferEventType.OFFER_CANCELLED, offer.id, requester_id, {}, db
            )

        offer.status = OfferStatus.CANCELLED
        offer.hold_state = HoldState.CANCELLED
        logger.info("Offer cancelled: id=%s buyer=%s", offer.id, requester_id)
        return offer

    # ------------------------------------------------------------------
    # Expire
    # ------------------------------------------------------------------

    async def expire_sweep(self) -> SweepResult:
        """Expire active offers past expires_at. One offer's failure never stops the sweep."""
        now = self._clock()
        async with self._session_factory() as db:
            candidates = await self._offers.list_expirable(now, self._sweep_batch_size, db)

        result = SweepResult(examined=len(candidates))
        for candidate in candidates:
            try:
                expired = await self._expire_one(candidate.id, now)
            except PaymentServiceError as exc:
                result.failed += 1
                if await self._record_expiry_failure(candidate.id, exc):
                    result.errored += 1
                continue
            except Exception:
                logger.exception("Expiry of offer %s failed", candidate.id)
                result.failed += 1
                continue
            if expired:
                result.succeeded += 1
                result.offer_ids.append(candidate.id)

        if result.examined:
            logger.info(
                "Expiry sweep: examined=%d expired=%d failed=%d errored=%d",
                result.examined, result.succeeded, result.failed, result.errored,
            )
        return result

    async def _expire_one(self, offer_id: str, now: datetime) -> bool:
        async with self._session_factory() as db, db.begin():
            offer = await self._offers.get_for_update(offer_id, db)
            # Matched or cancelled since the candidate list was read
            if offer is None or not offer.is_active or not offer.is_expired(now):
                return False
            await self._payments.cancel(offer.authorization_id)
            await self._offers.close_offer(offer.id, OfferStatus.EXPIRED, HoldState.CANCELLED, db)
            await write_offer_event(
                OfferEventType.OFFER_EXPIRED, offer.id, None, {"expires_at": offer.expires_at}, db
            )
        return True

    async def _record_expiry_failure(self, offer_id: str, exc: PaymentServiceError) -> bool:
        """Count a failed hold release. Returns True if the offer was moved to error."""
        try:
            async with self._session_factory() as db, db.begin():
                attempts = await self._offers.increment_expiry_attempts(offer_id, db)
                if attempts < self._expiry_max_attempts:
                    logger.warning(
                        "Hold release failed for expiring offer %s (attempt %d/%d): %s",
                        offer_id, attempts, self._expiry_max_attempts, exc.message,
                    )
                    return False
                moved = await self._offers.close_offer(
                    offer_id, OfferStatus.ERROR, HoldState.AUTHORIZED, db
                )
                if moved:
                    await write_offer_event(
                        OfferEventType.OFFER_ERRORED,
                        offer_id,
                        None,
                        {"reason": exc.message, "expiry_attempts": attempts},
                        db,
                    )
        except Exception:
            logger.exception("Could not record expiry failure for offer %s", offer_id)
            return False
        if moved:
            logger.error(
                "Offer %s moved to error after %d failed hold releases; hold still authorized",
                offer_id, attempts,
            )
        return moved

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_offer(self, offer_id: str, requester_id: str) -> BuyerOffer:
        async with self._session_factory() as db:
            offer = await self._offers.get_by_id(offer_id, db)
        if offer is None or offer.buyer_id != requester_id:
            raise OfferNotFoundError(offer_id)
        return offer

    async def list_my_offers(
        self, buyer_id: str, limit: int, cursor: str | None
    ) -> tuple[list[BuyerOffer], str | None]:
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        async with self._session_factory() as db:
            offers = await self._offers.list_by_buyer(buyer_id, limit + 1, cursor, db)
        has_more = len(offers) > limit
        page = offers[:limit]
        next_cursor = page[-1].id if has_more and page else None
        return page, next_cursor

    async def list_event_offers(
        self,
        event_id: str,
        viewer_id: str,
        sections: list[str] | None,
        min_price_cents: int | None,
        sort_by: str,
    ) -> list[BuyerOffer]:
        """Active offers for sellers browsing an event; each returned offer counts a view."""
        async with self._session_factory() as db:
            offers = await self._offers.list_active_for_event(
                event_id,
                normalize_sections(sections) if sections else None,
                min_price_cents,
                sort_by,
                db,
            )
        if offers:
            await self._record_views(offers, viewer_id)
        return offers

    async def _record_views(self, offers: list[BuyerOffer], viewer_id: str) -> None:
        try:
            async with self._session_factory() as db, db.begin():
                await self._offers.record_views(
                    [o.id for o in offers], viewer_id, self._clock(), db
                )
        except Exception:
            logger.warning("View analytics not recorded for %d offers", len(offers), exc_info=True)
            return
        for o in offers:
            o.view_count += 1
