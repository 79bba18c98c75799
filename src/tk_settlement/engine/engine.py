"""SettlementEngine: turns a seller's acceptance into a settled, captured sale.

Phases of accept_offer:
  1. One transaction, offer row locked FOR UPDATE: validate, insert the
     listing, flip the offer to matched (conditional on status='active'),
     insert the settled transaction and audit row. All or nothing.
  2. After commit: capture the payment hold. A failed capture never undoes
     phase 1; the hold is marked capture_failed and the transaction is
     flagged for reconciliation.
  3. Publish the match notification (best effort).

The row lock plus the conditional UPDATE is the race-arbitration point: only
the first acceptance sees an active offer, every competitor fails with
OfferNotAvailableError. It holds across processes because it lives in the store.
"""
import logging
from datetime import timedelta
from typing import Any

from config.settings import settings
from src.tk_common.database import SessionFactory
from src.tk_common.datetime_utils import Clock, utc_now
from src.tk_common.enums import HoldState, ListingStatus, OfferEventType, OfferStatus
from src.tk_common.errors import (
    AppError,
    CaptureFailedError,
    NotReconcilableError,
    OfferNotAvailableError,
    OfferNotFoundError,
    SectionMismatchError,
    SelfMatchError,
    SettlementWriteFailedError,
    TransactionNotFoundError,
)
from src.tk_common.id_generator import LISTING_PREFIX, TRANSACTION_PREFIX, generate_id
from src.tk_listing.domain.models import SellerListing
from src.tk_listing.domain.repository import ListingRepositoryProtocol
from src.tk_notify.domain.hooks import MatchNotifier
from src.tk_offer.domain.models import BuyerOffer, SweepResult
from src.tk_offer.domain.repository import OfferRepositoryProtocol
from src.tk_offer.infrastructure.audit import write_offer_event
from src.tk_payment.domain.gateway import PaymentGateway, PaymentServiceError
from src.tk_settlement.domain.models import (
    SettledTransaction,
    SettlementResult,
    build_settlement,
)
from src.tk_settlement.domain.repository import TransactionRepositoryProtocol

logger = logging.getLogger(__name__)


class SettlementEngine:
    def __init__(
        self,
        session_factory: SessionFactory,
        offers: OfferRepositoryProtocol,
        listings: ListingRepositoryProtocol,
        transactions: TransactionRepositoryProtocol,
        payments: PaymentGateway,
        notifier: MatchNotifier | None = None,
        clock: Clock = utc_now,
        fee_bps: int = settings.SELLER_FEE_BPS,
        reconcile_grace: timedelta = timedelta(seconds=settings.RECONCILE_GRACE_SECONDS),
        sweep_batch_size: int = settings.EXPIRY_SWEEP_BATCH_SIZE,
        reconcile_max_attempts: int = settings.RECONCILE_MAX_ATTEMPTS,
        reconcile_backoff: timedelta = timedelta(seconds=settings.RECONCILE_BACKOFF_SECONDS),
        reconcile_backoff_max: timedelta = timedelta(
            seconds=settings.RECONCILE_BACKOFF_MAX_SECONDS
        ),
    ) -> None:
        self._session_factory = session_factory
        self._offers = offers
        self._listings = listings
        self._transactions = transactions
        self._payments = payments
        self._notifier = notifier
        self._clock = clock
        self._fee_bps = fee_bps
        self._reconcile_grace = reconcile_grace
        self._sweep_batch_size = sweep_batch_size
        self._reconcile_max_attempts = reconcile_max_attempts
        self._reconcile_backoff = reconcile_backoff
        self._reconcile_backoff_max = reconcile_backoff_max

    # ------------------------------------------------------------------
    # Accept
    # ------------------------------------------------------------------

    async def accept_offer(
        self,
        offer_id: str,
        seller_id: str,
        section: str,
        row: str | None,
        seats: list[str],
        delivery_method: str,
        delivery_details: dict[str, Any],
    ) -> SettlementResult:
        """Main entry point. Raises CaptureFailedError if the sale settled but payment did not."""
        listing_id = generate_id(LISTING_PREFIX)
        transaction_id = generate_id(TRANSACTION_PREFIX)
        try:
            async with self._session_factory() as db, db.begin():
                offer = await self._offers.get_for_update(offer_id, db)
                if offer is None or not offer.is_active:
                    raise OfferNotAvailableError(offer_id)
                if not offer.covers_section(section):
                    raise SectionMismatchError(section)
                if offer.buyer_id == seller_id:
                    raise SelfMatchError()

                now = self._clock()
                listing = SellerListing(
                    id=listing_id,
                    seller_id=seller_id,
                    event_id=offer.event_id,
                    section=section,
                    row=row,
                    seats=seats,
                    quantity=offer.quantity,
                    asking_price_cents=offer.max_price_cents,
                    delivery_method=delivery_method,
                    delivery_details=delivery_details,
                    status=ListingStatus.MATCHED,
                    is_live=False,
                    created_at=now,
                )
                txn = build_settlement(transaction_id, offer, listing, self._fee_bps, now)

                await self._listings.save(listing, db)
                if not await self._offers.mark_matched(offer.id, listing.id, now, db):
                    raise OfferNotAvailableError(offer_id)
                await self._transactions.save(txn, db)
                await write_offer_event(
                    OfferEventType.OFFER_MATCHED,
                    offer.id,
                    seller_id,
                    {"listing_id": listing.id, "transaction_id": txn.id},
                    db,
                )
        except OfferNotAvailableError:
            # Expected under contention, not a system error
            logger.info("Offer %s not available to seller %s", offer_id, seller_id)
            raise
        except AppError:
            raise
        except Exception as exc:
            logger.exception("Settlement write failed for offer %s", offer_id)
            raise SettlementWriteFailedError(offer_id) from exc

        offer.status = OfferStatus.MATCHED
        offer.matched_at = now
        offer.matched_listing_id = listing.id
        logger.info(
            "Offer matched: offer=%s seller=%s transaction=%s sale=%d fee=%d",
            offer.id, seller_id, txn.id, txn.sale_price_cents, txn.seller_fee_cents,
        )

        await self._capture(offer, txn)
        await self._notify(txn)
        return SettlementResult(transaction=txn, listing=listing, offer=offer)

    async def _capture(self, offer: BuyerOffer, txn: SettledTransaction) -> None:
        try:
            await self._payments.capture(offer.authorization_id)
        except PaymentServiceError as exc:
            offer.hold_state = HoldState.CAPTURE_FAILED
            txn.needs_reconciliation = True
            logger.error(
                "Capture failed after settlement: offer=%s transaction=%s authorization=%s: %s",
                offer.id, txn.id, offer.authorization_id, exc.message,
            )
            await self._flag_capture_failed(offer.id, exc.message)
            raise CaptureFailedError(offer.id, txn.id) from exc

        offer.hold_state = HoldState.CAPTURED
        await self._mark_captured(offer.id)

    async def _mark_captured(self, offer_id: str) -> None:
        try:
            async with self._session_factory() as db, db.begin():
                await self._offers.update_hold_state(offer_id, HoldState.CAPTURED, db)
                await self._transactions.set_needs_reconciliation(offer_id, False, db)
                await write_offer_event(OfferEventType.PAYMENT_CAPTURED, offer_id, None, {}, db)
        except Exception:
            # Payment went through; the reconcile sweep re-captures idempotently and retries this
            logger.exception("Capture of offer %s succeeded but was not recorded", offer_id)

    async def _flag_capture_failed(self, offer_id: str, reason: str) -> None:
        try:
            async with self._session_factory() as db, db.begin():
                await self._offers.update_hold_state(offer_id, HoldState.CAPTURE_FAILED, db)
                await self._transactions.set_needs_reconciliation(offer_id, True, db)
                await write_offer_event(
                    OfferEventType.CAPTURE_FAILED, offer_id, None, {"reason": reason}, db
                )
        except Exception:
            # Offer stays matched+authorized; the reconcile sweep picks it up after the grace period
            logger.exception("Could not flag offer %s for reconciliation", offer_id)

    async def _notify(self, txn: SettledTransaction) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify_match(txn)
        except Exception:
            logger.exception("Match notification failed for transaction %s", txn.id)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def reconcile_sweep(self) -> SweepResult:
        """Re-capture matched offers whose payment never completed.

        Covers capture_failed holds and matched offers still 'authorized' past
        the grace period (process died between commit and capture). Each failed
        re-capture pushes the offer back with exponential backoff; after
        reconcile_max_attempts it is left to the manual reconciliation queue.
        """
        now = self._clock()
        async with self._session_factory() as db:
            pending = await self._offers.list_unsettled_matches(
                now - self._reconcile_grace,
                now,
                self._reconcile_max_attempts,
                self._sweep_batch_size,
                db,
            )

        result = SweepResult(examined=len(pending))
        for offer in pending:
            if await self._recapture(offer):
                result.succeeded += 1
                result.offer_ids.append(offer.id)
            else:
                result.failed += 1

        if result.examined:
            logger.info(
                "Reconcile sweep: examined=%d captured=%d failed=%d",
                result.examined, result.succeeded, result.failed,
            )
        return result

    async def _recapture(self, offer: BuyerOffer) -> bool:
        try:
            await self._payments.capture(offer.authorization_id)
        except PaymentServiceError as exc:
            logger.warning(
                "Re-capture failed: offer=%s authorization=%s: %s",
                offer.id, offer.authorization_id, exc.message,
            )
            await self._record_recapture_failure(offer, exc.message)
            return False

        offer.hold_state = HoldState.CAPTURED
        await self._mark_captured(offer.id)
        logger.info("Offer %s reconciled: payment captured", offer.id)

        async with self._session_factory() as db:
            txn = await self._transactions.get_by_offer_id(offer.id, db)
        if txn is not None:
            txn.needs_reconciliation = False
            await self._notify(txn)
        return True

    async def _record_recapture_failure(self, offer: BuyerOffer, reason: str) -> None:
        attempts = offer.reconcile_attempts + 1
        delay = min(self._reconcile_backoff * 2 ** (attempts - 1), self._reconcile_backoff_max)
        next_attempt_at = self._clock() + delay
        was_authorized = offer.hold_state == HoldState.AUTHORIZED
        try:
            async with self._session_factory() as db, db.begin():
                await self._offers.record_reconcile_failure(offer.id, next_attempt_at, db)
                if was_authorized:
                    await self._offers.update_hold_state(offer.id, HoldState.CAPTURE_FAILED, db)
                    await self._transactions.set_needs_reconciliation(offer.id, True, db)
                    await write_offer_event(
                        OfferEventType.CAPTURE_FAILED, offer.id, None, {"reason": reason}, db
                    )
        except Exception:
            logger.exception("Could not record re-capture failure for offer %s", offer.id)
            return

        offer.hold_state = HoldState.CAPTURE_FAILED
        offer.reconcile_attempts = attempts
        offer.next_reconcile_at = next_attempt_at
        if attempts >= self._reconcile_max_attempts:
            logger.error(
                "Offer %s left for manual reconciliation after %d capture attempts",
                offer.id, attempts,
            )

    async def retry_capture(self, offer_id: str) -> BuyerOffer:
        """Operator-triggered re-capture of a single matched offer."""
        async with self._session_factory() as db:
            offer = await self._offers.get_by_id(offer_id, db)
            txn = await self._transactions.get_by_offer_id(offer_id, db)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        if offer.status != OfferStatus.MATCHED or offer.hold_state not in (
            HoldState.CAPTURE_FAILED,
            HoldState.AUTHORIZED,
        ):
            raise NotReconcilableError(
                offer_id, f"status={offer.status}, hold_state={offer.hold_state}"
            )
        if not await self._recapture(offer):
            raise CaptureFailedError(offer.id, txn.id if txn else "unknown")
        return offer

    async def list_reconciliation_queue(self, limit: int = 100) -> list[SettledTransaction]:
        async with self._session_factory() as db:
            return await self._transactions.list_needing_reconciliation(limit, db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_transaction(
        self, transaction_id: str, requester_id: str
    ) -> SettledTransaction:
        async with self._session_factory() as db:
            txn = await self._transactions.get_by_id(transaction_id, db)
        if txn is None or requester_id not in (txn.buyer_id, txn.seller_id):
            raise TransactionNotFoundError(transaction_id)
        return txn
