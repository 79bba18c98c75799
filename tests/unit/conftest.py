"""In-memory transactional store for settlement/lifecycle race tests.

Mirrors the PostgreSQL behaviour the services rely on: get_for_update holds a
per-row lock until the transaction ends, writes become visible on commit and
are discarded on rollback, and conditional updates only apply to active offers.
"""
import asyncio
import dataclasses
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from src.tk_common.enums import HoldState, OfferStatus
from src.tk_listing.domain.models import SellerListing
from src.tk_offer.domain.models import BuyerOffer
from src.tk_settlement.domain.models import SettledTransaction


class InMemoryStore:
    def __init__(self) -> None:
        self.offers: dict[str, BuyerOffer] = {}
        self.listings: dict[str, SellerListing] = {}
        self.transactions: dict[str, SettledTransaction] = {}
        self.audit: list[dict[str, Any]] = []
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def session_factory(self) -> "_FakeSession":
        return _FakeSession(self)


class _FakeTransaction:
    def __init__(self, session: "_FakeSession") -> None:
        self._session = session

    async def __aenter__(self) -> "_FakeTransaction":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc_type is None:
            for apply in self._session.pending:
                apply()
        self._session.pending.clear()
        self._session.release_locks()
        return False


class _FakeSession:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.pending: list[Callable[[], None]] = []
        self.held: list[asyncio.Lock] = []

    async def __aenter__(self) -> "_FakeSession":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        self.release_locks()
        return False

    def begin(self) -> _FakeTransaction:
        return _FakeTransaction(self)

    def release_locks(self) -> None:
        while self.held:
            self.held.pop().release()

    async def execute(self, statement: Any, params: dict[str, Any] | None = None) -> None:
        # Only the audit writer talks to the session directly
        row = dict(params or {})
        self.pending.append(lambda: self.store.audit.append(row))


class FakeOfferRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def save(self, offer: BuyerOffer, db: _FakeSession) -> None:
        snapshot = dataclasses.replace(offer)
        db.pending.append(lambda: self._store.offers.__setitem__(offer.id, snapshot))

    async def get_by_id(self, offer_id: str, db: _FakeSession) -> BuyerOffer | None:
        offer = self._store.offers.get(offer_id)
        return dataclasses.replace(offer) if offer else None

    async def get_for_update(self, offer_id: str, db: _FakeSession) -> BuyerOffer | None:
        lock = self._store.lock_for(offer_id)
        await lock.acquire()
        db.held.append(lock)
        await asyncio.sleep(0)
        return await self.get_by_id(offer_id, db)

    async def mark_matched(
        self, offer_id: str, listing_id: str, matched_at: datetime, db: _FakeSession
    ) -> bool:
        await asyncio.sleep(0)
        offer = self._store.offers.get(offer_id)
        if offer is None or offer.status != OfferStatus.ACTIVE:
            return False

        def apply() -> None:
            offer.status = OfferStatus.MATCHED
            offer.matched_at = matched_at
            offer.matched_listing_id = listing_id

        db.pending.append(apply)
        return True

    async def close_offer(
        self, offer_id: str, status: str, hold_state: str, db: _FakeSession
    ) -> bool:
        offer = self._store.offers.get(offer_id)
        if offer is None or offer.status != OfferStatus.ACTIVE:
            return False

        def apply() -> None:
            offer.status = status
            offer.hold_state = hold_state

        db.pending.append(apply)
        return True

    async def update_hold_state(self, offer_id: str, hold_state: str, db: _FakeSession) -> None:
        offer = self._store.offers[offer_id]
        db.pending.append(lambda: setattr(offer, "hold_state", hold_state))

    async def list_unsettled_matches(
        self,
        matched_before: datetime,
        now: datetime,
        max_attempts: int,
        limit: int,
        db: _FakeSession,
    ) -> list[BuyerOffer]:
        def is_due(offer: BuyerOffer) -> bool:
            if offer.status != OfferStatus.MATCHED or offer.reconcile_attempts >= max_attempts:
                return False
            if offer.next_reconcile_at is not None and offer.next_reconcile_at > now:
                return False
            if offer.hold_state == HoldState.CAPTURE_FAILED:
                return True
            return offer.hold_state == HoldState.AUTHORIZED and offer.matched_at <= matched_before

        due = sorted(
            (o for o in self._store.offers.values() if is_due(o)),
            key=lambda o: o.next_reconcile_at or o.matched_at,
        )
        return [dataclasses.replace(o) for o in due[:limit]]

    async def record_reconcile_failure(
        self, offer_id: str, next_attempt_at: datetime, db: _FakeSession
    ) -> None:
        offer = self._store.offers[offer_id]

        def apply() -> None:
            offer.reconcile_attempts += 1
            offer.next_reconcile_at = next_attempt_at

        db.pending.append(apply)


class FakeListingRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def save(self, listing: SellerListing, db: _FakeSession) -> None:
        await asyncio.sleep(0)
        db.pending.append(lambda: self._store.listings.__setitem__(listing.id, listing))

    async def get_by_id(self, listing_id: str, db: _FakeSession) -> SellerListing | None:
        return self._store.listings.get(listing_id)


class FakeTransactionRepository:
    def __init__(self, store: InMemoryStore, fail_on_save: bool = False) -> None:
        self._store = store
        self.fail_on_save = fail_on_save

    async def save(self, txn: SettledTransaction, db: _FakeSession) -> None:
        if self.fail_on_save:
            raise RuntimeError("connection reset by peer")
        if any(t.offer_id == txn.offer_id for t in self._store.transactions.values()):
            raise RuntimeError("duplicate key value violates unique constraint")
        db.pending.append(lambda: self._store.transactions.__setitem__(txn.id, txn))

    async def get_by_id(self, transaction_id: str, db: _FakeSession) -> SettledTransaction | None:
        return self._store.transactions.get(transaction_id)

    async def get_by_offer_id(self, offer_id: str, db: _FakeSession) -> SettledTransaction | None:
        return next((t for t in self._store.transactions.values() if t.offer_id == offer_id), None)

    async def set_needs_reconciliation(self, offer_id: str, flag: bool, db: _FakeSession) -> None:
        def apply() -> None:
            for t in self._store.transactions.values():
                if t.offer_id == offer_id:
                    t.needs_reconciliation = flag

        db.pending.append(apply)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fake_offers(store: InMemoryStore) -> FakeOfferRepository:
    return FakeOfferRepository(store)


@pytest.fixture
def fake_listings(store: InMemoryStore) -> FakeListingRepository:
    return FakeListingRepository(store)


@pytest.fixture
def fake_transactions(store: InMemoryStore) -> FakeTransactionRepository:
    return FakeTransactionRepository(store)
