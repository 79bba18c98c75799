# src/tk_settlement/infrastructure/persistence.py
"""TransactionRepository: raw SQL persistence for settled_transactions.

offer_id is UNIQUE: a second settlement for the same offer fails at the store
even if the row lock were bypassed.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_settlement.domain.models import SettledTransaction

_INSERT_TRANSACTION_SQL = text("""
    INSERT INTO settled_transactions (
        id, buyer_id, seller_id, offer_id, listing_id, event_id,
        section, row, seats, quantity, delivery_method,
        sale_price_cents, buyer_paid_cents, seller_fee_cents, seller_payout_cents,
        authorization_id, needs_reconciliation
    ) VALUES (
        :id, :buyer_id, :seller_id, :offer_id, :listing_id, :event_id,
        :section, :row, :seats, :quantity, :delivery_method,
        :sale_price_cents, :buyer_paid_cents, :seller_fee_cents, :seller_payout_cents,
        :authorization_id, :needs_reconciliation
    )
""")

_SELECT_COLUMNS = """
    id, buyer_id, seller_id, offer_id, listing_id, event_id,
    section, row, seats, quantity, delivery_method,
    sale_price_cents, buyer_paid_cents, seller_fee_cents, seller_payout_cents,
    authorization_id, needs_reconciliation, created_at
"""

_GET_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM settled_transactions WHERE id = :id")

_GET_BY_OFFER_ID_SQL = text(
    f"SELECT {_SELECT_COLUMNS} FROM settled_transactions WHERE offer_id = :offer_id"
)

_SET_RECONCILIATION_SQL = text("""
    UPDATE settled_transactions
    SET needs_reconciliation = :flag
    WHERE offer_id = :offer_id
""")

_LIST_RECONCILIATION_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM settled_transactions
    WHERE needs_reconciliation
    ORDER BY created_at ASC
    LIMIT :limit
""")


def _row_to_transaction(row: Any) -> SettledTransaction:
    return SettledTransaction(
        id=row.id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        offer_id=row.offer_id,
        listing_id=row.listing_id,
        event_id=row.event_id,
        section=row.section,
        row=row.row,
        seats=list(row.seats),
        quantity=row.quantity,
        delivery_method=row.delivery_method,
        sale_price_cents=row.sale_price_cents,
        buyer_paid_cents=row.buyer_paid_cents,
        seller_fee_cents=row.seller_fee_cents,
        seller_payout_cents=row.seller_payout_cents,
        authorization_id=row.authorization_id,
        needs_reconciliation=row.needs_reconciliation,
        created_at=row.created_at,
    )


class TransactionRepository:
    async def save(self, txn: SettledTransaction, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "id": txn.id,
                "buyer_id": txn.buyer_id,
                "seller_id": txn.seller_id,
                "offer_id": txn.offer_id,
                "listing_id": txn.listing_id,
                "event_id": txn.event_id,
                "section": txn.section,
                "row": txn.row,
                "seats": txn.seats,
                "quantity": txn.quantity,
                "delivery_method": txn.delivery_method,
                "sale_price_cents": txn.sale_price_cents,
                "buyer_paid_cents": txn.buyer_paid_cents,
                "seller_fee_cents": txn.seller_fee_cents,
                "seller_payout_cents": txn.seller_payout_cents,
                "authorization_id": txn.authorization_id,
                "needs_reconciliation": txn.needs_reconciliation,
            },
        )

    async def get_by_id(
        self, transaction_id: str, db: AsyncSession
    ) -> SettledTransaction | None:
        row = (await db.execute(_GET_BY_ID_SQL, {"id": transaction_id})).fetchone()
        return _row_to_transaction(row) if row else None

    async def get_by_offer_id(
        self, offer_id: str, db: AsyncSession
    ) -> SettledTransaction | None:
        row = (await db.execute(_GET_BY_OFFER_ID_SQL, {"offer_id": offer_id})).fetchone()
        return _row_to_transaction(row) if row else None

    async def set_needs_reconciliation(
        self, offer_id: str, flag: bool, db: AsyncSession
    ) -> None:
        await db.execute(_SET_RECONCILIATION_SQL, {"offer_id": offer_id, "flag": flag})

    async def list_needing_reconciliation(
        self, limit: int, db: AsyncSession
    ) -> list[SettledTransaction]:
        result = await db.execute(_LIST_RECONCILIATION_SQL, {"limit": limit})
        return [_row_to_transaction(row) for row in result.fetchall()]
