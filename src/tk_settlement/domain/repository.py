# src/tk_settlement/domain/repository.py
"""TransactionRepository Protocol: settled transactions are insert-once."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.tk_settlement.domain.models import SettledTransaction


class TransactionRepositoryProtocol(Protocol):
    async def save(self, txn: SettledTransaction, db: AsyncSession) -> None: ...

    async def get_by_id(
        self, transaction_id: str, db: AsyncSession
    ) -> SettledTransaction | None: ...

    async def get_by_offer_id(
        self, offer_id: str, db: AsyncSession
    ) -> SettledTransaction | None: ...

    async def set_needs_reconciliation(
        self, offer_id: str, flag: bool, db: AsyncSession
    ) -> None: ...

    async def list_needing_reconciliation(
        self, limit: int, db: AsyncSession
    ) -> list[SettledTransaction]: ...
