"""Repository Protocol for the ledger.

Unit tests inject a fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every mutating method is a single atomic statement; the application
service owns the surrounding DB transaction.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.enums import Direction, TransactionKind
from src.mt_ledger.domain.models import CategoryTotal, LedgerSummary, MonthlyTotal, Transaction


class LedgerRepositoryProtocol(Protocol):
    async def get_balance(self, db: AsyncSession, person_id: int) -> Decimal | None: ...

    async def adjust_balance(
        self, db: AsyncSession, person_id: int, delta: Decimal
    ) -> Decimal | None:
        """balance = balance + delta in one statement; None if the person does not exist."""
        ...

    async def insert_transaction(
        self,
        db: AsyncSession,
        person_id: int,
        kind: TransactionKind,
        direction: Direction,
        amount: Decimal,
        description: str,
        category: str | None,
        occurred_at: datetime,
    ) -> Transaction: ...

    async def get_transaction(
        self, db: AsyncSession, person_id: int, transaction_id: int
    ) -> Transaction | None: ...

    async def mark_reversed(
        self, db: AsyncSession, person_id: int, transaction_id: int, reason: str | None
    ) -> Transaction | None:
        """Flag an owned, still-active transaction; None if no such row."""
        ...

    async def list_transactions(
        self,
        db: AsyncSession,
        person_id: int,
        cursor_id: int | None,
        limit: int,
        start: datetime | None,
        end: datetime | None,
        include_reversed: bool,
    ) -> list[Transaction]: ...

    async def summarize(
        self,
        db: AsyncSession,
        person_id: int,
        start: datetime | None,
        end: datetime | None,
    ) -> LedgerSummary: ...

    async def distinct_categories(self, db: AsyncSession, person_id: int) -> list[str]: ...

    async def category_totals(
        self,
        db: AsyncSession,
        person_id: int,
        direction: Direction,
        start: datetime | None,
        end: datetime | None,
    ) -> list[CategoryTotal]: ...

    async def monthly_totals(
        self, db: AsyncSession, person_id: int, start: datetime, end: datetime
    ) -> list[MonthlyTotal]: ...
