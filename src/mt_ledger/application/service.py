"""LedgerService: the only writer of a person's balance.

apply() and reverse() each run as one DB transaction: the balance UPDATE and
the transaction row change commit together or roll back together. Every
validation that can fail is done before the first write.

Read-only operations (summary, listing, reports) run without explicit
transaction.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import DataError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.date_ranges import validate_range, year_range
from src.mt_common.datetime_utils import ensure_utc, utc_now
from src.mt_common.enums import Direction, TransactionKind
from src.mt_common.errors import (
    AlreadyReversedError,
    InternalError,
    InvalidAmountError,
    InvalidDescriptionError,
    PersonNotFoundError,
    TransactionNotFoundError,
)
from src.mt_common.money import to_amount
from src.mt_ledger.application.schemas import (
    TransactionItem,
    TransactionPage,
    cursor_decode,
    cursor_encode,
)
from src.mt_ledger.domain.models import CategoryTotal, LedgerSummary, MonthlyTotal, Transaction
from src.mt_ledger.domain.repository import LedgerRepositoryProtocol
from src.mt_ledger.infrastructure.persistence import LedgerRepository

logger = logging.getLogger("mt.ledger")

MAX_DESCRIPTION_LENGTH = 500


class LedgerService:
    def __init__(self, repo: LedgerRepositoryProtocol | None = None) -> None:
        self._repo: LedgerRepositoryProtocol = repo or LedgerRepository()

    async def get_balance(self, db: AsyncSession, person_id: int) -> Decimal:
        balance = await self._repo.get_balance(db, person_id)
        if balance is None:
            raise PersonNotFoundError(person_id)
        return balance

    async def apply(
        self,
        db: AsyncSession,
        person_id: int,
        amount: Decimal | str | int,
        direction: Direction,
        description: str,
        category: str | None = None,
        kind: TransactionKind | None = None,
        occurred_at: datetime | None = None,
    ) -> tuple[Decimal, Transaction]:
        """Record a transaction and move the balance by ±amount atomically.

        Raises:
            InvalidAmountError: amount <= 0, more than 2 decimals, out of range,
                                or the resulting balance would overflow.
            InvalidDescriptionError: blank or too long description.
            PersonNotFoundError: person_id does not exist. Nothing is written.
        """
        value = to_amount(amount)
        description = description.strip()
        if not description:
            raise InvalidDescriptionError("must not be blank")
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidDescriptionError(f"exceeds {MAX_DESCRIPTION_LENGTH} characters")
        if category is not None:
            category = category.strip() or None
        kind = kind or TransactionKind.default_for(direction)
        occurred = ensure_utc(occurred_at) if occurred_at else utc_now()
        delta = value * direction.multiplier

        try:
            balance = await self._adjust_balance(db, person_id, delta, value)
            if balance is None:
                raise PersonNotFoundError(person_id)
            tx = await self._repo.insert_transaction(
                db,
                person_id=person_id,
                kind=kind,
                direction=direction,
                amount=value,
                description=description,
                category=category,
                occurred_at=occurred,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Applied transaction %s for person %s: %s (balance %s)",
            tx.id, person_id, tx.signed_amount, balance,
        )
        return balance, tx

    async def reverse(
        self,
        db: AsyncSession,
        person_id: int,
        transaction_id: int,
        reason: str | None = None,
    ) -> tuple[Decimal, Transaction]:
        """Mark an owned transaction reversed and undo its balance effect.

        The row stays in place (flagged, never deleted) so history is kept.

        Raises:
            TransactionNotFoundError: no such transaction for this person. Other
                                      persons' transactions look exactly the same.
            AlreadyReversedError: the transaction was reversed before.
        """
        try:
            tx = await self._repo.mark_reversed(db, person_id, transaction_id, reason)
            if tx is None:
                existing = await self._repo.get_transaction(db, person_id, transaction_id)
                if existing is None:
                    raise TransactionNotFoundError(transaction_id)
                raise AlreadyReversedError(transaction_id)

            balance = await self._adjust_balance(db, person_id, -tx.signed_amount, tx.amount)
            if balance is None:
                raise InternalError(f"Person {person_id} vanished while reversing {transaction_id}")
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Reversed transaction %s for person %s: %s (balance %s)",
            transaction_id, person_id, -tx.signed_amount, balance,
        )
        return balance, tx

    async def get_transaction(
        self, db: AsyncSession, person_id: int, transaction_id: int
    ) -> Transaction:
        tx = await self._repo.get_transaction(db, person_id, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(transaction_id)
        return tx

    async def summary(
        self,
        db: AsyncSession,
        person_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> LedgerSummary:
        """Totals over active transactions, optionally within [start, end]."""
        start, end = self._normalize_range(start, end)
        return await self._repo.summarize(db, person_id, start, end)

    async def list_transactions(
        self,
        db: AsyncSession,
        person_id: int,
        cursor: str | None,
        limit: int,
        start: datetime | None = None,
        end: datetime | None = None,
        include_reversed: bool = True,
    ) -> TransactionPage:
        start, end = self._normalize_range(start, end)
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        rows = await self._repo.list_transactions(
            db, person_id, cursor_id, limit + 1, start, end, include_reversed
        )
        has_more = len(rows) > limit
        page = rows[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionPage(
            items=[TransactionItem.from_domain(tx) for tx in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def categories(self, db: AsyncSession, person_id: int) -> list[str]:
        return await self._repo.distinct_categories(db, person_id)

    async def category_breakdown(
        self,
        db: AsyncSession,
        person_id: int,
        start: datetime | None = None,
        end: datetime | None = None,
        direction: Direction = Direction.DEBIT,
    ) -> list[CategoryTotal]:
        start, end = self._normalize_range(start, end)
        return await self._repo.category_totals(db, person_id, direction, start, end)

    async def monthly_report(
        self, db: AsyncSession, person_id: int, year: int
    ) -> list[MonthlyTotal]:
        """Twelve entries, one per month, zero-filled for months without activity."""
        start, end = year_range(year)
        found = {m.month: m for m in await self._repo.monthly_totals(db, person_id, start, end)}
        zero = Decimal("0.00")
        return [found.get(month, MonthlyTotal(month, zero, zero)) for month in range(1, 13)]

    async def _adjust_balance(
        self, db: AsyncSession, person_id: int, delta: Decimal, amount: Decimal
    ) -> Decimal | None:
        try:
            return await self._repo.adjust_balance(db, person_id, delta)
        except DataError:
            # NUMERIC(15, 2) overflow on persons.balance
            raise InvalidAmountError(amount, "balance would leave the supported range") from None

    @staticmethod
    def _normalize_range(
        start: datetime | None, end: datetime | None
    ) -> tuple[datetime | None, datetime | None]:
        start = ensure_utc(start) if start else None
        end = ensure_utc(end) if end else None
        validate_range(start, end)
        return start, end
