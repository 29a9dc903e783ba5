"""LedgerRepository: concrete implementation of LedgerRepositoryProtocol.

Balance changes are a single `balance = balance + :delta` UPDATE ... RETURNING,
so the row lock PostgreSQL takes on persons serializes concurrent mutations
of one person while different persons proceed in parallel. Reversal claims
the transaction row with a conditional UPDATE, so at most one of two racing
reversals gets a row back.

Transaction ownership: The CALLER (application service) is responsible for
committing or rolling back.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mt_common.enums import Direction, TransactionKind
from src.mt_common.errors import InternalError
from src.mt_common.money import quantize
from src.mt_ledger.domain.models import CategoryTotal, LedgerSummary, MonthlyTotal, Transaction

_TX_COLUMNS = """
    id, person_id, kind, direction, amount, description, category,
    occurred_at, created_at, reversed_at, reversal_reason
"""

# ---------------------------------------------------------------------------
# SQL: persons balance
# ---------------------------------------------------------------------------

_GET_BALANCE_SQL = text("""
    SELECT balance FROM persons WHERE id = :person_id
""")

_ADJUST_BALANCE_SQL = text("""
    UPDATE persons
    SET balance = balance + :delta,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :person_id
    RETURNING balance
""")

# ---------------------------------------------------------------------------
# SQL: transactions
# ---------------------------------------------------------------------------

_INSERT_TX_SQL = text(f"""
    INSERT INTO transactions
        (person_id, kind, direction, amount, description, category, occurred_at)
    VALUES
        (:person_id, :kind, :direction, :amount, :description, :category, :occurred_at)
    RETURNING {_TX_COLUMNS}
""")

_GET_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE id = :transaction_id AND person_id = :person_id
""")

_MARK_REVERSED_SQL = text(f"""
    UPDATE transactions
    SET reversed_at = NOW(),
        reversal_reason = :reason
    WHERE id = :transaction_id
      AND person_id = :person_id
      AND reversed_at IS NULL
    RETURNING {_TX_COLUMNS}
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM transactions
    WHERE person_id = :person_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:start_at AS TIMESTAMPTZ) IS NULL OR occurred_at >= :start_at)
      AND (CAST(:end_at AS TIMESTAMPTZ) IS NULL OR occurred_at <= :end_at)
      AND (CAST(:include_reversed AS BOOLEAN) OR reversed_at IS NULL)
    ORDER BY id DESC
    LIMIT :limit
""")

_SUMMARY_SQL = text("""
    SELECT
        COALESCE(SUM(amount) FILTER (WHERE direction = 1), 0)  AS total_credits,
        COALESCE(SUM(amount) FILTER (WHERE direction = -1), 0) AS total_debits,
        COUNT(*)                                               AS tx_count
    FROM transactions
    WHERE person_id = :person_id
      AND reversed_at IS NULL
      AND (CAST(:start_at AS TIMESTAMPTZ) IS NULL OR occurred_at >= :start_at)
      AND (CAST(:end_at AS TIMESTAMPTZ) IS NULL OR occurred_at <= :end_at)
""")

_DISTINCT_CATEGORIES_SQL = text("""
    SELECT DISTINCT category
    FROM transactions
    WHERE person_id = :person_id AND category IS NOT NULL
    ORDER BY category
""")

_CATEGORY_TOTALS_SQL = text("""
    SELECT COALESCE(category, 'Uncategorized') AS category,
           SUM(amount)                         AS total,
           COUNT(*)                            AS tx_count
    FROM transactions
    WHERE person_id = :person_id
      AND reversed_at IS NULL
      AND direction = :direction
      AND (CAST(:start_at AS TIMESTAMPTZ) IS NULL OR occurred_at >= :start_at)
      AND (CAST(:end_at AS TIMESTAMPTZ) IS NULL OR occurred_at <= :end_at)
    GROUP BY 1
    ORDER BY total DESC, category
""")

_MONTHLY_TOTALS_SQL = text("""
    SELECT CAST(EXTRACT(MONTH FROM occurred_at AT TIME ZONE 'UTC') AS INTEGER) AS month,
           COALESCE(SUM(amount) FILTER (WHERE direction = 1), 0)  AS total_credits,
           COALESCE(SUM(amount) FILTER (WHERE direction = -1), 0) AS total_debits
    FROM transactions
    WHERE person_id = :person_id
      AND reversed_at IS NULL
      AND occurred_at >= :start_at
      AND occurred_at <= :end_at
    GROUP BY 1
    ORDER BY 1
""")


def _row_to_transaction(row: object) -> Transaction:
    return Transaction(
        id=row.id,  # type: ignore[attr-defined]
        person_id=row.person_id,  # type: ignore[attr-defined]
        kind=TransactionKind(row.kind),  # type: ignore[attr-defined]
        direction=Direction.from_multiplier(row.direction),  # type: ignore[attr-defined]
        amount=quantize(row.amount),  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        occurred_at=row.occurred_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        reversed_at=row.reversed_at,  # type: ignore[attr-defined]
        reversal_reason=row.reversal_reason,  # type: ignore[attr-defined]
    )


class LedgerRepository:
    """Every mutation is a single atomic SQL statement."""

    async def get_balance(self, db: AsyncSession, person_id: int) -> Decimal | None:
        result = await db.execute(_GET_BALANCE_SQL, {"person_id": person_id})
        row = result.fetchone()
        return quantize(row.balance) if row else None

    async def adjust_balance(
        self, db: AsyncSession, person_id: int, delta: Decimal
    ) -> Decimal | None:
        result = await db.execute(
            _ADJUST_BALANCE_SQL, {"person_id": person_id, "delta": delta}
        )
        row = result.fetchone()
        return quantize(row.balance) if row else None

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
    ) -> Transaction:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "person_id": person_id,
                "kind": kind.value,
                "direction": direction.multiplier,
                "amount": amount,
                "description": description,
                "category": category,
                "occurred_at": occurred_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def get_transaction(
        self, db: AsyncSession, person_id: int, transaction_id: int
    ) -> Transaction | None:
        result = await db.execute(
            _GET_TX_SQL, {"person_id": person_id, "transaction_id": transaction_id}
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def mark_reversed(
        self, db: AsyncSession, person_id: int, transaction_id: int, reason: str | None
    ) -> Transaction | None:
        result = await db.execute(
            _MARK_REVERSED_SQL,
            {"person_id": person_id, "transaction_id": transaction_id, "reason": reason},
        )
        row = result.fetchone()
        return _row_to_transaction(row) if row else None

    async def list_transactions(
        self,
        db: AsyncSession,
        person_id: int,
        cursor_id: int | None,
        limit: int,
        start: datetime | None,
        end: datetime | None,
        include_reversed: bool,
    ) -> list[Transaction]:
        result = await db.execute(
            _LIST_TX_SQL,
            {
                "person_id": person_id,
                "cursor_id": cursor_id,
                "start_at": start,
                "end_at": end,
                "include_reversed": include_reversed,
                "limit": limit,
            },
        )
        return [_row_to_transaction(row) for row in result.fetchall()]

    async def summarize(
        self,
        db: AsyncSession,
        person_id: int,
        start: datetime | None,
        end: datetime | None,
    ) -> LedgerSummary:
        result = await db.execute(
            _SUMMARY_SQL, {"person_id": person_id, "start_at": start, "end_at": end}
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Summary aggregate returned no rows")
        return LedgerSummary(
            total_credits=quantize(row.total_credits),
            total_debits=quantize(row.total_debits),
            count=row.tx_count,
            period_start=start,
            period_end=end,
        )

    async def distinct_categories(self, db: AsyncSession, person_id: int) -> list[str]:
        result = await db.execute(_DISTINCT_CATEGORIES_SQL, {"person_id": person_id})
        return [row.category for row in result.fetchall()]

    async def category_totals(
        self,
        db: AsyncSession,
        person_id: int,
        direction: Direction,
        start: datetime | None,
        end: datetime | None,
    ) -> list[CategoryTotal]:
        result = await db.execute(
            _CATEGORY_TOTALS_SQL,
            {
                "person_id": person_id,
                "direction": direction.multiplier,
                "start_at": start,
                "end_at": end,
            },
        )
        return [
            CategoryTotal(category=row.category, total=quantize(row.total), count=row.tx_count)
            for row in result.fetchall()
        ]

    async def monthly_totals(
        self, db: AsyncSession, person_id: int, start: datetime, end: datetime
    ) -> list[MonthlyTotal]:
        result = await db.execute(
            _MONTHLY_TOTALS_SQL, {"person_id": person_id, "start_at": start, "end_at": end}
        )
        return [
            MonthlyTotal(
                month=row.month,
                total_credits=quantize(row.total_credits),
                total_debits=quantize(row.total_debits),
            )
            for row in result.fetchall()
        ]
