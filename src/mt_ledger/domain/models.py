"""Domain models for mt_ledger: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.mt_common.enums import Direction, TransactionKind


@dataclass
class Transaction:
    id: int                          # BIGSERIAL
    person_id: int
    kind: TransactionKind
    direction: Direction             # fixed at creation
    amount: Decimal                  # always > 0, 2-digit scale
    description: str
    occurred_at: datetime
    category: str | None = None
    created_at: datetime | None = None
    reversed_at: datetime | None = None
    reversal_reason: str | None = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.direction.multiplier

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None


@dataclass
class LedgerSummary:
    """Aggregate over active (non-reversed) transactions."""

    total_credits: Decimal
    total_debits: Decimal
    count: int
    period_start: datetime | None = None
    period_end: datetime | None = None

    @property
    def net(self) -> Decimal:
        return self.total_credits - self.total_debits


@dataclass
class CategoryTotal:
    category: str
    total: Decimal
    count: int


@dataclass
class MonthlyTotal:
    month: int                       # 1-12
    total_credits: Decimal
    total_debits: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_credits - self.total_debits
