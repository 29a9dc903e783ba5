"""Pydantic schemas and cursor utilities for mt_ledger API."""

import base64
import binascii
import json
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from src.mt_common.enums import Direction, TransactionKind
from src.mt_common.errors import InvalidCursorError
from src.mt_common.money import money_to_display
from src.mt_ledger.domain.models import CategoryTotal, LedgerSummary, MonthlyTotal, Transaction

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.urlsafe_b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id.

    Raises InvalidCursorError for anything cursor_encode could not have produced.
    """
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        raise InvalidCursorError() from None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateTransactionRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    kind: TransactionKind | None = None
    direction: Direction | None = None
    description: str = Field(..., min_length=1, max_length=500)
    category: str | None = Field(None, max_length=100)
    occurred_at: datetime | None = None

    @model_validator(mode="after")
    def resolve_direction(self) -> "CreateTransactionRequest":
        """Fill direction from kind (or kind from direction); reject contradictions."""
        if self.kind is None and self.direction is None:
            raise ValueError("Either kind or direction is required")
        if self.kind is None:
            self.kind = TransactionKind.default_for(self.direction)  # type: ignore[arg-type]
        elif self.direction is None:
            self.direction = self.kind.natural_direction
        elif self.kind.natural_direction is not self.direction:
            raise ValueError(
                f"{self.kind.value} transactions are {self.kind.natural_direction.value}, "
                f"not {self.direction.value}"
            )
        return self


class ReverseTransactionRequest(BaseModel):
    reason: str | None = Field(None, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TransactionItem(BaseModel):
    id: int
    kind: str
    direction: str
    amount: Decimal
    signed_amount: Decimal
    amount_display: str
    description: str
    category: str | None
    occurred_at: datetime
    created_at: datetime | None
    reversed: bool
    reversed_at: datetime | None
    reversal_reason: str | None

    @classmethod
    def from_domain(cls, tx: Transaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            kind=tx.kind.value,
            direction=tx.direction.value,
            amount=tx.amount,
            signed_amount=tx.signed_amount,
            amount_display=money_to_display(tx.signed_amount),
            description=tx.description,
            category=tx.category,
            occurred_at=tx.occurred_at,
            created_at=tx.created_at,
            reversed=tx.is_reversed,
            reversed_at=tx.reversed_at,
            reversal_reason=tx.reversal_reason,
        )


class TransactionResponse(BaseModel):
    """A transaction plus the person's balance right after the operation."""

    transaction: TransactionItem
    balance: Decimal
    balance_display: str

    @classmethod
    def from_result(cls, balance: Decimal, tx: Transaction) -> "TransactionResponse":
        return cls(
            transaction=TransactionItem.from_domain(tx),
            balance=balance,
            balance_display=money_to_display(balance),
        )


class BalanceResponse(BaseModel):
    person_id: int
    balance: Decimal
    balance_display: str


class TransactionPage(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool


class SummaryResponse(BaseModel):
    total_credits: Decimal
    total_debits: Decimal
    net: Decimal
    net_display: str
    count: int
    period_start: datetime | None
    period_end: datetime | None

    @classmethod
    def from_domain(cls, summary: LedgerSummary) -> "SummaryResponse":
        return cls(
            total_credits=summary.total_credits,
            total_debits=summary.total_debits,
            net=summary.net,
            net_display=money_to_display(summary.net),
            count=summary.count,
            period_start=summary.period_start,
            period_end=summary.period_end,
        )


class CategoryTotalItem(BaseModel):
    category: str
    total: Decimal
    total_display: str
    count: int

    @classmethod
    def from_domain(cls, item: CategoryTotal) -> "CategoryTotalItem":
        return cls(
            category=item.category,
            total=item.total,
            total_display=money_to_display(item.total),
            count=item.count,
        )


class MonthlyTotalItem(BaseModel):
    month: int
    total_credits: Decimal
    total_debits: Decimal
    net: Decimal

    @classmethod
    def from_domain(cls, item: MonthlyTotal) -> "MonthlyTotalItem":
        return cls(
            month=item.month,
            total_credits=item.total_credits,
            total_debits=item.total_debits,
            net=item.net,
        )
