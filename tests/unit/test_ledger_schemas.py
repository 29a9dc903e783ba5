"""Tests for mt_ledger request schemas and cursor helpers."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.mt_common.enums import Direction, TransactionKind
from src.mt_common.errors import InvalidCursorError
from src.mt_ledger.application.schemas import (
    CreateTransactionRequest,
    TransactionItem,
    cursor_decode,
    cursor_encode,
)
from src.mt_ledger.domain.models import Transaction


class TestCursor:
    def test_round_trip(self) -> None:
        assert cursor_decode(cursor_encode(12345)) == 12345

    def test_none(self) -> None:
        assert cursor_decode(None) is None

    @pytest.mark.parametrize("bad", ["not-base64!", "eyJ4IjogMX0=", "bnVsbA=="])
    def test_garbage_is_rejected(self, bad: str) -> None:
        with pytest.raises(InvalidCursorError) as exc_info:
            cursor_decode(bad)
        assert exc_info.value.code == 2007
        assert exc_info.value.http_status == 422


class TestCreateTransactionRequest:
    def test_direction_derived_from_kind(self) -> None:
        req = CreateTransactionRequest(amount="10.00", kind="INCOME", description="Pay")
        assert req.direction is Direction.CREDIT
        assert req.amount == Decimal("10.00")

    def test_kind_derived_from_direction(self) -> None:
        req = CreateTransactionRequest(amount="3", direction="DEBIT", description="Tea")
        assert req.kind is TransactionKind.EXPENSE

    def test_send_is_debit_and_receive_is_credit(self) -> None:
        send = CreateTransactionRequest(amount="1", kind="SEND", description="x")
        receive = CreateTransactionRequest(amount="1", kind="RECEIVE", description="x")
        assert send.direction is Direction.DEBIT
        assert receive.direction is Direction.CREDIT

    def test_contradiction_rejected(self) -> None:
        with pytest.raises(ValidationError, match="INCOME"):
            CreateTransactionRequest(
                amount="1", kind="INCOME", direction="DEBIT", description="x"
            )

    def test_kind_or_direction_required(self) -> None:
        with pytest.raises(ValidationError, match="kind or direction"):
            CreateTransactionRequest(amount="1", description="x")

    @pytest.mark.parametrize("amount", ["0", "-1", "1.001"])
    def test_bad_amount(self, amount: str) -> None:
        with pytest.raises(ValidationError):
            CreateTransactionRequest(amount=amount, direction="CREDIT", description="x")

    def test_empty_description(self) -> None:
        with pytest.raises(ValidationError):
            CreateTransactionRequest(amount="1", direction="CREDIT", description="")


def test_transaction_item_shows_signed_amount() -> None:
    tx = Transaction(
        id=9,
        person_id=1,
        kind=TransactionKind.EXPENSE,
        direction=Direction.DEBIT,
        amount=Decimal("20.00"),
        description="Lunch",
        occurred_at=datetime(2026, 1, 2, tzinfo=UTC),
        reversed_at=datetime(2026, 1, 3, tzinfo=UTC),
    )
    item = TransactionItem.from_domain(tx)
    assert item.signed_amount == Decimal("-20.00")
    assert item.amount_display == "-$20.00"
    assert item.reversed is True
