"""Decimal money helpers.

All amounts and balances are Decimal with a fixed 2-digit scale, matching
NUMERIC(15, 2) columns. No float anywhere on the money path.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.mt_common.errors import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MAX_AMOUNT = Decimal("999999999999.99")


def to_amount(value: Decimal | str | int) -> Decimal:
    """Parse a transaction amount: finite, > 0, at most 2 decimals, within column range."""
    if isinstance(value, float):
        raise InvalidAmountError(str(value), "floats are not accepted, use a decimal string")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(str(value), "not a number") from None

    if not amount.is_finite():
        raise InvalidAmountError(str(value), "must be finite")
    if amount <= 0:
        raise InvalidAmountError(str(value), "must be greater than zero")
    # Bound first: quantize() on a huge exponent overflows the decimal context
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(str(value), f"exceeds maximum {MAX_AMOUNT}")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError(str(value), "at most 2 decimal places")
    return amount.quantize(CENT)


def quantize(value: Decimal | int) -> Decimal:
    """Normalize an aggregate (e.g. SUM result) to 2-digit scale."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_to_display(amount: Decimal) -> str:
    """Render for humans: Decimal('1500') -> '$1,500.00', Decimal('-12') -> '-$12.00'."""
    amount = quantize(amount)
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"
