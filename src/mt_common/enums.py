"""Global enums. Values must match DB CHECK constraints exactly.

See alembic/versions/002_create_persons.py and 003_create_transactions.py.
"""

from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Permission(str, Enum):
    LEDGER_READ_OWN = "LEDGER_READ_OWN"
    LEDGER_WRITE_OWN = "LEDGER_WRITE_OWN"
    PERSONS_READ_ALL = "PERSONS_READ_ALL"


# Fixed role -> permission map; checked against the role resolved at login.
ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.USER: frozenset({Permission.LEDGER_READ_OWN, Permission.LEDGER_WRITE_OWN}),
    Role.ADMIN: frozenset(Permission),
}


class Direction(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"

    @property
    def multiplier(self) -> int:
        return 1 if self is Direction.CREDIT else -1

    @classmethod
    def from_multiplier(cls, value: int) -> "Direction":
        if value == 1:
            return cls.CREDIT
        if value == -1:
            return cls.DEBIT
        raise ValueError(f"direction multiplier must be +1 or -1, got {value}")


class TransactionKind(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"
    SEND = "SEND"
    RECEIVE = "RECEIVE"

    @property
    def natural_direction(self) -> Direction:
        if self in (TransactionKind.INCOME, TransactionKind.RECEIVE):
            return Direction.CREDIT
        return Direction.DEBIT

    @classmethod
    def default_for(cls, direction: Direction) -> "TransactionKind":
        return cls.INCOME if direction is Direction.CREDIT else cls.EXPENSE


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
