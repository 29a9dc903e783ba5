"""003: create transactions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id               BIGSERIAL       PRIMARY KEY,
            person_id        BIGINT          NOT NULL REFERENCES persons (id),
            kind             VARCHAR(16)     NOT NULL,
            direction        SMALLINT        NOT NULL,
            amount           NUMERIC(15, 2)  NOT NULL,
            description      VARCHAR(500)    NOT NULL,
            category         VARCHAR(100),
            occurred_at      TIMESTAMPTZ     NOT NULL,
            created_at       TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            reversed_at      TIMESTAMPTZ,
            reversal_reason  VARCHAR(255),
            CONSTRAINT ck_transactions_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_transactions_direction   CHECK (direction IN (-1, 1)),
            CONSTRAINT ck_transactions_kind CHECK (
                kind IN ('INCOME', 'EXPENSE', 'TRANSFER', 'SEND', 'RECEIVE')
            )
        );
    """)
    op.execute(
        "CREATE INDEX idx_transactions_person_time "
        "ON transactions (person_id, occurred_at DESC);"
    )
    op.execute("""
        CREATE INDEX idx_transactions_person_active
        ON transactions (person_id, id DESC)
        WHERE reversed_at IS NULL;
    """)
    op.execute("""
        CREATE TRIGGER trg_transactions_guard
            BEFORE UPDATE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_guard_transaction_update();
    """)
    op.execute("""
        CREATE RULE rl_transactions_no_delete AS
            ON DELETE TO transactions DO INSTEAD NOTHING;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
