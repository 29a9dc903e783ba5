"""001: create common functions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    # Committed transactions are immutable except for the one-time reversal flag
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_guard_transaction_update()
        RETURNS TRIGGER AS $$
        BEGIN
            IF OLD.reversed_at IS NOT NULL THEN
                RAISE EXCEPTION 'transaction % is already reversed', OLD.id;
            END IF;
            IF NEW.person_id   IS DISTINCT FROM OLD.person_id
            OR NEW.kind        IS DISTINCT FROM OLD.kind
            OR NEW.direction   IS DISTINCT FROM OLD.direction
            OR NEW.amount      IS DISTINCT FROM OLD.amount
            OR NEW.description IS DISTINCT FROM OLD.description
            OR NEW.category    IS DISTINCT FROM OLD.category
            OR NEW.occurred_at IS DISTINCT FROM OLD.occurred_at
            OR NEW.created_at  IS DISTINCT FROM OLD.created_at THEN
                RAISE EXCEPTION 'transaction % is immutable', OLD.id;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_guard_transaction_update();")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
