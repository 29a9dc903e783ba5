"""002: create persons table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE persons (
            id              BIGSERIAL       PRIMARY KEY,
            username        VARCHAR(64)     NOT NULL,
            email           VARCHAR(255)    NOT NULL,
            password_hash   VARCHAR(255)    NOT NULL,
            full_name       VARCHAR(128)    NOT NULL,
            role            VARCHAR(16)     NOT NULL DEFAULT 'USER',
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            balance         NUMERIC(15, 2)  NOT NULL DEFAULT 0,
            version         BIGINT          NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_persons_username      UNIQUE (username),
            CONSTRAINT uq_persons_email         UNIQUE (email),
            CONSTRAINT ck_persons_username_len  CHECK (LENGTH(username) >= 3),
            CONSTRAINT ck_persons_role          CHECK (role IN ('USER', 'ADMIN'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_persons_updated_at
            BEFORE UPDATE ON persons
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON COLUMN persons.balance IS "
        "'Signed sum of non-reversed transactions; written only by the ledger';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS persons CASCADE;")
