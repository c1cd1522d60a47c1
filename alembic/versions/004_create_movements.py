"""004: create movements table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE movements (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES accounts (user_id),
            movement_type   VARCHAR(16)     NOT NULL,
            amount          NUMERIC(14, 2)  NOT NULL,
            balance_after   NUMERIC(14, 2)  NOT NULL,
            description     TEXT            NOT NULL DEFAULT '',
            reference_id    VARCHAR(64),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_movements_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_movements_balance_after_gte_0 CHECK (balance_after >= 0),
            CONSTRAINT ck_movements_type CHECK (
                movement_type IN ('CREDIT', 'DEBIT', 'PURCHASE', 'RECHARGE')
            )
        );
    """)
    op.execute("CREATE INDEX idx_movements_user_id ON movements (user_id, id DESC);")
    op.execute("CREATE INDEX idx_movements_reference ON movements (reference_id);")
    op.execute("COMMENT ON TABLE movements IS 'Append-only wallet history; never updated';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS movements CASCADE;")
