"""008: create confirmation_codes table

Revision ID: 008
Revises: 007
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE confirmation_codes (
            id              VARCHAR(64)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            target_id       VARCHAR(64)     NOT NULL,
            code_hash       VARCHAR(100)    NOT NULL,
            display_code    VARCHAR(16)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            failed_attempts INTEGER         NOT NULL DEFAULT 0,
            consumed_at     TIMESTAMPTZ,
            CONSTRAINT ck_codes_attempts_gte_0 CHECK (failed_attempts >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_codes_user_target ON confirmation_codes (user_id, target_id);")
    op.execute("CREATE INDEX idx_codes_target ON confirmation_codes (target_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS confirmation_codes CASCADE;")
