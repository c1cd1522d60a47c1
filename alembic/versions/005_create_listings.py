"""005: create listings table

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE listings (
            id          VARCHAR(64)     PRIMARY KEY,
            seller_id   VARCHAR(64)     NOT NULL,
            title       VARCHAR(200)    NOT NULL,
            description TEXT,
            category    VARCHAR(32)     NOT NULL,
            price       NUMERIC(14, 2)  NOT NULL DEFAULT 0,
            kind        VARCHAR(16)     NOT NULL,
            status      VARCHAR(16)     NOT NULL DEFAULT 'ACTIVE',
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_listings_price_gte_0 CHECK (price >= 0),
            CONSTRAINT ck_listings_kind CHECK (kind IN ('SALE', 'AUCTION', 'EXCHANGE', 'GIFT')),
            CONSTRAINT ck_listings_status CHECK (
                status IN ('ACTIVE', 'WITHDRAWN', 'SOLD', 'EXPIRED')
            ),
            CONSTRAINT ck_listings_category CHECK (
                category IN ('BOOKS', 'COMPUTING', 'CLOTHING', 'ELECTRONICS', 'MUSIC',
                             'HOME', 'SPORT', 'TOYS', 'OTHER')
            )
        );
    """)
    op.execute("CREATE INDEX idx_listings_seller ON listings (seller_id);")
    op.execute("CREATE INDEX idx_listings_status_kind ON listings (status, kind);")
    op.execute("""
        CREATE TRIGGER trg_listings_updated_at
            BEFORE UPDATE ON listings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS listings CASCADE;")
