"""006: create auctions and bids tables

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auctions (
            listing_id          VARCHAR(64)     PRIMARY KEY REFERENCES listings (id),
            seller_id           VARCHAR(64)     NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'OPEN',
            highest_bid_id      VARCHAR(64),
            highest_amount      NUMERIC(14, 2),
            highest_bidder_id   VARCHAR(64),
            order_id            VARCHAR(64),
            version             BIGINT          NOT NULL DEFAULT 0,
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_auctions_status CHECK (status IN ('OPEN', 'AWARDED')),
            CONSTRAINT ck_auctions_awarded_has_order CHECK (
                status = 'OPEN' OR order_id IS NOT NULL
            )
        );
    """)
    op.execute("""
        CREATE TABLE bids (
            id                  VARCHAR(64)     PRIMARY KEY,
            listing_id          VARCHAR(64)     NOT NULL REFERENCES listings (id),
            bidder_id           VARCHAR(64)     NOT NULL,
            amount              NUMERIC(14, 2)  NOT NULL,
            accepted            BOOLEAN         NOT NULL,
            rejection_reason    TEXT,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bids_amount_gt_0 CHECK (amount > 0),
            CONSTRAINT ck_bids_rejected_has_reason CHECK (
                accepted OR rejection_reason IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_bids_listing ON bids (listing_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bids CASCADE;")
    op.execute("DROP TABLE IF EXISTS auctions CASCADE;")
