"""009: create reviews table

Revision ID: 009
Revises: 008
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE reviews (
            id              VARCHAR(64)     PRIMARY KEY,
            order_id        VARCHAR(64)     NOT NULL REFERENCES orders (id),
            listing_id      VARCHAR(64)     NOT NULL REFERENCES listings (id),
            buyer_id        VARCHAR(64)     NOT NULL,
            seller_id       VARCHAR(64)     NOT NULL,
            score           SMALLINT        NOT NULL,
            comment         TEXT            NOT NULL,
            visible         BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_reviews_score_range CHECK (score BETWEEN 1 AND 5),
            CONSTRAINT ck_reviews_comment_not_blank CHECK (length(btrim(comment)) > 0),
            CONSTRAINT uq_reviews_buyer_listing UNIQUE (buyer_id, listing_id)
        );
    """)
    op.execute("CREATE INDEX idx_reviews_seller ON reviews (seller_id, created_at DESC);")
    op.execute("CREATE INDEX idx_reviews_listing ON reviews (listing_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reviews CASCADE;")
