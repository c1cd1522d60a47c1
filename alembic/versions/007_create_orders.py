"""007: create orders table

Revision ID: 007
Revises: 006
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders (
            id                  VARCHAR(64)     PRIMARY KEY,
            buyer_id            VARCHAR(64)     NOT NULL,
            seller_id           VARCHAR(64)     NOT NULL,
            listing_id          VARCHAR(64)     NOT NULL REFERENCES listings (id),
            quantity            INTEGER         NOT NULL DEFAULT 1,
            unit_price          NUMERIC(14, 2)  NOT NULL,
            total_price         NUMERIC(14, 2)  NOT NULL,
            origin              VARCHAR(16)     NOT NULL,
            delivery_method     VARCHAR(16)     NOT NULL,
            shipping_address    TEXT,
            tracking_number     VARCHAR(100),
            state               VARCHAR(20)     NOT NULL DEFAULT 'PENDING_PAYMENT',
            paid                BOOLEAN         NOT NULL DEFAULT FALSE,
            notes               TEXT[]          NOT NULL DEFAULT '{}',
            version             BIGINT          NOT NULL DEFAULT 0,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_quantity_gte_1 CHECK (quantity >= 1),
            CONSTRAINT ck_orders_unit_price_gte_0 CHECK (unit_price >= 0),
            CONSTRAINT ck_orders_total CHECK (total_price = unit_price * quantity),
            CONSTRAINT ck_orders_parties CHECK (buyer_id <> seller_id),
            CONSTRAINT ck_orders_origin CHECK (
                origin IN ('PURCHASE', 'AUCTION', 'EXCHANGE', 'GIFT')
            ),
            CONSTRAINT ck_orders_delivery CHECK (delivery_method IN ('PICKUP', 'SHIPPING')),
            CONSTRAINT ck_orders_shipping_address CHECK (
                delivery_method = 'PICKUP' OR shipping_address IS NOT NULL
            ),
            CONSTRAINT ck_orders_state CHECK (
                state IN ('PENDING_PAYMENT', 'PAID', 'PREPARING', 'SHIPPED', 'IN_TRANSIT',
                          'DELIVERED', 'CANCELLED', 'REFUNDED')
            )
        );
    """)
    op.execute("CREATE INDEX idx_orders_buyer ON orders (buyer_id, created_at DESC);")
    op.execute("CREATE INDEX idx_orders_seller ON orders (seller_id, created_at DESC);")
    # At most one open order per listing.
    op.execute("""
        CREATE UNIQUE INDEX uq_orders_open_listing ON orders (listing_id)
        WHERE state NOT IN ('DELIVERED', 'CANCELLED', 'REFUNDED');
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
