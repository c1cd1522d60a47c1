"""OrderRepository: raw SQL over the orders table.

``save`` is a compare-and-set on ``version``; a stale write raises
ConcurrentModificationError and leaves the row untouched. ``insert`` maps a
hit on the one-open-order-per-listing index to the same error.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import DeliveryMethod, OrderOrigin, OrderState
from src.mk_common.errors import ConcurrentModificationError, InternalError
from src.mk_common.money import to_money
from src.mk_order.domain.models import Order

_OPEN_ORDER_INDEX = "uq_orders_open_listing"

_COLUMNS = """
    id, buyer_id, seller_id, listing_id, quantity, unit_price, total_price,
    origin, delivery_method, shipping_address, tracking_number, state, paid,
    notes, version, created_at, updated_at
"""

_INSERT_ORDER_SQL = text(f"""
    INSERT INTO orders (
        id, buyer_id, seller_id, listing_id, quantity, unit_price, total_price,
        origin, delivery_method, shipping_address, tracking_number, state, paid,
        notes, version, created_at, updated_at
    ) VALUES (
        :id, :buyer_id, :seller_id, :listing_id, :quantity, :unit_price, :total_price,
        :origin, :delivery_method, :shipping_address, :tracking_number, :state, :paid,
        :notes, 0, :created_at, :updated_at
    )
    RETURNING {_COLUMNS}
""")

_GET_ORDER_SQL = text(f"SELECT {_COLUMNS} FROM orders WHERE id = :id")

_SAVE_ORDER_SQL = text(f"""
    UPDATE orders
    SET state = :state,
        tracking_number = :tracking_number,
        paid = :paid,
        notes = :notes,
        updated_at = :updated_at,
        version = version + 1
    WHERE id = :id AND version = :expected_version
    RETURNING {_COLUMNS}
""")

_OPEN_ORDER_FOR_LISTING_SQL = text("""
    SELECT 1 FROM orders
    WHERE listing_id = :listing_id
      AND state NOT IN ('DELIVERED', 'CANCELLED', 'REFUNDED')
    LIMIT 1
""")

_LIST_FOR_USER_SQL = text(f"""
    SELECT {_COLUMNS} FROM orders
    WHERE (
        (CAST(:role AS TEXT) IS NULL AND (buyer_id = :user_id OR seller_id = :user_id))
        OR (:role = 'buyer' AND buyer_id = :user_id)
        OR (:role = 'seller' AND seller_id = :user_id)
    )
      AND (CAST(:state AS TEXT) IS NULL OR state = :state)
    ORDER BY created_at DESC
    LIMIT :limit
""")


def _row_to_order(row: object) -> Order:
    return Order(
        id=row.id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        unit_price=to_money(row.unit_price),  # type: ignore[attr-defined]
        total_price=to_money(row.total_price),  # type: ignore[attr-defined]
        origin=OrderOrigin(row.origin),  # type: ignore[attr-defined]
        delivery_method=DeliveryMethod(row.delivery_method),  # type: ignore[attr-defined]
        shipping_address=row.shipping_address,  # type: ignore[attr-defined]
        tracking_number=row.tracking_number,  # type: ignore[attr-defined]
        state=OrderState(row.state),  # type: ignore[attr-defined]
        paid=row.paid,  # type: ignore[attr-defined]
        notes=list(row.notes or []),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class OrderRepository:
    async def insert(self, db: AsyncSession, order: Order) -> Order:
        try:
            result = await db.execute(
                _INSERT_ORDER_SQL,
                {
                    "id": order.id,
                    "buyer_id": order.buyer_id,
                    "seller_id": order.seller_id,
                    "listing_id": order.listing_id,
                    "quantity": order.quantity,
                    "unit_price": order.unit_price,
                    "total_price": order.total_price,
                    "origin": order.origin.value,
                    "delivery_method": order.delivery_method.value,
                    "shipping_address": order.shipping_address,
                    "tracking_number": order.tracking_number,
                    "state": order.state.value,
                    "paid": order.paid,
                    "notes": order.notes,
                    "created_at": order.created_at,
                    "updated_at": order.updated_at,
                },
            )
        except IntegrityError as exc:
            if _OPEN_ORDER_INDEX in str(exc.orig):
                # another open order on this listing committed first
                raise ConcurrentModificationError("Listing", order.listing_id) from exc
            raise
        row = result.fetchone()
        if row is None:
            raise InternalError("Order insert returned no rows")
        return _row_to_order(row)

    async def get(self, db: AsyncSession, order_id: str) -> Order | None:
        row = (await db.execute(_GET_ORDER_SQL, {"id": order_id})).fetchone()
        return _row_to_order(row) if row else None

    async def save(self, db: AsyncSession, order: Order, expected_version: int) -> Order:
        result = await db.execute(
            _SAVE_ORDER_SQL,
            {
                "id": order.id,
                "state": order.state.value,
                "tracking_number": order.tracking_number,
                "paid": order.paid,
                "notes": order.notes,
                "updated_at": order.updated_at,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError("Order", order.id)
        return _row_to_order(row)

    async def has_open_order_for_listing(self, db: AsyncSession, listing_id: str) -> bool:
        result = await db.execute(_OPEN_ORDER_FOR_LISTING_SQL, {"listing_id": listing_id})
        return result.fetchone() is not None

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str | None,
        state: str | None,
        limit: int,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_FOR_USER_SQL,
            {"user_id": user_id, "role": role, "state": state, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]
