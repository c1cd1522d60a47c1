"""Builders shared by the unit tests."""

from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.mk_catalog.domain.models import Listing
from src.mk_common.enums import (
    Category,
    DeliveryMethod,
    ListingKind,
    ListingStatus,
    OrderOrigin,
    OrderState,
)
from src.mk_order.domain.models import Order


def make_db() -> AsyncMock:
    """AsyncSession stand-in whose begin_nested() works as an async context manager."""
    db = AsyncMock()
    nested = MagicMock()
    nested.__aenter__ = AsyncMock(return_value=None)
    nested.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=nested)
    return db


def make_listing(**kwargs: Any) -> Listing:
    defaults: dict[str, Any] = {
        "id": "lst_1",
        "seller_id": "seller",
        "title": "Calculus textbook",
        "category": Category.BOOKS,
        "price": Decimal("30.00"),
        "kind": ListingKind.SALE,
        "status": ListingStatus.ACTIVE,
    }
    defaults.update(kwargs)
    return Listing(**defaults)


def make_order(**kwargs: Any) -> Order:
    defaults: dict[str, Any] = {
        "id": "ord_1",
        "buyer_id": "buyer",
        "seller_id": "seller",
        "listing_id": "lst_1",
        "quantity": 1,
        "unit_price": Decimal("30.00"),
        "total_price": Decimal("30.00"),
        "origin": OrderOrigin.PURCHASE,
        "delivery_method": DeliveryMethod.SHIPPING,
        "shipping_address": "Residence Hall B, room 12",
        "state": OrderState.PENDING_PAYMENT,
    }
    defaults.update(kwargs)
    return Order(**defaults)
