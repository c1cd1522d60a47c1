"""Global enums: must match DB CHECK constraints exactly (see alembic/versions)."""

from enum import Enum


class MovementType(str, Enum):
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"
    PURCHASE = "PURCHASE"
    RECHARGE = "RECHARGE"

    @property
    def sign(self) -> int:
        """+1 for money in, -1 for money out."""
        return 1 if self in (MovementType.CREDIT, MovementType.RECHARGE) else -1


class ListingKind(str, Enum):
    SALE = "SALE"
    AUCTION = "AUCTION"
    EXCHANGE = "EXCHANGE"
    GIFT = "GIFT"


class ListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    WITHDRAWN = "WITHDRAWN"
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"


class Category(str, Enum):
    BOOKS = "BOOKS"
    COMPUTING = "COMPUTING"
    CLOTHING = "CLOTHING"
    ELECTRONICS = "ELECTRONICS"
    MUSIC = "MUSIC"
    HOME = "HOME"
    SPORT = "SPORT"
    TOYS = "TOYS"
    OTHER = "OTHER"


class AuctionStatus(str, Enum):
    OPEN = "OPEN"
    AWARDED = "AWARDED"


class OrderState(str, Enum):
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderState.DELIVERED, OrderState.CANCELLED, OrderState.REFUNDED)


class OrderOrigin(str, Enum):
    """How the order came about: direct purchase, auction award, exchange or gift."""
    PURCHASE = "PURCHASE"
    AUCTION = "AUCTION"
    EXCHANGE = "EXCHANGE"
    GIFT = "GIFT"


class DeliveryMethod(str, Enum):
    PICKUP = "PICKUP"
    SHIPPING = "SHIPPING"
