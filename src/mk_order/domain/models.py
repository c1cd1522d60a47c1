"""Order aggregate: every state change goes through a transition method.

Transition methods validate against the state machine, stamp
``updated_at`` and append a note. They never touch money; the application
service couples them with ledger movements inside one unit of work.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import DeliveryMethod, OrderOrigin, OrderState
from src.mk_common.errors import InvalidStateTransitionError, ValidationError
from src.mk_order.domain.state_machine import (
    CANCELLABLE_STATES,
    TRACKABLE_STATES,
    ensure_transition,
)

PICKUP_PREFIX = "PICKUP-"


@dataclass
class Order:
    id: str
    buyer_id: str
    seller_id: str
    listing_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    origin: OrderOrigin
    delivery_method: DeliveryMethod
    shipping_address: str | None = None
    tracking_number: str | None = None
    state: OrderState = OrderState.PENDING_PAYMENT
    paid: bool = False           # funds currently held for this order
    notes: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    @classmethod
    def create(
        cls,
        order_id: str,
        buyer_id: str,
        seller_id: str,
        listing_id: str,
        unit_price: Decimal,
        origin: OrderOrigin,
        delivery_method: DeliveryMethod,
        quantity: int = 1,
        shipping_address: str | None = None,
    ) -> "Order":
        """Validate and build a new order; ``total_price`` is fixed here for good."""
        if quantity < 1:
            raise ValidationError(f"quantity must be at least 1, got {quantity}")
        if unit_price < 0:
            raise ValidationError(f"unit price must not be negative, got {unit_price}")
        if buyer_id == seller_id:
            raise ValidationError("buyer and seller must be different users")
        if delivery_method == DeliveryMethod.SHIPPING and not (shipping_address or "").strip():
            raise ValidationError("shipping address is required for SHIPPING delivery")
        now = utc_now()
        return cls(
            id=order_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            listing_id=listing_id,
            quantity=quantity,
            unit_price=unit_price,
            total_price=unit_price * quantity,
            origin=origin,
            delivery_method=delivery_method,
            shipping_address=shipping_address.strip() if shipping_address else None,
            created_at=now,
            updated_at=now,
            notes=[f"Order created ({origin.value})"],
        )

    # --- parties ---

    def is_buyer(self, user_id: str) -> bool:
        return self.buyer_id == user_id

    def is_seller(self, user_id: str) -> bool:
        return self.seller_id == user_id

    def is_party(self, user_id: str) -> bool:
        return self.is_buyer(user_id) or self.is_seller(user_id)

    @property
    def is_cancellable(self) -> bool:
        return self.state in CANCELLABLE_STATES

    @property
    def pickup_reference(self) -> str:
        return f"{PICKUP_PREFIX}{self.id}"

    # --- transitions ---

    def _move(self, target: OrderState, note: str | None = None) -> None:
        ensure_transition(self.state, target)
        self.state = target
        self._touch(note)

    def _touch(self, note: str | None) -> None:
        self.updated_at = utc_now()
        if note:
            self.notes.append(note)

    def pay(self, funds_held: bool) -> None:
        self._move(OrderState.PAID, "Payment received" if funds_held else "Nothing to pay")
        self.paid = funds_held

    def start_preparing(self) -> None:
        self._move(OrderState.PREPARING, "Seller is preparing the order")

    def set_tracking_number(self, tracking_number: str) -> bool:
        """Assign or correct the tracking number.

        In PREPARING this also ships the order (returns True). In SHIPPED or
        IN_TRANSIT the number is only corrected (returns False).
        """
        number = (tracking_number or "").strip()
        if not number:
            raise ValidationError("tracking number must not be blank")
        if self.state not in TRACKABLE_STATES:
            raise InvalidStateTransitionError(self.state.value, OrderState.SHIPPED.value)
        self.tracking_number = number
        if self.state == OrderState.PREPARING:
            self._move(OrderState.SHIPPED, f"Tracking number assigned: {number}")
            return True
        self._touch(f"Tracking number corrected: {number}")
        return False

    def mark_in_transit(self) -> None:
        self._move(OrderState.IN_TRANSIT, "Order in transit")

    def mark_delivered(self) -> None:
        self._move(OrderState.DELIVERED, "Hand-off confirmed")

    def cancel(self, reason: str | None = None) -> None:
        if not self.is_cancellable:
            raise InvalidStateTransitionError(self.state.value, OrderState.CANCELLED.value)
        self._move(OrderState.CANCELLED, f"Cancelled: {reason}" if reason else "Cancelled")

    def refund(self, reason: str | None = None) -> None:
        self._move(OrderState.REFUNDED, f"Refunded: {reason}" if reason else "Refunded")

    def release_funds(self) -> Decimal:
        """Mark held funds as released; returns the amount that was held."""
        if not self.paid:
            return Decimal("0")
        self.paid = False
        return self.total_price
