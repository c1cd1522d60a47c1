"""Unit tests for the order state machine and Order transitions."""

from decimal import Decimal

import pytest

from src.mk_common.enums import DeliveryMethod, OrderOrigin, OrderState
from src.mk_common.errors import InvalidStateTransitionError, ValidationError
from src.mk_order.domain.models import Order
from src.mk_order.domain.state_machine import (
    CANCELLABLE_STATES,
    TRANSITIONS,
    can_transition,
    ensure_transition,
)
from tests.unit.helpers import make_order

ALL_STATES = list(OrderState)


class TestTransitionTable:
    def test_every_state_has_an_entry(self) -> None:
        assert set(TRANSITIONS) == set(OrderState)

    def test_terminal_states_have_no_exit(self) -> None:
        for state in ALL_STATES:
            if state.is_terminal:
                assert TRANSITIONS[state] == frozenset()

    @pytest.mark.parametrize("current", ALL_STATES)
    @pytest.mark.parametrize("target", ALL_STATES)
    def test_closure(self, current: OrderState, target: OrderState) -> None:
        if target in TRANSITIONS[current]:
            ensure_transition(current, target)
        else:
            assert not can_transition(current, target)
            with pytest.raises(InvalidStateTransitionError):
                ensure_transition(current, target)

    def test_no_cancel_after_shipping(self) -> None:
        for state in (OrderState.SHIPPED, OrderState.IN_TRANSIT, OrderState.DELIVERED):
            assert state not in CANCELLABLE_STATES


class TestCreate:
    def test_total_fixed_at_creation(self) -> None:
        order = Order.create(
            "ord_1", "buyer", "seller", "lst_1", Decimal("12.50"),
            OrderOrigin.PURCHASE, DeliveryMethod.PICKUP, quantity=3,
        )
        assert order.total_price == Decimal("37.50")
        assert order.state == OrderState.PENDING_PAYMENT
        assert order.notes == ["Order created (PURCHASE)"]

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"quantity": 0}, "quantity"),
            ({"unit_price": Decimal("-1")}, "unit price"),
            ({"buyer_id": "seller"}, "different"),
            ({"delivery_method": DeliveryMethod.SHIPPING}, "shipping address"),
        ],
    )
    def test_validation(self, kwargs: dict[str, object], message: str) -> None:
        args: dict[str, object] = {
            "order_id": "ord_1",
            "buyer_id": "buyer",
            "seller_id": "seller",
            "listing_id": "lst_1",
            "unit_price": Decimal("1"),
            "origin": OrderOrigin.PURCHASE,
            "delivery_method": DeliveryMethod.PICKUP,
        }
        args.update(kwargs)
        with pytest.raises(ValidationError, match=message):
            Order.create(**args)  # type: ignore[arg-type]


class TestLifecycle:
    def test_tracking_number_ships_from_preparing(self) -> None:
        order = make_order(state=OrderState.PREPARING)

        shipped = order.set_tracking_number("XYZ123")

        assert shipped is True
        assert order.state == OrderState.SHIPPED
        assert order.tracking_number == "XYZ123"
        assert order.notes[-1] == "Tracking number assigned: XYZ123"
        with pytest.raises(InvalidStateTransitionError):
            order.cancel()

    def test_tracking_correction_keeps_state(self) -> None:
        order = make_order(state=OrderState.IN_TRANSIT, tracking_number="OLD")
        assert order.set_tracking_number(" NEW1 ") is False
        assert order.state == OrderState.IN_TRANSIT
        assert order.tracking_number == "NEW1"

    def test_tracking_rejected_before_preparing(self) -> None:
        order = make_order(state=OrderState.PAID)
        with pytest.raises(InvalidStateTransitionError):
            order.set_tracking_number("XYZ")
        assert order.tracking_number is None

    def test_blank_tracking_number(self) -> None:
        order = make_order(state=OrderState.PREPARING)
        with pytest.raises(ValidationError):
            order.set_tracking_number("   ")
        assert order.state == OrderState.PREPARING

    def test_happy_path(self) -> None:
        order = make_order()
        order.pay(funds_held=True)
        order.start_preparing()
        order.set_tracking_number("TRK1")
        order.mark_in_transit()
        order.mark_delivered()
        assert order.state == OrderState.DELIVERED
        assert order.paid is True
        assert order.release_funds() == Decimal("30.00")
        assert order.paid is False
        assert order.release_funds() == Decimal("0")

    def test_cancel_with_reason(self) -> None:
        order = make_order(state=OrderState.PAID, paid=True)
        order.cancel("changed my mind")
        assert order.state == OrderState.CANCELLED
        assert order.notes[-1] == "Cancelled: changed my mind"

    def test_refund_after_shipping(self) -> None:
        order = make_order(state=OrderState.SHIPPED, paid=True)
        order.refund()
        assert order.state == OrderState.REFUNDED

    def test_refund_not_from_pending(self) -> None:
        with pytest.raises(InvalidStateTransitionError):
            make_order().refund()

    def test_delivered_is_final(self) -> None:
        order = make_order(state=OrderState.DELIVERED)
        for attempt in (order.mark_in_transit, order.refund, order.cancel):
            with pytest.raises(InvalidStateTransitionError):
                attempt()

    def test_pickup_reference(self) -> None:
        assert make_order(id="ord_9").pickup_reference == "PICKUP-ord_9"
