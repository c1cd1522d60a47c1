"""Order state machine.

    PENDING_PAYMENT -> PAID -> PREPARING -> SHIPPED -> IN_TRANSIT -> DELIVERED
    side exits: CANCELLED (before shipping), REFUNDED (after payment)

DELIVERED, CANCELLED and REFUNDED are terminal.
"""

from src.mk_common.enums import OrderState
from src.mk_common.errors import InvalidStateTransitionError

TRANSITIONS: dict[OrderState, frozenset[OrderState]] = {
    OrderState.PENDING_PAYMENT: frozenset({OrderState.PAID, OrderState.CANCELLED}),
    OrderState.PAID: frozenset(
        {OrderState.PREPARING, OrderState.CANCELLED, OrderState.REFUNDED}
    ),
    OrderState.PREPARING: frozenset(
        {OrderState.SHIPPED, OrderState.CANCELLED, OrderState.REFUNDED}
    ),
    OrderState.SHIPPED: frozenset(
        {OrderState.IN_TRANSIT, OrderState.DELIVERED, OrderState.REFUNDED}
    ),
    OrderState.IN_TRANSIT: frozenset({OrderState.DELIVERED, OrderState.REFUNDED}),
    OrderState.DELIVERED: frozenset(),
    OrderState.CANCELLED: frozenset(),
    OrderState.REFUNDED: frozenset(),
}

CANCELLABLE_STATES = frozenset(
    {OrderState.PENDING_PAYMENT, OrderState.PAID, OrderState.PREPARING}
)

# States in which a tracking number may be set or corrected.
TRACKABLE_STATES = frozenset({OrderState.PREPARING, OrderState.SHIPPED, OrderState.IN_TRANSIT})

AWAITING_HANDOFF_STATES = frozenset({OrderState.SHIPPED, OrderState.IN_TRANSIT})


def can_transition(current: OrderState, target: OrderState) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: OrderState, target: OrderState) -> None:
    if not can_transition(current, target):
        raise InvalidStateTransitionError(current.value, target.value)
