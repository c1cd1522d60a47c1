"""OrderService: order creation paths and lifecycle actions.

Each action is one unit of work under the order's lock:

    load -> role check -> domain transition -> ledger / code side effects
         -> compare-and-set save -> commit -> notify (not awaited)

Money is held in escrow: the buyer's PURCHASE at payment, released to the
seller (CREDIT "Sale: ...") at a verified hand-off, or back to the buyer
(CREDIT "Refund: ...") on cancel/refund. Lock order is order first, then the
accounts involved.
"""

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Listing
from src.mk_catalog.domain.repository import CatalogProtocol
from src.mk_catalog.infrastructure.persistence import ListingRepository
from src.mk_common.enums import (
    DeliveryMethod,
    ListingKind,
    ListingStatus,
    MovementType,
    OrderOrigin,
    OrderState,
)
from src.mk_common.errors import (
    CodeMismatchError,
    ForbiddenError,
    InvalidStateTransitionError,
    ListingNotActiveError,
    ListingNotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.locks import KeyedLocks
from src.mk_confirmation.application.service import ConfirmationService
from src.mk_ledger.application.service import LedgerService
from src.mk_notification.dispatcher import NotificationDispatcher, get_dispatcher
from src.mk_notification.events import (
    ConfirmationCodeIssued,
    NotificationEvent,
    OrderStateChanged,
)
from src.mk_order.domain.models import Order
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.domain.state_machine import AWAITING_HANDOFF_STATES
from src.mk_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

order_locks = KeyedLocks()
creation_locks = KeyedLocks()

_REQUIRED_KIND: dict[OrderOrigin, ListingKind] = {
    OrderOrigin.PURCHASE: ListingKind.SALE,
    OrderOrigin.AUCTION: ListingKind.AUCTION,
    OrderOrigin.EXCHANGE: ListingKind.EXCHANGE,
    OrderOrigin.GIFT: ListingKind.GIFT,
}

Action = Callable[[Order, list[NotificationEvent]], Awaitable[None]]


class OrderService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        catalog: CatalogProtocol | None = None,
        ledger: LedgerService | None = None,
        confirmations: ConfirmationService | None = None,
        dispatcher: NotificationDispatcher | None = None,
        locks: KeyedLocks | None = None,
        listing_locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._catalog: CatalogProtocol = catalog or ListingRepository()
        self._ledger = ledger or LedgerService()
        self._confirmations = confirmations or ConfirmationService()
        self._dispatcher = dispatcher
        self._locks = locks or order_locks
        self._listing_locks = listing_locks or creation_locks

    @property
    def dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def _load_listing(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._catalog.get_listing(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def _new_order(
        self,
        db: AsyncSession,
        listing: Listing,
        buyer_id: str,
        origin: OrderOrigin,
        unit_price: Decimal,
        delivery_method: DeliveryMethod,
        quantity: int = 1,
        shipping_address: str | None = None,
    ) -> Order:
        """Validate and insert an order. Runs inside the caller's transaction."""
        if listing.kind != _REQUIRED_KIND[origin]:
            raise ValidationError(
                f"{origin.value} order needs a {_REQUIRED_KIND[origin].value} listing,"
                f" got {listing.kind.value}"
            )
        if not listing.is_active:
            raise ListingNotActiveError(listing.id, listing.status.value)
        if listing.is_owned_by(buyer_id):
            raise ValidationError("sellers cannot order their own listing")
        if await self._repo.has_open_order_for_listing(db, listing.id):
            raise ListingNotActiveError(listing.id, "RESERVED")

        order = Order.create(
            order_id=generate_id("ord_"),
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            listing_id=listing.id,
            unit_price=unit_price,
            origin=origin,
            delivery_method=delivery_method,
            quantity=quantity,
            shipping_address=shipping_address,
        )
        created = await self._repo.insert(db, order)
        logger.info(
            "Order created: id=%s origin=%s listing=%s buyer=%s total=%s",
            created.id, origin.value, listing.id, buyer_id, created.total_price,
        )
        return created

    async def _create_and_commit(
        self,
        db: AsyncSession,
        listing: Listing,
        buyer_id: str,
        origin: OrderOrigin,
        unit_price: Decimal,
        delivery_method: DeliveryMethod,
        quantity: int = 1,
        shipping_address: str | None = None,
    ) -> Order:
        # check-then-insert of the open order is serialized per listing
        async with self._listing_locks.hold(listing.id):
            try:
                order = await self._new_order(
                    db, listing, buyer_id, origin, unit_price, delivery_method,
                    quantity=quantity, shipping_address=shipping_address,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        self._notify_created(order)
        return order

    async def purchase(
        self,
        db: AsyncSession,
        buyer_id: str,
        listing_id: str,
        delivery_method: DeliveryMethod,
        quantity: int = 1,
        shipping_address: str | None = None,
    ) -> Order:
        """Buy a SALE listing at its current price."""
        listing = await self._load_listing(db, listing_id)
        return await self._create_and_commit(
            db,
            listing=listing,
            buyer_id=buyer_id,
            origin=OrderOrigin.PURCHASE,
            unit_price=listing.price,
            delivery_method=delivery_method,
            quantity=quantity,
            shipping_address=shipping_address,
        )

    async def request_gift(
        self,
        db: AsyncSession,
        buyer_id: str,
        listing_id: str,
        delivery_method: DeliveryMethod,
        shipping_address: str | None = None,
    ) -> Order:
        listing = await self._load_listing(db, listing_id)
        return await self._create_and_commit(
            db,
            listing=listing,
            buyer_id=buyer_id,
            origin=OrderOrigin.GIFT,
            unit_price=Decimal("0"),
            delivery_method=delivery_method,
            shipping_address=shipping_address,
        )

    async def accept_exchange(
        self,
        db: AsyncSession,
        seller_id: str,
        listing_id: str,
        counterparty_id: str,
        delivery_method: DeliveryMethod,
        shipping_address: str | None = None,
    ) -> Order:
        """The seller of an EXCHANGE listing accepts a counterparty's proposal."""
        listing = await self._load_listing(db, listing_id)
        if not listing.is_owned_by(seller_id):
            raise ForbiddenError("only the seller can accept an exchange")
        return await self._create_and_commit(
            db,
            listing=listing,
            buyer_id=counterparty_id,
            origin=OrderOrigin.EXCHANGE,
            unit_price=Decimal("0"),
            delivery_method=delivery_method,
            shipping_address=shipping_address,
        )

    async def create_from_auction(
        self,
        db: AsyncSession,
        listing: Listing,
        bidder_id: str,
        amount: Decimal,
        delivery_method: DeliveryMethod = DeliveryMethod.PICKUP,
        shipping_address: str | None = None,
    ) -> Order:
        """Order for an auction award.

        No commit and no listing lock here: the award runs under the auction
        engine's listing lock and owns the transaction.
        """
        return await self._new_order(
            db,
            listing=listing,
            buyer_id=bidder_id,
            origin=OrderOrigin.AUCTION,
            unit_price=amount,
            delivery_method=delivery_method,
            shipping_address=shipping_address,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _load(self, db: AsyncSession, order_id: str) -> Order:
        order = await self._repo.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _run(self, db: AsyncSession, order_id: str, action: Action) -> Order:
        events: list[NotificationEvent] = []
        async with self._locks.hold(order_id):
            try:
                order = await self._load(db, order_id)
                previous = order.state
                expected_version = order.version
                await action(order, events)
                saved = await self._repo.save(db, order, expected_version)
                await db.commit()
            except CodeMismatchError:
                # keep the counted attempt; the order itself is unchanged
                await db.commit()
                raise
            except Exception:
                await db.rollback()
                raise
        if saved.state != previous:
            logger.info("Order %s: %s -> %s", saved.id, previous.value, saved.state.value)
            events.extend(_state_events(saved, previous))
        self.dispatcher.notify_all(events)
        return saved

    async def _release(
        self,
        db: AsyncSession,
        order: Order,
        recipient_id: str,
        description: str,
    ) -> None:
        amount = order.release_funds()
        if amount <= 0:
            return
        async with self._ledger.accounts_locked(recipient_id):
            await self._ledger.apply(
                db, recipient_id, MovementType.CREDIT, amount, description, order.id
            )

    async def pay(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_buyer(order, user_id, "pay")
            funds_held = order.total_price > 0
            order.pay(funds_held)
            if funds_held:
                async with self._ledger.accounts_locked(order.buyer_id):
                    await self._ledger.apply(
                        db,
                        order.buyer_id,
                        MovementType.PURCHASE,
                        order.total_price,
                        f"Purchase: order {order.id}",
                        order.id,
                    )

        return await self._run(db, order_id, action)

    async def prepare(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "prepare")
            order.start_preparing()

        return await self._run(db, order_id, action)

    async def set_tracking(
        self, db: AsyncSession, order_id: str, user_id: str, tracking_number: str
    ) -> Order:
        """Assign (PREPARING, ships the order) or correct (SHIPPED/IN_TRANSIT) tracking."""

        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "set tracking")
            if order.set_tracking_number(tracking_number):
                await self._confirmations.issue(db, order.buyer_id, order.id)
                events.append(ConfirmationCodeIssued(order.buyer_id, order_id=order.id))

        return await self._run(db, order_id, action)

    async def ready_for_pickup(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        """In-person hand-off: the pickup reference stands in for a tracking number."""

        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "mark ready for pickup")
            if order.delivery_method != DeliveryMethod.PICKUP:
                raise ValidationError("order is not an in-person pickup")
            if order.state != OrderState.PREPARING:
                raise InvalidStateTransitionError(order.state.value, OrderState.SHIPPED.value)
            order.set_tracking_number(order.pickup_reference)
            await self._confirmations.issue(db, order.buyer_id, order.id)
            events.append(ConfirmationCodeIssued(order.buyer_id, order_id=order.id))

        return await self._run(db, order_id, action)

    async def mark_in_transit(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "mark in transit")
            order.mark_in_transit()

        return await self._run(db, order_id, action)

    async def confirm_handoff(
        self, db: AsyncSession, order_id: str, user_id: str, code: str
    ) -> Order:
        """Seller enters the buyer's code; on a match the order is delivered and paid out."""

        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "confirm hand-off")
            if order.state not in AWAITING_HANDOFF_STATES:
                raise InvalidStateTransitionError(order.state.value, OrderState.DELIVERED.value)
            await self._confirmations.verify_for_target(db, order.buyer_id, order.id, code)
            order.mark_delivered()
            await self._release(db, order, order.seller_id, f"Sale: order {order.id}")
            await self._catalog.set_listing_status(db, order.listing_id, ListingStatus.SOLD)

        return await self._run(db, order_id, action)

    async def cancel(
        self, db: AsyncSession, order_id: str, user_id: str, reason: str | None = None
    ) -> Order:
        async def action(order: Order, events: list[NotificationEvent]) -> None:
            if not order.is_party(user_id):
                raise ForbiddenError("only the buyer or the seller can cancel")
            order.cancel(reason)
            await self._release(db, order, order.buyer_id, f"Refund: order {order.id} cancelled")

        return await self._run(db, order_id, action)

    async def refund(
        self, db: AsyncSession, order_id: str, user_id: str, reason: str | None = None
    ) -> Order:
        async def action(order: Order, events: list[NotificationEvent]) -> None:
            _require_seller(order, user_id, "refund")
            order.refund(reason)
            await self._confirmations.revoke(db, order.id)
            await self._release(db, order, order.buyer_id, f"Refund: order {order.id}")

        return await self._run(db, order_id, action)

    async def reissue_code(self, db: AsyncSession, order_id: str, user_id: str) -> str:
        """Fresh hand-off code for the buyer, replacing an expired or locked one."""
        async with self._locks.hold(order_id):
            try:
                order = await self._load(db, order_id)
                _require_buyer(order, user_id, "request a new code")
                if order.state not in AWAITING_HANDOFF_STATES:
                    raise InvalidStateTransitionError(order.state.value, "CODE_REISSUE")
                plain, _ = await self._confirmations.issue(db, order.buyer_id, order.id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return plain

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, db: AsyncSession, order_id: str, user_id: str) -> Order:
        order = await self._load(db, order_id)
        if not order.is_party(user_id):
            raise ForbiddenError("not a party to this order")
        return order

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str | None = None,
        state: OrderState | None = None,
        limit: int = 50,
    ) -> list[Order]:
        return await self._repo.list_for_user(
            db, user_id, role, state.value if state else None, limit
        )

    def _notify_created(self, order: Order) -> None:
        self.dispatcher.notify_all(
            [
                OrderStateChanged(
                    party, order_id=order.id, previous_state="", new_state=order.state.value
                )
                for party in (order.buyer_id, order.seller_id)
            ]
        )


def _require_buyer(order: Order, user_id: str, action: str) -> None:
    if not order.is_buyer(user_id):
        raise ForbiddenError(f"only the buyer can {action}")


def _require_seller(order: Order, user_id: str, action: str) -> None:
    if not order.is_seller(user_id):
        raise ForbiddenError(f"only the seller can {action}")


def _state_events(order: Order, previous: OrderState) -> list[NotificationEvent]:
    return [
        OrderStateChanged(
            party,
            order_id=order.id,
            previous_state=previous.value,
            new_state=order.state.value,
        )
        for party in (order.buyer_id, order.seller_id)
    ]
