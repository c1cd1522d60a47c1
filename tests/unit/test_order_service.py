"""Unit tests for OrderService: roles, escrow movements, commit discipline."""

import asyncio
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

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
    InsufficientFundsError,
    InvalidStateTransitionError,
    ListingNotActiveError,
    OrderNotFoundError,
    ValidationError,
)
from src.mk_common.locks import KeyedLocks
from src.mk_ledger.application.service import LedgerService
from src.mk_ledger.domain.models import Account
from src.mk_notification.events import ConfirmationCodeIssued, OrderStateChanged
from src.mk_order.application.service import OrderService
from src.mk_order.domain.models import Order
from tests.unit.helpers import make_db, make_listing, make_order


class _Harness:
    """OrderService wired to in-memory wallets and mock collaborators."""

    def __init__(self, order: Order | None = None, **balances: str) -> None:
        self.accounts: dict[str, Account] = {
            user: Account(user_id=user, balance=Decimal(amount))
            for user, amount in balances.items()
        }
        account_repo = AsyncMock()
        account_repo.get_or_create_account.side_effect = (
            lambda db, user_id: self.accounts.setdefault(user_id, Account(user_id=user_id))
        )
        account_repo.insert_movement.side_effect = lambda db, m: m

        self.repo = AsyncMock()
        self.repo.get.return_value = order
        self.repo.save.side_effect = lambda db, o, expected_version: o
        self.repo.insert.side_effect = lambda db, o: o
        self.repo.has_open_order_for_listing.return_value = False

        self.catalog = AsyncMock()
        self.catalog.get_listing.return_value = make_listing()
        self.confirmations = AsyncMock()
        self.confirmations.issue.return_value = ("K7Q2ZD", MagicMock())
        self.dispatcher = MagicMock()
        self.db = make_db()
        self.service = OrderService(
            repo=self.repo,
            catalog=self.catalog,
            ledger=LedgerService(repo=account_repo, locks=KeyedLocks()),
            confirmations=self.confirmations,
            dispatcher=self.dispatcher,
            locks=KeyedLocks(),
            listing_locks=KeyedLocks(),
        )

    def balance(self, user_id: str) -> Decimal:
        return self.accounts[user_id].balance

    def movements(self, user_id: str) -> list[Any]:
        account = self.accounts.get(user_id)
        return account.movements if account else []

    def events(self) -> list[Any]:
        return [e for call in self.dispatcher.notify_all.call_args_list for e in call.args[0]]


class TestCreation:
    async def test_purchase_uses_listing_price(self) -> None:
        h = _Harness()
        order = await h.service.purchase(
            h.db, "buyer", "lst_1", DeliveryMethod.SHIPPING, quantity=2,
            shipping_address="Dorm 4",
        )
        assert order.origin == OrderOrigin.PURCHASE
        assert order.total_price == Decimal("60.00")
        assert order.seller_id == "seller"
        h.db.commit.assert_awaited_once()
        created = h.events()
        assert {e.recipient_id for e in created} == {"buyer", "seller"}

    async def test_own_listing(self) -> None:
        h = _Harness()
        with pytest.raises(ValidationError):
            await h.service.purchase(h.db, "seller", "lst_1", DeliveryMethod.PICKUP)
        h.db.rollback.assert_awaited_once()

    async def test_listing_with_open_order(self) -> None:
        h = _Harness()
        h.repo.has_open_order_for_listing.return_value = True
        with pytest.raises(ListingNotActiveError):
            await h.service.purchase(h.db, "buyer", "lst_1", DeliveryMethod.PICKUP)
        h.repo.insert.assert_not_awaited()

    async def test_inactive_listing(self) -> None:
        h = _Harness()
        h.catalog.get_listing.return_value = make_listing(status=ListingStatus.SOLD)
        with pytest.raises(ListingNotActiveError):
            await h.service.purchase(h.db, "buyer", "lst_1", DeliveryMethod.PICKUP)

    async def test_gift_needs_gift_listing(self) -> None:
        h = _Harness()
        with pytest.raises(ValidationError):
            await h.service.request_gift(h.db, "buyer", "lst_1", DeliveryMethod.PICKUP)

    async def test_gift_is_free(self) -> None:
        h = _Harness()
        h.catalog.get_listing.return_value = make_listing(
            kind=ListingKind.GIFT, price=Decimal("0")
        )
        order = await h.service.request_gift(h.db, "buyer", "lst_1", DeliveryMethod.PICKUP)
        assert order.total_price == Decimal("0")
        assert order.origin == OrderOrigin.GIFT

    async def test_exchange_accepted_by_seller_only(self) -> None:
        h = _Harness()
        h.catalog.get_listing.return_value = make_listing(kind=ListingKind.EXCHANGE)
        with pytest.raises(ForbiddenError):
            await h.service.accept_exchange(
                h.db, "intruder", "lst_1", "buyer", DeliveryMethod.PICKUP
            )
        order = await h.service.accept_exchange(
            h.db, "seller", "lst_1", "buyer", DeliveryMethod.PICKUP
        )
        assert order.buyer_id == "buyer"
        assert order.origin == OrderOrigin.EXCHANGE

    async def test_concurrent_purchases_create_one_order(self) -> None:
        h = _Harness()
        open_orders: list[Order] = []

        async def insert(db: object, order: Order) -> Order:
            await asyncio.sleep(0)
            open_orders.append(order)
            return order

        h.repo.insert.side_effect = insert
        h.repo.has_open_order_for_listing.side_effect = lambda db, listing_id: bool(open_orders)

        results = await asyncio.gather(
            h.service.purchase(h.db, "buyer", "lst_1", DeliveryMethod.PICKUP),
            h.service.purchase(h.db, "other_buyer", "lst_1", DeliveryMethod.PICKUP),
            return_exceptions=True,
        )

        assert len(open_orders) == 1
        assert sum(isinstance(r, Order) for r in results) == 1
        assert sum(isinstance(r, ListingNotActiveError) for r in results) == 1

    async def test_auction_order_does_not_commit(self) -> None:
        h = _Harness()
        listing = make_listing(kind=ListingKind.AUCTION)
        order = await h.service.create_from_auction(h.db, listing, "buyer", Decimal("42.00"))
        assert order.total_price == Decimal("42.00")
        assert order.delivery_method == DeliveryMethod.PICKUP
        h.db.commit.assert_not_awaited()


class TestPay:
    async def test_buyer_pays_into_escrow(self) -> None:
        h = _Harness(make_order(), buyer="50.00")

        order = await h.service.pay(h.db, "ord_1", "buyer")

        assert order.state == OrderState.PAID
        assert order.paid is True
        assert h.balance("buyer") == Decimal("20.00")
        [movement] = h.movements("buyer")
        assert movement.movement_type == MovementType.PURCHASE
        assert movement.reference_id == "ord_1"
        h.db.commit.assert_awaited_once()
        h.repo.save.assert_awaited_once()

    async def test_seller_cannot_pay(self) -> None:
        h = _Harness(make_order(), buyer="50.00")
        with pytest.raises(ForbiddenError):
            await h.service.pay(h.db, "ord_1", "seller")
        h.db.rollback.assert_awaited_once()
        h.repo.save.assert_not_awaited()

    async def test_insufficient_funds(self) -> None:
        h = _Harness(make_order(), buyer="29.99")
        with pytest.raises(InsufficientFundsError):
            await h.service.pay(h.db, "ord_1", "buyer")
        assert h.balance("buyer") == Decimal("29.99")
        h.repo.save.assert_not_awaited()
        h.db.rollback.assert_awaited_once()

    async def test_free_order_moves_no_money(self) -> None:
        order = make_order(unit_price=Decimal("0"), total_price=Decimal("0"))
        h = _Harness(order)
        paid = await h.service.pay(h.db, "ord_1", "buyer")
        assert paid.state == OrderState.PAID
        assert paid.paid is False
        assert h.movements("buyer") == []

    async def test_unknown_order(self) -> None:
        h = _Harness(None)
        with pytest.raises(OrderNotFoundError):
            await h.service.pay(h.db, "ord_x", "buyer")

    async def test_state_change_notifies_both_parties(self) -> None:
        h = _Harness(make_order(), buyer="50.00")
        await h.service.pay(h.db, "ord_1", "buyer")
        events = [e for e in h.events() if isinstance(e, OrderStateChanged)]
        assert {e.recipient_id for e in events} == {"buyer", "seller"}
        assert all(e.new_state == "PAID" for e in events)


class TestShipping:
    async def test_tracking_ships_and_issues_code(self) -> None:
        h = _Harness(make_order(state=OrderState.PREPARING, paid=True))

        order = await h.service.set_tracking(h.db, "ord_1", "seller", "XYZ123")

        assert order.state == OrderState.SHIPPED
        h.confirmations.issue.assert_awaited_once_with(h.db, "buyer", "ord_1")
        assert any(isinstance(e, ConfirmationCodeIssued) for e in h.events())

    async def test_correction_issues_no_code(self) -> None:
        h = _Harness(make_order(state=OrderState.SHIPPED, tracking_number="A", paid=True))
        order = await h.service.set_tracking(h.db, "ord_1", "seller", "B")
        assert order.tracking_number == "B"
        h.confirmations.issue.assert_not_awaited()

    async def test_buyer_cannot_set_tracking(self) -> None:
        h = _Harness(make_order(state=OrderState.PREPARING))
        with pytest.raises(ForbiddenError):
            await h.service.set_tracking(h.db, "ord_1", "buyer", "XYZ")

    async def test_ready_for_pickup(self) -> None:
        h = _Harness(
            make_order(
                state=OrderState.PREPARING, delivery_method=DeliveryMethod.PICKUP,
                shipping_address=None,
            )
        )
        order = await h.service.ready_for_pickup(h.db, "ord_1", "seller")
        assert order.state == OrderState.SHIPPED
        assert order.tracking_number == "PICKUP-ord_1"
        h.confirmations.issue.assert_awaited_once()

    async def test_ready_for_pickup_rejects_shipping_orders(self) -> None:
        h = _Harness(make_order(state=OrderState.PREPARING))
        with pytest.raises(ValidationError):
            await h.service.ready_for_pickup(h.db, "ord_1", "seller")


class TestHandoff:
    async def test_match_delivers_and_pays_seller(self) -> None:
        h = _Harness(make_order(state=OrderState.IN_TRANSIT, paid=True))

        order = await h.service.confirm_handoff(h.db, "ord_1", "seller", "K7Q2ZD")

        assert order.state == OrderState.DELIVERED
        assert order.paid is False
        assert h.balance("seller") == Decimal("30.00")
        [movement] = h.movements("seller")
        assert movement.movement_type == MovementType.CREDIT
        assert movement.description == "Sale: order ord_1"
        h.catalog.set_listing_status.assert_awaited_once_with(
            h.db, "lst_1", ListingStatus.SOLD
        )

    async def test_mismatch_commits_attempt_and_keeps_order(self) -> None:
        h = _Harness(make_order(state=OrderState.SHIPPED, paid=True))
        h.confirmations.verify_for_target.side_effect = CodeMismatchError(2)

        with pytest.raises(CodeMismatchError):
            await h.service.confirm_handoff(h.db, "ord_1", "seller", "WRONG1")

        h.db.commit.assert_awaited_once()
        h.db.rollback.assert_not_awaited()
        h.repo.save.assert_not_awaited()
        assert h.movements("seller") == []

    async def test_not_before_shipping(self) -> None:
        h = _Harness(make_order(state=OrderState.PREPARING, paid=True))
        with pytest.raises(InvalidStateTransitionError):
            await h.service.confirm_handoff(h.db, "ord_1", "seller", "K7Q2ZD")
        h.confirmations.verify_for_target.assert_not_awaited()

    async def test_buyer_cannot_confirm(self) -> None:
        h = _Harness(make_order(state=OrderState.SHIPPED, paid=True))
        with pytest.raises(ForbiddenError):
            await h.service.confirm_handoff(h.db, "ord_1", "buyer", "K7Q2ZD")

    async def test_reissue_code(self) -> None:
        h = _Harness(make_order(state=OrderState.SHIPPED, paid=True))
        assert await h.service.reissue_code(h.db, "ord_1", "buyer") == "K7Q2ZD"
        h.db.commit.assert_awaited_once()

    async def test_reissue_code_only_while_awaiting_handoff(self) -> None:
        h = _Harness(make_order(state=OrderState.PAID, paid=True))
        with pytest.raises(InvalidStateTransitionError):
            await h.service.reissue_code(h.db, "ord_1", "buyer")


class TestCancelAndRefund:
    async def test_cancel_refunds_held_funds(self) -> None:
        h = _Harness(make_order(state=OrderState.PAID, paid=True))

        order = await h.service.cancel(h.db, "ord_1", "seller", "out of stock")

        assert order.state == OrderState.CANCELLED
        assert h.balance("buyer") == Decimal("30.00")
        [movement] = h.movements("buyer")
        assert movement.description == "Refund: order ord_1 cancelled"

    async def test_cancel_unpaid_moves_no_money(self) -> None:
        h = _Harness(make_order())
        await h.service.cancel(h.db, "ord_1", "buyer")
        assert h.movements("buyer") == []

    async def test_stranger_cannot_cancel(self) -> None:
        h = _Harness(make_order())
        with pytest.raises(ForbiddenError):
            await h.service.cancel(h.db, "ord_1", "someone")

    async def test_cancel_after_shipping_fails(self) -> None:
        h = _Harness(make_order(state=OrderState.SHIPPED, paid=True))
        with pytest.raises(InvalidStateTransitionError):
            await h.service.cancel(h.db, "ord_1", "buyer")
        assert h.movements("buyer") == []

    async def test_refund_revokes_codes(self) -> None:
        h = _Harness(make_order(state=OrderState.IN_TRANSIT, paid=True))

        order = await h.service.refund(h.db, "ord_1", "seller", "damaged")

        assert order.state == OrderState.REFUNDED
        h.confirmations.revoke.assert_awaited_once_with(h.db, "ord_1")
        assert h.balance("buyer") == Decimal("30.00")

    async def test_only_seller_refunds(self) -> None:
        h = _Harness(make_order(state=OrderState.PAID, paid=True))
        with pytest.raises(ForbiddenError):
            await h.service.refund(h.db, "ord_1", "buyer")


class TestQueries:
    async def test_get_parties_only(self) -> None:
        h = _Harness(make_order())
        assert (await h.service.get(h.db, "ord_1", "buyer")).id == "ord_1"
        with pytest.raises(ForbiddenError):
            await h.service.get(h.db, "ord_1", "someone")

    async def test_list_passes_filters(self) -> None:
        h = _Harness()
        h.repo.list_for_user.return_value = []
        await h.service.list_for_user(h.db, "buyer", "buyer", OrderState.PAID, 10)
        h.repo.list_for_user.assert_awaited_once_with(h.db, "buyer", "buyer", "PAID", 10)
