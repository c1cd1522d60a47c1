"""Unit tests for CatalogService using a mock repository."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.mk_catalog.application.service import CatalogService
from src.mk_common.enums import Category, ListingKind, ListingStatus
from src.mk_common.errors import (
    ForbiddenError,
    ListingNotActiveError,
    ListingNotFoundError,
    ValidationError,
)
from tests.unit.helpers import make_listing


def _repo() -> AsyncMock:
    repo = AsyncMock()
    repo.create.side_effect = lambda db, listing: listing
    return repo


class TestCreateListing:
    async def test_sale(self) -> None:
        db = AsyncMock()
        listing = await CatalogService(_repo()).create_listing(
            db, "seller", "Bike", Category.SPORT, Decimal("80.00"), ListingKind.SALE
        )
        assert listing.id.startswith("lst_")
        assert listing.status == ListingStatus.ACTIVE
        db.commit.assert_awaited_once()

    @pytest.mark.parametrize("kind", [ListingKind.SALE, ListingKind.AUCTION])
    async def test_priced_kinds_need_a_price(self, kind: ListingKind) -> None:
        repo = _repo()
        with pytest.raises(ValidationError):
            await CatalogService(repo).create_listing(
                AsyncMock(), "seller", "X", Category.OTHER, Decimal("0"), kind
            )
        repo.create.assert_not_awaited()

    async def test_gift_price_forced_to_zero(self) -> None:
        listing = await CatalogService(_repo()).create_listing(
            AsyncMock(), "seller", "Lamp", Category.HOME, Decimal("15"), ListingKind.GIFT
        )
        assert listing.price == Decimal("0")


class TestWithdraw:
    async def test_owner_withdraws(self) -> None:
        repo = _repo()
        repo.get_listing.return_value = make_listing()
        db = AsyncMock()
        listing = await CatalogService(repo).withdraw_listing(db, "lst_1", "seller")
        assert listing.status == ListingStatus.WITHDRAWN
        repo.set_listing_status.assert_awaited_once_with(db, "lst_1", ListingStatus.WITHDRAWN)

    async def test_other_user(self) -> None:
        repo = _repo()
        repo.get_listing.return_value = make_listing()
        with pytest.raises(ForbiddenError):
            await CatalogService(repo).withdraw_listing(AsyncMock(), "lst_1", "buyer")

    async def test_already_sold(self) -> None:
        repo = _repo()
        repo.get_listing.return_value = make_listing(status=ListingStatus.SOLD)
        with pytest.raises(ListingNotActiveError):
            await CatalogService(repo).withdraw_listing(AsyncMock(), "lst_1", "seller")

    async def test_missing(self) -> None:
        repo = _repo()
        repo.get_listing.return_value = None
        with pytest.raises(ListingNotFoundError):
            await CatalogService(repo).get_listing(AsyncMock(), "lst_x")
