"""CatalogService: create, read, withdraw listings."""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Listing
from src.mk_catalog.domain.repository import ListingRepositoryProtocol
from src.mk_catalog.infrastructure.persistence import ListingRepository
from src.mk_common.enums import Category, ListingKind, ListingStatus
from src.mk_common.errors import (
    ForbiddenError,
    ListingNotActiveError,
    ListingNotFoundError,
    ValidationError,
)
from src.mk_common.id_generator import generate_id

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, repo: ListingRepositoryProtocol | None = None) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()

    async def create_listing(
        self,
        db: AsyncSession,
        seller_id: str,
        title: str,
        category: Category,
        price: Decimal,
        kind: ListingKind,
        description: str | None = None,
    ) -> Listing:
        if kind in (ListingKind.SALE, ListingKind.AUCTION) and price <= 0:
            raise ValidationError(f"{kind.value} listings need a positive price")
        if kind in (ListingKind.GIFT, ListingKind.EXCHANGE):
            price = Decimal("0")
        listing = Listing(
            id=generate_id("lst_"),
            seller_id=seller_id,
            title=title,
            description=description,
            category=category,
            price=price,
            kind=kind,
        )
        try:
            created = await self._repo.create(db, listing)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Listing created: id=%s seller=%s kind=%s", created.id, seller_id, kind.value)
        return created

    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._repo.get_listing(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def list_listings(
        self,
        db: AsyncSession,
        seller_id: str | None = None,
        status: ListingStatus | None = None,
        kind: ListingKind | None = None,
        limit: int = 50,
    ) -> list[Listing]:
        return await self._repo.list_listings(
            db,
            seller_id,
            status.value if status else None,
            kind.value if kind else None,
            limit,
        )

    async def withdraw_listing(self, db: AsyncSession, listing_id: str, user_id: str) -> Listing:
        listing = await self.get_listing(db, listing_id)
        if not listing.is_owned_by(user_id):
            raise ForbiddenError("only the seller can withdraw a listing")
        if not listing.is_active:
            raise ListingNotActiveError(listing_id, listing.status.value)
        try:
            await self._repo.set_listing_status(db, listing_id, ListingStatus.WITHDRAWN)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        listing.status = ListingStatus.WITHDRAWN
        return listing
