"""Catalog boundary used by orders and auctions, plus the full listing store."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Listing
from src.mk_common.enums import ListingStatus


class CatalogProtocol(Protocol):
    """What the transaction core needs from the catalog."""

    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None: ...

    async def set_listing_status(
        self, db: AsyncSession, listing_id: str, status: ListingStatus
    ) -> None: ...


class ListingRepositoryProtocol(CatalogProtocol, Protocol):
    async def create(self, db: AsyncSession, listing: Listing) -> Listing: ...

    async def list_listings(
        self,
        db: AsyncSession,
        seller_id: str | None,
        status: str | None,
        kind: str | None,
        limit: int,
    ) -> list[Listing]: ...
