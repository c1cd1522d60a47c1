"""Repository Protocol for reviews."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_review.domain.models import Review


class ReviewRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, review: Review) -> Review: ...

    async def exists_for(self, db: AsyncSession, buyer_id: str, listing_id: str) -> bool: ...

    async def list_for_seller(
        self, db: AsyncSession, seller_id: str, limit: int
    ) -> list[Review]: ...

    async def list_for_listing(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Review]: ...

    async def scores_for_seller(self, db: AsyncSession, seller_id: str) -> list[int]: ...

    async def scores_for_listing(self, db: AsyncSession, listing_id: str) -> list[int]: ...
