"""Repository Protocol for orders."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_order.domain.models import Order


class OrderRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, order: Order) -> Order: ...

    async def get(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def save(self, db: AsyncSession, order: Order, expected_version: int) -> Order: ...

    async def has_open_order_for_listing(self, db: AsyncSession, listing_id: str) -> bool: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str | None,
        state: str | None,
        limit: int,
    ) -> list[Order]: ...
