"""Repository Protocol: dependency inversion for testability.

Unit tests inject an AsyncMock conforming to this Protocol; the
infrastructure layer provides the PostgreSQL implementation.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_ledger.domain.models import Account, Movement


class AccountRepositoryProtocol(Protocol):
    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None: ...

    async def get_or_create_account(self, db: AsyncSession, user_id: str) -> Account: ...

    async def save_balance(
        self, db: AsyncSession, account: Account, expected_version: int
    ) -> Account: ...

    async def insert_movement(self, db: AsyncSession, movement: Movement) -> Movement: ...

    async def list_movements(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        movement_type: str | None,
    ) -> list[Movement]: ...

    async def sum_movements(self, db: AsyncSession, user_id: str) -> Decimal: ...
