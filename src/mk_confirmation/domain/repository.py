"""Repository Protocol for confirmation codes."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_confirmation.domain.models import ConfirmationCode


class ConfirmationCodeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, record: ConfirmationCode) -> None: ...

    async def delete_for(self, db: AsyncSession, user_id: str, target_id: str) -> int: ...

    async def delete_for_target(self, db: AsyncSession, target_id: str) -> int: ...

    async def get_latest(
        self, db: AsyncSession, user_id: str, target_id: str
    ) -> ConfirmationCode | None: ...

    async def save_attempt(
        self, db: AsyncSession, record: ConfirmationCode, previous_attempts: int
    ) -> None: ...

    async def list_active(
        self, db: AsyncSession, user_id: str, created_after: datetime, max_attempts: int
    ) -> list[ConfirmationCode]: ...

    async def purge(self, db: AsyncSession, created_before: datetime) -> int: ...
