"""LedgerService: serialized balance mutations on top of the Account domain model.

Public mutations (credit/debit/purchase/recharge) take the per-account lock,
run one unit of work and commit. ``apply`` is the building block other
services (orders) call while already holding ``accounts_locked(...)``; it
neither locks nor commits.
"""

import logging
from contextlib import AbstractAsyncContextManager
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import MovementType
from src.mk_common.errors import InsufficientFundsError
from src.mk_common.locks import KeyedLocks
from src.mk_ledger.application.schemas import (
    BalanceResponse,
    ConsistencyReport,
    MovementItem,
    MovementPage,
    cursor_decode,
    cursor_encode,
)
from src.mk_ledger.domain.invariants import check_stored_sum
from src.mk_ledger.domain.models import Movement, recharge_description
from src.mk_ledger.domain.repository import AccountRepositoryProtocol
from src.mk_ledger.infrastructure.persistence import AccountRepository

logger = logging.getLogger(__name__)

# One lock table per process, shared by every LedgerService instance.
account_locks = KeyedLocks()


class LedgerService:
    def __init__(
        self,
        repo: AccountRepositoryProtocol | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._repo: AccountRepositoryProtocol = repo or AccountRepository()
        self._locks = locks or account_locks

    def accounts_locked(self, *user_ids: str) -> AbstractAsyncContextManager[None]:
        """Hold the locks of several accounts, acquired in sorted user-id order."""
        return self._locks.hold(*user_ids)

    async def get_balance(self, db: AsyncSession, user_id: str) -> BalanceResponse:
        account = await self._repo.get_account(db, user_id)
        balance = account.balance if account else Decimal("0")
        return BalanceResponse.from_balance(user_id, balance)

    async def apply(
        self,
        db: AsyncSession,
        user_id: str,
        movement_type: MovementType,
        amount: Decimal,
        description: str,
        reference_id: str | None = None,
    ) -> Movement:
        """Post one movement inside the caller's transaction.

        Raises InsufficientFundsError when an outgoing movement exceeds the
        balance (nothing is written), ConcurrentModificationError when the
        account version moved underneath us.
        """
        account = await self._repo.get_or_create_account(db, user_id)
        expected_version = account.version
        if not account.post(movement_type, amount, description, reference_id):
            raise InsufficientFundsError(amount, account.balance)
        await self._repo.save_balance(db, account, expected_version)
        movement = await self._repo.insert_movement(db, account.movements[-1])
        logger.info(
            "Ledger %s user=%s amount=%s balance_after=%s ref=%s",
            movement_type.value, user_id, amount, movement.balance_after, reference_id,
        )
        return movement

    async def _apply_and_commit(
        self,
        db: AsyncSession,
        user_id: str,
        movement_type: MovementType,
        amount: Decimal,
        description: str,
        reference_id: str | None = None,
    ) -> Movement:
        async with self._locks.hold(user_id):
            try:
                movement = await self.apply(
                    db, user_id, movement_type, amount, description, reference_id
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return movement

    async def credit(
        self, db: AsyncSession, user_id: str, amount: Decimal, description: str,
        reference_id: str | None = None,
    ) -> Movement:
        return await self._apply_and_commit(
            db, user_id, MovementType.CREDIT, amount, description, reference_id
        )

    async def debit(
        self, db: AsyncSession, user_id: str, amount: Decimal, description: str,
        reference_id: str | None = None,
    ) -> Movement:
        return await self._apply_and_commit(
            db, user_id, MovementType.DEBIT, amount, description, reference_id
        )

    async def purchase(
        self, db: AsyncSession, user_id: str, amount: Decimal, description: str,
        reference_id: str | None = None,
    ) -> Movement:
        return await self._apply_and_commit(
            db, user_id, MovementType.PURCHASE, amount, description, reference_id
        )

    async def recharge(
        self, db: AsyncSession, user_id: str, amount: Decimal, method: str
    ) -> Movement:
        return await self._apply_and_commit(
            db, user_id, MovementType.RECHARGE, amount, recharge_description(method)
        )

    async def list_movements(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        movement_type: str | None,
    ) -> MovementPage:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        movements = await self._repo.list_movements(
            db, user_id, cursor_id, limit + 1, movement_type
        )
        has_more = len(movements) > limit
        page = movements[:limit]
        next_cursor = (
            cursor_encode(page[-1].id) if has_more and page and page[-1].id is not None else None
        )
        return MovementPage(
            items=[MovementItem.from_domain(m) for m in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def verify(self, db: AsyncSession, user_id: str) -> ConsistencyReport:
        account = await self._repo.get_account(db, user_id)
        balance = account.balance if account else Decimal("0")
        stored_sum = await self._repo.sum_movements(db, user_id)
        violations = check_stored_sum(user_id, balance, stored_sum)
        if balance < 0:
            violations.append(f"negative balance {balance}")
        return ConsistencyReport(
            user_id=user_id,
            balance=balance,
            movement_sum=stored_sum,
            consistent=not violations,
            violations=violations,
        )
