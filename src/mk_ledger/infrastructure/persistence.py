"""AccountRepository: concrete implementation of AccountRepositoryProtocol.

Balance writes are compare-and-set on ``version``: 0 rows updated means a
concurrent writer got there first and the unit of work must be retried.
The CHECK (balance >= 0) constraint in the schema backs the domain rule.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import MovementType
from src.mk_common.errors import ConcurrentModificationError, InternalError
from src.mk_common.money import to_money
from src.mk_ledger.domain.models import Account, Movement

_ENSURE_ACCOUNT_SQL = text("""
    INSERT INTO accounts (user_id, balance)
    VALUES (:user_id, 0)
    ON CONFLICT (user_id) DO NOTHING
""")

_GET_ACCOUNT_SQL = text("""
    SELECT user_id, balance, version, created_at, updated_at
    FROM accounts
    WHERE user_id = :user_id
""")

_SAVE_BALANCE_SQL = text("""
    UPDATE accounts
    SET balance = :balance,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND version = :expected_version
    RETURNING user_id, balance, version, created_at, updated_at
""")

_INSERT_MOVEMENT_SQL = text("""
    INSERT INTO movements
        (user_id, movement_type, amount, balance_after, description, reference_id, created_at)
    VALUES
        (:user_id, :movement_type, :amount, :balance_after, :description,
         :reference_id, :created_at)
    RETURNING id, user_id, movement_type, amount, balance_after,
              description, reference_id, created_at
""")

_LIST_MOVEMENTS_SQL = text("""
    SELECT id, user_id, movement_type, amount, balance_after,
           description, reference_id, created_at
    FROM movements
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:movement_type AS TEXT) IS NULL OR movement_type = :movement_type)
    ORDER BY id DESC
    LIMIT :limit
""")

_SUM_MOVEMENTS_SQL = text("""
    SELECT COALESCE(SUM(
        CASE WHEN movement_type IN ('CREDIT', 'RECHARGE') THEN amount ELSE -amount END
    ), 0)
    FROM movements
    WHERE user_id = :user_id
""")


def _row_to_account(row: object) -> Account:
    return Account(
        user_id=row.user_id,  # type: ignore[attr-defined]
        balance=to_money(row.balance),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_movement(row: object) -> Movement:
    return Movement(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        movement_type=MovementType(row.movement_type),  # type: ignore[attr-defined]
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        balance_after=to_money(row.balance_after),  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        reference_id=row.reference_id,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository: raw SQL, caller owns the transaction."""

    async def get_account(self, db: AsyncSession, user_id: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"user_id": user_id})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def get_or_create_account(self, db: AsyncSession, user_id: str) -> Account:
        await db.execute(_ENSURE_ACCOUNT_SQL, {"user_id": user_id})
        account = await self.get_account(db, user_id)
        if account is None:
            raise InternalError(f"Account not found for user {user_id} after upsert")
        return account

    async def save_balance(
        self, db: AsyncSession, account: Account, expected_version: int
    ) -> Account:
        result = await db.execute(
            _SAVE_BALANCE_SQL,
            {
                "user_id": account.user_id,
                "balance": account.balance,
                "expected_version": expected_version,
            },
        )
        row = result.fetchone()
        if row is None:
            raise ConcurrentModificationError("Account", account.user_id)
        saved = _row_to_account(row)
        saved.movements = account.movements
        return saved

    async def insert_movement(self, db: AsyncSession, movement: Movement) -> Movement:
        result = await db.execute(
            _INSERT_MOVEMENT_SQL,
            {
                "user_id": movement.user_id,
                "movement_type": movement.movement_type.value,
                "amount": movement.amount,
                "balance_after": movement.balance_after,
                "description": movement.description,
                "reference_id": movement.reference_id,
                "created_at": movement.created_at,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Movement insert returned no rows")
        return _row_to_movement(row)

    async def list_movements(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        movement_type: str | None,
    ) -> list[Movement]:
        result = await db.execute(
            _LIST_MOVEMENTS_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "movement_type": movement_type,
                "limit": limit,
            },
        )
        return [_row_to_movement(row) for row in result.fetchall()]

    async def sum_movements(self, db: AsyncSession, user_id: str) -> Decimal:
        result = await db.execute(_SUM_MOVEMENTS_SQL, {"user_id": user_id})
        return to_money(result.scalar_one())
