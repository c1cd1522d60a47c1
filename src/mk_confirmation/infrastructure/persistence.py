"""ConfirmationCodeRepository: raw SQL over confirmation_codes."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.errors import ConcurrentModificationError
from src.mk_confirmation.domain.models import ConfirmationCode

_COLUMNS = (
    "id, user_id, target_id, code_hash, display_code, created_at, failed_attempts, consumed_at"
)

_INSERT_SQL = text("""
    INSERT INTO confirmation_codes
        (id, user_id, target_id, code_hash, display_code, created_at, failed_attempts)
    VALUES
        (:id, :user_id, :target_id, :code_hash, :display_code, :created_at, :failed_attempts)
""")

_DELETE_FOR_SQL = text("""
    DELETE FROM confirmation_codes WHERE user_id = :user_id AND target_id = :target_id
""")

_DELETE_FOR_TARGET_SQL = text("DELETE FROM confirmation_codes WHERE target_id = :target_id")

_GET_LATEST_SQL = text(f"""
    SELECT {_COLUMNS} FROM confirmation_codes
    WHERE user_id = :user_id AND target_id = :target_id
    ORDER BY created_at DESC
    LIMIT 1
""")

# Guarded on the stored attempt count so concurrent submissions cannot both
# spend the same attempt.
_SAVE_ATTEMPT_SQL = text("""
    UPDATE confirmation_codes
    SET failed_attempts = :failed_attempts,
        consumed_at = :consumed_at
    WHERE id = :id AND failed_attempts = :previous_attempts AND consumed_at IS NULL
    RETURNING id
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_COLUMNS} FROM confirmation_codes
    WHERE user_id = :user_id
      AND consumed_at IS NULL
      AND failed_attempts < :max_attempts
      AND created_at > :created_after
    ORDER BY created_at DESC
""")

_PURGE_SQL = text("""
    DELETE FROM confirmation_codes
    WHERE created_at < :created_before OR consumed_at IS NOT NULL
""")


def _row_to_code(row: object) -> ConfirmationCode:
    return ConfirmationCode(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        target_id=row.target_id,  # type: ignore[attr-defined]
        code_hash=row.code_hash,  # type: ignore[attr-defined]
        display_code=row.display_code,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        failed_attempts=row.failed_attempts,  # type: ignore[attr-defined]
        consumed_at=row.consumed_at,  # type: ignore[attr-defined]
    )


class ConfirmationCodeRepository:
    async def insert(self, db: AsyncSession, record: ConfirmationCode) -> None:
        await db.execute(
            _INSERT_SQL,
            {
                "id": record.id,
                "user_id": record.user_id,
                "target_id": record.target_id,
                "code_hash": record.code_hash,
                "display_code": record.display_code,
                "created_at": record.created_at,
                "failed_attempts": record.failed_attempts,
            },
        )

    async def delete_for(self, db: AsyncSession, user_id: str, target_id: str) -> int:
        result = await db.execute(_DELETE_FOR_SQL, {"user_id": user_id, "target_id": target_id})
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def delete_for_target(self, db: AsyncSession, target_id: str) -> int:
        result = await db.execute(_DELETE_FOR_TARGET_SQL, {"target_id": target_id})
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def get_latest(
        self, db: AsyncSession, user_id: str, target_id: str
    ) -> ConfirmationCode | None:
        row = (
            await db.execute(_GET_LATEST_SQL, {"user_id": user_id, "target_id": target_id})
        ).fetchone()
        return _row_to_code(row) if row else None

    async def save_attempt(
        self, db: AsyncSession, record: ConfirmationCode, previous_attempts: int
    ) -> None:
        result = await db.execute(
            _SAVE_ATTEMPT_SQL,
            {
                "id": record.id,
                "failed_attempts": record.failed_attempts,
                "consumed_at": record.consumed_at,
                "previous_attempts": previous_attempts,
            },
        )
        if result.fetchone() is None:
            raise ConcurrentModificationError("ConfirmationCode", record.id)

    async def list_active(
        self, db: AsyncSession, user_id: str, created_after: datetime, max_attempts: int
    ) -> list[ConfirmationCode]:
        result = await db.execute(
            _LIST_ACTIVE_SQL,
            {"user_id": user_id, "created_after": created_after, "max_attempts": max_attempts},
        )
        return [_row_to_code(row) for row in result.fetchall()]

    async def purge(self, db: AsyncSession, created_before: datetime) -> int:
        result = await db.execute(_PURGE_SQL, {"created_before": created_before})
        return result.rowcount or 0  # type: ignore[attr-defined]
