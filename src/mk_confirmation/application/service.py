"""ConfirmationService: issue and check hand-off codes.

``issue``, ``verify_for_target`` and ``revoke`` run inside the caller's unit
of work (the order service commits). ``purge_expired`` commits on its own.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.errors import (
    CodeExpiredOrLockedError,
    CodeMismatchError,
    CodeNotFoundError,
)
from src.mk_confirmation.application.schemas import ActiveCodeItem, to_active_item
from src.mk_confirmation.domain.models import ConfirmationCode
from src.mk_confirmation.domain.repository import ConfirmationCodeRepositoryProtocol
from src.mk_confirmation.domain.validator import ConfirmationCodeValidator
from src.mk_confirmation.infrastructure.persistence import ConfirmationCodeRepository

logger = logging.getLogger(__name__)


class ConfirmationService:
    def __init__(
        self,
        repo: ConfirmationCodeRepositoryProtocol | None = None,
        validator: ConfirmationCodeValidator | None = None,
    ) -> None:
        self._repo: ConfirmationCodeRepositoryProtocol = repo or ConfirmationCodeRepository()
        self.validator = validator or ConfirmationCodeValidator()

    def expires_at(self, record: ConfirmationCode) -> str:
        return (record.created_at + self.validator.ttl).isoformat()

    async def issue(
        self, db: AsyncSession, user_id: str, target_id: str
    ) -> tuple[str, ConfirmationCode]:
        """Replace any code of ``user_id`` for ``target_id`` with a fresh one."""
        plain, record = self.validator.generate(user_id, target_id)
        replaced = await self._repo.delete_for(db, user_id, target_id)
        await self._repo.insert(db, record)
        logger.info(
            "Confirmation code issued: user=%s target=%s replaced=%d", user_id, target_id, replaced
        )
        return plain, record

    async def verify_for_target(
        self, db: AsyncSession, user_id: str, target_id: str, supplied: str
    ) -> ConfirmationCode:
        """Consume the holder's code for ``target_id`` or raise.

        Raises CodeNotFoundError, CodeExpiredOrLockedError (record unusable,
        nothing compared) or CodeMismatchError (attempt counted and persisted
        in the caller's transaction).
        """
        record = await self._repo.get_latest(db, user_id, target_id)
        if record is None:
            raise CodeNotFoundError(target_id)
        if not self.validator.is_valid(record):
            raise CodeExpiredOrLockedError(target_id)

        previous_attempts = record.failed_attempts
        matched = self.validator.verify(record, supplied)
        await self._repo.save_attempt(db, record, previous_attempts)
        if not matched:
            logger.warning(
                "Confirmation code mismatch: target=%s attempts=%d/%d",
                target_id, record.failed_attempts, self.validator.max_attempts,
            )
            raise CodeMismatchError(record.attempts_left(self.validator.max_attempts))
        return record

    async def revoke(self, db: AsyncSession, target_id: str) -> int:
        return await self._repo.delete_for_target(db, target_id)

    async def list_active_for_user(self, db: AsyncSession, user_id: str) -> list[ActiveCodeItem]:
        created_after = self.validator.now() - self.validator.ttl
        records = await self._repo.list_active(
            db, user_id, created_after, self.validator.max_attempts
        )
        return [
            to_active_item(
                r, self.expires_at(r), r.attempts_left(self.validator.max_attempts)
            )
            for r in records
        ]

    async def has_pending_code(self, db: AsyncSession, user_id: str, target_id: str) -> bool:
        record = await self._repo.get_latest(db, user_id, target_id)
        return record is not None and self.validator.is_valid(record)

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete expired and consumed codes. Hygiene only; validity never depends on it."""
        cutoff = self.validator.now() - self.validator.ttl
        try:
            deleted = await self._repo.purge(db, cutoff)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if deleted:
            logger.info("Purged %d confirmation codes", deleted)
        return deleted
