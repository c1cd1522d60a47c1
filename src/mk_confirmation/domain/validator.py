"""Confirmation code generation and verification.

Codes are 6 characters from A-Z0-9 drawn with ``secrets``. Only the bcrypt
hash is used to verify; the display copy exists so the holder can read it
back in the app.
"""

import secrets
import string
from collections.abc import Callable
from datetime import datetime, timedelta

import bcrypt

from config.settings import settings
from src.mk_common.datetime_utils import utc_now
from src.mk_common.id_generator import generate_id
from src.mk_confirmation.domain.models import ConfirmationCode

CODE_ALPHABET = string.ascii_uppercase + string.digits


class ConfirmationCodeValidator:
    def __init__(
        self,
        max_attempts: int | None = None,
        ttl: timedelta | None = None,
        code_length: int | None = None,
        bcrypt_rounds: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if max_attempts is None:
            max_attempts = settings.CONFIRMATION_CODE_MAX_ATTEMPTS
        if ttl is None:
            ttl = timedelta(hours=settings.CONFIRMATION_CODE_TTL_HOURS)
        if code_length is None:
            code_length = settings.CONFIRMATION_CODE_LENGTH
        if bcrypt_rounds is None:
            bcrypt_rounds = settings.CONFIRMATION_CODE_BCRYPT_ROUNDS
        self.max_attempts = max_attempts
        self.ttl = ttl
        self.code_length = code_length
        self._rounds = bcrypt_rounds
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def new_plain_code(self) -> str:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(self.code_length))

    def generate(self, user_id: str, target_id: str) -> tuple[str, ConfirmationCode]:
        plain = self.new_plain_code()
        code_hash = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))
        record = ConfirmationCode(
            id=generate_id("cc_"),
            user_id=user_id,
            target_id=target_id,
            code_hash=code_hash.decode("utf-8"),
            display_code=plain,
            created_at=self.now(),
        )
        return plain, record

    def is_valid(self, record: ConfirmationCode) -> bool:
        return record.is_valid(self.now(), self.max_attempts, self.ttl)

    def verify(self, record: ConfirmationCode, supplied: str) -> bool:
        """Check ``supplied`` against the record, updating it in place.

        An invalid record (locked, expired or consumed) returns False without
        comparing. A mismatch counts a failed attempt; a match consumes the record.
        """
        if not self.is_valid(record):
            return False
        candidate = (supplied or "").strip().upper().encode("utf-8")
        if not bcrypt.checkpw(candidate, record.code_hash.encode("utf-8")):
            record.failed_attempts += 1
            return False
        record.consumed_at = self.now()
        return True
