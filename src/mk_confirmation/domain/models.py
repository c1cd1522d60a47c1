"""ConfirmationCode: hand-off secret held by the buyer of an order."""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass
class ConfirmationCode:
    id: str
    user_id: str           # holder (the buyer)
    target_id: str         # order id
    code_hash: str         # bcrypt; the only thing verification trusts
    display_code: str      # plain copy shown to the holder
    created_at: datetime
    failed_attempts: int = 0
    consumed_at: datetime | None = None

    @property
    def is_consumed(self) -> bool:
        return self.consumed_at is not None

    def is_locked(self, max_attempts: int) -> bool:
        return self.failed_attempts >= max_attempts

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.created_at >= ttl

    def is_valid(self, now: datetime, max_attempts: int, ttl: timedelta) -> bool:
        """Usable iff under the attempt limit, inside the TTL and not yet consumed."""
        return (
            not self.is_locked(max_attempts)
            and not self.is_expired(now, ttl)
            and not self.is_consumed
        )

    def attempts_left(self, max_attempts: int) -> int:
        return max(0, max_attempts - self.failed_attempts)
