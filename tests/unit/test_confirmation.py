"""Unit tests for confirmation codes: validator rules and ConfirmationService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from src.mk_common.errors import (
    CodeExpiredOrLockedError,
    CodeMismatchError,
    CodeNotFoundError,
)
from src.mk_confirmation.application.service import ConfirmationService
from src.mk_confirmation.domain.validator import CODE_ALPHABET, ConfirmationCodeValidator

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now


def _validator(clock: _Clock | None = None) -> ConfirmationCodeValidator:
    return ConfirmationCodeValidator(
        max_attempts=3,
        ttl=timedelta(days=14),
        bcrypt_rounds=4,
        clock=clock or _Clock(),
    )


def _wrong(plain: str) -> str:
    return "000000" if plain != "000000" else "111111"


class TestGenerate:
    def test_shape(self) -> None:
        plain, record = _validator().generate("buyer", "ord_1")
        assert len(plain) == 6
        assert set(plain) <= set(CODE_ALPHABET)
        assert record.display_code == plain
        assert record.code_hash != plain
        assert record.code_hash.startswith("$2")
        assert record.failed_attempts == 0
        assert record.created_at == T0

    def test_codes_differ(self) -> None:
        validator = _validator()
        assert len({validator.new_plain_code() for _ in range(50)}) > 1


class TestVerify:
    def test_match_consumes(self) -> None:
        validator = _validator()
        plain, record = validator.generate("buyer", "ord_1")
        assert validator.verify(record, plain) is True
        assert record.is_consumed
        assert validator.verify(record, plain) is False

    def test_input_normalized(self) -> None:
        validator = _validator()
        plain, record = validator.generate("buyer", "ord_1")
        assert validator.verify(record, f"  {plain.lower()} ") is True

    def test_lockout_after_max_attempts(self) -> None:
        validator = _validator()
        plain, record = validator.generate("buyer", "ord_1")
        for _ in range(3):
            assert validator.verify(record, _wrong(plain)) is False
        assert record.failed_attempts == 3
        assert validator.verify(record, plain) is False
        assert not record.is_consumed
        assert record.failed_attempts == 3

    def test_two_failures_then_success(self) -> None:
        validator = _validator()
        plain, record = validator.generate("buyer", "ord_1")
        validator.verify(record, _wrong(plain))
        validator.verify(record, _wrong(plain))
        assert record.attempts_left(3) == 1
        assert validator.verify(record, plain) is True

    def test_expiry_boundary(self) -> None:
        clock = _Clock()
        validator = _validator(clock)
        plain, record = validator.generate("buyer", "ord_1")
        clock.now = T0 + timedelta(days=14) - timedelta(seconds=1)
        assert validator.is_valid(record)
        clock.now = T0 + timedelta(days=14)
        assert not validator.is_valid(record)
        assert validator.verify(record, plain) is False
        assert record.failed_attempts == 0

    def test_zero_attempts_is_kept(self) -> None:
        validator = ConfirmationCodeValidator(
            max_attempts=0, ttl=timedelta(0), bcrypt_rounds=4, clock=_Clock()
        )
        assert validator.max_attempts == 0
        assert validator.ttl == timedelta(0)
        plain, record = validator.generate("buyer", "ord_1")
        assert validator.verify(record, plain) is False

    def test_defaults_from_settings(self) -> None:
        validator = ConfirmationCodeValidator()
        assert validator.max_attempts == 3
        assert validator.ttl == timedelta(days=14)
        assert validator.code_length == 6


class TestConfirmationService:
    def _service(self, clock: _Clock | None = None) -> tuple[ConfirmationService, AsyncMock]:
        repo = AsyncMock()
        repo.delete_for.return_value = 1
        return ConfirmationService(repo=repo, validator=_validator(clock)), repo

    async def test_issue_replaces_previous(self) -> None:
        svc, repo = self._service()
        db = AsyncMock()
        plain, record = await svc.issue(db, "buyer", "ord_1")
        repo.delete_for.assert_awaited_once_with(db, "buyer", "ord_1")
        repo.insert.assert_awaited_once_with(db, record)
        assert record.display_code == plain

    async def test_verify_match(self) -> None:
        svc, repo = self._service()
        plain, record = svc.validator.generate("buyer", "ord_1")
        repo.get_latest.return_value = record

        result = await svc.verify_for_target(AsyncMock(), "buyer", "ord_1", plain)

        assert result.is_consumed
        _, saved, previous = repo.save_attempt.await_args.args
        assert saved is record
        assert previous == 0

    async def test_verify_mismatch_persists_attempt(self) -> None:
        svc, repo = self._service()
        plain, record = svc.validator.generate("buyer", "ord_1")
        repo.get_latest.return_value = record

        with pytest.raises(CodeMismatchError) as exc_info:
            await svc.verify_for_target(AsyncMock(), "buyer", "ord_1", _wrong(plain))

        assert exc_info.value.attempts_left == 2
        repo.save_attempt.assert_awaited_once()
        assert record.failed_attempts == 1

    async def test_locked_code_is_not_compared(self) -> None:
        svc, repo = self._service()
        plain, record = svc.validator.generate("buyer", "ord_1")
        record.failed_attempts = 3
        repo.get_latest.return_value = record

        with pytest.raises(CodeExpiredOrLockedError):
            await svc.verify_for_target(AsyncMock(), "buyer", "ord_1", plain)
        repo.save_attempt.assert_not_awaited()

    async def test_missing_code(self) -> None:
        svc, repo = self._service()
        repo.get_latest.return_value = None
        with pytest.raises(CodeNotFoundError):
            await svc.verify_for_target(AsyncMock(), "buyer", "ord_1", "ABCDEF")

    async def test_active_codes_carry_expiry(self) -> None:
        svc, repo = self._service()
        _, record = svc.validator.generate("buyer", "ord_1")
        repo.list_active.return_value = [record]

        [item] = await svc.list_active_for_user(AsyncMock(), "buyer")

        assert item.target_id == "ord_1"
        assert item.attempts_left == 3
        assert item.expires_at == (T0 + timedelta(days=14)).isoformat()
        _, user_id, created_after, max_attempts = repo.list_active.await_args.args
        assert (user_id, created_after, max_attempts) == ("buyer", T0 - timedelta(days=14), 3)

    async def test_has_pending_code(self) -> None:
        clock = _Clock()
        svc, repo = self._service(clock)
        _, record = svc.validator.generate("buyer", "ord_1")
        repo.get_latest.return_value = record
        assert await svc.has_pending_code(AsyncMock(), "buyer", "ord_1") is True
        clock.now = T0 + timedelta(days=15)
        assert await svc.has_pending_code(AsyncMock(), "buyer", "ord_1") is False

    async def test_purge_commits(self) -> None:
        svc, repo = self._service()
        repo.purge.return_value = 4
        db = AsyncMock()
        assert await svc.purge_expired(db) == 4
        db.commit.assert_awaited_once()
        repo.purge.assert_awaited_once_with(db, T0 - timedelta(days=14))
