"""Pydantic schemas for confirmation-code endpoints."""

from pydantic import BaseModel

from src.mk_confirmation.domain.models import ConfirmationCode


class ActiveCodeItem(BaseModel):
    target_id: str
    code: str
    created_at: str
    expires_at: str
    attempts_left: int


class PendingCodeResponse(BaseModel):
    target_id: str
    pending: bool


def to_active_item(record: ConfirmationCode, expires_at: str, attempts_left: int) -> ActiveCodeItem:
    return ActiveCodeItem(
        target_id=record.target_id,
        code=record.display_code,
        created_at=record.created_at.isoformat(),
        expires_at=expires_at,
        attempts_left=attempts_left,
    )
