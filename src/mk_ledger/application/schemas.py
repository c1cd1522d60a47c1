"""Pydantic schemas and cursor utilities for mk_ledger API."""

import base64
import json
from decimal import Decimal

from pydantic import BaseModel, Field

from src.mk_common.money import money_to_display
from src.mk_ledger.domain.models import Movement

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class RechargeRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    method: str = Field(..., min_length=1, max_length=50, examples=["card"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    balance: Decimal
    balance_display: str

    @classmethod
    def from_balance(cls, user_id: str, balance: Decimal) -> "BalanceResponse":
        return cls(user_id=user_id, balance=balance, balance_display=money_to_display(balance))


class MovementItem(BaseModel):
    id: int | None
    movement_type: str
    amount: Decimal
    amount_display: str
    balance_after: Decimal
    balance_after_display: str
    description: str
    reference_id: str | None
    created_at: str  # ISO8601

    @classmethod
    def from_domain(cls, m: Movement) -> "MovementItem":
        return cls(
            id=m.id,
            movement_type=m.movement_type.value,
            amount=m.amount,
            amount_display=money_to_display(m.signed_amount),
            balance_after=m.balance_after,
            balance_after_display=money_to_display(m.balance_after),
            description=m.description,
            reference_id=m.reference_id,
            created_at=m.created_at.isoformat(),
        )


class RechargeResponse(BaseModel):
    balance: Decimal
    balance_display: str
    movement: MovementItem


class MovementPage(BaseModel):
    items: list[MovementItem]
    next_cursor: str | None
    has_more: bool


class ConsistencyReport(BaseModel):
    user_id: str
    balance: Decimal
    movement_sum: Decimal
    consistent: bool
    violations: list[str]
