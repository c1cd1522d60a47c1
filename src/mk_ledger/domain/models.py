"""Domain models for mk_ledger: pure dataclasses, no SQLAlchemy dependency.

An Account owns its balance and the movements that produced it. Every
mutation goes through ``post`` so that ``balance == signed sum(movements)``
holds after each call; a refused debit/purchase leaves both untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import MovementType
from src.mk_common.errors import ValidationError
from src.mk_common.money import ZERO


@dataclass(frozen=True)
class Movement:
    user_id: str
    movement_type: MovementType
    amount: Decimal              # always positive; direction comes from the type
    balance_after: Decimal
    description: str
    reference_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    id: int | None = None        # BIGSERIAL, assigned on insert

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.movement_type.sign


@dataclass
class Account:
    user_id: str
    balance: Decimal = ZERO
    movements: list[Movement] = field(default_factory=list)
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def has_sufficient_funds(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def post(
        self,
        movement_type: MovementType,
        amount: Decimal,
        description: str,
        reference_id: str | None = None,
    ) -> bool:
        """Apply one movement. False (and no change) when an outgoing amount exceeds the balance."""
        if amount <= 0:
            raise ValidationError(f"amount must be positive, got {amount}")
        if movement_type.sign < 0 and not self.has_sufficient_funds(amount):
            return False
        self.balance = self.balance + amount * movement_type.sign
        self.updated_at = utc_now()
        self.movements.append(
            Movement(
                user_id=self.user_id,
                movement_type=movement_type,
                amount=amount,
                balance_after=self.balance,
                description=description,
                reference_id=reference_id,
                created_at=self.updated_at,
            )
        )
        return True

    def credit(self, amount: Decimal, description: str, reference_id: str | None = None) -> None:
        self.post(MovementType.CREDIT, amount, description, reference_id)

    def debit(self, amount: Decimal, description: str, reference_id: str | None = None) -> bool:
        return self.post(MovementType.DEBIT, amount, description, reference_id)

    def purchase(self, amount: Decimal, description: str, reference_id: str | None = None) -> bool:
        return self.post(MovementType.PURCHASE, amount, description, reference_id)

    def recharge(self, amount: Decimal, method: str) -> None:
        self.post(MovementType.RECHARGE, amount, recharge_description(method))

    def movements_by_type(self, movement_type: MovementType) -> list[Movement]:
        return [m for m in self.movements if m.movement_type == movement_type]

    @property
    def last_movement(self) -> Movement | None:
        return self.movements[-1] if self.movements else None


def recharge_description(method: str) -> str:
    return f"Recharge via {method}"
