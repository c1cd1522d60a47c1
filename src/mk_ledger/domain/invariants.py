"""Ledger consistency checks: balance == signed sum of movements, balance >= 0."""

import logging
from decimal import Decimal

from src.mk_ledger.domain.models import Account

logger = logging.getLogger(__name__)


def check_account(account: Account, opening_balance: Decimal = Decimal("0")) -> list[str]:
    """In-memory check over the movements held by ``account``.

    ``opening_balance`` is the balance before the first held movement (zero when
    the whole history is loaded).
    """
    violations: list[str] = []
    expected = opening_balance + sum((m.signed_amount for m in account.movements), Decimal("0"))
    if account.balance != expected:
        violations.append(
            f"balance({account.balance}) != opening({opening_balance}) + movements = {expected}"
        )
    if account.balance < 0:
        violations.append(f"negative balance {account.balance}")
    running = opening_balance
    for movement in account.movements:
        running += movement.signed_amount
        if movement.balance_after != running:
            violations.append(
                f"movement balance_after({movement.balance_after}) != running total({running})"
            )
            break
    for msg in violations:
        logger.error("Ledger invariant violated for user=%s: %s", account.user_id, msg)
    return violations


def check_stored_sum(user_id: str, balance: Decimal, stored_sum: Decimal) -> list[str]:
    """Compare a persisted balance with the signed sum of its persisted movements."""
    if balance == stored_sum:
        return []
    msg = f"stored balance({balance}) != signed movement sum({stored_sum})"
    logger.error("Ledger invariant violated for user=%s: %s", user_id, msg)
    return [msg]
