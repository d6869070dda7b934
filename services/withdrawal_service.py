"""
Withdrawal accounting for the three asset pools held by a sale.

Free balance per pool:
- NATIVE: the whole native balance (payments are never vested).
- SECONDARY: the whole secondary-asset balance.
- TOKEN: available inventory (balance minus outstanding vested claims).

Request shapes:
- amount=None: withdraw the whole free balance (NoFunds when empty).
- amount given: InvalidAmount if <= 0, InsufficientFunds if above free.
- recipient given: must not be the zero address.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.errors import InsufficientFunds, InvalidAmount, NoFunds
from domain.wallet import require_destination


class AssetPool(str, Enum):
    NATIVE = "native"
    TOKEN = "token"
    SECONDARY = "secondary"


@dataclass(frozen=True, slots=True)
class WithdrawalPlan:
    """Resolved withdrawal: what to send, where, and from which pool."""
    pool: AssetPool
    amount: int
    recipient: str
    free_balance: int


def resolve_withdrawal(
    pool: AssetPool,
    *,
    free_balance: int,
    owner: str,
    amount: Optional[int] = None,
    recipient: Optional[str] = None,
) -> WithdrawalPlan:
    """
    Validate a withdrawal request against the pool's free balance.

    Authorization is checked by the caller before this runs.
    """

    if recipient is None:
        recipient = owner
    else:
        require_destination(recipient)

    if amount is None:
        if free_balance <= 0:
            raise NoFunds(f"No free {pool.value} balance to withdraw")
        amount = free_balance
    else:
        if amount <= 0:
            raise InvalidAmount("Withdrawal amount must be greater than zero")
        if amount > free_balance:
            raise InsufficientFunds(
                f"Requested {amount} {pool.value} units but only {free_balance} are free"
            )

    return WithdrawalPlan(pool=pool, amount=amount, recipient=recipient, free_balance=free_balance)


__all__ = ["AssetPool", "WithdrawalPlan", "resolve_withdrawal"]
