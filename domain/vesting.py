"""
Domain: Vesting ledger of purchased, time-locked token claims.

Rules implemented here:
- Each wallet has a locked balance (sale-token units bought and not yet
  released). Missing wallets have a locked balance of zero.
- total_vested always equals the sum of all locked balances.
- A purchase never takes a wallet above the wallet cap.
- A release never exceeds the wallet's locked balance.
- Wallets whose balance returns to zero are pruned.

Ledger transitions return new instances; the prior ledger is unchanged.
The unlock gate lives with the schedule, not here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping

from .errors import InsufficientClaim, InvalidAmount, WalletLimitExceeded


@dataclass(frozen=True, slots=True)
class VestingLedger:
    """
    In-memory vesting ledger for a single sale.

    Not a persistence model; a pure domain structure.
    """

    _balances: Mapping[str, int]
    total_vested: int = 0

    @staticmethod
    def empty() -> "VestingLedger":
        return VestingLedger(_balances={}, total_vested=0)

    def balance_of(self, wallet: str) -> int:
        return self._balances.get(wallet, 0)

    def wallets(self) -> Iterator[str]:
        return iter(self._balances)

    def __len__(self) -> int:
        return len(self._balances)

    def credit(self, wallet: str, amount: int) -> "VestingLedger":
        """Add `amount` to a wallet's locked balance with no cap check."""

        if amount <= 0:
            raise InvalidAmount("Vested amount must be greater than zero")
        updated: Dict[str, int] = dict(self._balances)
        updated[wallet] = updated.get(wallet, 0) + amount
        return VestingLedger(_balances=updated, total_vested=self.total_vested + amount)

    def debit(self, wallet: str, amount: int) -> "VestingLedger":
        """Remove `amount` from a wallet's locked balance."""

        if amount <= 0:
            raise InvalidAmount("Release amount must be greater than zero")
        locked = self.balance_of(wallet)
        if amount > locked:
            raise InsufficientClaim(
                f"Wallet {wallet} has {locked} locked tokens, cannot release {amount}"
            )

        updated: Dict[str, int] = dict(self._balances)
        remaining = locked - amount
        if remaining:
            updated[wallet] = remaining
        else:
            updated.pop(wallet, None)
        return VestingLedger(_balances=updated, total_vested=self.total_vested - amount)

    def record_purchase(self, wallet: str, amount: int, wallet_cap: int) -> "VestingLedger":
        """
        Record a purchase of `amount` tokens for `wallet`.

        Enforces:
        - Wallet cap: locked balance after the purchase must be <= wallet_cap.
        """

        new_balance = self.balance_of(wallet) + amount
        if new_balance > wallet_cap:
            raise WalletLimitExceeded(
                f"Purchase would bring wallet {wallet} to {new_balance} tokens "
                f"(cap {wallet_cap})"
            )
        return self.credit(wallet, amount)

    def release(self, wallet: str, amount: int) -> "VestingLedger":
        """
        Release `amount` unlocked tokens from `wallet`'s claim.

        Releasing zero is accepted and returns the ledger unchanged.
        """

        if amount == 0:
            return self
        return self.debit(wallet, amount)


__all__ = ["VestingLedger"]
