"""
In-process implementations of the sale's external collaborators.

These stand in for the on-platform token, native currency, owner check and
price oracle when the sale runs inside a single Python process (the demo
API app and the test suite). They keep just enough behaviour for the sale:
balances, allowances, a denylist, and a settable feed answer.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, Optional, Set, Tuple

from domain.pricing import FeedRate


class AssetTransferError(Exception):
    """Raised by an in-memory asset when a transfer cannot happen."""


class BalanceTooLow(AssetTransferError):
    pass


class AllowanceTooLow(AssetTransferError):
    pass


class AccountDenied(AssetTransferError):
    pass


class InMemoryFungibleAsset:
    """Fungible token ledger with allowances and a denylist."""

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._denied: Set[str] = set()
        self._lock = threading.Lock()

    def units(self, whole: int) -> int:
        """Base units for `whole` tokens."""
        return whole * 10**self.decimals

    def mint(self, account: str, amount: int) -> None:
        with self._lock:
            self._check_allowed(account)
            self._balances[account] = self._balances.get(account, 0) + amount

    def deny(self, account: str) -> None:
        with self._lock:
            self._denied.add(account)

    def allow(self, account: str) -> None:
        with self._lock:
            self._denied.discard(account)

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        with self._lock:
            self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            self._move(sender, recipient, amount)

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if allowed < amount:
                raise AllowanceTooLow(
                    f"{spender} may spend {allowed} {self.symbol} of {owner}, not {amount}"
                )
            self._move(owner, recipient, amount)
            self._allowances[(owner, spender)] = allowed - amount

    def _check_allowed(self, *accounts: str) -> None:
        for account in accounts:
            if account in self._denied:
                raise AccountDenied(f"{account} is denylisted for {self.symbol}")

    def _move(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise AssetTransferError("Transfer amount must not be negative")
        self._check_allowed(sender, recipient)
        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise BalanceTooLow(f"{sender} holds {balance} {self.symbol}, not {amount}")
        self._balances[sender] = balance - amount
        self._balances[recipient] = self._balances.get(recipient, 0) + amount


class InMemoryNativeCurrency:
    """Native currency balances; transfers between accounts."""

    def __init__(self, decimals: int = 18) -> None:
        self.decimals = decimals
        self._balances: Dict[str, int] = {}
        self._lock = threading.Lock()

    def fund(self, account: str, amount: int) -> None:
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            balance = self._balances.get(sender, 0)
            if balance < amount:
                raise BalanceTooLow(f"{sender} holds {balance} native units, not {amount}")
            self._balances[sender] = balance - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount


class StaticAccessControl:
    """Owner check against a fixed set of owner accounts."""

    def __init__(self, owners: Iterable[str]) -> None:
        self._owners = frozenset(owners)

    def is_owner(self, account: str) -> bool:
        return account in self._owners


class StaticPriceFeed:
    """Price feed returning the last rate it was given."""

    def __init__(self, rate: int, decimals: int) -> None:
        self._answer = FeedRate(rate=rate, decimals=decimals)
        self._unavailable: Optional[Exception] = None

    def update(self, rate: int, decimals: Optional[int] = None) -> None:
        self._answer = FeedRate(
            rate=rate,
            decimals=self._answer.decimals if decimals is None else decimals,
        )

    def fail_with(self, error: Optional[Exception]) -> None:
        """Make the next reads raise `error` (None restores the feed)."""
        self._unavailable = error

    def latest_rate(self) -> FeedRate:
        if self._unavailable is not None:
            raise self._unavailable
        return self._answer


__all__ = [
    "AccountDenied",
    "AllowanceTooLow",
    "AssetTransferError",
    "BalanceTooLow",
    "InMemoryFungibleAsset",
    "InMemoryNativeCurrency",
    "StaticAccessControl",
    "StaticPriceFeed",
]
