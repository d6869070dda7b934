"""
Domain: Capabilities the sale engine consumes but does not own.

The sale never implements a token, an access-control scheme or a price
oracle. It only talks to them through these interfaces. Any method may
raise; the sale lets those failures propagate unchanged.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .events import SaleEvent
from .pricing import FeedRate


@runtime_checkable
class FungibleAsset(Protocol):
    """A fungible token ledger (the sale token or the secondary asset)."""

    decimals: int

    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None: ...


@runtime_checkable
class NativeCurrency(Protocol):
    """Balances of the platform's native payment currency."""

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


@runtime_checkable
class AccessControl(Protocol):
    def is_owner(self, account: str) -> bool: ...


@runtime_checkable
class PriceFeed(Protocol):
    def latest_rate(self) -> FeedRate: ...


@runtime_checkable
class SaleEventSink(Protocol):
    def record(self, event: SaleEvent) -> None: ...


__all__ = [
    "AccessControl",
    "FungibleAsset",
    "NativeCurrency",
    "PriceFeed",
    "SaleEventSink",
]
