"""
Domain: Wallet identities.

Wallets are opaque strings. The zero address is never a valid destination
for released tokens or withdrawn funds.
"""

from __future__ import annotations

from .errors import InvalidDestination

ZERO_ADDRESS: str = "0x" + "0" * 40


def is_zero_address(wallet: str | None) -> bool:
    if not wallet:
        return True
    return wallet.lower() == ZERO_ADDRESS


def require_destination(wallet: str | None) -> str:
    if is_zero_address(wallet):
        raise InvalidDestination("Destination must not be the zero address")
    return wallet  # type: ignore[return-value]


__all__ = ["ZERO_ADDRESS", "is_zero_address", "require_destination"]
