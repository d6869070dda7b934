"""
Domain: Sale inventory.

Inventory is derived, never stored:

    available = sale-token balance held by the sale - total_vested

Rules implemented here:
- A purchase below the minimum tradable unit is rejected.
- A purchase above the available inventory is rejected.
- Available inventory is never reported below zero.

This module contains only pure functions: balances are passed in.
"""

from __future__ import annotations

import logging

from .errors import InsufficientInventory, InvalidAmount

logger = logging.getLogger(__name__)


def available_inventory(asset_balance: int, total_vested: int) -> int:
    """Tokens held by the sale that are not owed to buyers."""

    available = asset_balance - total_vested
    if available < 0:
        # The sale holds fewer tokens than it owes; nothing is for sale.
        logger.warning(
            "Sale token balance is below outstanding vested claims",
            extra={"asset_balance": asset_balance, "total_vested": total_vested},
        )
        return 0
    return available


def check_purchase(amount: int, minimum_unit: int, available: int) -> None:
    """
    Admit a purchase of `amount` tokens against the current inventory.

    Pure check; recording the claim happens on the vesting ledger within the
    same locked operation.
    """

    if amount < minimum_unit:
        raise InvalidAmount(
            f"Purchase of {amount} token units is below the minimum unit {minimum_unit}"
        )
    if amount > available:
        raise InsufficientInventory(
            f"Purchase of {amount} token units exceeds available inventory {available}"
        )


__all__ = ["available_inventory", "check_purchase"]
