"""
Tests for `services/withdrawal_service.py`.

Covers rules:
- Full withdrawal takes the whole free balance; an empty pool raises NoFunds.
- An explicit amount must be positive and within the free balance.
- Recipients default to the owner and may not be the zero address.
"""

from __future__ import annotations

import pytest

from domain.errors import InsufficientFunds, InvalidAmount, InvalidDestination, NoFunds
from domain.wallet import ZERO_ADDRESS
from services.withdrawal_service import AssetPool, resolve_withdrawal

OWNER = "0xowner"
TREASURY = "0xtreasury"


def test_full_withdrawal_takes_free_balance_to_owner() -> None:
    plan = resolve_withdrawal(AssetPool.NATIVE, free_balance=500, owner=OWNER)

    assert plan.amount == 500
    assert plan.recipient == OWNER
    assert plan.pool is AssetPool.NATIVE


def test_full_withdrawal_of_empty_pool_raises_no_funds() -> None:
    with pytest.raises(NoFunds):
        resolve_withdrawal(AssetPool.TOKEN, free_balance=0, owner=OWNER)


def test_amount_withdrawal_is_bounded_by_free_balance() -> None:
    assert resolve_withdrawal(AssetPool.SECONDARY, free_balance=500, owner=OWNER, amount=500).amount == 500

    with pytest.raises(InsufficientFunds):
        resolve_withdrawal(AssetPool.SECONDARY, free_balance=500, owner=OWNER, amount=501)


@pytest.mark.parametrize("amount", [0, -5])
def test_amount_must_be_positive(amount: int) -> None:
    with pytest.raises(InvalidAmount):
        resolve_withdrawal(AssetPool.NATIVE, free_balance=500, owner=OWNER, amount=amount)


def test_explicit_recipient() -> None:
    plan = resolve_withdrawal(AssetPool.TOKEN, free_balance=500, owner=OWNER, amount=200, recipient=TREASURY)

    assert plan.recipient == TREASURY
    assert plan.amount == 200


def test_zero_address_recipient_is_rejected() -> None:
    with pytest.raises(InvalidDestination):
        resolve_withdrawal(AssetPool.NATIVE, free_balance=500, owner=OWNER, amount=1, recipient=ZERO_ADDRESS)
