"""
Tests for `services/sale_service.py`.

Covers rules:
- Purchases are admitted strictly before the sale end time.
- Native and secondary purchases convert by floor and lock tokens per wallet.
- Wallet cap, minimum unit and available inventory gate every purchase.
- A rejected purchase changes nothing (ledger, balances, events).
- Releases need the unlock time, a non-zero destination and enough claim;
  a failed transfer restores the claim.
- Withdrawals are owner-only and never touch tokens owed to buyers.
- Owner configuration: price, end time (minimum notice), price feed.
"""

from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from conftest import (
    BUYER_1,
    BUYER_2,
    BUYER_3,
    NATIVE,
    OWNER,
    SALE_ADDRESS,
    SALE_SUPPLY,
    STRANGER,
    TOKEN,
)
from domain.errors import (
    InsufficientAllowance,
    InsufficientClaim,
    InsufficientFunds,
    InsufficientInventory,
    InvalidAmount,
    InvalidConfiguration,
    InvalidDestination,
    InvalidSchedule,
    LockedPeriodActive,
    NoFunds,
    SaleClosed,
    Unauthorized,
    WalletLimitExceeded,
)
from domain.events import SaleEventKind
from domain.schedule import SalePhase
from domain.wallet import ZERO_ADDRESS
from repositories.memory import AccountDenied, StaticPriceFeed


def _assert_ledger_consistent(sale, wallets) -> None:
    assert sale.total_vested == sum(sale.vested_balance_of(w) for w in wallets)
    for wallet in wallets:
        assert sale.vested_balance_of(wallet) <= sale.wallet_cap
    assert sale.available_tokens() == sale.token_balance() - sale.total_vested


# ----------------------------------------------------------------------------
# Native purchases
# ----------------------------------------------------------------------------

def test_native_purchase_vests_tokens_at_fixed_price(sale, native) -> None:
    """1.0 native unit at 0.05 buys 20 tokens; a second purchase accumulates to 40."""

    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 20 * TOKEN
    assert sale.vested_balance_of(BUYER_1) == 20 * TOKEN
    assert sale.total_vested == 20 * TOKEN

    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 20 * TOKEN
    assert sale.vested_balance_of(BUYER_1) == 40 * TOKEN
    assert sale.total_vested == 40 * TOKEN

    assert sale.native_balance() == 2 * NATIVE
    assert native.balance_of(BUYER_1) == 998 * NATIVE
    # Tokens stay with the sale until released
    assert sale.token_balance() == SALE_SUPPLY * TOKEN
    assert sale.available_tokens() == SALE_SUPPLY * TOKEN - 40 * TOKEN


def test_wallet_cap_rejects_purchase_past_limit(sale) -> None:
    """At 1 native = 10,000 tokens: 4 native succeeds, 1.000000001 more exceeds the cap."""

    sale.set_price(OWNER, 10**14)

    assert sale.buy_with_native(BUYER_1, 4 * NATIVE) == 40_000 * TOKEN

    with pytest.raises(WalletLimitExceeded):
        sale.buy_with_native(BUYER_1, 1_000_000_001 * 10**9)

    assert sale.vested_balance_of(BUYER_1) == 40_000 * TOKEN
    assert sale.total_vested == 40_000 * TOKEN
    assert sale.native_balance() == 4 * NATIVE

    # Exactly up to the cap is still allowed, and another wallet is unaffected
    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 10_000 * TOKEN
    assert sale.vested_balance_of(BUYER_1) == sale.wallet_cap
    assert sale.buy_with_native(BUYER_2, 1 * NATIVE) == 10_000 * TOKEN


def test_native_purchase_truncates_dust(sale) -> None:
    """A payment worth a fraction of a token unit keeps the remainder."""

    sale.set_price(OWNER, 3 * 10**18)

    tokens = sale.buy_with_native(BUYER_1, 10**18)

    assert tokens == 10**18 // 3
    assert sale.native_balance() == 10**18


def test_zero_payment_is_invalid(sale) -> None:
    with pytest.raises(InvalidAmount):
        sale.buy_with_native(BUYER_1, 0)

    assert sale.total_vested == 0


def test_payment_above_payer_balance_is_rejected(sale, native) -> None:
    with pytest.raises(InsufficientFunds):
        sale.buy_with_native(STRANGER, 1 * NATIVE)

    assert sale.vested_balance_of(STRANGER) == 0
    assert sale.native_balance() == 0


def test_purchase_beyond_inventory_is_rejected(settings, secondary, native, feed, clock, events) -> None:
    from repositories.memory import InMemoryFungibleAsset, StaticAccessControl
    from services.sale_service import TokenSale

    small_token = InMemoryFungibleAsset("SGR", decimals=18)
    small_token.mint(SALE_ADDRESS, 30 * TOKEN)
    sale = TokenSale.from_settings(
        settings,
        token=small_token,
        secondary=secondary,
        native=native,
        access=StaticAccessControl([OWNER]),
        feed=feed,
        clock=clock,
        events=events,
    )

    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 20 * TOKEN
    assert sale.available_tokens() == 10 * TOKEN

    with pytest.raises(InsufficientInventory):
        sale.buy_with_native(BUYER_2, 1 * NATIVE)

    assert sale.vested_balance_of(BUYER_2) == 0
    assert native.balance_of(BUYER_2) == 1_000 * NATIVE

    # Exactly the remaining inventory still sells
    assert sale.buy_with_native(BUYER_2, NATIVE // 2) == 10 * TOKEN
    assert sale.available_tokens() == 0


# ----------------------------------------------------------------------------
# Sale window
# ----------------------------------------------------------------------------

def test_purchases_accepted_strictly_before_end_time(sale, clock) -> None:
    clock.now = sale.sale_end_time - timedelta(seconds=1)
    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 20 * TOKEN
    assert sale.phase() is SalePhase.OPEN

    clock.now = sale.sale_end_time
    assert sale.is_open() is False
    assert sale.phase() is SalePhase.CLOSED

    with pytest.raises(SaleClosed):
        sale.buy_with_native(BUYER_1, 1 * NATIVE)

    with pytest.raises(SaleClosed):
        sale.buy_with_secondary(BUYER_1, 1, 0)


def test_set_sale_end_time_enforces_minimum_notice(sale, clock) -> None:
    now = clock()

    with pytest.raises(InvalidSchedule):
        sale.set_sale_end_time(OWNER, now + timedelta(seconds=590))

    sale.set_sale_end_time(OWNER, now + timedelta(seconds=660))
    assert sale.sale_end_time == now + timedelta(seconds=660)

    clock.advance(timedelta(seconds=660))
    with pytest.raises(SaleClosed):
        sale.buy_with_native(BUYER_1, 1 * NATIVE)

    # No reopening once closed
    with pytest.raises(InvalidSchedule):
        sale.set_sale_end_time(OWNER, clock() + timedelta(days=1))


def test_only_owner_sets_end_time(sale, clock) -> None:
    with pytest.raises(Unauthorized):
        sale.set_sale_end_time(STRANGER, clock() + timedelta(days=1))


# ----------------------------------------------------------------------------
# Secondary-asset purchases
# ----------------------------------------------------------------------------

def test_secondary_purchase_converts_at_feed_rate(sale, secondary) -> None:
    sale.set_price(OWNER, 160 * 10**18)
    secondary.mint(BUYER_1, 1_000 * 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 160 * 10**18)

    tokens = sale.buy_with_secondary(BUYER_1, 160, 0)

    assert tokens == 3_456 * TOKEN
    assert sale.vested_balance_of(BUYER_1) == 3_456 * TOKEN
    assert sale.secondary_balance() == 160 * 10**18
    assert secondary.balance_of(BUYER_1) == 840 * 10**18
    assert secondary.allowance(BUYER_1, SALE_ADDRESS) == 0


def test_secondary_purchase_honours_decimals_hint(sale, secondary) -> None:
    sale.set_price(OWNER, 160 * 10**18)
    secondary.mint(BUYER_1, 1_000 * 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 10**21)

    # 1.60 units with two implied decimals
    tokens = sale.buy_with_secondary(BUYER_1, 160, 2)

    assert tokens == 3_456 * TOKEN // 100
    assert sale.secondary_balance() == 16 * 10**17


def test_secondary_zero_amount_is_invalid(sale) -> None:
    with pytest.raises(InvalidAmount):
        sale.buy_with_secondary(BUYER_1, 0, 0)


def test_oversized_decimals_hint_is_rejected_without_state_change(sale, secondary) -> None:
    secondary.mint(BUYER_1, 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 10**18)

    with pytest.raises(InvalidAmount):
        sale.buy_with_secondary(BUYER_1, 1, 10**8)

    assert sale.total_vested == 0
    assert secondary.balance_of(BUYER_1) == 10**18


def test_secondary_purchase_without_allowance_is_rejected(sale, secondary) -> None:
    sale.set_price(OWNER, 160 * 10**18)
    secondary.mint(BUYER_1, 1_000 * 10**18)

    with pytest.raises(InsufficientAllowance):
        sale.buy_with_secondary(BUYER_1, 160, 0)

    assert sale.vested_balance_of(BUYER_1) == 0
    assert secondary.balance_of(BUYER_1) == 1_000 * 10**18


def test_secondary_purchase_without_balance_is_rejected(sale, secondary) -> None:
    sale.set_price(OWNER, 160 * 10**18)
    secondary.mint(BUYER_1, 100 * 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 160 * 10**18)

    with pytest.raises(InsufficientFunds):
        sale.buy_with_secondary(BUYER_1, 160, 0)

    assert sale.total_vested == 0


def test_secondary_purchase_without_feed_is_rejected(settings, token, secondary, native, clock) -> None:
    from repositories.memory import StaticAccessControl
    from services.sale_service import TokenSale

    sale = TokenSale.from_settings(
        settings,
        token=token,
        secondary=secondary,
        native=native,
        access=StaticAccessControl([OWNER]),
        clock=clock,
    )

    with pytest.raises(InvalidConfiguration):
        sale.buy_with_secondary(BUYER_1, 1, 0)

    sale.set_price_feed(OWNER, StaticPriceFeed(rate=10**8, decimals=8))
    assert sale.secondary_rate() == 20 * TOKEN


def test_feed_failure_propagates_without_state_change(sale, feed, secondary) -> None:
    secondary.mint(BUYER_1, 10**21)
    secondary.approve(BUYER_1, SALE_ADDRESS, 10**21)
    feed.fail_with(TimeoutError("feed unavailable"))

    with pytest.raises(TimeoutError):
        sale.buy_with_secondary(BUYER_1, 1, 0)

    assert sale.total_vested == 0
    assert sale.secondary_balance() == 0


def test_price_feed_swap_changes_rate(sale) -> None:
    before = sale.secondary_rate()

    sale.set_price_feed(OWNER, StaticPriceFeed(rate=2 * 3_456_000_000, decimals=6))

    assert sale.secondary_rate() == 2 * before
    assert sale.feed_rate().rate == 2 * 3_456_000_000


def test_only_owner_sets_price_feed(sale) -> None:
    with pytest.raises(Unauthorized):
        sale.set_price_feed(STRANGER, StaticPriceFeed(rate=1, decimals=0))

    with pytest.raises(InvalidConfiguration):
        sale.set_price_feed(OWNER, None)


# ----------------------------------------------------------------------------
# Price configuration
# ----------------------------------------------------------------------------

def test_set_price_is_owner_only_and_non_zero(sale) -> None:
    with pytest.raises(Unauthorized):
        sale.set_price(STRANGER, 10**16)

    with pytest.raises(InvalidConfiguration):
        sale.set_price(OWNER, 0)

    assert sale.price == 5 * 10**16

    sale.set_price(OWNER, 10**16)
    assert sale.price == 10**16
    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 100 * TOKEN


def test_quote_reads_current_price_and_sale_clock(sale, clock) -> None:
    """Quotes use the sale clock and match what a purchase would vest."""

    clock.advance(timedelta(hours=1))
    sale.set_price(OWNER, 10**16)

    quote = sale.quote(native_amount=1 * NATIVE)

    assert quote.price == 10**16
    assert quote.token_amount == 100 * TOKEN
    assert quote.created_at == clock.now
    assert quote.expires_at == clock.now + timedelta(minutes=15)
    assert sale.total_vested == 0

    secondary = sale.quote(secondary_amount=1, decimals_hint=1)
    assert secondary.payment_amount == 10**17
    assert secondary.rate.rate == 3_456_000_000
    assert secondary.token_amount == 34_560 * TOKEN


# ----------------------------------------------------------------------------
# Vesting release
# ----------------------------------------------------------------------------

def test_release_rejected_before_unlock_time(sale, clock) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time - timedelta(seconds=1)

    with pytest.raises(LockedPeriodActive):
        sale.release(BUYER_1, 1)

    with pytest.raises(LockedPeriodActive):
        sale.release(BUYER_1, 0)


def test_release_at_unlock_time_transfers_tokens(sale, clock, token) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    sale.release(BUYER_1, 5 * TOKEN)

    assert token.balance_of(BUYER_1) == 5 * TOKEN
    assert sale.vested_balance_of(BUYER_1) == 15 * TOKEN
    assert sale.total_vested == 15 * TOKEN
    assert sale.token_balance() == SALE_SUPPLY * TOKEN - 5 * TOKEN

    sale.release(BUYER_1, 15 * TOKEN)
    assert sale.vested_balance_of(BUYER_1) == 0
    assert sale.total_vested == 0


def test_release_to_destination(sale, clock, token) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    sale.release_to(BUYER_1, BUYER_3, 20 * TOKEN)

    assert token.balance_of(BUYER_3) == 20 * TOKEN
    assert token.balance_of(BUYER_1) == 0
    assert sale.vested_balance_of(BUYER_1) == 0


def test_release_to_zero_address_is_rejected(sale, clock) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    with pytest.raises(InvalidDestination):
        sale.release_to(BUYER_1, ZERO_ADDRESS, 1 * TOKEN)

    assert sale.vested_balance_of(BUYER_1) == 20 * TOKEN


def test_release_above_claim_is_rejected(sale, clock) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    with pytest.raises(InsufficientClaim):
        sale.release(BUYER_1, 20 * TOKEN + 1)

    with pytest.raises(InsufficientClaim):
        sale.release(BUYER_2, 1)


def test_failed_release_transfer_restores_claim(sale, clock, token) -> None:
    """A denylisted destination fails the transfer; the claim is kept."""

    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time
    token.deny(BUYER_3)

    with pytest.raises(AccountDenied):
        sale.release_to(BUYER_1, BUYER_3, 10 * TOKEN)

    assert sale.vested_balance_of(BUYER_1) == 20 * TOKEN
    assert sale.total_vested == 20 * TOKEN
    assert token.balance_of(BUYER_3) == 0


def test_zero_release_after_unlock_is_a_no_op(sale, clock, token, events) -> None:
    """Releasing zero is accepted once unlocked and moves nothing."""

    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    sale.release(BUYER_1, 0)
    sale.release_to(BUYER_2, BUYER_3, 0)

    assert sale.vested_balance_of(BUYER_1) == 20 * TOKEN
    assert sale.total_vested == 20 * TOKEN
    assert token.balance_of(BUYER_1) == 0
    assert token.balance_of(BUYER_3) == 0
    assert events.list_events(SaleEventKind.TOKENS_RELEASED) == []


def test_negative_release_is_invalid(sale, clock) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.unlock_time

    with pytest.raises(InvalidAmount):
        sale.release(BUYER_1, -1)

    assert sale.vested_balance_of(BUYER_1) == 20 * TOKEN


def test_failed_secondary_pull_rolls_back_purchase(sale, secondary, events) -> None:
    """All checks pass but the asset refuses the transfer; nothing is vested."""

    secondary.mint(BUYER_1, 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 10**18)
    secondary.deny(SALE_ADDRESS)

    with pytest.raises(AccountDenied):
        sale.buy_with_secondary(BUYER_1, 1, 1)

    assert sale.total_vested == 0
    assert sale.vested_balance_of(BUYER_1) == 0
    assert secondary.balance_of(BUYER_1) == 10**18
    assert secondary.allowance(BUYER_1, SALE_ADDRESS) == 10**18
    assert events.list_events(SaleEventKind.TOKENS_PURCHASED) == []

    secondary.allow(SALE_ADDRESS)
    assert sale.buy_with_secondary(BUYER_1, 1, 1) == 6_912 * TOKEN


def test_failed_native_pull_rolls_back_purchase(sale, native, events, monkeypatch) -> None:
    """The native transfer error reaches the caller unchanged."""

    failure = ConnectionError("native ledger unavailable")

    def refuse(sender: str, recipient: str, amount: int) -> None:
        raise failure

    monkeypatch.setattr(native, "transfer", refuse)

    with pytest.raises(ConnectionError) as excinfo:
        sale.buy_with_native(BUYER_1, 1 * NATIVE)

    assert excinfo.value is failure
    assert sale.total_vested == 0
    assert sale.vested_balance_of(BUYER_1) == 0
    assert sale.available_tokens() == SALE_SUPPLY * TOKEN
    assert native.balance_of(BUYER_1) == 1_000 * NATIVE
    assert events.list_events(SaleEventKind.TOKENS_PURCHASED) == []


def test_release_still_available_after_sale_closes(sale, clock, token) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = max(sale.unlock_time, sale.sale_end_time) + timedelta(days=365)

    sale.release(BUYER_1, 20 * TOKEN)

    assert token.balance_of(BUYER_1) == 20 * TOKEN


# ----------------------------------------------------------------------------
# Withdrawals
# ----------------------------------------------------------------------------

def test_withdrawals_are_owner_only_before_other_checks(sale) -> None:
    with pytest.raises(Unauthorized):
        sale.withdraw_native(STRANGER)

    with pytest.raises(Unauthorized):
        sale.withdraw_token(STRANGER, 10**30, ZERO_ADDRESS)

    with pytest.raises(Unauthorized):
        sale.withdraw_secondary(BUYER_1, 1)


def test_withdraw_all_native_to_owner(sale, native) -> None:
    sale.buy_with_native(BUYER_1, 2 * NATIVE)

    plan = sale.withdraw_native(OWNER)

    assert plan.amount == 2 * NATIVE
    assert native.balance_of(OWNER) == 2 * NATIVE
    assert sale.native_balance() == 0

    with pytest.raises(NoFunds):
        sale.withdraw_native(OWNER)

    # Buyer claims are untouched
    assert sale.vested_balance_of(BUYER_1) == 40 * TOKEN


def test_withdraw_native_amount_and_recipient(sale, native) -> None:
    sale.buy_with_native(BUYER_1, 2 * NATIVE)

    with pytest.raises(InsufficientFunds):
        sale.withdraw_native(OWNER, 2 * NATIVE + 1)

    with pytest.raises(InvalidDestination):
        sale.withdraw_native(OWNER, NATIVE, ZERO_ADDRESS)

    sale.withdraw_native(OWNER, NATIVE // 2)
    sale.withdraw_native(OWNER, NATIVE // 2, BUYER_3)

    assert native.balance_of(OWNER) == NATIVE // 2
    assert native.balance_of(BUYER_3) == 1_000 * NATIVE + NATIVE // 2
    assert sale.native_balance() == NATIVE


def test_token_withdrawal_never_touches_vested_claims(sale, clock, token) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    sale.buy_with_native(BUYER_2, 3 * NATIVE)
    owed = 80 * TOKEN

    with pytest.raises(InsufficientFunds):
        sale.withdraw_token(OWNER, SALE_SUPPLY * TOKEN - owed + 1)

    plan = sale.withdraw_token(OWNER)

    assert plan.amount == SALE_SUPPLY * TOKEN - owed
    assert token.balance_of(OWNER) == SALE_SUPPLY * TOKEN - owed
    assert sale.token_balance() == owed
    assert sale.available_tokens() == 0

    with pytest.raises(NoFunds):
        sale.withdraw_token(OWNER)

    with pytest.raises(InsufficientInventory):
        sale.buy_with_native(BUYER_3, 1 * NATIVE)

    clock.now = sale.unlock_time
    sale.release(BUYER_1, 20 * TOKEN)
    sale.release(BUYER_2, 60 * TOKEN)
    assert sale.token_balance() == 0
    assert sale.total_vested == 0


def test_withdraw_secondary(sale, secondary) -> None:
    with pytest.raises(NoFunds):
        sale.withdraw_secondary(OWNER)

    sale.set_price(OWNER, 160 * 10**18)
    secondary.mint(BUYER_1, 320 * 10**18)
    secondary.approve(BUYER_1, SALE_ADDRESS, 320 * 10**18)
    sale.buy_with_secondary(BUYER_1, 320, 0)

    sale.withdraw_secondary(OWNER, 20 * 10**18, BUYER_3)
    sale.withdraw_secondary(OWNER)

    assert secondary.balance_of(BUYER_3) == 20 * 10**18
    assert secondary.balance_of(OWNER) == 300 * 10**18
    assert sale.secondary_balance() == 0


def test_withdrawals_available_after_close(sale, clock, native) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    clock.now = sale.sale_end_time + timedelta(days=30)

    sale.withdraw_native(OWNER)

    assert native.balance_of(OWNER) == 1 * NATIVE


# ----------------------------------------------------------------------------
# Events, snapshot and consistency
# ----------------------------------------------------------------------------

def test_committed_operations_emit_events(sale, clock, events) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)
    sale.set_price(OWNER, 10**17)
    with pytest.raises(WalletLimitExceeded):
        sale.buy_with_native(BUYER_1, 10**6 * NATIVE)
    clock.now = sale.unlock_time
    sale.release(BUYER_1, 1 * TOKEN)
    sale.withdraw_native(OWNER)

    kinds = [e.kind for e in events.list_events()]
    assert kinds == [
        SaleEventKind.TOKENS_PURCHASED,
        SaleEventKind.PRICE_CHANGED,
        SaleEventKind.TOKENS_RELEASED,
        SaleEventKind.FUNDS_WITHDRAWN,
    ]
    purchase = events.list_events(SaleEventKind.TOKENS_PURCHASED)[0]
    assert purchase.wallet == BUYER_1
    assert purchase.amount == 20 * TOKEN
    assert purchase.details["payment_amount"] == NATIVE


def test_event_sink_failure_does_not_undo_committed_purchase(settings, token, secondary, native, clock) -> None:
    from repositories.memory import StaticAccessControl
    from services.sale_service import TokenSale

    class BrokenSink:
        def record(self, event):
            raise RuntimeError("sink down")

    sale = TokenSale.from_settings(
        settings,
        token=token,
        secondary=secondary,
        native=native,
        access=StaticAccessControl([OWNER]),
        clock=clock,
        events=BrokenSink(),
    )

    assert sale.buy_with_native(BUYER_1, 1 * NATIVE) == 20 * TOKEN
    assert sale.total_vested == 20 * TOKEN


def test_snapshot_reports_consistent_state(sale, clock) -> None:
    sale.buy_with_native(BUYER_1, 1 * NATIVE)

    snapshot = sale.snapshot()

    assert snapshot.phase is SalePhase.OPEN
    assert snapshot.as_of == clock()
    assert snapshot.total_vested == 20 * TOKEN
    assert snapshot.available_tokens == snapshot.token_balance - snapshot.total_vested
    assert snapshot.native_balance == 1 * NATIVE
    assert snapshot.sale_end_time == clock() + timedelta(weeks=5)
    assert snapshot.has_price_feed is True


def test_concurrent_purchases_never_break_invariants(sale) -> None:
    """Interleaved purchases from many threads keep the ledger consistent."""

    sale.set_price(OWNER, 10**14)  # 1 native = 10,000 tokens, cap is 5 native
    wallets = [BUYER_1, BUYER_2, BUYER_3]
    errors: list[Exception] = []

    def buyer(wallet: str) -> None:
        for _ in range(8):
            try:
                sale.buy_with_native(wallet, NATIVE)
            except WalletLimitExceeded as e:
                errors.append(e)

    threads = [threading.Thread(target=buyer, args=(w,)) for w in wallets for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    _assert_ledger_consistent(sale, wallets)
    for wallet in wallets:
        assert sale.vested_balance_of(wallet) == sale.wallet_cap
    assert len(errors) == len(wallets) * (16 - 5)
    assert sale.native_balance() == len(wallets) * 5 * NATIVE
