"""
Sale service: the token sale and vesting engine.

Handles:
- Purchases paid in the native currency or in the secondary asset
- Vested, time-locked claims per wallet with a per-wallet cap
- Release of unlocked claims to the buyer or another destination
- Owner withdrawals from the native, sale-token and secondary pools
- Owner configuration: price, sale end time, price feed

Every state-changing operation runs under one lock per sale and is
all-or-nothing. Ledger changes are committed before the external transfer
is attempted; if the transfer raises, the change is undone and the
collaborator's exception reaches the caller unchanged.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from domain.collaborators import (
    AccessControl,
    FungibleAsset,
    NativeCurrency,
    PriceFeed,
    SaleEventSink,
)
from domain.errors import (
    InsufficientAllowance,
    InsufficientFunds,
    LockedPeriodActive,
    SaleClosed,
    Unauthorized,
)
from domain.events import SaleEvent, SaleEventKind
from domain.inventory import available_inventory, check_purchase
from domain.pricing import FeedRate
from domain.schedule import SalePhase, SaleSchedule
from domain.time import require_utc_timestamp, utc_now
from domain.vesting import VestingLedger
from domain.wallet import require_destination
from services.pricing_service import PriceEngine, PurchaseQuote, calculate_purchase_quote
from services.withdrawal_service import AssetPool, WithdrawalPlan, resolve_withdrawal

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SaleSnapshot:
    """Consistent read of the sale state at one instant."""
    as_of: datetime
    phase: SalePhase
    price: int
    wallet_cap: int
    minimum_unit: int
    start_time: datetime
    sale_end_time: datetime
    unlock_time: datetime
    total_vested: int
    available_tokens: int
    native_balance: int
    token_balance: int
    secondary_balance: int
    has_price_feed: bool


class TokenSale:
    """
    Time-bounded token sale with vesting.

    Collaborators are injected:
        token: the sale token (FungibleAsset)
        secondary: the stable-value payment asset (FungibleAsset)
        native: the native payment currency
        access: answers "is this caller the owner"
        feed: price feed for secondary-asset conversion (settable later)
        clock: returns the current UTC instant
        events: receives an event for every committed operation
    """

    def __init__(
        self,
        *,
        sale_address: str,
        token: FungibleAsset,
        secondary: FungibleAsset,
        native: NativeCurrency,
        access: AccessControl,
        schedule: SaleSchedule,
        price: int,
        wallet_cap: int,
        minimum_unit: int = 1,
        feed: Optional[PriceFeed] = None,
        clock: Callable[[], datetime] = utc_now,
        events: Optional[SaleEventSink] = None,
    ) -> None:
        require_destination(sale_address)
        if wallet_cap <= 0:
            raise ValueError("wallet_cap must be greater than zero")
        if minimum_unit <= 0:
            raise ValueError("minimum_unit must be greater than zero")

        self._sale_address = sale_address
        self._token = token
        self._secondary = secondary
        self._native = native
        self._access = access
        self._schedule = schedule
        self._pricing = PriceEngine(
            price,
            token_decimals=token.decimals,
            secondary_decimals=secondary.decimals,
            feed=feed,
        )
        self._wallet_cap = wallet_cap
        self._minimum_unit = minimum_unit
        self._clock = clock
        self._events = events
        self._ledger = VestingLedger.empty()
        self._lock = threading.RLock()

    @classmethod
    def from_settings(
        cls,
        settings,
        *,
        token: FungibleAsset,
        secondary: FungibleAsset,
        native: NativeCurrency,
        access: AccessControl,
        feed: Optional[PriceFeed] = None,
        clock: Callable[[], datetime] = utc_now,
        events: Optional[SaleEventSink] = None,
    ) -> "TokenSale":
        """Build a sale that opens now, using a `SaleSettings` instance."""

        created_at = clock()
        schedule = SaleSchedule.open(
            created_at=created_at,
            grace_window=settings.grace_window,
            unlock_time=created_at + settings.unlock_delay,
            minimum_notice=settings.minimum_notice,
        )
        return cls(
            sale_address=settings.sale_address,
            token=token,
            secondary=secondary,
            native=native,
            access=access,
            schedule=schedule,
            price=settings.initial_price,
            wallet_cap=settings.wallet_cap,
            minimum_unit=settings.minimum_unit,
            feed=feed,
            clock=clock,
            events=events,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        now = self._clock()
        require_utc_timestamp("now", now)
        return now

    def _require_owner(self, caller: str, operation: str) -> None:
        if not self._access.is_owner(caller):
            logger.warning(
                f"Rejected privileged call to {operation}",
                extra={"caller": caller, "operation": operation},
            )
            raise Unauthorized(f"{caller} is not allowed to call {operation}")

    def _require_open(self, now: datetime) -> None:
        if not self._schedule.is_open(now):
            raise SaleClosed(f"Sale ended at {self._schedule.end_time.isoformat()}")

    def _available(self) -> int:
        return available_inventory(
            self._token.balance_of(self._sale_address), self._ledger.total_vested
        )

    def _emit(self, event: SaleEvent) -> None:
        if self._events is None:
            return
        try:
            self._events.record(event)
        except Exception:
            # The operation has already committed; report the lost event only.
            logger.exception(
                "Failed to record sale event",
                extra={"event_kind": event.kind.value, "event_id": str(event.event_id)},
            )

    def _admit_purchase(self, payer: str, tokens: int) -> VestingLedger:
        """Inventory then wallet-cap checks; returns the ledger to commit."""

        check_purchase(tokens, self._minimum_unit, self._available())
        return self._ledger.record_purchase(payer, tokens, self._wallet_cap)

    def _commit_purchase(
        self,
        now: datetime,
        payer: str,
        tokens: int,
        ledger: VestingLedger,
        pull_payment: Callable[[], None],
        details: dict,
    ) -> int:
        self._ledger = ledger
        try:
            pull_payment()
        except Exception:
            self._ledger = self._ledger.debit(payer, tokens)
            logger.warning(
                "Purchase payment failed; vested claim rolled back",
                extra={"payer": payer, "tokens": tokens, **details},
            )
            raise

        logger.info(
            f"Sold {tokens} token units to {payer}",
            extra={"payer": payer, "tokens": tokens, "total_vested": self._ledger.total_vested, **details},
        )
        self._emit(
            SaleEvent(
                kind=SaleEventKind.TOKENS_PURCHASED,
                occurred_at=now,
                wallet=payer,
                amount=tokens,
                details=details,
            )
        )
        return tokens

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def buy_with_native(self, payer: str, payment_amount: int) -> int:
        """
        Buy tokens with `payment_amount` native base units.

        Tokens are floor(payment * 10**decimals / price); the remainder of the
        payment is kept. The tokens are locked on the payer's vesting claim.

        Raises:
            SaleClosed, InvalidAmount, InsufficientInventory,
            WalletLimitExceeded, InsufficientFunds
        """

        with self._lock:
            now = self._now()
            self._require_open(now)
            tokens = self._pricing.quote_native(payment_amount)
            ledger = self._admit_purchase(payer, tokens)

            balance = self._native.balance_of(payer)
            if balance < payment_amount:
                raise InsufficientFunds(
                    f"Payer {payer} holds {balance} native units, needs {payment_amount}"
                )

            return self._commit_purchase(
                now,
                payer,
                tokens,
                ledger,
                lambda: self._native.transfer(payer, self._sale_address, payment_amount),
                {"payment_asset": AssetPool.NATIVE.value, "payment_amount": payment_amount},
            )

    def buy_with_secondary(self, payer: str, raw_amount: int, decimals_hint: int = 0) -> int:
        """
        Buy tokens with the secondary asset at the latest feed rate.

        `raw_amount` carries `decimals_hint` implied fractional digits; it is
        normalized to the secondary asset's precision before conversion. The
        payer must have approved the sale for at least that amount.

        Raises:
            SaleClosed, InvalidAmount, InvalidConfiguration,
            InsufficientInventory, WalletLimitExceeded,
            InsufficientAllowance, InsufficientFunds
        """

        with self._lock:
            now = self._now()
            self._require_open(now)
            quote = self._pricing.quote_secondary(raw_amount, decimals_hint)
            ledger = self._admit_purchase(payer, quote.tokens)

            allowance = self._secondary.allowance(payer, self._sale_address)
            if allowance < quote.amount:
                raise InsufficientAllowance(
                    f"Payer {payer} approved {allowance} secondary units, needs {quote.amount}"
                )
            balance = self._secondary.balance_of(payer)
            if balance < quote.amount:
                raise InsufficientFunds(
                    f"Payer {payer} holds {balance} secondary units, needs {quote.amount}"
                )

            return self._commit_purchase(
                now,
                payer,
                quote.tokens,
                ledger,
                lambda: self._secondary.transfer_from(
                    self._sale_address, payer, self._sale_address, quote.amount
                ),
                {
                    "payment_asset": AssetPool.SECONDARY.value,
                    "payment_amount": quote.amount,
                    "rate": quote.rate.rate,
                    "rate_decimals": quote.rate.decimals,
                },
            )

    # ------------------------------------------------------------------
    # Vesting release
    # ------------------------------------------------------------------

    def release(self, wallet: str, amount: int) -> None:
        """Release `amount` unlocked tokens from `wallet`'s claim to itself."""
        self.release_to(wallet, wallet, amount)

    def release_to(self, wallet: str, destination: str, amount: int) -> None:
        """
        Release `amount` unlocked tokens from `wallet`'s claim to `destination`.

        Raises:
            LockedPeriodActive: now < unlock_time
            InvalidDestination: destination is the zero address
            InsufficientClaim: amount exceeds the locked balance

        Releasing zero passes the same checks and changes nothing.
        """

        with self._lock:
            now = self._now()
            if not self._schedule.is_unlocked(now):
                raise LockedPeriodActive(
                    f"Tokens unlock at {self._schedule.unlock_time.isoformat()}"
                )
            require_destination(destination)
            if amount == 0:
                return

            self._ledger = self._ledger.release(wallet, amount)
            try:
                self._token.transfer(self._sale_address, destination, amount)
            except Exception:
                self._ledger = self._ledger.credit(wallet, amount)
                logger.warning(
                    "Token release transfer failed; vested claim restored",
                    extra={"wallet": wallet, "destination": destination, "amount": amount},
                )
                raise

            logger.info(
                f"Released {amount} token units from {wallet} to {destination}",
                extra={"wallet": wallet, "destination": destination, "amount": amount},
            )
            self._emit(
                SaleEvent(
                    kind=SaleEventKind.TOKENS_RELEASED,
                    occurred_at=now,
                    wallet=wallet,
                    amount=amount,
                    details={"destination": destination},
                )
            )

    # ------------------------------------------------------------------
    # Owner withdrawals
    # ------------------------------------------------------------------

    def _pool_asset(self, pool: AssetPool):
        if pool is AssetPool.NATIVE:
            return self._native
        if pool is AssetPool.TOKEN:
            return self._token
        return self._secondary

    def _free_balance(self, pool: AssetPool) -> int:
        if pool is AssetPool.TOKEN:
            return self._available()
        return self._pool_asset(pool).balance_of(self._sale_address)

    def withdraw(
        self,
        pool: AssetPool,
        caller: str,
        amount: Optional[int] = None,
        to: Optional[str] = None,
    ) -> WithdrawalPlan:
        """
        Withdraw from one pool.

        amount=None withdraws the whole free balance; to=None sends to the
        caller (who must be the owner).
        """

        pool = AssetPool(pool)
        with self._lock:
            self._require_owner(caller, f"withdraw_{pool.value}")
            now = self._now()
            plan = resolve_withdrawal(
                pool,
                free_balance=self._free_balance(pool),
                owner=caller,
                amount=amount,
                recipient=to,
            )
            self._pool_asset(pool).transfer(self._sale_address, plan.recipient, plan.amount)

            logger.info(
                f"Withdrew {plan.amount} {pool.value} units to {plan.recipient}",
                extra={
                    "pool": pool.value,
                    "amount": plan.amount,
                    "recipient": plan.recipient,
                    "free_balance": plan.free_balance,
                },
            )
            self._emit(
                SaleEvent(
                    kind=SaleEventKind.FUNDS_WITHDRAWN,
                    occurred_at=now,
                    wallet=plan.recipient,
                    amount=plan.amount,
                    details={"pool": pool.value, "caller": caller},
                )
            )
            return plan

    def withdraw_native(self, caller: str, amount: Optional[int] = None, to: Optional[str] = None) -> WithdrawalPlan:
        return self.withdraw(AssetPool.NATIVE, caller, amount, to)

    def withdraw_token(self, caller: str, amount: Optional[int] = None, to: Optional[str] = None) -> WithdrawalPlan:
        return self.withdraw(AssetPool.TOKEN, caller, amount, to)

    def withdraw_secondary(self, caller: str, amount: Optional[int] = None, to: Optional[str] = None) -> WithdrawalPlan:
        return self.withdraw(AssetPool.SECONDARY, caller, amount, to)

    # ------------------------------------------------------------------
    # Owner configuration
    # ------------------------------------------------------------------

    def set_price(self, caller: str, new_price: int) -> None:
        with self._lock:
            self._require_owner(caller, "set_price")
            now = self._now()
            old_price = self._pricing.price
            self._pricing.set_price(new_price)
            logger.info(
                "Sale price changed",
                extra={"old_price": old_price, "new_price": new_price},
            )
            self._emit(
                SaleEvent(
                    kind=SaleEventKind.PRICE_CHANGED,
                    occurred_at=now,
                    wallet=caller,
                    amount=new_price,
                    details={"old_price": old_price},
                )
            )

    def set_sale_end_time(self, caller: str, new_end_time: datetime) -> None:
        """Move the sale end time; it must be at least the minimum notice away."""

        with self._lock:
            self._require_owner(caller, "set_sale_end_time")
            now = self._now()
            old_end_time = self._schedule.end_time
            self._schedule = self._schedule.with_end_time(now, new_end_time)
            logger.info(
                "Sale end time changed",
                extra={"old_end_time": old_end_time.isoformat(), "new_end_time": new_end_time.isoformat()},
            )
            self._emit(
                SaleEvent(
                    kind=SaleEventKind.SALE_END_TIME_CHANGED,
                    occurred_at=now,
                    wallet=caller,
                    details={
                        "old_end_time": old_end_time.isoformat(),
                        "new_end_time": new_end_time.isoformat(),
                    },
                )
            )

    def set_price_feed(self, caller: str, feed: PriceFeed) -> None:
        with self._lock:
            self._require_owner(caller, "set_price_feed")
            now = self._now()
            self._pricing.set_price_feed(feed)
            logger.info("Price feed changed", extra={"feed": type(feed).__name__})
            self._emit(
                SaleEvent(
                    kind=SaleEventKind.PRICE_FEED_CHANGED,
                    occurred_at=now,
                    wallet=caller,
                    details={"feed": type(feed).__name__},
                )
            )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def sale_address(self) -> str:
        return self._sale_address

    @property
    def price(self) -> int:
        return self._pricing.price

    @property
    def wallet_cap(self) -> int:
        return self._wallet_cap

    @property
    def minimum_unit(self) -> int:
        return self._minimum_unit

    @property
    def start_time(self) -> datetime:
        return self._schedule.start_time

    @property
    def sale_end_time(self) -> datetime:
        return self._schedule.end_time

    @property
    def unlock_time(self) -> datetime:
        return self._schedule.unlock_time

    @property
    def total_vested(self) -> int:
        return self._ledger.total_vested

    def vested_balance_of(self, wallet: str) -> int:
        return self._ledger.balance_of(wallet)

    def is_open(self) -> bool:
        return self._schedule.is_open(self._now())

    def phase(self) -> SalePhase:
        return self._schedule.phase(self._now())

    def is_unlocked(self) -> bool:
        return self._schedule.is_unlocked(self._now())

    def require_owner(self, caller: str, operation: str) -> None:
        """Raise Unauthorized unless `caller` is the owner."""
        self._require_owner(caller, operation)

    def quote(
        self,
        *,
        native_amount: Optional[int] = None,
        secondary_amount: Optional[int] = None,
        decimals_hint: int = 0,
    ) -> PurchaseQuote:
        """Non-binding purchase preview at the current price and feed rate."""

        with self._lock:
            return calculate_purchase_quote(
                self._pricing,
                now=self._now(),
                native_amount=native_amount,
                secondary_amount=secondary_amount,
                decimals_hint=decimals_hint,
            )

    def feed_rate(self) -> FeedRate:
        with self._lock:
            return self._pricing.latest_rate()

    def secondary_rate(self) -> int:
        """Sale-token units one whole secondary unit buys right now."""
        with self._lock:
            return self._pricing.tokens_per_secondary_unit()

    def available_tokens(self) -> int:
        with self._lock:
            return self._available()

    def native_balance(self) -> int:
        return self._native.balance_of(self._sale_address)

    def token_balance(self) -> int:
        return self._token.balance_of(self._sale_address)

    def secondary_balance(self) -> int:
        return self._secondary.balance_of(self._sale_address)

    def snapshot(self) -> SaleSnapshot:
        with self._lock:
            now = self._now()
            schedule = self._schedule
            return SaleSnapshot(
                as_of=now,
                phase=schedule.phase(now),
                price=self._pricing.price,
                wallet_cap=self._wallet_cap,
                minimum_unit=self._minimum_unit,
                start_time=schedule.start_time,
                sale_end_time=schedule.end_time,
                unlock_time=schedule.unlock_time,
                total_vested=self._ledger.total_vested,
                available_tokens=self._available(),
                native_balance=self.native_balance(),
                token_balance=self.token_balance(),
                secondary_balance=self.secondary_balance(),
                has_price_feed=self._pricing.feed is not None,
            )


__all__ = [
    "SaleSnapshot",
    "TokenSale",
]
