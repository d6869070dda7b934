"""
Pricing service for converting payments into sale-token amounts.

Holds the owner-controlled fixed price and the current price feed. The
feed is queried on every secondary-asset conversion (never cached), so a
feed swapped at runtime takes effect on the next quote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from domain.collaborators import PriceFeed
from domain.errors import InvalidConfiguration
from domain.pricing import (
    FeedRate,
    normalize_amount,
    require_valid_price,
    tokens_for_payment,
    tokens_for_secondary,
)
from domain.time import require_utc_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SecondaryQuote:
    """Conversion of a secondary-asset payment."""
    amount: int  # secondary-asset base units pulled from the payer
    tokens: int
    rate: FeedRate


class PriceEngine:
    """
    Fixed price plus feed-derived conversion for the secondary asset.

    Not thread-safe on its own; the sale calls it under its lock.
    """

    def __init__(
        self,
        price: int,
        *,
        token_decimals: int,
        secondary_decimals: int,
        feed: Optional[PriceFeed] = None,
    ) -> None:
        require_valid_price(price)
        self._price = price
        self._token_decimals = token_decimals
        self._secondary_decimals = secondary_decimals
        self._feed = feed

    @property
    def price(self) -> int:
        return self._price

    @property
    def feed(self) -> Optional[PriceFeed]:
        return self._feed

    @property
    def token_decimals(self) -> int:
        return self._token_decimals

    def set_price(self, new_price: int) -> None:
        require_valid_price(new_price)
        self._price = new_price

    def set_price_feed(self, feed: PriceFeed) -> None:
        if feed is None:
            raise InvalidConfiguration("Price feed must not be empty")
        self._feed = feed

    def latest_rate(self) -> FeedRate:
        if self._feed is None:
            raise InvalidConfiguration("No price feed configured for secondary-asset purchases")
        answer = self._feed.latest_rate()
        if isinstance(answer, FeedRate):
            return answer
        # Feeds may answer with a plain (rate, decimals) pair.
        rate, decimals = answer
        return FeedRate(rate=int(rate), decimals=int(decimals))

    def quote_native(self, payment_amount: int) -> int:
        return tokens_for_payment(payment_amount, self._price, self._token_decimals)

    def quote_secondary(self, raw_amount: int, decimals_hint: int) -> SecondaryQuote:
        """
        Convert `raw_amount` (with `decimals_hint` fractional digits) of the
        secondary asset into sale-token units at the latest feed rate.

        Raises:
            InvalidAmount: raw_amount is zero.
            InvalidConfiguration: no feed, or the feed answered a rate <= 0.
        """

        amount = normalize_amount(raw_amount, decimals_hint, self._secondary_decimals)
        rate = self.latest_rate()
        tokens = tokens_for_secondary(amount, rate, self._price, self._token_decimals)
        return SecondaryQuote(amount=amount, tokens=tokens, rate=rate)

    def tokens_per_secondary_unit(self) -> int:
        """Sale-token units bought by one whole unit of the secondary asset."""
        return self.quote_secondary(1, 0).tokens


@dataclass(frozen=True, slots=True)
class PurchaseQuote:
    """
    Non-binding purchase preview.

    Quotes are informational: the purchase itself re-prices against the
    state at execution time.
    """
    payment_asset: str  # "native" or "secondary"
    payment_amount: int
    token_amount: int
    price: int
    rate: Optional[FeedRate]
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


def calculate_purchase_quote(
    engine: PriceEngine,
    *,
    now: datetime,
    native_amount: Optional[int] = None,
    secondary_amount: Optional[int] = None,
    decimals_hint: int = 0,
    quote_validity_minutes: int = 15,
) -> PurchaseQuote:
    """
    Preview how many tokens a payment would buy.

    Exactly one of `native_amount` or `secondary_amount` must be given.

    Example:
        quote = calculate_purchase_quote(engine, now=now, native_amount=10**18)
        quote.token_amount  # 20 * 10**18 at a price of 0.05
    """
    require_utc_timestamp("now", now)
    if (native_amount is None) == (secondary_amount is None):
        raise ValueError("Provide exactly one of native_amount or secondary_amount")

    expires_at = now + timedelta(minutes=quote_validity_minutes)

    if native_amount is not None:
        return PurchaseQuote(
            payment_asset="native",
            payment_amount=native_amount,
            token_amount=engine.quote_native(native_amount),
            price=engine.price,
            rate=None,
            created_at=now,
            expires_at=expires_at,
        )

    secondary = engine.quote_secondary(secondary_amount, decimals_hint)  # type: ignore[arg-type]
    return PurchaseQuote(
        payment_asset="secondary",
        payment_amount=secondary.amount,
        token_amount=secondary.tokens,
        price=engine.price,
        rate=secondary.rate,
        created_at=now,
        expires_at=expires_at,
    )


__all__ = [
    "PriceEngine",
    "PurchaseQuote",
    "SecondaryQuote",
    "calculate_purchase_quote",
]
