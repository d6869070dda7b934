"""
Domain: Price conversion math (pure).

Every conversion truncates toward zero. A buyer receives the floor of the
exact token amount and any remainder of the payment stays with the sale;
there is no fractional refund.

Units:
- price: payment base units per one whole sale token.
- token amounts: sale-token base units (10**token_decimals per token).
- feed rate: integer `rate` with `decimals` implied fractional digits.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidAmount, InvalidConfiguration

# Largest decimal exponent accepted from callers or feeds.
MAX_DECIMALS = 77


@dataclass(frozen=True, slots=True)
class FeedRate:
    """Latest answer from a price feed."""

    rate: int
    decimals: int

    def __post_init__(self) -> None:
        if self.decimals < 0:
            raise InvalidConfiguration("Price feed decimals must be >= 0")
        if self.decimals > MAX_DECIMALS:
            raise InvalidConfiguration(f"Price feed decimals must be <= {MAX_DECIMALS}")
        if self.rate <= 0:
            raise InvalidConfiguration(f"Price feed returned a non-positive rate: {self.rate}")


def require_valid_price(price: int) -> None:
    if price <= 0:
        raise InvalidConfiguration("Price must be greater than zero")


def tokens_for_payment(payment: int, price: int, token_decimals: int) -> int:
    """
    Sale-token units bought by `payment` at `price`.

    Example:
        tokens_for_payment(10**18, 5 * 10**16, 18)
        # 20 * 10**18 (1.0 native unit at 0.05 per token)
    """

    require_valid_price(price)
    if payment < 0:
        raise InvalidAmount("Payment amount must not be negative")
    return payment * 10**token_decimals // price


def normalize_amount(raw_amount: int, decimals_hint: int, asset_decimals: int) -> int:
    """
    Convert `raw_amount` with `decimals_hint` implied fractional digits into
    base units of an asset with `asset_decimals` decimals.

    normalize_amount(25, 1, 6) -> 2_500_000 (2.5 units of a 6-decimal asset)
    """

    if raw_amount <= 0:
        raise InvalidAmount("Amount must be greater than zero")
    if decimals_hint < 0:
        raise InvalidAmount("Decimals hint must be >= 0")
    if decimals_hint > MAX_DECIMALS:
        raise InvalidAmount(f"Decimals hint must be <= {MAX_DECIMALS}")
    return raw_amount * 10**asset_decimals // 10**decimals_hint


def tokens_for_secondary(amount: int, rate: FeedRate, price: int, token_decimals: int) -> int:
    """Sale-token units bought by `amount` secondary base units at the feed rate."""

    require_valid_price(price)
    return amount * rate.rate * 10**token_decimals // (price * 10**rate.decimals)


__all__ = [
    "FeedRate",
    "MAX_DECIMALS",
    "normalize_amount",
    "require_valid_price",
    "tokens_for_payment",
    "tokens_for_secondary",
]
