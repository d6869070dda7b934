"""
Domain: Sale error taxonomy.

Every rejected precondition raises one of these before any state changes.
Categories mirror how callers react to them:

- Authorization: the caller is not the sale owner.
- Schedule: the operation is not allowed at this instant.
- Validation: an argument is malformed (zero amount, zero address, bad config).
- Capacity: inventory, wallet cap or vested claim is too small.
- Funds: a pool or the payer does not hold enough.

Failures raised by external collaborators (token transfers, price feeds)
are not wrapped and reach the caller with their own type.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base class for every error raised by the sale engine."""


class AuthorizationError(SaleError):
    pass


class ScheduleError(SaleError):
    pass


class ValidationError(SaleError):
    pass


class CapacityError(SaleError):
    pass


class FundsError(SaleError):
    pass


class Unauthorized(AuthorizationError):
    """Raised when a privileged operation is called by a non-owner."""


class SaleClosed(ScheduleError):
    """Raised when a purchase arrives at or after the sale end time."""


class LockedPeriodActive(ScheduleError):
    """Raised when vested tokens are released before the unlock time."""


class InvalidSchedule(ScheduleError):
    """Raised when a new sale end time violates the minimum notice rule."""


class InvalidAmount(ValidationError):
    """Raised for zero amounts and purchases below the minimum unit."""


class InvalidDestination(ValidationError):
    """Raised when a transfer targets the zero address."""


class InvalidConfiguration(ValidationError):
    """Raised for a zero price or a missing/unusable price feed."""


class InsufficientInventory(CapacityError):
    """Raised when a purchase exceeds the tokens available for sale."""


class WalletLimitExceeded(CapacityError):
    """Raised when a purchase would take a wallet above its cap."""


class InsufficientClaim(CapacityError):
    """Raised when a release exceeds the wallet's locked balance."""


class InsufficientFunds(FundsError):
    """Raised when a pool or payer balance is below the requested amount."""


class InsufficientAllowance(FundsError):
    """Raised when the payer has not approved enough secondary asset."""


class NoFunds(FundsError):
    """Raised when a full withdrawal finds an empty pool."""


__all__ = [
    "SaleError",
    "AuthorizationError",
    "ScheduleError",
    "ValidationError",
    "CapacityError",
    "FundsError",
    "Unauthorized",
    "SaleClosed",
    "LockedPeriodActive",
    "InvalidSchedule",
    "InvalidAmount",
    "InvalidDestination",
    "InvalidConfiguration",
    "InsufficientInventory",
    "WalletLimitExceeded",
    "InsufficientClaim",
    "InsufficientFunds",
    "InsufficientAllowance",
    "NoFunds",
]
