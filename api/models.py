"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
All amounts are integers in base units.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from domain.pricing import MAX_DECIMALS


# ============================================================================
# Sale Models
# ============================================================================

class SaleStateResponse(BaseModel):
    """Current sale state."""
    phase: str  # "OPEN" or "CLOSED"
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

    class Config:
        json_schema_extra = {
            "example": {
                "phase": "OPEN",
                "price": 50000000000000000,
                "wallet_cap": 50000000000000000000000,
                "minimum_unit": 1,
                "start_time": "2025-01-01T12:00:00Z",
                "sale_end_time": "2025-02-05T12:00:00Z",
                "unlock_time": "2025-02-05T12:00:00Z",
                "total_vested": 20000000000000000000,
                "available_tokens": 49999980000000000000000000,
                "native_balance": 1000000000000000000,
                "token_balance": 50000000000000000000000000,
                "secondary_balance": 0,
                "has_price_feed": True
            }
        }


class SetPriceRequest(BaseModel):
    """Request to change the token price."""
    price: int = Field(..., description="Payment base units per whole token")


class SetEndTimeRequest(BaseModel):
    """Request to move the sale end time."""
    sale_end_time: datetime


class SetPriceFeedRequest(BaseModel):
    """Request to install a fixed-answer price feed."""
    rate: int
    decimals: int = Field(..., ge=0, le=MAX_DECIMALS)


class FeedRateResponse(BaseModel):
    """Latest price feed answer and the resulting conversion."""
    rate: int
    decimals: int
    tokens_per_secondary_unit: int


# ============================================================================
# Quote Models
# ============================================================================

class QuoteRequest(BaseModel):
    """Request to preview a purchase."""
    native_amount: Optional[int] = Field(None, description="Native base units to pay")
    secondary_amount: Optional[int] = Field(None, description="Secondary amount (see decimals_hint)")
    decimals_hint: int = Field(0, ge=0, le=MAX_DECIMALS, description="Fractional digits implied in secondary_amount")

    @model_validator(mode="after")
    def exactly_one_amount(self) -> "QuoteRequest":
        if (self.native_amount is None) == (self.secondary_amount is None):
            raise ValueError("Provide exactly one of native_amount or secondary_amount")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "native_amount": 1000000000000000000
            }
        }


class QuoteResponse(BaseModel):
    """Non-binding purchase preview."""
    payment_asset: str
    payment_amount: int
    token_amount: int
    price: int
    rate: Optional[int] = None
    rate_decimals: Optional[int] = None
    created_at: datetime
    expires_at: datetime


# ============================================================================
# Purchase Models
# ============================================================================

class NativePurchaseRequest(BaseModel):
    """Request to buy with the native currency."""
    payment_amount: int = Field(..., description="Native base units paid")


class SecondaryPurchaseRequest(BaseModel):
    """Request to buy with the secondary asset."""
    raw_amount: int = Field(..., description="Amount with decimals_hint fractional digits")
    decimals_hint: int = Field(0, ge=0, le=MAX_DECIMALS)

    class Config:
        json_schema_extra = {
            "example": {
                "raw_amount": 2550,
                "decimals_hint": 2
            }
        }


class PurchaseResponse(BaseModel):
    """Response after a purchase."""
    wallet: str
    tokens_purchased: int
    vested_balance: int
    total_vested: int
    message: Optional[str] = None


# ============================================================================
# Vesting Models
# ============================================================================

class VestingBalanceResponse(BaseModel):
    wallet: str
    vested_balance: int
    unlock_time: datetime
    is_unlocked: bool


class ReleaseRequest(BaseModel):
    """Request to release unlocked tokens."""
    amount: int
    destination: Optional[str] = Field(None, description="Defaults to the calling wallet")


class ReleaseResponse(BaseModel):
    wallet: str
    destination: str
    amount: int
    vested_balance: int


# ============================================================================
# Withdrawal Models
# ============================================================================

class WithdrawalRequest(BaseModel):
    """Owner withdrawal; omit amount to withdraw the whole free balance."""
    amount: Optional[int] = None
    to: Optional[str] = Field(None, description="Defaults to the calling owner")


class WithdrawalResponse(BaseModel):
    pool: str
    amount: int
    recipient: str
    free_balance_before: int

