"""
Sale deployment settings.

Values come from the environment (optionally a `.env` file next to the
project root) and are validated with pydantic. Every field has the default
used by the reference deployment.

Environment variables (all optional):
- SALE_TOKEN_DECIMALS, SALE_SECONDARY_DECIMALS
- SALE_INITIAL_PRICE: payment base units per whole token
- SALE_WALLET_CAP: token base units per wallet
- SALE_GRACE_WINDOW_SECONDS, SALE_MINIMUM_NOTICE_SECONDS, SALE_UNLOCK_DELAY_SECONDS
- SALE_MINIMUM_UNIT: token base units
- SALE_OWNER_ADDRESS, SALE_ADDRESS
- SALE_EVENT_SINK: "memory" or "supabase"
- SALE_CORS_ORIGINS: comma-separated origins allowed by the API (default "*")
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from domain.wallet import is_zero_address

_ENV_PREFIX = "SALE_"


class SaleSettings(BaseModel):
    """Validated sale configuration."""

    token_decimals: int = Field(default=18, ge=0, le=36, description="Sale token decimals")
    secondary_decimals: int = Field(default=18, ge=0, le=36, description="Secondary asset decimals")
    initial_price: int = Field(default=5 * 10**16, gt=0, description="Payment units per whole token")
    wallet_cap: int = Field(default=50_000 * 10**18, gt=0, description="Max token units per wallet")
    grace_window: timedelta = Field(default=timedelta(weeks=5), description="Initial sale duration")
    minimum_notice: timedelta = Field(default=timedelta(minutes=10), description="End time update notice")
    unlock_delay: timedelta = Field(default=timedelta(weeks=5), description="Creation to unlock")
    minimum_unit: int = Field(default=1, gt=0, description="Smallest purchasable token units")
    owner_address: str = Field(default="0x" + "0" * 39 + "1")
    sale_address: str = Field(default="0x" + "5a1e" * 10)
    event_sink: Literal["memory", "supabase"] = "memory"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Origins allowed by the API")

    @field_validator("grace_window", "minimum_notice", "unlock_delay")
    @classmethod
    def validate_duration(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("durations must not be negative")
        return v

    @model_validator(mode="after")
    def validate_addresses(self) -> "SaleSettings":
        if is_zero_address(self.owner_address) or is_zero_address(self.sale_address):
            raise ValueError("owner_address and sale_address must not be the zero address")
        if self.owner_address == self.sale_address:
            raise ValueError("owner_address and sale_address must differ")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SaleSettings":
        env = os.environ if environ is None else environ
        data: dict[str, object] = {}

        for name in (
            "token_decimals",
            "secondary_decimals",
            "initial_price",
            "wallet_cap",
            "minimum_unit",
        ):
            value = env.get(_ENV_PREFIX + name.upper())
            if value is not None:
                data[name] = int(value)

        for name in ("grace_window", "minimum_notice", "unlock_delay"):
            value = env.get(f"{_ENV_PREFIX}{name.upper()}_SECONDS")
            if value is not None:
                data[name] = timedelta(seconds=int(value))

        owner = env.get("SALE_OWNER_ADDRESS")
        if owner:
            data["owner_address"] = owner
        sale_address = env.get("SALE_ADDRESS")
        if sale_address:
            data["sale_address"] = sale_address
        sink = env.get("SALE_EVENT_SINK")
        if sink:
            data["event_sink"] = sink.lower()
        origins = env.get("SALE_CORS_ORIGINS")
        if origins:
            data["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        return cls(**data)


def load_settings(env_path: Optional[Path] = None) -> SaleSettings:
    """
    Load settings from `.env` (if present) and the process environment.

    Example:
        settings = load_settings()
        settings.wallet_cap  # 50_000 * 10**18 unless SALE_WALLET_CAP is set
    """

    if env_path is None:
        env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)
    return SaleSettings.from_env()


__all__ = ["SaleSettings", "load_settings"]
