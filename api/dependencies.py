"""
Sale instance wiring for the API.

The API serves one sale per process. It is built on first use from
`SaleSettings` with in-process collaborators; tests replace it through
`app.dependency_overrides[get_sale]`.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from config.settings import SaleSettings, load_settings
from repositories.memory import (
    InMemoryFungibleAsset,
    InMemoryNativeCurrency,
    StaticAccessControl,
    StaticPriceFeed,
)
from repositories.sale_event_repository import InMemorySaleEventSink, SupabaseSaleEventSink
from services.sale_service import TokenSale

logger = logging.getLogger(__name__)

# Tokens placed in the sale at start-up (whole tokens).
SALE_SUPPLY: int = 50_000_000


def build_sale(settings: SaleSettings) -> TokenSale:
    token = InMemoryFungibleAsset("SALE", decimals=settings.token_decimals)
    secondary = InMemoryFungibleAsset("USD", decimals=settings.secondary_decimals)
    native = InMemoryNativeCurrency()
    token.mint(settings.sale_address, token.units(SALE_SUPPLY))

    if settings.event_sink == "supabase":
        events = SupabaseSaleEventSink(sale_id=settings.sale_address)
    else:
        events = InMemorySaleEventSink()

    sale = TokenSale.from_settings(
        settings,
        token=token,
        secondary=secondary,
        native=native,
        access=StaticAccessControl([settings.owner_address]),
        feed=StaticPriceFeed(rate=10**8, decimals=8),
        events=events,
    )
    logger.info(
        "Sale created",
        extra={
            "sale_address": settings.sale_address,
            "sale_end_time": sale.sale_end_time.isoformat(),
            "unlock_time": sale.unlock_time.isoformat(),
        },
    )
    return sale


@lru_cache(maxsize=1)
def get_sale() -> TokenSale:
    return build_sale(load_settings())


__all__ = ["SALE_SUPPLY", "build_sale", "get_sale"]
