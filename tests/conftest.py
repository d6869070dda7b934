"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
services, repositories, config and api. Provides a controllable clock and a
sale wired to in-memory collaborators with the reference deployment values:

- 18-decimal sale token, 50,000,000 tokens held by the sale
- 18-decimal secondary asset
- price 0.05 native units per token, wallet cap 50,000 tokens
- sale ends 5 weeks after creation, tokens unlock 5 weeks after creation
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config.settings import SaleSettings  # noqa: E402
from repositories.memory import (  # noqa: E402
    InMemoryFungibleAsset,
    InMemoryNativeCurrency,
    StaticAccessControl,
    StaticPriceFeed,
)
from repositories.sale_event_repository import InMemorySaleEventSink  # noqa: E402
from services.sale_service import TokenSale  # noqa: E402

OWNER = "0x00000000000000000000000000000000000000aa"
SALE_ADDRESS = "0x5a1e5a1e5a1e5a1e5a1e5a1e5a1e5a1e5a1e5a1e"
BUYER_1 = "0x00000000000000000000000000000000000000b1"
BUYER_2 = "0x00000000000000000000000000000000000000b2"
BUYER_3 = "0x00000000000000000000000000000000000000b3"
STRANGER = "0x00000000000000000000000000000000000000c1"

CREATED_AT = datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
TOKEN = 10**18
NATIVE = 10**18
SALE_SUPPLY = 50_000_000


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(CREATED_AT)


@pytest.fixture
def settings() -> SaleSettings:
    return SaleSettings(owner_address=OWNER, sale_address=SALE_ADDRESS)


@pytest.fixture
def token() -> InMemoryFungibleAsset:
    asset = InMemoryFungibleAsset("SGR", decimals=18)
    asset.mint(SALE_ADDRESS, asset.units(SALE_SUPPLY))
    return asset


@pytest.fixture
def secondary() -> InMemoryFungibleAsset:
    return InMemoryFungibleAsset("USDT", decimals=18)


@pytest.fixture
def native() -> InMemoryNativeCurrency:
    currency = InMemoryNativeCurrency()
    for buyer in (BUYER_1, BUYER_2, BUYER_3):
        currency.fund(buyer, 1_000 * NATIVE)
    return currency


@pytest.fixture
def feed() -> StaticPriceFeed:
    return StaticPriceFeed(rate=3_456_000_000, decimals=6)


@pytest.fixture
def events() -> InMemorySaleEventSink:
    return InMemorySaleEventSink()


@pytest.fixture
def sale(settings, token, secondary, native, feed, clock, events) -> TokenSale:
    return TokenSale.from_settings(
        settings,
        token=token,
        secondary=secondary,
        native=native,
        access=StaticAccessControl([OWNER]),
        feed=feed,
        clock=clock,
        events=events,
    )
