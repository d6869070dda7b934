"""
Sale API Endpoints.

Read the sale state and the price feed; owner configuration of price,
end time and feed.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException

from api.dependencies import get_sale
from api.errors import http_error
from api.models import (
    FeedRateResponse,
    SaleStateResponse,
    SetEndTimeRequest,
    SetPriceFeedRequest,
    SetPriceRequest,
)
from repositories.memory import StaticPriceFeed
from services.sale_service import TokenSale

router = APIRouter()


def _state(sale: TokenSale) -> SaleStateResponse:
    snapshot = sale.snapshot()
    return SaleStateResponse(
        phase=snapshot.phase.value,
        price=snapshot.price,
        wallet_cap=snapshot.wallet_cap,
        minimum_unit=snapshot.minimum_unit,
        start_time=snapshot.start_time,
        sale_end_time=snapshot.sale_end_time,
        unlock_time=snapshot.unlock_time,
        total_vested=snapshot.total_vested,
        available_tokens=snapshot.available_tokens,
        native_balance=snapshot.native_balance,
        token_balance=snapshot.token_balance,
        secondary_balance=snapshot.secondary_balance,
        has_price_feed=snapshot.has_price_feed,
    )


@router.get(
    "/sale",
    response_model=SaleStateResponse,
    summary="Sale State",
    description="Price, schedule, vested total, inventory and pool balances."
)
def get_sale_state(sale: TokenSale = Depends(get_sale)):
    try:
        return _state(sale)
    except Exception as e:
        raise http_error(e, "read sale state")


@router.get(
    "/sale/rate",
    response_model=FeedRateResponse,
    summary="Secondary Asset Rate",
)
def get_feed_rate(sale: TokenSale = Depends(get_sale)):
    """
    Latest price feed answer.

    `tokens_per_secondary_unit` is what one whole unit of the secondary
    asset buys at the current price.
    """
    try:
        rate = sale.feed_rate()
        return FeedRateResponse(
            rate=rate.rate,
            decimals=rate.decimals,
            tokens_per_secondary_unit=sale.secondary_rate(),
        )
    except Exception as e:
        raise http_error(e, "read price feed")


@router.put("/sale/price", response_model=SaleStateResponse, summary="Set Price")
def set_price(
    request: SetPriceRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """Owner only. The price must be greater than zero."""
    try:
        sale.set_price(x_wallet_address, request.price)
        return _state(sale)
    except Exception as e:
        raise http_error(e, "set price")


@router.put("/sale/end-time", response_model=SaleStateResponse, summary="Set Sale End Time")
def set_sale_end_time(
    request: SetEndTimeRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """
    Owner only. The new end time must be at least the minimum notice
    (10 minutes by default) after now, and the sale must still be open.
    """
    end_time: datetime = request.sale_end_time
    if end_time.tzinfo is None:
        raise HTTPException(status_code=400, detail="sale_end_time must include a timezone")
    try:
        sale.set_sale_end_time(x_wallet_address, end_time.astimezone(sale.sale_end_time.tzinfo))
        return _state(sale)
    except Exception as e:
        raise http_error(e, "set sale end time")


@router.put("/sale/price-feed", response_model=FeedRateResponse, summary="Set Price Feed")
def set_price_feed(
    request: SetPriceFeedRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """Owner only. Installs a feed that always answers the given rate."""
    try:
        sale.require_owner(x_wallet_address, "set_price_feed")
        sale.set_price_feed(x_wallet_address, StaticPriceFeed(request.rate, request.decimals))
        rate = sale.feed_rate()
        return FeedRateResponse(
            rate=rate.rate,
            decimals=rate.decimals,
            tokens_per_secondary_unit=sale.secondary_rate(),
        )
    except Exception as e:
        raise http_error(e, "set price feed")
