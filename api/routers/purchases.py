"""
Purchases API Endpoints.

Endpoints for buying tokens with the native currency or the secondary asset.
The buyer is the wallet named in the X-Wallet-Address header.
"""

from fastapi import APIRouter, Depends, Header

from api.dependencies import get_sale
from api.errors import http_error
from api.models import NativePurchaseRequest, PurchaseResponse, SecondaryPurchaseRequest
from services.sale_service import TokenSale

router = APIRouter()


def _response(sale: TokenSale, wallet: str, tokens: int) -> PurchaseResponse:
    return PurchaseResponse(
        wallet=wallet,
        tokens_purchased=tokens,
        vested_balance=sale.vested_balance_of(wallet),
        total_vested=sale.total_vested,
        message=f"Purchased {tokens} token units; they unlock at {sale.unlock_time.isoformat()}.",
    )


@router.post(
    "/purchases/native",
    response_model=PurchaseResponse,
    summary="Buy With Native Currency",
    description="Buy tokens with the native currency at the fixed price."
)
def buy_with_native(
    request: NativePurchaseRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """
    Buy tokens with the native currency.

    **Process:**
    1. Rejects the purchase if the sale has ended
    2. Converts the payment at the fixed price (rounded down)
    3. Checks the minimum unit and the available inventory
    4. Checks the wallet cap
    5. Takes the payment and locks the tokens until the unlock time

    Any failed check rejects the whole purchase with no state change.
    """
    try:
        tokens = sale.buy_with_native(x_wallet_address, request.payment_amount)
        return _response(sale, x_wallet_address, tokens)
    except Exception as e:
        raise http_error(e, "execute purchase")


@router.post(
    "/purchases/secondary",
    response_model=PurchaseResponse,
    summary="Buy With Secondary Asset",
    description="Buy tokens with the secondary asset at the latest feed rate."
)
def buy_with_secondary(
    request: SecondaryPurchaseRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """
    Buy tokens with the secondary asset.

    The wallet must first approve the sale to spend the normalized amount.
    """
    try:
        tokens = sale.buy_with_secondary(x_wallet_address, request.raw_amount, request.decimals_hint)
        return _response(sale, x_wallet_address, tokens)
    except Exception as e:
        raise http_error(e, "execute purchase")
