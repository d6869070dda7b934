"""
Quotes API Endpoints.

Endpoints for previewing purchases.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_sale
from api.errors import http_error
from api.models import QuoteRequest, QuoteResponse
from services.sale_service import TokenSale

router = APIRouter()


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    summary="Calculate Purchase Quote",
    description="Preview how many tokens a payment buys. Quote is valid for 15 minutes."
)
def calculate_quote(request: QuoteRequest, sale: TokenSale = Depends(get_sale)):
    """
    Preview a purchase paid in the native currency or the secondary asset.

    The quote does not reserve inventory or wallet-cap headroom; the purchase
    itself is priced again when it executes.

    **Example request:**
    ```json
    {"secondary_amount": 2550, "decimals_hint": 2}
    ```
    """
    try:
        quote = sale.quote(
            native_amount=request.native_amount,
            secondary_amount=request.secondary_amount,
            decimals_hint=request.decimals_hint,
        )
        return QuoteResponse(
            payment_asset=quote.payment_asset,
            payment_amount=quote.payment_amount,
            token_amount=quote.token_amount,
            price=quote.price,
            rate=quote.rate.rate if quote.rate else None,
            rate_decimals=quote.rate.decimals if quote.rate else None,
            created_at=quote.created_at,
            expires_at=quote.expires_at,
        )
    except Exception as e:
        raise http_error(e, "calculate quote")
