"""
Vesting API Endpoints.

Read vested balances and release unlocked tokens.
"""

from fastapi import APIRouter, Depends, Header

from api.dependencies import get_sale
from api.errors import http_error
from api.models import ReleaseRequest, ReleaseResponse, VestingBalanceResponse
from services.sale_service import TokenSale

router = APIRouter()


@router.get("/vesting/{wallet}", response_model=VestingBalanceResponse, summary="Vested Balance")
def get_vested_balance(wallet: str, sale: TokenSale = Depends(get_sale)):
    return VestingBalanceResponse(
        wallet=wallet,
        vested_balance=sale.vested_balance_of(wallet),
        unlock_time=sale.unlock_time,
        is_unlocked=sale.is_unlocked(),
    )


@router.post("/vesting/release", response_model=ReleaseResponse, summary="Release Tokens")
def release_tokens(
    request: ReleaseRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """
    Release unlocked tokens from the calling wallet's claim.

    Sends to `destination` when given, otherwise to the calling wallet.
    Rejected before the unlock time.
    """
    try:
        destination = request.destination if request.destination is not None else x_wallet_address
        sale.release_to(x_wallet_address, destination, request.amount)
        return ReleaseResponse(
            wallet=x_wallet_address,
            destination=destination,
            amount=request.amount,
            vested_balance=sale.vested_balance_of(x_wallet_address),
        )
    except Exception as e:
        raise http_error(e, "release tokens")
