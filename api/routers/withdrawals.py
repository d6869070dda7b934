"""
Withdrawals API Endpoints.

Owner withdrawals from the native, token and secondary pools.
"""

from fastapi import APIRouter, Depends, Header

from api.dependencies import get_sale
from api.errors import http_error
from api.models import WithdrawalRequest, WithdrawalResponse
from services.sale_service import TokenSale
from services.withdrawal_service import AssetPool

router = APIRouter()


@router.post("/withdrawals/{pool}", response_model=WithdrawalResponse, summary="Withdraw Funds")
def withdraw(
    pool: AssetPool,
    request: WithdrawalRequest,
    x_wallet_address: str = Header(...),
    sale: TokenSale = Depends(get_sale),
):
    """
    Withdraw from a pool (`native`, `token` or `secondary`).

    - No amount: the whole free balance goes out.
    - No `to`: funds go to the calling owner.

    The free token balance excludes tokens owed to buyers.
    """
    try:
        plan = sale.withdraw(pool, x_wallet_address, amount=request.amount, to=request.to)
        return WithdrawalResponse(
            pool=plan.pool.value,
            amount=plan.amount,
            recipient=plan.recipient,
            free_balance_before=plan.free_balance,
        )
    except Exception as e:
        raise http_error(e, "withdraw funds")
