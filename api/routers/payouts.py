from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from affiliate.services import ledger
from api.auth import get_current_user
from api.schemas import BalanceResponse, PayoutRequest, PayoutResponse
from core.db import get_session

router = APIRouter()


@router.post("/request", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def request_payout(
    payload: PayoutRequest,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Request a payout against the caller's available balance."""
    return await ledger.request_payout(
        db,
        current_user.id,
        payload.amount,
        payment_method=payload.payment_method,
        payment_details=payload.payment_details,
    )


@router.get("/my-payouts", response_model=list[PayoutResponse])
async def my_payouts(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await ledger.list_user_payouts(db, current_user.id)


@router.get("/balance", response_model=BalanceResponse)
async def balance(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    result = await ledger.get_balance(db, current_user.id)
    return BalanceResponse(
        total_earned=result.total_earned,
        total_committed=result.total_committed,
        available=result.available,
    )
