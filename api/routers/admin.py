from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.services import ledger, reporting
from api.auth import get_current_admin
from api.schemas import (
    AdminConversion,
    AdminPayoutResponse,
    AdminStats,
    AdminUserOverview,
    PayoutResponse,
    PayoutStatus,
    PayoutStatusUpdate,
)
from core.config import get_settings
from core.db import get_session

# Every route here requires an administrator
router = APIRouter(dependencies=[Depends(get_current_admin)])
settings = get_settings()


@router.get("/users", response_model=list[AdminUserOverview])
async def list_users(db: AsyncSession = Depends(get_session)):
    return await reporting.user_overview(db)


@router.get("/conversions", response_model=list[AdminConversion])
async def list_conversions(db: AsyncSession = Depends(get_session)):
    """Most recent conversions across all affiliates."""
    return await reporting.recent_conversions(db, limit=settings.recent_conversions_limit)


@router.get("/payouts", response_model=list[AdminPayoutResponse])
async def list_payouts(
    status: Optional[PayoutStatus] = None,
    user_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
):
    """Payout requests, optionally filtered by status and user."""
    return await ledger.list_payouts(
        db, status=status.value if status else None, user_id=user_id
    )


@router.put("/payouts/{payout_id}", response_model=PayoutResponse)
async def update_payout_status(
    payout_id: int,
    payload: PayoutStatusUpdate,
    db: AsyncSession = Depends(get_session),
):
    return await ledger.set_payout_status(db, payout_id, payload.status.value)


@router.get("/stats", response_model=AdminStats)
async def stats(db: AsyncSession = Depends(get_session)):
    return await reporting.admin_stats(db)
