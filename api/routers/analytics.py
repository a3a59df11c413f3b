from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from affiliate.services import reporting
from api.auth import get_current_user
from api.schemas import DailyStat, ProductStat
from core.config import get_settings
from core.db import get_session

router = APIRouter()
settings = get_settings()


@router.get("/daily-stats", response_model=list[DailyStat])
async def daily_stats(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Clicks, conversions and commission per day over the analytics window."""
    return await reporting.daily_stats(db, current_user.id, days=settings.analytics_days)


@router.get("/product-stats", response_model=list[ProductStat])
async def product_stats(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await reporting.product_stats(db, current_user.id, limit=settings.product_stats_limit)
