from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.services import reporting
from api.schemas import MarketerLeaderboardEntry, ProductLeaderboardEntry
from core.config import get_settings
from core.db import get_session

router = APIRouter()
settings = get_settings()


@router.get("/products", response_model=list[ProductLeaderboardEntry])
async def top_products(db: AsyncSession = Depends(get_session)):
    return await reporting.product_leaderboard(db, limit=settings.leaderboard_limit)


@router.get("/marketers", response_model=list[MarketerLeaderboardEntry])
async def top_marketers(db: AsyncSession = Depends(get_session)):
    return await reporting.marketer_leaderboard(db, limit=settings.leaderboard_limit)
