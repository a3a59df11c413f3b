from fastapi import APIRouter

from .admin import router as admin_router
from .affiliate import router as affiliate_router
from .analytics import router as analytics_router
from .auth import router as auth_router
from .leaderboard import router as leaderboard_router
from .payouts import router as payouts_router
from .products import router as products_router
from .tracking import router as tracking_router

# Root router; every area lives under /api
api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(products_router, prefix="/products", tags=["products"])
api_router.include_router(affiliate_router, prefix="/affiliate", tags=["affiliate"])
api_router.include_router(tracking_router, prefix="/track", tags=["tracking"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
api_router.include_router(leaderboard_router, prefix="/leaderboard", tags=["leaderboard"])
api_router.include_router(payouts_router, prefix="/payouts", tags=["payouts"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])
