from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.services import attribution
from api.auth import get_current_admin
from api.schemas import ClickTrackRequest, ConversionTrackRequest, ConversionTrackResponse, MessageResponse
from core.db import get_session

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


@router.post("/click", response_model=MessageResponse)
async def track_click(
    payload: ClickTrackRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
):
    await attribution.record_click(
        db,
        payload.link_code,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return MessageResponse(message="Click tracked")


@router.post("/conversion", response_model=ConversionTrackResponse)
async def track_conversion(
    payload: ConversionTrackRequest,
    db: AsyncSession = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    """Record a confirmed sale; the commission is computed and frozen here."""
    conversion = await attribution.record_conversion(db, payload.link_code, payload.amount)
    return ConversionTrackResponse(
        conversion_id=conversion.id,
        amount=conversion.amount,
        commission=conversion.commission,
    )
