from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import User
from affiliate.services import attribution
from api.auth import get_current_user
from api.schemas import LinkGenerateRequest, LinkLookupResponse, LinkResponse, LinkWithStatsResponse
from core.db import get_session

router = APIRouter()


@router.post("/generate", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def generate_link(
    payload: LinkGenerateRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Return the caller's link for a product; 201 when created, 200 when it already existed."""
    link, created = await attribution.create_or_get_link(db, current_user.id, payload.product_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return link


@router.get("/my-links", response_model=list[LinkWithStatsResponse])
async def my_links(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await attribution.list_user_links(db, current_user.id)


@router.get("/link/{code}", response_model=LinkLookupResponse)
async def get_link(code: str, db: AsyncSession = Depends(get_session)):
    """Public lookup used by the redirect page."""
    link = await attribution.get_link_by_code(db, code)
    return LinkLookupResponse(
        id=link.id,
        user_id=link.user_id,
        product_id=link.product_id,
        link_code=link.link_code,
        created_at=link.created_at,
        product_name=link.product.name,
        product_url=link.product.product_url,
    )
