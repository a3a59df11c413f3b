from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.services import catalog
from api.auth import get_current_admin
from api.schemas import MessageResponse, ProductCreate, ProductResponse, ProductUpdate
from core.db import get_session

router = APIRouter()


@router.get("", response_model=list[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_session)):
    """Public catalog, newest first."""
    return await catalog.list_products(db)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_session)):
    return await catalog.get_product(db, product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    data = payload.model_dump()
    data["commission_type"] = payload.commission_type.value
    return await catalog.create_product(db, **data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    """Update only the fields that were sent."""
    data = payload.model_dump(exclude_unset=True)
    if payload.commission_type is not None:
        data["commission_type"] = payload.commission_type.value
    return await catalog.update_product(db, product_id, **data)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin=Depends(get_current_admin),
):
    await catalog.delete_product(db, product_id)
    return MessageResponse(message="Product deleted successfully")
